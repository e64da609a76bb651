"""
Availability Index

Answers "is this unit free for this window?" from the contract store.
Windows are half-open [start, end): a contract ending exactly when another
begins does not conflict. Omitting the end asks about a single instant.
Only scheduled and active contracts occupy units.

``check_units`` is the authoritative re-check used by booking confirmation
inside its transaction. The display cache in ``apps.contracts.cache`` is a
separate type and is never consulted here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List
from uuid import UUID

from apps.units.domain.entities import ConflictReason, Unit, UnitConflict, conflict_for
from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import TimeWindow

logger = logging.getLogger(__name__)


class AvailabilityIndex(ABC):

    @abstractmethod
    def is_available(self, unit_id: UUID, window_start: datetime, window_end: datetime | None = None) -> bool:
        raise NotImplementedError

    @abstractmethod
    def find_available_units(
        self,
        unit_type: str | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> List[Unit]:
        raise NotImplementedError

    @abstractmethod
    def check_units(self, units: Iterable[Unit], window: TimeWindow) -> List[UnitConflict]:
        """One conflict per unit that cannot be allocated for ``window``; empty when all are free."""
        raise NotImplementedError


class ContractAvailabilityIndex(AvailabilityIndex):
    """Availability computed from the unit registry and the contract repository."""

    def __init__(self, units, contracts, clock=None):
        self.units = units
        self.contracts = contracts
        self.clock = clock

    def _window(self, window_start: datetime | None, window_end: datetime | None) -> TimeWindow:
        if window_start is None:
            if self.clock is None:
                raise ValidationError("window_start is required")
            window_start = self.clock()
        try:
            return TimeWindow(window_start, window_end)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def is_available(self, unit_id: UUID, window_start: datetime, window_end: datetime | None = None) -> bool:
        window = self._window(window_start, window_end)
        unit = self.units.get_unit(unit_id)
        return not self.contracts.find_overlapping([unit.id], window)

    def find_available_units(
        self,
        unit_type: str | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> List[Unit]:
        window = self._window(window_start, window_end)
        candidates = self.units.list_units(unit_type=unit_type, available=True)
        if not candidates:
            return []
        occupied = {
            str(unit_id)
            for unit_id, _contract_id in self.contracts.find_overlapping(
                [unit.id for unit in candidates], window
            )
        }
        return [unit for unit in candidates if str(unit.id) not in occupied]

    def check_units(self, units: Iterable[Unit], window: TimeWindow) -> List[UnitConflict]:
        units = list(units)
        overlapping = {}
        for unit_id, contract_id in self.contracts.find_overlapping([unit.id for unit in units], window):
            overlapping.setdefault(str(unit_id), contract_id)

        conflicts = []
        for unit in units:
            conflict = conflict_for(unit)
            if conflict is None and str(unit.id) in overlapping:
                conflict = UnitConflict(
                    unit_id=unit.id,
                    reason=ConflictReason.OVERLAPPING_CONTRACT,
                    label=unit.label,
                    contract_id=overlapping[str(unit.id)],
                )
            if conflict is not None:
                conflicts.append(conflict)

        if conflicts:
            logger.info(
                "Availability re-check found conflicts: "
                + ", ".join(f"{c.label or c.unit_id} ({c.reason.value})" for c in conflicts)
            )
        return conflicts
