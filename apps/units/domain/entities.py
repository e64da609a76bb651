"""
Unit Domain Values

Read-only snapshots of rental units handed out by the registry, the
input used to create a unit, and the per-unit conflict reported when a
unit cannot be claimed.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

UNIT_TYPES = (
    'standard_shelf',
    'cooled_shelf',
    'frozen_shelf',
    'sales_table',
    'display_window',
    'other',
)


@dataclass(frozen=True)
class UnitSpec:
    """Operator input for a new unit"""
    label: str
    unit_type: str
    base_price: Decimal
    description: str = ''
    location: str = ''
    is_available: bool = True


@dataclass(frozen=True)
class Unit:
    """Snapshot of a rental unit as stored in the registry"""
    id: UUID
    label: str
    unit_type: str
    base_price: Decimal
    is_available: bool = True
    current_contract_id: UUID | None = None
    assigned_vendor_id: UUID | None = None
    description: str = ''
    location: str = ''

    @property
    def is_assigned(self) -> bool:
        return self.current_contract_id is not None


class ConflictReason(str, Enum):
    NOT_AVAILABLE = 'not_available'
    ALREADY_ASSIGNED = 'already_assigned'
    OVERLAPPING_CONTRACT = 'overlapping_contract'


@dataclass(frozen=True)
class UnitConflict:
    """Why one unit could not be allocated"""
    unit_id: UUID
    reason: ConflictReason
    label: str = ''
    contract_id: UUID | None = None

    def as_dict(self) -> dict:
        return {
            'unit_id': str(self.unit_id),
            'label': self.label,
            'reason': self.reason.value,
            'contract_id': str(self.contract_id) if self.contract_id else None,
        }


def conflict_for(unit: Unit) -> UnitConflict | None:
    """Conflict implied by the unit's own flags, if any"""
    if unit.current_contract_id is not None:
        return UnitConflict(
            unit_id=unit.id,
            reason=ConflictReason.ALREADY_ASSIGNED,
            label=unit.label,
            contract_id=unit.current_contract_id,
        )
    if not unit.is_available:
        return UnitConflict(unit_id=unit.id, reason=ConflictReason.NOT_AVAILABLE, label=unit.label)
    return None
