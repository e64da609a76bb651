"""Unit registry: storage of rental units and the claim/release primitives."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Iterable, List
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.units.domain.entities import (
    UNIT_TYPES,
    ConflictReason,
    Unit,
    UnitConflict,
    UnitSpec,
    conflict_for,
)
from shared.domain.exceptions import ConflictError, NotFoundError, StateError, ValidationError
from shared.infrastructure.db import lock_queryset_if_possible

from .models import RentalUnit

logger = logging.getLogger(__name__)


def validate_unit_spec(spec: UnitSpec) -> None:
    errors = []
    if not spec.label or not spec.label.strip():
        errors.append("Unit label is required")
    if spec.unit_type not in UNIT_TYPES:
        errors.append(f"Unknown unit type: {spec.unit_type}")
    try:
        price = Decimal(str(spec.base_price))
    except (InvalidOperation, ValueError):
        errors.append("Base price must be a number")
    else:
        if price < 0:
            errors.append("Base price cannot be negative")
    if errors:
        raise ValidationError(errors[0], errors)


class UnitRegistry(ABC):
    """Rental unit store used by the availability index and the orchestrator."""

    @abstractmethod
    def create_unit(self, spec: UnitSpec) -> Unit:
        raise NotImplementedError

    @abstractmethod
    def get_unit(self, unit_id: UUID) -> Unit:
        raise NotImplementedError

    @abstractmethod
    def get_units(self, unit_ids: Iterable[UUID], *, lock: bool = False) -> List[Unit]:
        """Units in the requested order; NotFoundError names every missing id."""
        raise NotImplementedError

    @abstractmethod
    def list_units(self, unit_type: str | None = None, available: bool | None = None) -> List[Unit]:
        raise NotImplementedError

    @abstractmethod
    def set_availability(self, unit_id: UUID, available: bool) -> Unit:
        raise NotImplementedError

    @abstractmethod
    def assign_to_vendor(self, unit_id: UUID, vendor_id: UUID, contract_id: UUID) -> Unit:
        """Claim a free unit; ConflictError if it is assigned or flagged unavailable."""
        raise NotImplementedError

    @abstractmethod
    def release(self, unit_id: UUID, contract_id: UUID | None = None) -> Unit:
        """
        Free a unit. Idempotent. With ``contract_id`` the unit is only freed
        while that contract still holds it.
        """
        raise NotImplementedError


def to_unit(model: RentalUnit) -> Unit:
    return Unit(
        id=model.id,
        label=model.label,
        unit_type=model.unit_type,
        base_price=model.base_price,
        is_available=model.is_available,
        current_contract_id=model.current_contract_id,
        assigned_vendor_id=model.assigned_vendor_id,
        description=model.description,
        location=model.location,
    )


class DjangoUnitRegistry(UnitRegistry):
    """ORM-backed registry. Claims are a conditional UPDATE (compare-and-swap)."""

    def create_unit(self, spec: UnitSpec) -> Unit:
        validate_unit_spec(spec)
        try:
            with transaction.atomic():
                model = RentalUnit.objects.create(
                    label=spec.label.strip(),
                    unit_type=spec.unit_type,
                    base_price=Decimal(str(spec.base_price)),
                    description=spec.description,
                    location=spec.location,
                    is_available=spec.is_available,
                )
        except IntegrityError:
            raise ValidationError(f"Unit label '{spec.label}' is already in use") from None
        logger.info(f"Created rental unit {model.label} ({model.id})")
        return to_unit(model)

    def get_unit(self, unit_id: UUID) -> Unit:
        try:
            return to_unit(RentalUnit.objects.get(pk=unit_id))
        except (RentalUnit.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Rental unit {unit_id} not found") from None

    def get_units(self, unit_ids: Iterable[UUID], *, lock: bool = False) -> List[Unit]:
        unit_ids = [str(unit_id) for unit_id in unit_ids]
        queryset = RentalUnit.objects.filter(pk__in=unit_ids).order_by("pk")
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        found = {str(model.pk): to_unit(model) for model in queryset}
        missing = [unit_id for unit_id in unit_ids if unit_id not in found]
        if missing:
            raise NotFoundError(f"Rental units not found: {', '.join(missing)}")
        return [found[unit_id] for unit_id in unit_ids]

    def list_units(self, unit_type: str | None = None, available: bool | None = None) -> List[Unit]:
        queryset = RentalUnit.objects.all()
        if unit_type:
            queryset = queryset.filter(unit_type=unit_type)
        if available is not None:
            queryset = queryset.filter(is_available=available)
        return [to_unit(model) for model in queryset.order_by("label")]

    def set_availability(self, unit_id: UUID, available: bool) -> Unit:
        unit = self.get_unit(unit_id)
        if available and unit.is_assigned:
            raise StateError(
                f"Unit {unit.label} is held by contract {unit.current_contract_id}; release it instead"
            )
        model = RentalUnit.objects.get(pk=unit_id)
        model.is_available = available
        # save() rather than update() so post_save receivers see operator edits
        model.save(update_fields=["is_available", "updated_at"])
        logger.info(f"Unit {unit.label} availability set to {available}")
        return to_unit(model)

    def assign_to_vendor(self, unit_id: UUID, vendor_id: UUID, contract_id: UUID) -> Unit:
        claimed = RentalUnit.objects.filter(
            pk=unit_id,
            current_contract__isnull=True,
            is_available=True,
        ).update(
            is_available=False,
            current_contract_id=contract_id,
            assigned_vendor_id=vendor_id,
            updated_at=timezone.now(),
        )
        if claimed:
            logger.debug(f"Unit {unit_id} claimed by contract {contract_id}")
            return self.get_unit(unit_id)

        unit = self.get_unit(unit_id)
        conflict = conflict_for(unit) or UnitConflict(
            unit_id=unit.id, reason=ConflictReason.NOT_AVAILABLE, label=unit.label
        )
        raise ConflictError(f"Unit {unit.label} is already assigned", [conflict])

    def release(self, unit_id: UUID, contract_id: UUID | None = None) -> Unit:
        queryset = RentalUnit.objects.filter(pk=unit_id)
        if contract_id is not None:
            queryset = queryset.filter(current_contract_id=contract_id)
        released = queryset.update(
            is_available=True,
            current_contract=None,
            assigned_vendor=None,
            updated_at=timezone.now(),
        )
        unit = self.get_unit(unit_id)
        if released:
            logger.debug(f"Unit {unit.label} released")
        return unit
