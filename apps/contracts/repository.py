"""Contract repository: persistence of contract aggregates and overlap queries."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Tuple
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db.models import Q  # type: ignore

from shared.domain.exceptions import NotFoundError
from shared.domain.value_objects import TimeWindow
from shared.infrastructure.db import lock_queryset_if_possible

from .domain.entities import BLOCKING_STATUSES, Contract, ContractLine, ContractStatus
from .models import Contract as ContractModel
from .models import ContractLine as ContractLineModel

logger = logging.getLogger(__name__)

BLOCKING_VALUES = [status.value for status in BLOCKING_STATUSES]


class ContractRepository(ABC):

    @abstractmethod
    def add(self, contract: Contract) -> Contract:
        raise NotImplementedError

    @abstractmethod
    def get(self, contract_id: UUID, *, lock: bool = False) -> Contract:
        raise NotImplementedError

    @abstractmethod
    def save(self, contract: Contract) -> Contract:
        """Persist status changes"""
        raise NotImplementedError

    @abstractmethod
    def find_overlapping(self, unit_ids: Iterable[UUID], window: TimeWindow) -> List[Tuple[UUID, UUID]]:
        """(unit_id, contract_id) pairs of blocking contracts whose window overlaps ``window``"""
        raise NotImplementedError

    @abstractmethod
    def has_live_trial_booking(self, vendor_id: UUID) -> bool:
        raise NotImplementedError

    @abstractmethod
    def ids_due_for_activation(self, now: datetime) -> List[UUID]:
        raise NotImplementedError

    @abstractmethod
    def ids_due_for_ending(self, now: datetime) -> List[UUID]:
        raise NotImplementedError

    @abstractmethod
    def for_vendor(self, vendor_id: UUID) -> List[Contract]:
        raise NotImplementedError


def overlap_filter(window: TimeWindow, prefix: str = "") -> Q:
    """Half-open overlap with [window_start, window_end); instants use containment."""
    if window.is_instant:
        return Q(**{f"{prefix}window_start__lte": window.start, f"{prefix}window_end__gt": window.start})
    return Q(**{f"{prefix}window_start__lt": window.end, f"{prefix}window_end__gt": window.start})


def contract_from_model(model: ContractModel) -> Contract:
    lines = tuple(
        ContractLine(
            unit_id=line.unit_id,
            monthly_price=line.monthly_price,
            start=line.start,
            end=line.end,
            unit_label=line.unit.label,
            unit_type=line.unit.unit_type,
            position=line.position,
        )
        for line in model.lines.select_related("unit").order_by("position")
    )
    return Contract(
        id=model.id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        vendor_id=model.vendor_id,
        status=ContractStatus(model.status),
        lines=lines,
        scheduled_start=model.scheduled_start,
        duration_months=model.duration_months,
        window_end=model.window_end,
        discount_rate=model.discount_rate,
        commission_rate=model.commission_rate,
        total_monthly_price=model.total_monthly_price,
        add_ons=tuple(model.add_ons or ()),
        price_breakdown=model.price_breakdown,
        is_trial_booking=model.is_trial_booking,
        trial_vendor_id=model.trial_vendor_id,
        payment_liable_from=model.payment_liable_from,
        cancelled_at=model.cancelled_at,
        cancellation_reason=model.cancellation_reason,
    )


class DjangoContractRepository(ContractRepository):

    def add(self, contract: Contract) -> Contract:
        ContractModel.objects.create(
            id=contract.id,
            vendor_id=contract.vendor_id,
            status=contract.status.value,
            scheduled_start=contract.scheduled_start,
            duration_months=contract.duration_months,
            discount_rate=contract.discount_rate,
            commission_rate=contract.commission_rate,
            total_monthly_price=contract.total_monthly_price,
            add_ons=list(contract.add_ons),
            price_breakdown=contract.price_breakdown,
            is_trial_booking=contract.is_trial_booking,
            trial_vendor_id=contract.trial_vendor_id,
            payment_liable_from=contract.payment_liable_from,
            window_start=contract.scheduled_start,
            window_end=contract.window_end,
            created_at=contract.created_at,
        )
        ContractLineModel.objects.bulk_create(
            ContractLineModel(
                contract_id=contract.id,
                unit_id=line.unit_id,
                position=line.position,
                monthly_price=line.monthly_price,
                start=line.start,
                end=line.end,
            )
            for line in contract.lines
        )
        logger.info(f"Contract {contract.id} stored with {len(contract.lines)} units")
        return contract

    def get(self, contract_id: UUID, *, lock: bool = False) -> Contract:
        queryset = ContractModel.objects.filter(pk=contract_id)
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        try:
            return contract_from_model(queryset.get())
        except (ContractModel.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Contract {contract_id} not found") from None

    def save(self, contract: Contract) -> Contract:
        updated = ContractModel.objects.filter(pk=contract.id).update(
            status=contract.status.value,
            cancelled_at=contract.cancelled_at,
            cancellation_reason=contract.cancellation_reason,
            updated_at=contract.updated_at,
        )
        if not updated:
            raise NotFoundError(f"Contract {contract.id} not found")
        return contract

    def find_overlapping(self, unit_ids: Iterable[UUID], window: TimeWindow) -> List[Tuple[UUID, UUID]]:
        lines = ContractLineModel.objects.filter(
            unit_id__in=list(unit_ids),
            contract__status__in=BLOCKING_VALUES,
        ).filter(overlap_filter(window, prefix="contract__"))
        return list(lines.values_list("unit_id", "contract_id"))

    def has_live_trial_booking(self, vendor_id: UUID) -> bool:
        return ContractModel.objects.filter(
            vendor_id=vendor_id,
            is_trial_booking=True,
            status__in=BLOCKING_VALUES,
        ).exists()

    def ids_due_for_activation(self, now: datetime) -> List[UUID]:
        return list(
            ContractModel.objects.filter(
                status=ContractStatus.SCHEDULED.value,
                scheduled_start__lte=now,
            )
            .order_by("scheduled_start")
            .values_list("pk", flat=True)
        )

    def ids_due_for_ending(self, now: datetime) -> List[UUID]:
        return list(
            ContractModel.objects.filter(
                status__in=BLOCKING_VALUES,
                window_end__lte=now,
            )
            .order_by("window_end")
            .values_list("pk", flat=True)
        )

    def for_vendor(self, vendor_id: UUID) -> List[Contract]:
        return [
            contract_from_model(model)
            for model in ContractModel.objects.filter(vendor_id=vendor_id).order_by("-created_at")
        ]
