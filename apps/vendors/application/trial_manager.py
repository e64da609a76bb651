"""
Trial Lifecycle Manager

Use cases around a vendor's registration/trial state: scheduled sweeps
(activation at opening, reminders, expiry) and admin actions (activate,
extend, expire, convert, cancel, reactivate, reset reminders, bulk).

Each vendor update runs in its own unit of work and is saved with an
optimistic version check, so a sweep never overwrites a concurrent admin
edit. Sweeps skip a vendor that lost such a race; the next run picks it up.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Iterable, List
from uuid import UUID
import logging

from django.utils import timezone

from apps.marketplace.domain import ALWAYS_OPEN, OpeningSchedule
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ConcurrentModificationError, DomainError, ValidationError

from apps.vendors.domain.audit import AuditLog, AuditRecord
from apps.vendors.domain.entities import RegistrationStatus, TrialPolicy, Vendor

logger = logging.getLogger(__name__)


SYSTEM_ACTOR = 'system'


@dataclass
class TrialResult:
    vendor_id: UUID
    status: str
    changed: bool
    trial_start: datetime | None = None
    trial_end: datetime | None = None
    message: str = ''

    @classmethod
    def from_vendor(cls, vendor: Vendor, changed: bool, message: str = '') -> 'TrialResult':
        return cls(
            vendor_id=vendor.id,
            status=vendor.status.value,
            changed=changed,
            trial_start=vendor.trial_start,
            trial_end=vendor.trial_end,
            message=message,
        )


class BulkOperation(str, Enum):
    EXTEND = 'extend'
    EXPIRE = 'expire'
    RESET_REMINDERS = 'reset_reminders'


@dataclass
class BulkResult:
    operation: str
    success_count: int = 0
    failure_count: int = 0
    errors: List[dict] = field(default_factory=list)
    results: List[TrialResult] = field(default_factory=list)


@dataclass(frozen=True)
class TrialTerms:
    """Trial timing handed to booking confirmation"""
    applies: bool
    trial_days: int


class TrialLifecycleManager:
    """
    Owns every trial state transition.

    Collaborators are injected: vendor repository, audit log, a provider for
    the marketplace opening schedule, the trial policy, a unit-of-work
    factory and a clock.
    """

    def __init__(
        self,
        vendors,
        audit: AuditLog,
        opening_provider: Callable[[], OpeningSchedule] = lambda: ALWAYS_OPEN,
        policy: TrialPolicy = TrialPolicy(),
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.vendors = vendors
        self.audit = audit
        self.opening_provider = opening_provider
        self.policy = policy
        self.uow_factory = uow_factory
        self.clock = clock

    # ===== Booking confirmation hooks =====

    def trial_terms(self, vendor: Vendor, now: datetime, *, has_live_trial_booking: bool = False) -> TrialTerms:
        """A booking is a trial booking while the vendor still has trial time and no other one"""
        applies = vendor.is_trial_eligible(now) and not has_live_trial_booking
        return TrialTerms(applies=applies, trial_days=self.policy.length_days)

    def start_trial_for_booking(self, vendor: Vendor, now: datetime) -> bool:
        """
        Called inside the confirmation transaction: a preregistered vendor's
        trial starts with its first booking once the marketplace is open.
        The caller saves the vendor.
        """
        if vendor.status != RegistrationStatus.PREREGISTERED:
            return False
        if not self.opening_provider().is_open(now):
            return False
        changed = vendor.activate_trial(now, self.policy)
        if changed:
            logger.info(f"Trial for vendor {vendor.id} started by its first booking")
        return changed

    # ===== Scheduled sweeps =====

    def activate_trials_on_opening(self) -> dict:
        """Move every preregistered vendor to trial_active once the marketplace is open."""
        now = self.clock()
        if not self.opening_provider().is_open(now):
            logger.debug("Marketplace not open yet, skipping trial activation")
            return {"activated": 0, "skipped": 0}

        activated = skipped = 0
        for vendor_id in self.vendors.ids_with_status(RegistrationStatus.PREREGISTERED):
            try:
                if self._apply(vendor_id, lambda vendor: vendor.activate_trial(now, self.policy)):
                    activated += 1
            except ConcurrentModificationError as e:
                skipped += 1
                logger.warning(f"Skipping trial activation for vendor {vendor_id}: {e}")
            except Exception as e:
                skipped += 1
                logger.error(f"Error activating trial for vendor {vendor_id}: {e}", exc_info=True)

        if activated:
            logger.info(f"Activated {activated} trials on marketplace opening")
        return {"activated": activated, "skipped": skipped}

    def send_expiration_warnings(self) -> dict:
        """Emit TrialExpiring once per reminder threshold and vendor."""
        now = self.clock()
        horizon = now + timedelta(days=max(self.policy.reminder_days))
        sent = skipped = 0

        def warn(vendor: Vendor) -> bool:
            threshold = vendor.due_reminder(now, self.policy)
            if threshold is None:
                return False
            vendor.record_reminder(threshold, now, self.policy)
            return True

        for vendor_id in self.vendors.trial_ids_ending_between(now, horizon):
            try:
                if self._apply(vendor_id, warn):
                    sent += 1
            except ConcurrentModificationError as e:
                skipped += 1
                logger.warning(f"Skipping trial reminder for vendor {vendor_id}: {e}")
            except Exception as e:
                skipped += 1
                logger.error(f"Error sending trial reminder to vendor {vendor_id}: {e}", exc_info=True)

        if sent:
            logger.info(f"Queued {sent} trial expiration reminders")
        return {"reminded": sent, "skipped": skipped}

    def expire_due_trials(self) -> dict:
        """trial_active vendors whose trial end has passed become trial_expired."""
        now = self.clock()
        expired = skipped = 0
        for vendor_id in self.vendors.trial_ids_ending_before(now):
            try:
                if self._apply(vendor_id, lambda vendor: vendor.expire_trial(now)):
                    expired += 1
            except ConcurrentModificationError as e:
                skipped += 1
                logger.warning(f"Skipping trial expiry for vendor {vendor_id}: {e}")
            except Exception as e:
                skipped += 1
                logger.error(f"Error expiring trial for vendor {vendor_id}: {e}", exc_info=True)

        if expired:
            logger.info(f"Expired {expired} trials")
        return {"expired": expired, "skipped": skipped}

    # ===== Admin actions =====

    def activate_trial(self, vendor_id: UUID, actor: str = SYSTEM_ACTOR) -> TrialResult:
        now = self.clock()

        def activate(vendor: Vendor) -> bool:
            return vendor.activate_trial(now, self.policy)

        return self._admin_action(
            vendor_id, activate, actor=actor, action='trial_activated',
            details=lambda vendor: {'trial_end': _iso(vendor.trial_end)},
        )

    def extend_trial(self, vendor_id: UUID, days: int, actor: str, reason: str = '') -> TrialResult:
        now = self.clock()
        change = {}

        def extend(vendor: Vendor) -> bool:
            change['previous_end'], change['new_end'] = vendor.extend_trial(
                days, now, actor=actor, reason=reason
            )
            return True

        return self._admin_action(
            vendor_id, extend, actor=actor, action='trial_extended', reason=reason,
            details=lambda vendor: {
                'extension_days': days,
                'previous_end': _iso(change['previous_end']),
                'new_end': _iso(change['new_end']),
            },
        )

    def expire_trial(self, vendor_id: UUID, actor: str, reason: str = '') -> TrialResult:
        now = self.clock()
        return self._admin_action(
            vendor_id, lambda vendor: vendor.expire_trial(now, force=True),
            actor=actor, action='trial_expired', reason=reason,
            details=lambda vendor: {'trial_end': _iso(vendor.trial_end)},
        )

    def convert_trial(self, vendor_id: UUID, actor: str = SYSTEM_ACTOR) -> TrialResult:
        """Idempotent: an already active vendor is a no-op success without audit entry."""
        now = self.clock()
        return self._admin_action(
            vendor_id, lambda vendor: vendor.convert(now),
            actor=actor, action='trial_converted',
            details=lambda vendor: {'converted_at': _iso(vendor.converted_at)},
        )

    def cancel_trial(self, vendor_id: UUID, reason: str, actor: str = SYSTEM_ACTOR) -> TrialResult:
        now = self.clock()
        previous = {}

        def cancel(vendor: Vendor) -> bool:
            previous['status'] = vendor.status.value
            return vendor.cancel(reason, now)

        return self._admin_action(
            vendor_id, cancel, actor=actor, action='vendor_cancelled', reason=reason,
            details=lambda vendor: {'previous_status': previous['status']},
        )

    def reactivate(self, vendor_id: UUID, actor: str, reason: str = '') -> TrialResult:
        now = self.clock()
        return self._admin_action(
            vendor_id, lambda vendor: vendor.reactivate(now),
            actor=actor, action='vendor_reactivated', reason=reason,
            details=lambda vendor: {'restored_status': vendor.status.value},
        )

    def reset_reminders(self, vendor_id: UUID, actor: str) -> TrialResult:
        now = self.clock()
        return self._admin_action(
            vendor_id, lambda vendor: vendor.reset_reminders(now) or True,
            actor=actor, action='reminders_reset',
        )

    def bulk_trial_operation(
        self,
        vendor_ids: Iterable[UUID],
        operation,
        params: dict | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> BulkResult:
        """
        Apply one operation to many vendors. A failing id is recorded in
        ``errors`` and never aborts the rest of the batch.
        """
        try:
            operation = BulkOperation(operation)
        except ValueError:
            raise ValidationError(f"Unknown bulk operation: {operation}") from None
        params = params or {}
        reason = params.get('reason', '')
        vendor_ids = list(vendor_ids)
        if not vendor_ids:
            raise ValidationError("At least one vendor id is required")

        if operation == BulkOperation.EXTEND:
            days = params.get('days')
            if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
                raise ValidationError("Bulk extension needs a positive whole number of days")
            run = lambda vendor_id: self.extend_trial(vendor_id, days, actor, reason)  # noqa: E731
        elif operation == BulkOperation.EXPIRE:
            run = lambda vendor_id: self.expire_trial(vendor_id, actor, reason)  # noqa: E731
        else:
            run = lambda vendor_id: self.reset_reminders(vendor_id, actor)  # noqa: E731

        result = BulkResult(operation=operation.value)
        for vendor_id in vendor_ids:
            try:
                result.results.append(run(vendor_id))
                result.success_count += 1
            except DomainError as e:
                result.failure_count += 1
                result.errors.append({'vendor_id': str(vendor_id), 'error': str(e)})
            except Exception as e:
                result.failure_count += 1
                result.errors.append({'vendor_id': str(vendor_id), 'error': str(e)})
                logger.error(f"Bulk {operation.value} failed for vendor {vendor_id}: {e}", exc_info=True)

        self.audit.append(AuditRecord(
            action=f'bulk_{operation.value}',
            actor=actor,
            reason=reason,
            details={
                'vendor_ids': [str(vendor_id) for vendor_id in vendor_ids],
                'params': {key: str(value) for key, value in params.items()},
                'success_count': result.success_count,
                'failure_count': result.failure_count,
            },
        ))
        logger.info(
            f"Bulk {operation.value} by {actor}: "
            f"{result.success_count} succeeded, {result.failure_count} failed"
        )
        return result

    def audit_log(self, **filters) -> List[AuditRecord]:
        return self.audit.query(**filters)

    # ===== Internals =====

    def _apply(self, vendor_id: UUID, change: Callable[[Vendor], bool]) -> bool:
        with self.uow_factory() as uow:
            vendor = self.vendors.get(vendor_id, lock=True)
            changed = change(vendor)
            if changed:
                self.vendors.save(vendor)
                uow.collect_events(vendor)
            return changed

    def _admin_action(
        self,
        vendor_id: UUID,
        change: Callable[[Vendor], bool],
        *,
        actor: str,
        action: str,
        reason: str = '',
        details: Callable[[Vendor], dict] | None = None,
    ) -> TrialResult:
        with self.uow_factory() as uow:
            vendor = self.vendors.get(vendor_id, lock=True)
            changed = change(vendor)
            if changed:
                self.vendors.save(vendor)
                self.audit.append(AuditRecord(
                    action=action,
                    actor=actor,
                    vendor_id=vendor.id,
                    reason=reason,
                    details=details(vendor) if details else {},
                ))
                uow.collect_events(vendor)

        logger.info(
            f"{action} for vendor {vendor_id} by {actor}: "
            f"{'changed' if changed else 'no change'} (status {vendor.status.value})"
        )
        return TrialResult.from_vendor(vendor, changed)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
