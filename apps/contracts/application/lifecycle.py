"""
Contract Lifecycle

Periodic status moves of confirmed contracts and the trial-period
cancellation:
- activate_due_contracts: SCHEDULED -> ACTIVE once the start is reached
- end_finished_contracts: -> ENDED at the window end, units released
- cancel_trial_booking: trial bookings only, before payment liability
"""

from datetime import datetime
from typing import Callable
from uuid import UUID
import logging

from django.utils import timezone

from apps.vendors.domain.audit import AuditLog, AuditRecord
from shared.application.uow import DjangoUnitOfWork

from apps.contracts.domain.entities import Contract

logger = logging.getLogger(__name__)


class ContractLifecycle:

    def __init__(
        self,
        contracts,
        units,
        audit: AuditLog,
        uow_factory: Callable = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.contracts = contracts
        self.units = units
        self.audit = audit
        self.uow_factory = uow_factory
        self.clock = clock

    def activate_due_contracts(self) -> dict:
        now = self.clock()
        activated = failed = 0
        for contract_id in self.contracts.ids_due_for_activation(now):
            try:
                with self.uow_factory() as uow:
                    contract = self.contracts.get(contract_id, lock=True)
                    if contract.activate(now):
                        self.contracts.save(contract)
                        uow.collect_events(contract)
                        activated += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error activating contract {contract_id}: {e}", exc_info=True)

        if activated:
            logger.info(f"Activated {activated} contracts")
        return {"activated": activated, "failed": failed}

    def end_finished_contracts(self) -> dict:
        now = self.clock()
        ended = failed = 0
        for contract_id in self.contracts.ids_due_for_ending(now):
            try:
                with self.uow_factory() as uow:
                    contract = self.contracts.get(contract_id, lock=True)
                    if contract.end(now):
                        self.contracts.save(contract)
                        self._release_units(contract)
                        uow.collect_events(contract)
                        ended += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error ending contract {contract_id}: {e}", exc_info=True)

        if ended:
            logger.info(f"Ended {ended} contracts")
        return {"ended": ended, "failed": failed}

    def cancel_trial_booking(self, contract_id: UUID, reason: str, actor: str = 'system') -> Contract:
        """Raises StateError outside the trial period or for non-trial contracts."""
        now = self.clock()
        with self.uow_factory() as uow:
            contract = self.contracts.get(contract_id, lock=True)
            contract.cancel_during_trial(reason, now)
            self.contracts.save(contract)
            self._release_units(contract)
            self.audit.append(AuditRecord(
                action='trial_booking_cancelled',
                actor=actor,
                vendor_id=contract.vendor_id,
                reason=reason,
                details={
                    'contract_id': str(contract.id),
                    'unit_ids': [str(unit_id) for unit_id in contract.unit_ids],
                },
            ))
            uow.collect_events(contract)

        logger.info(f"Trial booking {contract_id} cancelled by {actor}")
        return contract

    def _release_units(self, contract: Contract):
        for unit_id in contract.unit_ids:
            self.units.release(unit_id, contract_id=contract.id)
