"""Celery tasks for contract status sweeps."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import build_contract_lifecycle

logger = logging.getLogger(__name__)


@shared_task(name="contracts.activate_due_contracts")
def activate_due_contracts() -> dict[str, int]:
    """
    Move scheduled contracts whose start has been reached to active.

    Returns:
        dict: {"activated": ..., "failed": ...}
    """
    return build_contract_lifecycle().activate_due_contracts()


@shared_task(name="contracts.end_finished_contracts")
def end_finished_contracts() -> dict[str, int]:
    """
    End contracts whose window has elapsed and release their units.

    Returns:
        dict: {"ended": ..., "failed": ...}
    """
    return build_contract_lifecycle().end_finished_contracts()
