"""Celery tasks for the vendor trial lifecycle."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import build_trial_manager

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="vendors.activate_trials_on_opening")
def activate_trials_on_opening() -> dict[str, int]:
    """
    Start the trial of every preregistered vendor once the marketplace is open.

    Runs every few minutes; a no-op before the opening date.

    Returns:
        dict: {"activated": ..., "skipped": ...}
    """
    return build_trial_manager().activate_trials_on_opening()


@shared_task(name="vendors.send_trial_expiration_warnings")
def send_trial_expiration_warnings() -> dict[str, int]:
    """
    Queue the 7/3/1-day trial expiry reminders.

    Each threshold is sent at most once per vendor; an extension resets them.

    Returns:
        dict: {"reminded": ..., "skipped": ...}
    """
    return build_trial_manager().send_expiration_warnings()


@shared_task(name="vendors.expire_trials")
def expire_trials() -> dict[str, int]:
    """
    Move trial_active vendors whose trial end has passed to trial_expired.

    Returns:
        dict: {"expired": ..., "skipped": ...}
    """
    return build_trial_manager().expire_due_trials()
