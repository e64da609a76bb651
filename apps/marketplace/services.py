"""Read/write helpers for the marketplace opening configuration."""

from __future__ import annotations

import logging
from datetime import datetime

from shared.domain.exceptions import ValidationError

from .domain import OpeningSchedule
from .models import MarketplaceOpening

logger = logging.getLogger(__name__)


def get_opening_schedule() -> OpeningSchedule:
    """Provider injected into the trial manager and the orchestrator."""
    return MarketplaceOpening.load().to_schedule()


def set_opening(
    opening_at: datetime | None,
    *,
    enabled: bool = True,
    modified_by: str = "",
) -> OpeningSchedule:
    if enabled and opening_at is None:
        raise ValidationError("An enabled opening gate needs an opening date")
    opening = MarketplaceOpening.load()
    opening.enabled = enabled
    opening.opening_at = opening_at
    opening.modified_by = modified_by
    opening.save()
    logger.info(f"Marketplace opening set to {opening_at} (enabled={enabled}) by {modified_by or 'system'}")
    return opening.to_schedule()
