"""Event handlers and model signal receivers that keep the display cache fresh."""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from apps.units.models import RentalUnit
from shared.application.message_bus import message_bus

from .cache import DisplayAvailabilityCache
from .domain.events import ContractEvent


@message_bus.subscribe(ContractEvent)
def invalidate_display_cache_on_contract_change(event: ContractEvent) -> None:
    DisplayAvailabilityCache.invalidate()


@receiver([post_save, post_delete], sender=RentalUnit)
def invalidate_display_cache_on_unit_change(**_: object) -> None:
    """Operator edits to units change what the listings may show."""
    DisplayAvailabilityCache.invalidate()
