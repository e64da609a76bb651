"""Marketplace-wide configuration models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain import OpeningSchedule


class MarketplaceOpening(models.Model):
    """Singleton row holding the store opening date.

    While ``enabled`` is false the opening gate is switched off and the
    marketplace counts as open.
    """

    SINGLETON_PK = 1

    enabled = models.BooleanField(default=False)
    opening_at = models.DateTimeField(null=True, blank=True)
    modified_by = models.CharField(max_length=150, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("marketplace opening")
        verbose_name_plural = _("marketplace opening")

    def __str__(self) -> str:
        if not self.enabled:
            return "Opening gate disabled"
        return f"Opening at {self.opening_at:%Y-%m-%d %H:%M}" if self.opening_at else "Opening date not set"

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def load(cls) -> "MarketplaceOpening":
        obj, _created = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return obj

    def to_schedule(self) -> OpeningSchedule:
        return OpeningSchedule(enabled=self.enabled, opening_at=self.opening_at)
