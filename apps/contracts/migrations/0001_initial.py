import uuid
from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("units", "0001_initial"),
        ("vendors", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Contract",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Scheduled"),
                            ("active", "Active"),
                            ("cancelled_during_trial", "Cancelled during trial"),
                            ("ended", "Ended"),
                        ],
                        default="scheduled",
                        max_length=32,
                    ),
                ),
                ("scheduled_start", models.DateTimeField()),
                ("duration_months", models.PositiveSmallIntegerField()),
                ("discount_rate", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=5)),
                ("commission_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                (
                    "total_monthly_price",
                    models.DecimalField(
                        decimal_places=4,
                        help_text="Unrounded monthly total at the time of confirmation.",
                        max_digits=12,
                    ),
                ),
                ("add_ons", models.JSONField(blank=True, default=list)),
                ("price_breakdown", models.JSONField(blank=True, default=dict)),
                ("is_trial_booking", models.BooleanField(default=False)),
                ("payment_liable_from", models.DateTimeField(blank=True, null=True)),
                ("window_start", models.DateTimeField()),
                ("window_end", models.DateTimeField()),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=models.PROTECT,
                        related_name="contracts",
                        to="vendors.vendor",
                    ),
                ),
                (
                    "trial_vendor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=models.PROTECT,
                        related_name="trial_contracts",
                        to="vendors.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "window_start", "window_end"],
                        name="contracts_c_status_9a1e3b_idx",
                    ),
                    models.Index(fields=["vendor", "status"], name="contracts_c_vendor__5d20c8_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("window_start__lt", models.F("window_end"))),
                        name="contract_window_start_before_end",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ContractLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveSmallIntegerField(default=0)),
                ("monthly_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("start", models.DateTimeField()),
                ("end", models.DateTimeField()),
                (
                    "contract",
                    models.ForeignKey(
                        on_delete=models.CASCADE,
                        related_name="lines",
                        to="contracts.contract",
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        on_delete=models.PROTECT,
                        related_name="contract_lines",
                        to="units.rentalunit",
                    ),
                ),
            ],
            options={
                "ordering": ["contract", "position"],
                "constraints": [
                    models.UniqueConstraint(fields=("contract", "unit"), name="unique_unit_per_contract"),
                ],
            },
        ),
    ]
