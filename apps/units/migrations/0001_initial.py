import uuid
from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("vendors", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="RentalUnit",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("label", models.CharField(max_length=64, unique=True)),
                (
                    "unit_type",
                    models.CharField(
                        choices=[
                            ("standard_shelf", "Standard shelf"),
                            ("cooled_shelf", "Cooled shelf"),
                            ("frozen_shelf", "Frozen shelf"),
                            ("sales_table", "Sales table"),
                            ("display_window", "Display window"),
                            ("other", "Other"),
                        ],
                        default="standard_shelf",
                        max_length=32,
                    ),
                ),
                (
                    "base_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Catalog monthly price in EUR.",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("is_available", models.BooleanField(default=True)),
                ("description", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assigned_vendor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=models.SET_NULL,
                        related_name="assigned_units",
                        to="vendors.vendor",
                    ),
                ),
            ],
            options={
                "verbose_name": "rental unit",
                "verbose_name_plural": "rental units",
                "ordering": ["label"],
                "indexes": [
                    models.Index(fields=["unit_type", "is_available"], name="units_renta_unit_ty_4f7c2a_idx"),
                ],
            },
        ),
    ]
