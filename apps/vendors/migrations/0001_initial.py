import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, max_length=32)),
                (
                    "registration_status",
                    models.CharField(
                        choices=[
                            ("preregistered", "Pre-registered"),
                            ("trial_active", "Trial active"),
                            ("trial_expired", "Trial expired"),
                            ("active", "Active"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="preregistered",
                        max_length=20,
                    ),
                ),
                ("trial_start_date", models.DateTimeField(blank=True, null=True)),
                ("trial_end_date", models.DateTimeField(blank=True, null=True)),
                ("is_publicly_visible", models.BooleanField(default=False)),
                (
                    "status_before_cancellation",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("preregistered", "Pre-registered"),
                            ("trial_active", "Trial active"),
                            ("trial_expired", "Trial expired"),
                            ("active", "Active"),
                            ("cancelled", "Cancelled"),
                        ],
                        max_length=20,
                    ),
                ),
                ("cancellation_reason", models.TextField(blank=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("converted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "reminders_sent",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Reminder thresholds (days before trial end) already sent.",
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=models.SET_NULL,
                        related_name="vendor_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(
                        fields=["registration_status", "trial_end_date"],
                        name="vendors_ven_registr_6b1f0e_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "selections",
                    models.JSONField(default=list, help_text="List of {unit_type, monthly_base_price, count}."),
                ),
                ("add_ons", models.JSONField(blank=True, default=list)),
                ("duration_months", models.PositiveSmallIntegerField(default=1)),
                ("commission_rate", models.DecimalField(decimal_places=2, default=Decimal("4.00"), max_digits=5)),
                ("comments", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("resolution_note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=models.CASCADE,
                        related_name="booking_requests",
                        to="vendors.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("vendor",),
                        name="one_pending_booking_per_vendor",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor", models.CharField(max_length=255)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("trial_activated", "Trial activated"),
                            ("trial_extended", "Trial extended"),
                            ("trial_expired", "Trial expired"),
                            ("trial_converted", "Trial converted"),
                            ("vendor_cancelled", "Vendor cancelled"),
                            ("vendor_reactivated", "Vendor reactivated"),
                            ("reminders_reset", "Reminders reset"),
                            ("booking_confirmed", "Booking confirmed"),
                            ("booking_rejected", "Booking rejected"),
                            ("price_override", "Price override"),
                            ("trial_booking_cancelled", "Trial booking cancelled"),
                            ("bulk_extend", "Bulk extend"),
                            ("bulk_expire", "Bulk expire"),
                            ("bulk_reset_reminders", "Bulk reset reminders"),
                        ],
                        max_length=40,
                    ),
                ),
                ("reason", models.TextField(blank=True)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                (
                    "vendor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=models.PROTECT,
                        related_name="audit_entries",
                        to="vendors.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
                "indexes": [
                    models.Index(fields=["vendor", "timestamp"], name="vendors_aud_vendor__3c9a41_idx"),
                    models.Index(fields=["action", "timestamp"], name="vendors_aud_action_8e2d57_idx"),
                ],
            },
        ),
    ]
