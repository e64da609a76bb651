import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("marketplace")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Start trials once the marketplace opens - every 5 minutes
    "activate-trials-on-opening": {
        "task": "vendors.activate_trials_on_opening",
        "schedule": crontab(minute="*/5"),
    },
    # Trial expiry reminders (7/3/1 days) - daily
    "send-trial-expiration-warnings": {
        "task": "vendors.send_trial_expiration_warnings",
        "schedule": crontab(hour=9, minute=0),
    },
    # Expire finished trials - daily, shortly after midnight
    "expire-trials": {
        "task": "vendors.expire_trials",
        "schedule": crontab(hour=0, minute=5),
    },
    # Scheduled -> active contracts - every hour
    "activate-due-contracts": {
        "task": "contracts.activate_due_contracts",
        "schedule": crontab(minute=0),
    },
    # End contracts and release units - every hour
    "end-finished-contracts": {
        "task": "contracts.end_finished_contracts",
        "schedule": crontab(minute=15),
    },
    # Retry failed notifications - every minute
    "retry-due-outbound-events": {
        "task": "notifications.retry_due_outbound_events",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
}

app.conf.timezone = "Europe/Berlin"
