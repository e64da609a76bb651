"""Django project configuration for the consignment marketplace.

Holds the per-environment settings, the Celery application with the beat
schedule for trial and contract sweeps, and the WSGI/ASGI entry points.
"""

# Loading the Celery app here registers every @shared_task when Django starts.
from .celery import app as celery_app  # noqa: F401
