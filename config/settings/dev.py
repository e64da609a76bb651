"""Local development settings.

Mail goes to the console, the display cache expires quickly so listing
changes show up while testing, and the ``apps`` loggers run at DEBUG.
"""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

MARKETPLACE['DISPLAY_CACHE_TIMEOUT'] = 10  # noqa: F405

LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
