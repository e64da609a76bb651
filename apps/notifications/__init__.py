"""Notifications app package.

Outbox for domain events that reach vendors by email. Rows are written
after the business transaction commits and delivered asynchronously by
Celery with exponential backoff and a dead-letter state.
"""
