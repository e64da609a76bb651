"""Vendors app package.

Owns the vendor registration/trial lifecycle, the vendor's single pending
booking request and the append-only audit log of admin lifecycle actions.
Trial transitions are driven by periodic Celery sweeps and by admin
actions routed through ``TrialLifecycleManager``.
"""
