"""
Shared Kernel

Aggregate and event base classes, value objects, the error taxonomy, the
event bus and the unit of work used by every marketplace app.
"""
