"""
Domain Errors

Error taxonomy shared by all bounded contexts. Every error raised by domain
and application code derives from ``DomainError`` so callers can catch the
whole family at one seam.
"""

from typing import Iterable, List


class DomainError(Exception):
    """Base class for expected, caller-facing domain failures"""


class ValidationError(DomainError):
    """Malformed or incomplete request, rejected before any side effect"""

    def __init__(self, message: str, errors: Iterable[str] | None = None):
        self.errors: List[str] = list(errors) if errors else [message]
        super().__init__(message)


class ConflictError(DomainError):
    """
    One or more requested units are unavailable

    ``conflicts`` carries one entry per offending unit so the caller can
    re-offer alternatives.
    """

    def __init__(self, message: str, conflicts: Iterable = ()):
        self.conflicts = list(conflicts)
        super().__init__(message)

    @property
    def unit_ids(self) -> list:
        return [conflict.unit_id for conflict in self.conflicts]


class NotFoundError(DomainError):
    """Vendor, pending booking, contract or unit does not exist"""


class StateError(DomainError):
    """Operation is not allowed in the current lifecycle state"""


class ConcurrentModificationError(StateError):
    """Optimistic version check failed: the record changed since it was loaded"""
