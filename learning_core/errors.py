"""
Error taxonomy for the learning core.

- InvalidInput: rejected synchronously, nothing is written.
- StoreUnavailable: the persistent store cannot be reached.
- ConcurrentUpdateConflict: an atomic upsert lost a race twice in a row.
- NotFound: a lookup-and-mutate call referenced a missing record.
"""

from __future__ import annotations


class LearningCoreError(Exception):
    """Base class for all learning core errors."""


class InvalidInput(LearningCoreError, ValueError):
    """Quality out of range, malformed ids or records."""


class StoreUnavailable(LearningCoreError):
    """The backing store could not be reached."""


class ConcurrentUpdateConflict(LearningCoreError):
    """A concurrent write to the same (user, item) record was detected."""


class NotFound(LearningCoreError, LookupError):
    """A task or progress record required by the call does not exist."""


def require_id(value: object, name: str) -> str:
    """Return value if it is a non-blank id string, else raise InvalidInput."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} must be a non-empty string, got {value!r}")
    if len(value) > 64:
        raise InvalidInput(f"{name} must be at most 64 characters")
    return value
