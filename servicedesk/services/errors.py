"""
Error taxonomy for the ticket engine.

AuthorizationError and ValidationError are expected and user-facing.
DomainInvariantError and ReferentialMismatchError mean a collaborator
sent an impossible combination; the commit is rolled back either way.
"""

from enum import Enum
from typing import Dict, Optional


class Reason(str, Enum):
    REQUIRED = "required"
    NOT_IN_ALLOWED_SET = "not_in_allowed_set"
    FORBIDDEN = "forbidden"
    MAX = "max"
    MIN = "min"
    NUMERIC = "numeric"


class TicketError(Exception):
    """Base for everything the engine raises on purpose."""
    pass


class AuthorizationError(TicketError):
    """Actor may not touch this field or perform this action."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ValidationError(TicketError):
    """Field-keyed reason codes, rendered inline by the form layer."""

    def __init__(self, errors: Dict[str, Reason]):
        self.errors = dict(errors)
        summary = ", ".join(f"{f}: {r.value}" for f, r in self.errors.items())
        super().__init__(f"Validation failed ({summary})")

    @classmethod
    def for_field(cls, field: str, reason: Reason) -> "ValidationError":
        return cls({field: reason})

    def reason(self, field: str) -> Optional[Reason]:
        return self.errors.get(field)


class DomainInvariantError(TicketError):
    """Commit would break a ticket invariant that cannot be auto-corrected."""
    pass


class ReferentialMismatchError(TicketError):
    """Category / item pair not allowed for the ticket variant."""
    pass


class RecordNotFoundError(TicketError):
    """Repository lookup miss."""
    pass
