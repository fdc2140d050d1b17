"""
Activity log entries.

Append-only. One entry per commit: a creation snapshot, a set of
field changes, or a comment. The feed reads newest first.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


EMPTY = "empty"


class ActivityKind(str, Enum):
    CREATED = "created"
    FIELD_CHANGE = "field_change"
    COMMENT = "comment"


class FieldChange(BaseModel):
    field: str
    label: str
    old_value: str = EMPTY
    new_value: str = EMPTY

    def describe(self) -> str:
        return f"{self.label} changed from {self.old_value} to {self.new_value}"


class Activity(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    ticket_id: UUID
    kind: ActivityKind

    causer_id: Optional[UUID] = None
    causer_name: str = "System"

    changes: List[FieldChange] = Field(default_factory=list)
    body: Optional[str] = None

    created_at: datetime
    sequence: int = 0  # Assigned by the repository, breaks timestamp ties

    def render(self) -> str:
        if self.kind == ActivityKind.COMMENT:
            return self.body or ""
        lines = [change.describe() for change in self.changes]
        if self.kind == ActivityKind.CREATED:
            lines.insert(0, "Created")
        return "\n".join(lines)
