"""
Service Desk Activity Service

Audit trail and comment feed for a ticket.

- One entry per commit, newest first on read
- Field changes diffed from explicit before/after snapshots
- Values rendered with human-readable labels, missing values as "empty"
- Comments interleave with field changes in the same feed
"""

import logging
import re
from typing import Any, List, Optional, Sequence

from ..core.clock import Clock
from ..models import (
    EMPTY,
    Activity,
    ActivityKind,
    FieldChange,
    Ticket,
    User,
)


logger = logging.getLogger(__name__)


# Fixed display order. Attribute names on the Ticket model.
WATCHED_FIELDS = (
    "status",
    "on_hold_reason",
    "priority",
    "group_id",
    "resolver_id",
)

CREATION_FIELDS = ("category", "item", "description") + WATCHED_FIELDS


def make_display_name(name: str) -> str:
    """'on_hold_reason' / 'onHoldReason' / 'group_id' -> 'On hold reason' / 'Group'"""
    name = re.sub(r"_id$", "", name)
    name = re.sub(r"([A-Z])", r" \1", name)
    name = name.replace("_", " ").strip().lower()
    return name[:1].upper() + name[1:]


def changed_fields(before: Ticket, after: Ticket, fields: Sequence[str] = WATCHED_FIELDS) -> List[str]:
    """Watched attributes whose value differs, in display order."""
    return [f for f in fields if getattr(before, f) != getattr(after, f)]


class ActivityService:
    """
    Writes and reads the activity log.

    Needs the user and group directories to turn ids into names.
    """

    def __init__(self, activity_repo, user_repo, group_repo, clock: Clock):
        self.activity_repo = activity_repo
        self.user_repo = user_repo
        self.group_repo = group_repo
        self.clock = clock

    def record_created(self, ticket: Ticket, actor: Optional[User]) -> Activity:
        """
        Initial entry: every creation field against an empty baseline.
        """
        changes = [
            self._field_change(name, None, getattr(ticket, name))
            for name in CREATION_FIELDS
            if getattr(ticket, name) is not None
        ]
        return self._add(ticket, ActivityKind.CREATED, actor, changes=changes)

    def record_changes(
        self,
        ticket: Ticket,
        before: Ticket,
        actor: Optional[User]
    ) -> Optional[Activity]:
        """
        Log the watched fields that differ between the snapshot and the ticket.

        Returns None when nothing watched changed.
        """
        names = changed_fields(before, ticket)
        if not names:
            return None

        changes = [
            self._field_change(name, getattr(before, name), getattr(ticket, name))
            for name in names
        ]
        return self._add(ticket, ActivityKind.FIELD_CHANGE, actor, changes=changes)

    def record_comment(self, ticket: Ticket, body: str, actor: Optional[User]) -> Activity:
        return self._add(ticket, ActivityKind.COMMENT, actor, body=body)

    def list_activities(self, ticket: Ticket) -> List[Activity]:
        """All entries for the ticket, newest first."""
        entries = self.activity_repo.list_for_ticket(ticket.id)
        entries.sort(key=lambda a: (a.created_at, a.sequence), reverse=True)
        return entries

    def feed(self, ticket: Ticket) -> List[str]:
        """Rendered entries, newest first."""
        return [activity.render() for activity in self.list_activities(ticket)]

    def display_value(self, name: str, value: Any) -> str:
        if value is None or value == "":
            return EMPTY
        if name == "group_id":
            group = self.group_repo.find(value)
            return group.name if group else str(value)
        if name == "resolver_id":
            user = self.user_repo.find(value)
            return user.name if user else str(value)
        label = getattr(value, "label", None)
        if label is not None:
            return label
        return str(value)

    # =========================================================================
    # Private methods
    # =========================================================================

    def _field_change(self, name: str, old: Any, new: Any) -> FieldChange:
        return FieldChange(
            field=name,
            label=make_display_name(name),
            old_value=self.display_value(name, old),
            new_value=self.display_value(name, new)
        )

    def _add(
        self,
        ticket: Ticket,
        kind: ActivityKind,
        actor: Optional[User],
        changes: Optional[List[FieldChange]] = None,
        body: Optional[str] = None
    ) -> Activity:
        activity = Activity(
            ticket_id=ticket.id,
            kind=kind,
            causer_id=actor.id if actor else None,
            causer_name=actor.name if actor else "System",
            changes=changes or [],
            body=body,
            created_at=self.clock.now()
        )
        self.activity_repo.add(activity)
        logger.debug("Activity %s (%s) logged on ticket %s", activity.id, kind.value, ticket.id)
        return activity
