"""
In-memory persistence with all-or-nothing transactions.

Every table is a dict keyed by id. Reads and writes go through deep
copies so a staged edit never touches stored state until it is saved.
"""

from __future__ import annotations

import copy
import itertools
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional
from uuid import UUID

from ..models import Activity, Group, Sla, Task, Ticket, User
from ..services.errors import DomainInvariantError, RecordNotFoundError


logger = logging.getLogger(__name__)


class InMemoryStore:
    """Single-writer store. ``transaction()`` nests; only the outermost level snapshots."""

    TABLES = ("tickets", "slas", "activities", "users", "groups")

    def __init__(self):
        self.tickets: Dict[UUID, Ticket] = {}
        self.slas: Dict[UUID, Sla] = {}
        self.activities: Dict[UUID, Activity] = {}
        self.users: Dict[UUID, User] = {}
        self.groups: Dict[UUID, Group] = {}
        self._depth = 0
        self._sequence = itertools.count(1)

    def next_sequence(self) -> int:
        return next(self._sequence)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self.TABLES}
        self._depth = 1
        try:
            yield self
        except BaseException:
            for name, table in snapshot.items():
                setattr(self, name, table)
            logger.warning("Transaction rolled back")
            raise
        finally:
            self._depth = 0


class _Repository:
    table: str = ""
    label: str = "Record"

    def __init__(self, store: InMemoryStore):
        self.store = store

    @property
    def _rows(self) -> Dict[UUID, object]:
        return getattr(self.store, self.table)

    def find(self, record_id: Optional[UUID]):
        if record_id is None or record_id not in self._rows:
            return None
        return self._rows[record_id].model_copy(deep=True)

    def get(self, record_id: UUID):
        record = self.find(record_id)
        if record is None:
            raise RecordNotFoundError(f"{self.label} {record_id} not found")
        return record

    def exists(self, record_id: Optional[UUID]) -> bool:
        return record_id is not None and record_id in self._rows

    def save(self, record):
        self._rows[record.id] = record.model_copy(deep=True)
        return record

    add = save


class TicketRepository(_Repository):
    table = "tickets"
    label = "Ticket"

    def tasks_for(self, request_id: UUID) -> List[Task]:
        tasks = [
            t.model_copy(deep=True) for t in self.store.tickets.values()
            if isinstance(t, Task) and t.request_id == request_id
        ]
        tasks.sort(key=lambda t: t.position)
        return tasks


class SlaRepository(_Repository):
    table = "slas"
    label = "SLA"

    def list_for_ticket(self, ticket_id: UUID) -> List[Sla]:
        """Oldest first (insertion order)."""
        return [
            s.model_copy(deep=True) for s in self.store.slas.values()
            if s.ticket_id == ticket_id
        ]

    def get_open(self, ticket_id: UUID) -> Optional[Sla]:
        """Most recently created SLA that is still open."""
        opened = [s for s in self.list_for_ticket(ticket_id) if s.is_open]
        return opened[-1] if opened else None


class ActivityRepository(_Repository):
    table = "activities"
    label = "Activity"

    def add(self, activity: Activity) -> Activity:
        if activity.id in self.store.activities:
            raise DomainInvariantError("Activity log is append-only")
        activity.sequence = self.store.next_sequence()
        self.store.activities[activity.id] = activity.model_copy(deep=True)
        return activity

    def save(self, activity: Activity) -> Activity:
        raise DomainInvariantError("Activity log is append-only")

    def list_for_ticket(self, ticket_id: UUID) -> List[Activity]:
        return [
            a.model_copy(deep=True) for a in self.store.activities.values()
            if a.ticket_id == ticket_id
        ]


class UserRepository(_Repository):
    table = "users"
    label = "User"


class GroupRepository(_Repository):
    table = "groups"
    label = "Group"

    def all(self) -> List[Group]:
        return [g.model_copy(deep=True) for g in self.store.groups.values()]
