"""
Service Desk Ticket Model

Incidents, Requests and Tasks share one ticket shape:
1. Status / on-hold reason / priority / group / resolver are the mutable lifecycle fields
2. Caller, category, item and description are fixed at creation
3. Each variant carries its own SLA table and category -> item catalog
4. Archival is derived from persisted status on every read, never stored
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, List, Optional, Set
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..core.clock import utcnow


def make_label(value: str) -> str:
    """'waiting_for_vendor' -> 'Waiting For Vendor'"""
    return value.replace("_", " ").title()


# =============================================================================
# ENUMS
# =============================================================================

class TicketType(str, Enum):
    INCIDENT = "incident"
    REQUEST = "request"
    TASK = "task"

    @property
    def label(self) -> str:
        return make_label(self.value)


class Status(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    MONITORING = "monitoring"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return make_label(self.value)


# No SLA clock runs while a ticket sits in one of these
PAUSED_STATUSES = frozenset({Status.ON_HOLD, Status.RESOLVED, Status.CANCELLED})


class OnHoldReason(str, Enum):
    CALLER_RESPONSE = "caller_response"
    WAITING_FOR_VENDOR = "waiting_for_vendor"
    PROBLEM_FIX = "problem_fix"
    CHANGE_IMPLEMENTATION = "change_implementation"

    @property
    def label(self) -> str:
        return make_label(self.value)


class Priority(int, Enum):
    ONE = 1    # Most urgent
    TWO = 2
    THREE = 3
    FOUR = 4

    @property
    def label(self) -> str:
        return str(self.value)


class Category(str, Enum):
    NETWORK = "network"
    SERVER = "server"
    COMPUTER = "computer"
    APPLICATION = "application"
    EMAIL = "email"

    @property
    def label(self) -> str:
        return make_label(self.value)


class Item(str, Enum):
    ISSUE = "issue"
    COMPUTER_IS_TOO_SLOW = "computer_is_too_slow"
    APPLICATION_ERROR = "application_error"
    FAILED_NODE = "failed_node"
    FAILURE = "failure"
    BACKUP = "backup"
    CONFIGURE = "configure"
    ACCESS = "access"
    MAINTENANCE = "maintenance"

    @property
    def label(self) -> str:
        return make_label(self.value)


class TaskSequence(str, Enum):
    GRADUAL = "gradual"    # Task n+1 starts once task n is closed
    AT_ONCE = "at_once"    # Every task starts with the request


# =============================================================================
# CORE MODELS
# =============================================================================

class Ticket(BaseModel):
    """
    The shared ticket shape (the "ticketable" capability).

    Variants subclass once to pin their type, SLA table and catalog.
    Services never branch on the subclass, only on these class tables.
    """
    PRIORITY_TO_SLA_MINUTES: ClassVar[Dict[Priority, int]] = {
        Priority.ONE: 30,
        Priority.TWO: 2 * 60,
        Priority.THREE: 12 * 60,
        Priority.FOUR: 24 * 60,
    }
    CATEGORY_TO_ITEMS: ClassVar[Dict[Category, FrozenSet[Item]]] = {}

    DEFAULT_PRIORITY: ClassVar[Priority] = Priority.FOUR

    id: UUID = Field(default_factory=uuid4)
    type: TicketType

    # Fixed at creation
    caller_id: UUID
    category: Optional[Category] = None
    item: Optional[Item] = None
    description: str

    # Lifecycle fields
    status: Status = Status.OPEN
    on_hold_reason: Optional[OnHoldReason] = None
    priority: Priority = Priority.FOUR
    group_id: UUID
    resolver_id: Optional[UUID] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None

    @property
    def number(self) -> str:
        return str(self.id)

    def calculate_sla_minutes(self, priority: Optional[Priority] = None) -> int:
        return self.PRIORITY_TO_SLA_MINUTES[priority or self.priority]

    @classmethod
    def requires_classification(cls) -> bool:
        return bool(cls.CATEGORY_TO_ITEMS)

    @classmethod
    def allows(cls, category: Optional[Category], item: Optional[Item]) -> bool:
        if not cls.requires_classification():
            return category is None and item is None
        return item in cls.CATEGORY_TO_ITEMS.get(category, frozenset())

    def is_archived(self, now: datetime, archive_after_days: int) -> bool:
        """
        Read-only once cancelled, or once the resolution grace period ran out.

        Call on the persisted ticket, never on a staged draft.
        """
        if self.status == Status.CANCELLED:
            return True
        if self.status == Status.RESOLVED and self.resolved_at is not None:
            return now >= self.resolved_at + timedelta(days=archive_after_days)
        return False


class Incident(Ticket):
    """Something is broken. Tighter SLA windows than requests."""
    PRIORITY_TO_SLA_MINUTES: ClassVar[Dict[Priority, int]] = {
        Priority.ONE: 15,
        Priority.TWO: 60,
        Priority.THREE: 6 * 60,
        Priority.FOUR: 12 * 60,
    }
    CATEGORY_TO_ITEMS: ClassVar[Dict[Category, FrozenSet[Item]]] = {
        Category.NETWORK: frozenset({Item.ISSUE, Item.FAILED_NODE}),
        Category.SERVER: frozenset({Item.ISSUE, Item.FAILED_NODE, Item.FAILURE}),
        Category.COMPUTER: frozenset({Item.ISSUE, Item.COMPUTER_IS_TOO_SLOW}),
        Category.APPLICATION: frozenset({Item.ISSUE, Item.APPLICATION_ERROR}),
        Category.EMAIL: frozenset({Item.ISSUE}),
    }

    type: TicketType = TicketType.INCIDENT


class Request(Ticket):
    """Caller asks for something. Fulfilled through a task plan."""
    CATEGORY_TO_ITEMS: ClassVar[Dict[Category, FrozenSet[Item]]] = {
        Category.COMPUTER: frozenset({Item.BACKUP, Item.CONFIGURE}),
        Category.SERVER: frozenset({Item.ACCESS, Item.MAINTENANCE, Item.CONFIGURE}),
    }

    type: TicketType = TicketType.REQUEST
    task_sequence: TaskSequence = TaskSequence.GRADUAL


class Task(Ticket):
    """One step of a request's task plan."""
    type: TicketType = TicketType.TASK

    request_id: UUID
    position: int = 0
    started_at: Optional[datetime] = None

    @property
    def is_started(self) -> bool:
        return self.started_at is not None


TICKET_CLASSES = {
    TicketType.INCIDENT: Incident,
    TicketType.REQUEST: Request,
    TicketType.TASK: Task,
}


class Sla(BaseModel):
    """
    One deadline window on a ticket.

    At most one per ticket is open (closed_at is None).
    """
    id: UUID = Field(default_factory=uuid4)
    ticket_id: UUID
    ticket_type: TicketType
    priority: Priority

    created_at: datetime
    expires_at: datetime
    closed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    def minutes(self) -> int:
        """Length of the whole window."""
        return int((self.expires_at - self.created_at).total_seconds() // 60)

    def minutes_till_expires(self, now: datetime) -> int:
        """Whole minutes left, negative once overdue."""
        return int((self.expires_at - now).total_seconds() / 60)

    def to_percentage(self, now: datetime) -> int:
        """Share of the window still left, rounded half-up."""
        total = self.minutes()
        if total <= 0:
            return 0
        ratio = self.minutes_till_expires(now) / total * 100
        return int(ratio + 0.5) if ratio >= 0 else -int(-ratio + 0.5)


# =============================================================================
# SUPPORTING MODELS
# =============================================================================

class User(BaseModel):
    """Caller or resolver."""
    id: UUID = Field(default_factory=uuid4)

    name: str
    email: Optional[str] = None
    roles: Set[str] = Field(default_factory=set)


class Group(BaseModel):
    """Resolver pool a ticket is routed to."""
    id: UUID = Field(default_factory=uuid4)

    name: str
    resolver_ids: Set[UUID] = Field(default_factory=set)

    def has_resolver(self, user_id: Optional[UUID]) -> bool:
        return user_id is not None and user_id in self.resolver_ids


class TaskPlan(BaseModel):
    """Ordered task descriptions for a new request. Never persisted."""
    tasks: List[str] = Field(default_factory=list)
    sequence: TaskSequence = TaskSequence.GRADUAL

    def add_task(self, description: str) -> "TaskPlan":
        self.tasks.append(description)
        return self

    def set_sequence(self, sequence: TaskSequence) -> "TaskPlan":
        self.sequence = sequence
        return self
