"""
Service Desk Models

Tickets (Incident / Request / Task), SLA windows, activity log, task plans.
"""

from .ticket import (
    # Enums
    TicketType,
    Status,
    OnHoldReason,
    Priority,
    Category,
    Item,
    TaskSequence,
    PAUSED_STATUSES,

    # Core models
    Ticket,
    Incident,
    Request,
    Task,
    Sla,
    TICKET_CLASSES,

    # Supporting models
    User,
    Group,
    TaskPlan,
    make_label,
)
from .activity import Activity, ActivityKind, FieldChange, EMPTY

__all__ = [
    "TicketType", "Status", "OnHoldReason", "Priority", "Category", "Item",
    "TaskSequence", "PAUSED_STATUSES",
    "Ticket", "Incident", "Request", "Task", "Sla", "TICKET_CLASSES",
    "User", "Group", "TaskPlan", "make_label",
    "Activity", "ActivityKind", "FieldChange", "EMPTY",
]
