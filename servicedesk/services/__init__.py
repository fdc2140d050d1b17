"""
Service Desk Engine Services

Ticket lifecycle, SLA clocks, activity log and request task plans.
"""

from .errors import (
    TicketError,
    AuthorizationError,
    ValidationError,
    DomainInvariantError,
    ReferentialMismatchError,
    RecordNotFoundError,
    Reason,
)
from .permissions import Action, PermissionOracle, RolePermissionOracle, TicketPolicy
from .sla import SlaService
from .activity import ActivityService, changed_fields, make_display_name
from .task_plan import TaskPlanner, PlanTemplate, PLAN_TEMPLATES
from .tasks import TaskService
from .lifecycle import TicketLifecycle, TicketChange

__all__ = [
    # Errors
    "TicketError", "AuthorizationError", "ValidationError",
    "DomainInvariantError", "ReferentialMismatchError", "RecordNotFoundError",
    "Reason",

    # Permissions
    "Action", "PermissionOracle", "RolePermissionOracle", "TicketPolicy",

    # Lifecycle (the state machine)
    "TicketLifecycle", "TicketChange",

    # SLA
    "SlaService",

    # Activity log
    "ActivityService", "changed_fields", "make_display_name",

    # Requests
    "TaskPlanner", "PlanTemplate", "PLAN_TEMPLATES", "TaskService",
]
