"""
Service Desk Permissions

Role storage lives outside the engine. The engine only asks:
can(actor, action, subject_type) -> bool

Default roles mirror the service desk tiers:
- Caller (no role): open tickets, comment on own tickets
- Resolver: work any ticket, set status/group/resolver, priority 2-4
- Manager: everything a resolver can, plus priority 1
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Set

from ..models import Ticket, TicketType, User


logger = logging.getLogger(__name__)


class Action(str, Enum):
    UPDATE = "update"
    SET_STATUS = "set_status"
    SET_PRIORITY = "set_priority"    # Elevated: needed for priority ONE
    ADD_COMMENT = "add_comment"      # On tickets the actor did not open
    VIEW_ALL = "view_all"


RESOLVER_ACTIONS = frozenset({
    Action.UPDATE,
    Action.SET_STATUS,
    Action.ADD_COMMENT,
    Action.VIEW_ALL,
})

DEFAULT_ROLES: Dict[str, frozenset] = {
    "resolver": RESOLVER_ACTIONS,
    "manager": RESOLVER_ACTIONS | {Action.SET_PRIORITY},
}


class PermissionOracle:
    """Capability check consumed by the lifecycle. Subclass to plug in real role storage."""

    def can(self, actor: User, action: Action, subject_type: Optional[TicketType] = None) -> bool:
        raise NotImplementedError


class RolePermissionOracle(PermissionOracle):
    """
    Grants actions through the actor's roles.

    Optional per-type overrides let a role work incidents but not requests.
    """

    def __init__(
        self,
        roles: Optional[Mapping[str, Iterable[Action]]] = None,
        type_overrides: Optional[Mapping[TicketType, Mapping[str, Iterable[Action]]]] = None
    ):
        source = DEFAULT_ROLES if roles is None else roles
        self.roles = {name: frozenset(actions) for name, actions in source.items()}
        self.type_overrides = {
            ticket_type: {name: frozenset(actions) for name, actions in mapping.items()}
            for ticket_type, mapping in (type_overrides or {}).items()
        }

    def actions_for(self, actor: User, subject_type: Optional[TicketType] = None) -> Set[Action]:
        table = self.roles
        if subject_type is not None and subject_type in self.type_overrides:
            table = {**self.roles, **self.type_overrides[subject_type]}

        granted: Set[Action] = set()
        for role in actor.roles:
            granted |= table.get(role, frozenset())
        return granted

    def can(self, actor: User, action: Action, subject_type: Optional[TicketType] = None) -> bool:
        allowed = Action(action) in self.actions_for(actor, subject_type)
        if not allowed:
            logger.debug("Denied %s on %s for user %s", action, subject_type, actor.id)
        return allowed


class TicketPolicy:
    """
    Ticket-scoped checks built on the oracle.

    Some rules depend on who opened the ticket, which the oracle
    does not know about.
    """

    def __init__(self, oracle: PermissionOracle):
        self.oracle = oracle

    def can_update(self, actor: User, ticket: Ticket) -> bool:
        return self.oracle.can(actor, Action.UPDATE, ticket.type)

    def can_set_status(self, actor: User, ticket: Ticket) -> bool:
        return (
            self.oracle.can(actor, Action.UPDATE, ticket.type) or
            self.oracle.can(actor, Action.SET_STATUS, ticket.type)
        )

    def can_set_priority(self, actor: User, ticket: Ticket) -> bool:
        return self.oracle.can(actor, Action.SET_PRIORITY, ticket.type)

    def can_view(self, actor: User, ticket: Ticket) -> bool:
        return actor.id == ticket.caller_id or self.oracle.can(actor, Action.VIEW_ALL, ticket.type)

    def can_comment(self, actor: User, ticket: Ticket) -> bool:
        return actor.id == ticket.caller_id or self.oracle.can(actor, Action.ADD_COMMENT, ticket.type)
