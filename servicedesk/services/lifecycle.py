"""
Service Desk Ticket Lifecycle

Policy-guarded state machine over status / on-hold reason / priority /
group / resolver.

Flow:
1. begin()          - load the persisted ticket, open a staged change
2. propose_change() - permission check first, then value check, then
                      dependent fields are normalised in the draft
3. commit()         - cross-field validation, then one transaction:
                      ticket row, SLA sync, activity log, comment,
                      next task activation

Every status is reachable from every other. What blocks a transition is
field permission and archival. CANCELLED archives at once, RESOLVED only
after the grace period.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Type, Union
from uuid import UUID

from ..core.clock import Clock
from ..core.config import Settings, get_settings
from ..models import (
    Category,
    Item,
    OnHoldReason,
    PAUSED_STATUSES,
    Priority,
    Request,
    Status,
    TICKET_CLASSES,
    Task,
    Ticket,
    TicketType,
    User,
)
from .activity import changed_fields
from .errors import (
    AuthorizationError,
    DomainInvariantError,
    Reason,
    ReferentialMismatchError,
    ValidationError,
)
from .permissions import PermissionOracle, TicketPolicy


logger = logging.getLogger(__name__)


# Form field name -> Ticket attribute
FIELD_ATTRIBUTES = {
    "status": "status",
    "on_hold_reason": "on_hold_reason",
    "priority": "priority",
    "group": "group_id",
    "resolver": "resolver_id",
}

READ_ONLY_FIELDS = (
    "number", "caller", "created", "updated", "category", "item", "description"
)

FORM_FIELDS = READ_ONLY_FIELDS + tuple(FIELD_ATTRIBUTES) + ("comment",)

# A status change into one of these needs a comment
COMMENT_REQUIRED_STATUSES = (Status.RESOLVED, Status.CANCELLED, Status.ON_HOLD)


@dataclass
class TicketChange:
    """
    A staged edit: the persisted ticket plus proposed values.

    Nothing here is persisted until the lifecycle commits it.
    """
    original: Ticket
    actor: User
    staged: Dict[str, Any] = field(default_factory=dict)
    proposed: Set[str] = field(default_factory=set)  # Set by the actor, not auto-cleared
    comment: str = ""

    def value(self, name: str) -> Any:
        attr = FIELD_ATTRIBUTES.get(name, name)
        if attr in self.staged:
            return self.staged[attr]
        return getattr(self.original, attr)

    def stage(self, name: str, value: Any) -> None:
        self.staged[FIELD_ATTRIBUTES[name]] = value
        self.proposed.add(name)

    def clear(self, name: str) -> None:
        self.staged[FIELD_ATTRIBUTES[name]] = None
        self.proposed.discard(name)

    def draft(self) -> Ticket:
        return self.original.model_copy(update=self.staged, deep=True)


class TicketLifecycle:
    """
    Owns every mutation of a ticket's lifecycle fields.

    Side effects run in a fixed order inside the commit transaction,
    never through implicit save hooks.
    """

    def __init__(
        self,
        store,
        ticket_repo,
        user_repo,
        group_repo,
        permissions: PermissionOracle,
        sla_service,
        activity_service,
        clock: Clock,
        settings: Optional[Settings] = None,
        task_planner=None,
        task_service=None
    ):
        self.store = store
        self.ticket_repo = ticket_repo
        self.user_repo = user_repo
        self.group_repo = group_repo
        self.policy = TicketPolicy(permissions)
        self.slas = sla_service
        self.activities = activity_service
        self.clock = clock
        self.settings = settings or get_settings()
        self.task_planner = task_planner
        self.task_service = task_service

    # =========================================================================
    # Creation
    # =========================================================================

    def create_ticket(
        self,
        ticket_class: Union[Type[Ticket], TicketType],
        caller: User,
        description: str,
        category: Optional[Any] = None,
        item: Optional[Any] = None,
        priority: Optional[Any] = None,
        group_id: Optional[UUID] = None,
        status: Any = Status.OPEN,
        on_hold_reason: Optional[Any] = None,
        **attributes
    ) -> Ticket:
        """
        Open a ticket for the caller.

        Category/item must be an allowed pair for the variant. Requests
        get their task plan materialised in the same transaction.
        """
        if isinstance(ticket_class, TicketType):
            ticket_class = TICKET_CLASSES[ticket_class]

        description = (description or "").strip()
        category, item = self._validate_new(ticket_class, description, category, item)

        if not ticket_class.allows(category, item):
            raise ReferentialMismatchError(
                f"Item cannot be assigned to {ticket_class.__name__} "
                "if it does not match Category"
            )

        group_id = group_id or self.settings.service_desk_group_id
        if not self.group_repo.exists(group_id):
            raise ValidationError.for_field("group", Reason.NOT_IN_ALLOWED_SET)

        status = self._coerce("status", status)
        on_hold_reason = self._coerce("on_hold_reason", on_hold_reason)
        if priority is None:
            priority = ticket_class.DEFAULT_PRIORITY
        else:
            priority = self._coerce("priority", priority)

        now = self.clock.now()
        ticket = ticket_class(
            caller_id=caller.id,
            category=category,
            item=item,
            description=description,
            status=status,
            on_hold_reason=on_hold_reason,
            priority=priority,
            group_id=group_id,
            created_at=now,
            updated_at=now,
            resolved_at=now if status == Status.RESOLVED else None,
            **attributes
        )
        self._authorize_new(ticket, caller)
        self._assert_invariants(ticket)

        with self.store.transaction():
            self._insert(ticket, caller)
            if isinstance(ticket, Request) and self.task_planner and self.task_service:
                plan = self.task_planner.initialize_task_plan(ticket.category, ticket.item, ticket)
                ticket.task_sequence = plan.sequence
                self.ticket_repo.save(ticket)
                for task in self.task_service.build_tasks(ticket, plan, now):
                    self._insert(task, caller)

        logger.info("%s %s created by %s", ticket.type.label, ticket.id, caller.id)
        return ticket

    # =========================================================================
    # Predicates
    # =========================================================================

    def is_archived(self, ticket: Ticket) -> bool:
        """Derived on every read from the persisted status."""
        return ticket.is_archived(self.clock.now(), self.settings.archive_after_days)

    def is_field_modifiable(self, ticket: Ticket, name: str, actor: User) -> bool:
        return self._modifiable(TicketChange(original=ticket, actor=actor), name)

    def is_field_disabled(self, change: TicketChange, name: str) -> bool:
        """Staged-aware variant for the form layer."""
        return not self._modifiable(change, name)

    def field_states(self, change: TicketChange) -> Dict[str, bool]:
        """Form field -> disabled."""
        return {name: self.is_field_disabled(change, name) for name in FORM_FIELDS}

    def allowed_resolvers(self, change: TicketChange) -> List[User]:
        """Resolvers of the currently selected group."""
        group = self.group_repo.find(change.value("group"))
        if group is None:
            return []
        users = [self.user_repo.find(user_id) for user_id in group.resolver_ids]
        return sorted((u for u in users if u is not None), key=lambda u: u.name)

    def can_view(self, ticket: Ticket, actor: User) -> bool:
        return self.policy.can_view(actor, ticket)

    # =========================================================================
    # Staging
    # =========================================================================

    def begin(self, ticket: Ticket, actor: User) -> TicketChange:
        return TicketChange(original=self.ticket_repo.get(ticket.id), actor=actor)

    def propose_change(self, change: TicketChange, name: str, value: Any) -> None:
        """
        Stage one field value.

        Raises AuthorizationError before looking at the value when the
        actor may not touch the field, ValidationError for bad values.
        """
        if not self._modifiable(change, name):
            logger.debug("Rejected %s on ticket %s: not modifiable", name, change.original.id)
            raise AuthorizationError(
                f"Not allowed to change {name} on {change.original.type.label} "
                f"{change.original.id}",
                field=name
            )

        if name == "comment":
            change.comment = "" if value is None else str(value).strip()
            return

        value = self._coerce(name, value)

        if name == "priority" and value == Priority.ONE:
            self._require_priority_permission(change)

        if name == "resolver" and value is not None:
            group = self.group_repo.find(change.value("group"))
            if group is None or not group.has_resolver(value):
                raise ValidationError.for_field("resolver", Reason.NOT_IN_ALLOWED_SET)

        change.stage(name, value)

        if name == "status":
            if value != Status.ON_HOLD:
                change.clear("on_hold_reason")
            if value == Status.OPEN:
                change.clear("resolver")

        # A resolver the actor picked is checked against the final group at commit
        if name == "group" and "resolver" not in change.proposed:
            resolver_id = change.value("resolver")
            group = self.group_repo.find(value)
            if resolver_id is not None and not group.has_resolver(resolver_id):
                change.clear("resolver")

    def commit(self, change: TicketChange) -> Ticket:
        """
        Validate and persist a staged change, all or nothing.
        """
        original = change.original
        actor = change.actor

        if self.is_archived(original):
            raise AuthorizationError(
                f"{original.type.label} {original.id} is archived and cannot be changed"
            )

        after = self._normalize(change)
        if after.priority == Priority.ONE and original.priority != Priority.ONE:
            self._require_priority_permission(change)
        self._validate_commit(change, after)

        now = self.clock.now()
        if after.status != original.status:
            after.resolved_at = now if after.status == Status.RESOLVED else None

        changed = changed_fields(original, after)
        if not changed and not change.comment:
            return original

        self._assert_invariants(after)
        after.updated_at = now

        with self.store.transaction():
            self.ticket_repo.save(after)
            if changed:
                self.slas.sync_after_commit(original, after)
                self.activities.record_changes(after, original, actor)
            if change.comment:
                self.activities.record_comment(after, change.comment, actor)
            if isinstance(after, Task) and self.task_service and "status" in changed:
                self.task_service.start_next_task(after, now)

        logger.info(
            "%s %s committed by %s: %s",
            after.type.label, after.id, actor.id, ", ".join(changed) or "comment"
        )
        return after

    # =========================================================================
    # Shortcuts
    # =========================================================================

    def update(
        self,
        ticket: Ticket,
        actor: User,
        changes: Optional[Mapping[str, Any]] = None,
        comment: str = ""
    ) -> Ticket:
        """
        Propose the changes, status first, then commit.

        Status goes first because on-hold reason and the other lifecycle
        fields are modifiable depending on the staged status.
        """
        change = self.begin(ticket, actor)
        ordered = sorted((changes or {}).items(), key=lambda pair: pair[0] != "status")
        for name, value in ordered:
            self.propose_change(change, name, value)
        if comment:
            self.propose_change(change, "comment", comment)
        return self.commit(change)

    def assign(self, ticket: Ticket, resolver: User, actor: User) -> Ticket:
        return self.update(ticket, actor, {"resolver": resolver.id})

    def resolve(self, ticket: Ticket, actor: User, comment: str) -> Ticket:
        return self.update(ticket, actor, {"status": Status.RESOLVED}, comment)

    def cancel(self, ticket: Ticket, actor: User, comment: str) -> Ticket:
        return self.update(ticket, actor, {"status": Status.CANCELLED}, comment)

    def add_comment(self, ticket: Ticket, actor: User, body: str) -> Ticket:
        return self.update(ticket, actor, comment=body)

    # =========================================================================
    # Private methods
    # =========================================================================

    def _insert(self, ticket: Ticket, actor: User) -> None:
        self.ticket_repo.add(ticket)
        sla = self.slas.create_sla(ticket)
        if ticket.status in PAUSED_STATUSES:
            self.slas.close_sla(sla)
        self.activities.record_created(ticket, actor)

    def _modifiable(self, change: TicketChange, name: str) -> bool:
        original = change.original
        actor = change.actor

        if self.is_archived(original):
            return False

        if name in READ_ONLY_FIELDS:
            return False

        if name == "comment":
            return self.policy.can_comment(actor, original)

        status = change.value("status")

        if name == "status":
            return self.policy.can_set_status(actor, original)
        if name == "on_hold_reason":
            return self.policy.can_set_status(actor, original) and status == Status.ON_HOLD
        if name in ("priority", "group", "resolver"):
            return self.policy.can_update(actor, original) and status != Status.RESOLVED

        return False

    def _authorize_new(self, ticket: Ticket, caller: User) -> None:
        """Opening a ticket past OPEN or at priority ONE needs the same rights as editing it there."""
        if ticket.status != Status.OPEN and not self.policy.can_set_status(caller, ticket):
            raise AuthorizationError(
                f"Not allowed to open {ticket.type.label} with status {ticket.status.label}",
                field="status"
            )
        if ticket.priority == Priority.ONE and not self.policy.can_set_priority(caller, ticket):
            raise AuthorizationError(
                f"Setting priority {Priority.ONE.label} needs the set_priority permission",
                field="priority"
            )

    def _require_priority_permission(self, change: TicketChange) -> None:
        if not self.policy.can_set_priority(change.actor, change.original):
            raise AuthorizationError(
                f"Setting priority {Priority.ONE.label} needs the set_priority permission",
                field="priority"
            )

    def _coerce(self, name: str, value: Any) -> Any:
        blank = value is None or value == ""

        if name == "status":
            if blank:
                raise ValidationError.for_field(name, Reason.REQUIRED)
            try:
                return Status(value)
            except ValueError:
                raise ValidationError.for_field(name, Reason.NOT_IN_ALLOWED_SET)

        if name == "on_hold_reason":
            if blank:
                return None
            try:
                return OnHoldReason(value)
            except ValueError:
                raise ValidationError.for_field(name, Reason.NOT_IN_ALLOWED_SET)

        if name == "priority":
            if blank:
                raise ValidationError.for_field(name, Reason.REQUIRED)
            if isinstance(value, bool):
                raise ValidationError.for_field(name, Reason.NUMERIC)
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ValidationError.for_field(name, Reason.NUMERIC)
            try:
                return Priority(number)
            except ValueError:
                raise ValidationError.for_field(name, Reason.NOT_IN_ALLOWED_SET)

        if name in ("group", "resolver"):
            if blank:
                if name == "group":
                    raise ValidationError.for_field(name, Reason.REQUIRED)
                return None
            try:
                record_id = value if isinstance(value, UUID) else UUID(str(value))
            except ValueError:
                raise ValidationError.for_field(name, Reason.NOT_IN_ALLOWED_SET)
            repo = self.group_repo if name == "group" else self.user_repo
            if not repo.exists(record_id):
                raise ValidationError.for_field(name, Reason.NOT_IN_ALLOWED_SET)
            return record_id

        raise AuthorizationError(f"Unknown field {name}", field=name)

    def _normalize(self, change: TicketChange) -> Ticket:
        """Apply the silent auto-corrections to the draft."""
        original = change.original
        after = change.draft()

        if after.status != Status.ON_HOLD:
            after.on_hold_reason = None

        if after.status == Status.OPEN and original.status != Status.OPEN:
            after.resolver_id = None

        if (
            after.group_id != original.group_id and
            after.resolver_id is not None and
            "resolver" not in change.proposed
        ):
            group = self.group_repo.find(after.group_id)
            if group is None or not group.has_resolver(after.resolver_id):
                after.resolver_id = None

        return after

    def _validate_commit(self, change: TicketChange, after: Ticket) -> None:
        original = change.original
        errors: Dict[str, Reason] = {}

        if after.status == Status.ON_HOLD and after.on_hold_reason is None:
            errors["on_hold_reason"] = Reason.REQUIRED

        group = self.group_repo.find(after.group_id)
        if group is None:
            errors["group"] = Reason.NOT_IN_ALLOWED_SET
        if after.resolver_id is not None and (group is None or not group.has_resolver(after.resolver_id)):
            errors["resolver"] = Reason.NOT_IN_ALLOWED_SET

        status_changed = after.status != original.status
        needs_comment = (
            (status_changed and after.status in COMMENT_REQUIRED_STATUSES) or
            after.priority != original.priority
        )
        if len(change.comment) > self.settings.comment_max_chars:
            errors["comment"] = Reason.MAX
        elif needs_comment and not change.comment:
            errors["comment"] = Reason.REQUIRED

        if errors:
            logger.debug("Commit on ticket %s failed validation: %s", original.id, errors)
            raise ValidationError(errors)

    def _validate_new(self, ticket_class: Type[Ticket], description: str, category, item):
        errors: Dict[str, Reason] = {}

        if not description:
            errors["description"] = Reason.REQUIRED
        elif len(description) < self.settings.description_min_chars:
            errors["description"] = Reason.MIN
        elif len(description) > self.settings.description_max_chars:
            errors["description"] = Reason.MAX

        if ticket_class.requires_classification():
            if category is None or category == "":
                errors["category"] = Reason.REQUIRED
            if item is None or item == "":
                errors["item"] = Reason.REQUIRED

        if not errors:
            try:
                category = Category(category) if category is not None else None
            except ValueError:
                errors["category"] = Reason.NOT_IN_ALLOWED_SET
            try:
                item = Item(item) if item is not None else None
            except ValueError:
                errors["item"] = Reason.NOT_IN_ALLOWED_SET

        if errors:
            raise ValidationError(errors)
        return category, item

    def _assert_invariants(self, ticket: Ticket) -> None:
        label = ticket.type.label
        if ticket.status == Status.ON_HOLD and ticket.on_hold_reason is None:
            raise DomainInvariantError(
                f"On hold reason must be assigned to {label} if status is on hold"
            )
        if ticket.status != Status.ON_HOLD and ticket.on_hold_reason is not None:
            raise DomainInvariantError(
                f"On hold reason cannot be assigned to {label} if status is not on hold"
            )
        if (ticket.status == Status.RESOLVED) != (ticket.resolved_at is not None):
            raise DomainInvariantError(
                f"{label} resolved timestamp does not match its status"
            )
