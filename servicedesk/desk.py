"""
Service desk assembly.

Wires repositories and services around one store and one clock. The
default resolver group is seeded so new tickets always have a route.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .core.clock import Clock
from .core.config import Settings, get_settings
from .models import Group, User
from .repositories import (
    ActivityRepository,
    GroupRepository,
    InMemoryStore,
    SlaRepository,
    TicketRepository,
    UserRepository,
)
from .services import (
    ActivityService,
    PermissionOracle,
    RolePermissionOracle,
    SlaService,
    TaskPlanner,
    TaskService,
    TicketLifecycle,
)


logger = logging.getLogger(__name__)


@dataclass
class ServiceDesk:
    store: InMemoryStore
    clock: Clock
    settings: Settings
    tickets: TicketRepository
    slas: SlaRepository
    activities: ActivityRepository
    users: UserRepository
    groups: GroupRepository
    sla_service: SlaService
    activity_service: ActivityService
    task_service: TaskService
    lifecycle: TicketLifecycle

    def add_user(self, name: str, roles: Iterable[str] = (), email: Optional[str] = None) -> User:
        user = User(name=name, email=email, roles=set(roles))
        self.users.add(user)
        return user

    def add_group(self, name: str, resolvers: Iterable[User] = ()) -> Group:
        group = Group(name=name, resolver_ids={u.id for u in resolvers})
        self.groups.add(group)
        return group

    def join_group(self, group: Group, user: User) -> Group:
        group = self.groups.get(group.id)
        group.resolver_ids.add(user.id)
        return self.groups.save(group)

    @property
    def service_desk_group(self) -> Group:
        return self.groups.get(self.settings.service_desk_group_id)


def create_service_desk(
    store: Optional[InMemoryStore] = None,
    clock: Optional[Clock] = None,
    oracle: Optional[PermissionOracle] = None,
    settings: Optional[Settings] = None
) -> ServiceDesk:
    store = store or InMemoryStore()
    clock = clock or Clock()
    oracle = oracle or RolePermissionOracle()
    settings = settings or get_settings()

    tickets = TicketRepository(store)
    slas = SlaRepository(store)
    activities = ActivityRepository(store)
    users = UserRepository(store)
    groups = GroupRepository(store)

    if not groups.exists(settings.service_desk_group_id):
        groups.add(Group(id=settings.service_desk_group_id, name=settings.service_desk_group_name))
        logger.info("Seeded default group %s", settings.service_desk_group_name)

    sla_service = SlaService(slas, clock)
    activity_service = ActivityService(activities, users, groups, clock)
    task_service = TaskService(tickets)

    lifecycle = TicketLifecycle(
        store=store,
        ticket_repo=tickets,
        user_repo=users,
        group_repo=groups,
        permissions=oracle,
        sla_service=sla_service,
        activity_service=activity_service,
        clock=clock,
        settings=settings,
        task_planner=TaskPlanner(users),
        task_service=task_service,
    )

    return ServiceDesk(
        store=store,
        clock=clock,
        settings=settings,
        tickets=tickets,
        slas=slas,
        activities=activities,
        users=users,
        groups=groups,
        sla_service=sla_service,
        activity_service=activity_service,
        task_service=task_service,
        lifecycle=lifecycle,
    )
