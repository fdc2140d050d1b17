import pytest

from servicedesk.desk import create_service_desk
from servicedesk.models import Category, Incident, Item, Priority, Request, TicketType, User
from servicedesk.services import (
    Action,
    AuthorizationError,
    PermissionOracle,
    RolePermissionOracle,
)


def test_resolver_role_actions() -> None:
    oracle = RolePermissionOracle()
    user = User(name="Rita", roles={"resolver"})
    assert oracle.can(user, Action.UPDATE)
    assert oracle.can(user, Action.SET_STATUS)
    assert oracle.can(user, Action.ADD_COMMENT)
    assert oracle.can(user, Action.VIEW_ALL)
    assert not oracle.can(user, Action.SET_PRIORITY)


def test_manager_role_adds_priority() -> None:
    oracle = RolePermissionOracle()
    user = User(name="Mark", roles={"manager"})
    assert oracle.can(user, Action.SET_PRIORITY)
    assert oracle.can(user, "update")


def test_no_role_no_actions() -> None:
    oracle = RolePermissionOracle()
    assert oracle.actions_for(User(name="Carla")) == set()
    assert oracle.actions_for(User(name="Eve", roles={"admin"})) == set()


def test_type_overrides() -> None:
    oracle = RolePermissionOracle(type_overrides={
        TicketType.REQUEST: {"resolver": [Action.VIEW_ALL]},
    })
    user = User(name="Rita", roles={"resolver"})
    assert oracle.can(user, Action.UPDATE, TicketType.INCIDENT)
    assert not oracle.can(user, Action.UPDATE, TicketType.REQUEST)
    assert oracle.can(user, Action.VIEW_ALL, TicketType.REQUEST)


def test_base_oracle_is_abstract() -> None:
    with pytest.raises(NotImplementedError):
        PermissionOracle().can(User(name="x"), Action.UPDATE)


class StatusOnlyOracle(PermissionOracle):
    """Grants set_status and nothing else."""

    def can(self, actor, action, subject_type=None):
        return action == Action.SET_STATUS


def test_set_status_without_update(clock, settings) -> None:
    desk = create_service_desk(clock=clock, settings=settings, oracle=StatusOnlyOracle())
    agent = desk.add_user("Sam Status")
    caller = desk.add_user("Carla Caller")
    ticket = desk.lifecycle.create_ticket(
        Incident, caller, "Screen flickers a lot", Category.COMPUTER, Item.ISSUE
    )

    assert desk.lifecycle.is_field_modifiable(ticket, "status", agent)
    assert not desk.lifecycle.is_field_modifiable(ticket, "priority", agent)
    assert not desk.lifecycle.is_field_modifiable(ticket, "resolver", agent)

    updated = desk.lifecycle.update(ticket, agent, {"status": "monitoring"})
    assert updated.status == "monitoring"


def test_request_override_blocks_updates(clock, settings) -> None:
    oracle = RolePermissionOracle(type_overrides={TicketType.REQUEST: {"resolver": []}})
    desk = create_service_desk(clock=clock, settings=settings, oracle=oracle)
    caller = desk.add_user("Carla Caller")
    rita = desk.add_user("Rita Resolver", roles={"resolver"})
    request = desk.lifecycle.create_ticket(
        Request, caller, "Configure my workstation", Category.COMPUTER, Item.CONFIGURE
    )

    with pytest.raises(AuthorizationError):
        desk.lifecycle.update(request, rita, {"priority": Priority.TWO}, comment="Soon")
