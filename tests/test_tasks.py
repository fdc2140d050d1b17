from uuid import uuid4

from servicedesk.models import (
    Category,
    Item,
    Request,
    Status,
    Task,
    TaskSequence,
    TicketType,
)
from servicedesk.services import TaskPlanner, PlanTemplate

from .conftest import START


def _request(lifecycle, caller, category, item, description="Please help me with this"):
    return lifecycle.create_ticket(Request, caller, description, category, item)


# =============================================================================
# Planner
# =============================================================================

def test_plan_interpolates_caller_name(desk, caller) -> None:
    request = Request(
        caller_id=caller.id, category=Category.SERVER, item=Item.ACCESS,
        description="Need access to build server", group_id=uuid4(),
    )
    plan = TaskPlanner(desk.users).initialize_task_plan(Category.SERVER, Item.ACCESS, request)
    assert plan.sequence == TaskSequence.GRADUAL
    assert plan.tasks == [
        "Verify if Carla Caller is eligible for access to mentioned server.",
        "Give the access to the user.",
        "Verify with Carla Caller, that the access works.",
    ]


def test_plan_falls_back_to_description(desk, caller) -> None:
    request = Request(
        caller_id=caller.id, category=Category.COMPUTER, item=Item.CONFIGURE,
        description="Install the VPN client", group_id=uuid4(),
    )
    plan = TaskPlanner(desk.users).initialize_task_plan(Category.COMPUTER, Item.CONFIGURE, request)
    assert plan.tasks == ["Install the VPN client"]
    assert plan.sequence == TaskSequence.GRADUAL


def test_plan_with_custom_templates(desk, caller) -> None:
    templates = {(Category.COMPUTER, Item.CONFIGURE): PlanTemplate(["Ship laptop to {caller}."], TaskSequence.AT_ONCE)}
    request = Request(
        caller_id=caller.id, category=Category.COMPUTER, item=Item.CONFIGURE,
        description="New laptop please", group_id=uuid4(),
    )
    plan = TaskPlanner(desk.users, templates).initialize_task_plan(Category.COMPUTER, Item.CONFIGURE, request)
    assert plan.tasks == ["Ship laptop to Carla Caller."]
    assert plan.sequence == TaskSequence.AT_ONCE


# =============================================================================
# Materialised tasks
# =============================================================================

def test_gradual_request_starts_first_task_only(desk, lifecycle, caller) -> None:
    request = _request(lifecycle, caller, Category.COMPUTER, Item.BACKUP)
    tasks = desk.task_service.tasks_for(request)

    assert [t.description for t in tasks] == [
        "Backup computer of user Carla Caller.",
        "Verify if the backup from previous task is restorable.",
    ]
    assert [t.position for t in tasks] == [0, 1]
    assert tasks[0].started_at == START
    assert not tasks[1].is_started
    assert desk.task_service.has_non_started_task(request)


def test_tasks_are_full_tickets(desk, lifecycle, caller) -> None:
    request = _request(lifecycle, caller, Category.COMPUTER, Item.BACKUP)
    task = desk.task_service.tasks_for(request)[0]

    assert task.type == TicketType.TASK
    assert task.caller_id == caller.id
    assert task.group_id == request.group_id
    assert task.category is None and task.item is None
    assert desk.sla_service.open_sla(task).minutes() == 1440
    assert desk.activity_service.feed(task)[0].startswith("Created")


def test_at_once_request_starts_all_tasks(desk, lifecycle, caller) -> None:
    request = _request(lifecycle, caller, Category.SERVER, Item.MAINTENANCE)

    assert desk.tickets.get(request.id).task_sequence == TaskSequence.AT_ONCE
    tasks = desk.task_service.tasks_for(request)
    assert [t.description for t in tasks] == ["Restart database.", "Restart respective services."]
    assert all(t.is_started for t in tasks)
    assert not desk.task_service.has_non_started_task(request)


def test_closing_task_starts_next(desk, clock, lifecycle, caller, resolver) -> None:
    request = _request(lifecycle, caller, Category.SERVER, Item.ACCESS)
    first, second, third = desk.task_service.tasks_for(request)

    clock.advance(hours=1)
    lifecycle.resolve(first, resolver, "Eligibility confirmed")

    second = desk.tickets.get(second.id)
    assert second.started_at == clock.now()
    assert not desk.tickets.get(third.id).is_started

    lifecycle.cancel(second, resolver, "Access already granted")
    assert desk.tickets.get(third.id).is_started


def test_non_closing_task_change_starts_nothing(desk, lifecycle, caller, resolver) -> None:
    request = _request(lifecycle, caller, Category.COMPUTER, Item.BACKUP)
    first, second = desk.task_service.tasks_for(request)

    lifecycle.update(first, resolver, {"status": Status.IN_PROGRESS})
    assert not desk.tickets.get(second.id).is_started


def test_all_tasks_closed(desk, lifecycle, caller, resolver) -> None:
    request = _request(lifecycle, caller, Category.SERVER, Item.MAINTENANCE)
    assert not desk.task_service.has_all_tasks_closed(request)

    for task in desk.task_service.tasks_for(request):
        lifecycle.resolve(task, resolver, "Restarted")

    assert desk.task_service.has_all_tasks_closed(request)


def test_incident_gets_no_tasks(desk, incident) -> None:
    tasks = [t for t in desk.store.tickets.values() if isinstance(t, Task)]
    assert tasks == []
