"""
Task plans for new requests.

A static lookup from (category, item) to task templates. Templates may
name the caller. Unknown pairs fall back to one task that repeats the
request description.
"""

from typing import Dict, List, NamedTuple, Optional, Tuple

from ..models import Category, Item, Ticket, TaskPlan, TaskSequence


class PlanTemplate(NamedTuple):
    tasks: List[str]
    sequence: TaskSequence = TaskSequence.GRADUAL


PLAN_TEMPLATES: Dict[Tuple[Category, Item], PlanTemplate] = {
    (Category.COMPUTER, Item.BACKUP): PlanTemplate([
        "Backup computer of user {caller}.",
        "Verify if the backup from previous task is restorable.",
    ]),
    (Category.SERVER, Item.ACCESS): PlanTemplate([
        "Verify if {caller} is eligible for access to mentioned server.",
        "Give the access to the user.",
        "Verify with {caller}, that the access works.",
    ]),
    (Category.SERVER, Item.MAINTENANCE): PlanTemplate(
        ["Restart database.", "Restart respective services."],
        TaskSequence.AT_ONCE,
    ),
}


class TaskPlanner:
    """Emits the static plan. Activation order is the task service's job."""

    def __init__(self, user_repo, templates: Optional[Dict[Tuple[Category, Item], PlanTemplate]] = None):
        self.user_repo = user_repo
        self.templates = PLAN_TEMPLATES if templates is None else templates

    def initialize_task_plan(
        self,
        category: Optional[Category],
        item: Optional[Item],
        ticket: Ticket
    ) -> TaskPlan:
        plan = TaskPlan()
        template = self.templates.get((category, item))

        if template is not None:
            caller = self.user_repo.find(ticket.caller_id)
            caller_name = caller.name if caller else "the caller"
            plan.set_sequence(template.sequence)
            for description in template.tasks:
                plan.add_task(description.format(caller=caller_name))

        if not plan.tasks:
            plan.add_task(ticket.description)

        return plan
