"""
Request fulfilment through tasks.

GRADUAL: only the first task starts with the request, each later task
starts once the one before it is resolved or cancelled.
AT_ONCE: every task starts with the request.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..models import Request, Status, Task, TaskPlan, TaskSequence


logger = logging.getLogger(__name__)

CLOSED_STATUSES = (Status.RESOLVED, Status.CANCELLED)


class TaskService:

    def __init__(self, ticket_repo):
        self.ticket_repo = ticket_repo

    def build_tasks(self, request: Request, plan: TaskPlan, now: datetime) -> List[Task]:
        """Unsaved Task tickets for the plan, in order."""
        tasks = []
        for position, description in enumerate(plan.tasks):
            starts_now = plan.sequence == TaskSequence.AT_ONCE or position == 0
            tasks.append(Task(
                request_id=request.id,
                position=position,
                caller_id=request.caller_id,
                description=description,
                priority=request.priority,
                group_id=request.group_id,
                created_at=now,
                updated_at=now,
                started_at=now if starts_now else None
            ))
        return tasks

    def tasks_for(self, request: Request) -> List[Task]:
        return self.ticket_repo.tasks_for(request.id)

    def has_non_started_task(self, request: Request) -> bool:
        return any(not t.is_started for t in self.tasks_for(request))

    def has_all_tasks_closed(self, request: Request) -> bool:
        return all(t.status in CLOSED_STATUSES for t in self.tasks_for(request))

    def start_next_task(self, task: Task, now: datetime) -> Optional[Task]:
        """
        Called after a task closes. Starts the next waiting task, if any.
        """
        if task.status not in CLOSED_STATUSES:
            return None

        request = self.ticket_repo.find(task.request_id)
        if request is None or request.task_sequence != TaskSequence.GRADUAL:
            return None

        for candidate in self.ticket_repo.tasks_for(task.request_id):
            if candidate.position > task.position and not candidate.is_started:
                candidate.started_at = now
                self.ticket_repo.save(candidate)
                logger.info(
                    "Task %s started after task %s closed", candidate.id, task.id
                )
                return candidate
        return None
