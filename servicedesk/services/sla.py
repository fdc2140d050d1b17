"""
Service Desk SLA Service

Deadline windows derived from priority.

Rules:
1. Every ticket gets exactly one SLA at creation
2. A priority change closes the running SLA and starts a fresh one
   (the window restarts at the moment of the change)
3. ON_HOLD / RESOLVED / CANCELLED close the running SLA, nothing replaces it
4. Leaving those statuses restarts an SLA if none is open

Expiry is computed on read. No timer process.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from ..core.clock import Clock
from ..models import PAUSED_STATUSES, Sla, Ticket


logger = logging.getLogger(__name__)


class SlaService:
    """Creates, closes and measures SLA windows."""

    def __init__(self, sla_repo, clock: Clock):
        self.sla_repo = sla_repo
        self.clock = clock

    def create_sla(self, ticket: Ticket) -> Sla:
        """
        Open a window sized by the ticket's current priority.
        """
        now = self.clock.now()
        sla = Sla(
            ticket_id=ticket.id,
            ticket_type=ticket.type,
            priority=ticket.priority,
            created_at=now,
            expires_at=now + timedelta(minutes=ticket.calculate_sla_minutes())
        )
        self.sla_repo.add(sla)
        logger.debug(
            "SLA %s opened for ticket %s, %s minutes",
            sla.id, ticket.id, sla.minutes()
        )
        return sla

    def close_sla(self, sla: Optional[Sla]) -> Optional[Sla]:
        """
        Stamp closed_at. Closing an already closed SLA is a no-op.
        """
        if sla is None or not sla.is_open:
            return sla

        sla.closed_at = self.clock.now()
        self.sla_repo.save(sla)
        logger.debug("SLA %s closed for ticket %s", sla.id, sla.ticket_id)
        return sla

    def open_sla(self, ticket: Ticket) -> Optional[Sla]:
        """The running SLA, or None while paused / finished."""
        return self.sla_repo.get_open(ticket.id)

    def sla_history(self, ticket: Ticket) -> List[Sla]:
        return self.sla_repo.list_for_ticket(ticket.id)

    def sync_after_commit(self, before: Ticket, after: Ticket) -> Optional[Sla]:
        """
        Bring SLA records in line with a committed change.

        Returns the SLA opened by this call, if any.
        """
        priority_changed = before.priority != after.priority
        status_changed = before.status != after.status
        current = self.open_sla(after)

        if after.status in PAUSED_STATUSES:
            if current is not None:
                self.close_sla(current)
            return None

        if priority_changed:
            self.close_sla(current)
            return self.create_sla(after)

        if status_changed and before.status in PAUSED_STATUSES and current is None:
            return self.create_sla(after)

        return None

    # =========================================================================
    # Reads (pure, clock only)
    # =========================================================================

    def minutes_till_expires(self, sla: Sla) -> int:
        return sla.minutes_till_expires(self.clock.now())

    def percentage_elapsed(self, sla: Sla) -> int:
        """Progress-bar value: minutes left over window length, in percent."""
        return sla.to_percentage(self.clock.now())

    def is_breached(self, sla: Sla) -> bool:
        return sla.is_open and self.minutes_till_expires(sla) < 0
