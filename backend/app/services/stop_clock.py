"""
stop_clock.py — Stop-clock ledger for ticket SLAs.

A pause appends an open interval for the ticket; a resume closes the most
recently *added* open interval of that ticket. "Most recent" follows insertion
order (reverse scan), not ``start_at``, so a pause recorded out of
chronological order is still the one a resume closes.
"""
import logging
from datetime import datetime
from typing import List, Optional

from app.models.hr_models import StopClockInterval, new_id
from app.services.time_intervals import effective_duration, utc_now

logger = logging.getLogger("hcm-stopclock")


class StopClockLedger:
    """
    Operates in place on an insertion-ordered list of ``StopClockInterval``.

    The list is normally the store's live ``stop_clocks`` collection, mutated
    while the store lock is held.
    """

    def __init__(self, intervals: Optional[List[StopClockInterval]] = None) -> None:
        self.intervals: List[StopClockInterval] = intervals if intervals is not None else []

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def pause(
        self,
        ticket_id: str,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> StopClockInterval:
        """Stop the clock for ``ticket_id``. Multiple open pauses are allowed."""
        interval = StopClockInterval(
            id=new_id(),
            ticket_id=ticket_id,
            start_at=now or utc_now(),
            end_at=None,
            reason=reason,
        )
        self.intervals.append(interval)
        logger.info(f"Stop-clock paused for ticket {ticket_id}", extra={"ticket_id": ticket_id})
        return interval

    def resume(
        self,
        ticket_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[StopClockInterval]:
        """
        Close the latest-added open pause of ``ticket_id``.

        Returns the closed interval, or None when the ticket has no open pause.
        """
        for interval in reversed(self.intervals):
            if interval.ticket_id == ticket_id and interval.end_at is None:
                interval.end_at = now or utc_now()
                logger.info(f"Stop-clock resumed for ticket {ticket_id}", extra={"ticket_id": ticket_id})
                return interval
        return None

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def intervals_for(self, ticket_id: str) -> List[StopClockInterval]:
        return [i for i in self.intervals if i.ticket_id == ticket_id]

    def is_paused(self, ticket_id: str) -> bool:
        return any(i.end_at is None for i in self.intervals_for(ticket_id))

    def effective_hours(
        self,
        ticket_id: str,
        start: datetime,
        end: datetime,
        now: Optional[datetime] = None,
    ) -> float:
        """SLA hours between ``start`` and ``end`` excluding this ticket's pauses."""
        return effective_duration(ticket_id, start, end, self.intervals, now=now)
