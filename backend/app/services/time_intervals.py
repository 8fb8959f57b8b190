"""
time_intervals.py — Interval arithmetic for SLA clocks.

Covers:
  - Overlap between two closed time intervals (milliseconds)
  - Effective elapsed hours of a ticket window after subtracting the ticket's
    stop-clock pauses

Open-ended pauses (no ``end_at``) run until ``now``. Callers that need
deterministic results pass ``now`` explicitly; otherwise it is sampled once
per call.

Overlapping pauses on the same ticket are NOT merged before subtraction: each
pause's overlap with the window is deducted independently, so a shared stretch
is deducted twice. The result is still floored at zero.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from app.models.hr_models import StopClockInterval


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MS_PER_SECOND: int = 1000
MS_PER_HOUR: int = 60 * 60 * MS_PER_SECOND


def _as_utc(value: datetime) -> datetime:
    # Naive instants are read as UTC so mixed inputs still compare
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Signed ``end - start`` in hours, or None when either endpoint is missing."""
    if start is None or end is None:
        return None
    return (_as_utc(end) - _as_utc(start)).total_seconds() / 3600.0


def overlap_duration(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> float:
    """
    Length of the intersection of ``[a_start, a_end]`` and ``[b_start, b_end]``
    in milliseconds.

    Disjoint, degenerate or reversed ranges yield 0.0, never a negative value.
    """
    start = max(_as_utc(a_start), _as_utc(b_start))
    end = min(_as_utc(a_end), _as_utc(b_end))
    if end <= start:
        return 0.0
    return (end - start).total_seconds() * MS_PER_SECOND


def effective_duration(
    ticket_id: str,
    window_start: datetime,
    window_end: datetime,
    stop_intervals: Iterable[StopClockInterval],
    now: Optional[datetime] = None,
) -> float:
    """
    Hours in ``[window_start, window_end]`` that count against the SLA clock
    of ``ticket_id``.

    Every stop interval belonging to the ticket has its overlap with the
    window subtracted. Returns 0.0 for an empty or reversed window.
    """
    total_ms = (_as_utc(window_end) - _as_utc(window_start)).total_seconds() * MS_PER_SECOND
    if total_ms <= 0:
        return 0.0

    now = _as_utc(now) if now is not None else utc_now()
    deducted_ms = 0.0
    for stop in stop_intervals:
        if stop.ticket_id != ticket_id:
            continue
        stop_end = stop.end_at if stop.end_at is not None else now
        deducted_ms += overlap_duration(window_start, window_end, stop.start_at, stop_end)

    return max(0.0, total_ms - deducted_ms) / MS_PER_HOUR
