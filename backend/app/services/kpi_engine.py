"""
kpi_engine.py — HR KPI report engine.

Covers:
  - ttp:          key-role first interview -> offer signed, average hours
  - ttf:          requisition approved -> onboarded, average hours
  - close72Rate:  % of fairness cases closed within 72 SLA hours
                  (stop-clock pauses excluded)
  - poolMultiple: candidate pool multiple (placeholder, see below)
  - eNPS:         employee Net Promoter Score

The engine is a pure function of its inputs plus ``now`` (used only for
still-open stop-clock pauses). It reads the snapshots it is given and never
mutates them. Records missing the fields a metric needs are filtered out of
that metric; every metric that cannot be computed comes back as None.
"""
from datetime import datetime
from typing import List, Optional, Sequence

from app.models.hr_models import (
    ACTIVE_STATUSES,
    KPIReport,
    Requisition,
    StopClockInterval,
    SurveyResponse,
    Ticket,
    TicketCategory,
)
from app.services.aggregate_stats import average, percentage, round_half_up
from app.services.time_intervals import effective_duration, hours_between, utc_now


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FAIRNESS_SLA_HOURS: float = 72.0

# Placeholder until a candidate-pipeline model exists: reported whenever at
# least one hiring ticket is still open or in progress.
POOL_MULTIPLE_STUB: int = 3

ENPS_PROMOTER_MIN: float = 9      # score >= 9
ENPS_DETRACTOR_MAX: float = 6     # score <= 6


# ---------------------------------------------------------------------------
# KPIEngine
# ---------------------------------------------------------------------------

class KPIEngine:
    """Computes the fixed HR KPI report from read-only entity snapshots."""

    def __init__(
        self,
        fairness_sla_hours: float = FAIRNESS_SLA_HOURS,
        pool_multiple_stub: int = POOL_MULTIPLE_STUB,
    ) -> None:
        self.fairness_sla_hours = fairness_sla_hours
        self.pool_multiple_stub = pool_multiple_stub

    # -----------------------------------------------------------------------
    # 1. Hiring pipeline durations
    # -----------------------------------------------------------------------

    def time_to_offer_hours(self, requisitions: Sequence[Requisition]) -> Optional[float]:
        """Average first-interview -> offer hours over key-role requisitions."""
        durations: List[float] = [
            hours_between(r.first_interview_at, r.offer_signed_at)
            for r in requisitions
            if r.key_role and r.first_interview_at and r.offer_signed_at
        ]
        return average(durations)

    def time_to_fill_hours(self, requisitions: Sequence[Requisition]) -> Optional[float]:
        """Average approved -> onboarded hours over all requisitions, key role or not."""
        durations: List[float] = [
            hours_between(r.approved_at, r.onboarded_at)
            for r in requisitions
            if r.approved_at and r.onboarded_at
        ]
        return average(durations)

    # -----------------------------------------------------------------------
    # 2. Fairness SLA
    # -----------------------------------------------------------------------

    def fairness_close_rate(
        self,
        tickets: Sequence[Ticket],
        stop_clock_intervals: Sequence[StopClockInterval],
        now: datetime,
    ) -> Optional[int]:
        """
        Percentage of fairness tickets closed within the SLA.

        The denominator counts every fairness ticket, closed or not; open ones
        simply never qualify.
        """
        fairness = [t for t in tickets if t.category == TicketCategory.FAIRNESS]
        within_sla = sum(
            1
            for t in fairness
            if t.closed_at is not None
            and effective_duration(t.id, t.created_at, t.closed_at, stop_clock_intervals, now=now)
            <= self.fairness_sla_hours
        )
        return percentage(within_sla, len(fairness))

    # -----------------------------------------------------------------------
    # 3. Candidate pool
    # -----------------------------------------------------------------------

    def pool_multiple(self, tickets: Sequence[Ticket]) -> Optional[int]:
        # Stub: constant multiple guarded by "any active hiring ticket"
        has_open_hiring = any(
            t.category == TicketCategory.HIRING and t.status in ACTIVE_STATUSES
            for t in tickets
        )
        return self.pool_multiple_stub if has_open_hiring else None

    # -----------------------------------------------------------------------
    # 4. eNPS
    # -----------------------------------------------------------------------

    def employee_nps(self, responses: Sequence[SurveyResponse]) -> Optional[int]:
        total = len(responses)
        if not total:
            return None
        promoters = sum(1 for r in responses if r.score >= ENPS_PROMOTER_MIN)
        detractors = sum(1 for r in responses if r.score <= ENPS_DETRACTOR_MAX)
        return round_half_up((promoters / total - detractors / total) * 100)

    # -----------------------------------------------------------------------
    # Report
    # -----------------------------------------------------------------------

    def compute_report(
        self,
        tickets: Sequence[Ticket],
        requisitions: Sequence[Requisition],
        survey_responses: Sequence[SurveyResponse],
        stop_clock_intervals: Sequence[StopClockInterval] = (),
        now: Optional[datetime] = None,
    ) -> KPIReport:
        now = now or utc_now()
        return KPIReport(
            ttp=self.time_to_offer_hours(requisitions),
            ttf=self.time_to_fill_hours(requisitions),
            close72_rate=self.fairness_close_rate(tickets, stop_clock_intervals, now),
            pool_multiple=self.pool_multiple(tickets),
            enps=self.employee_nps(survey_responses),
        )


_default_engine = KPIEngine()


def compute_report(
    tickets: Sequence[Ticket],
    requisitions: Sequence[Requisition],
    survey_responses: Sequence[SurveyResponse],
    stop_clock_intervals: Sequence[StopClockInterval] = (),
    now: Optional[datetime] = None,
) -> KPIReport:
    """Module-level shortcut for ``KPIEngine().compute_report``."""
    return _default_engine.compute_report(
        tickets, requisitions, survey_responses, stop_clock_intervals, now=now
    )
