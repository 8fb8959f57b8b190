"""
test_kpi_engine.py — Unit tests for the HR KPI report.

Tests cover:
  - ttp: key-role first-interview -> offer average, filtering
  - ttf: approved -> onboarded average regardless of key role
  - close72Rate: fairness SLA with and without stop-clock pauses, null case
  - poolMultiple: constant stub with active-hiring guard
  - eNPS: promoter/detractor scoring, empty survey
  - compute_report: end-to-end demo data, purity, wire format

All timestamps are relative to a fixed NOW, so durations are exact.
"""
from app.models.hr_models import (
    KPIReport,
    Requisition,
    StopClockInterval,
    SurveyResponse,
    Ticket,
    TicketCategory,
    TicketStatus,
)
from app.services.kpi_engine import KPIEngine, compute_report
from conftest import NOW, hours_ago


def _fairness(tid, created_h, closed_h=None):
    return Ticket(
        id=tid,
        category=TicketCategory.FAIRNESS,
        status=TicketStatus.CLOSED if closed_h is not None else TicketStatus.OPEN,
        title=tid,
        created_at=hours_ago(created_h),
        closed_at=hours_ago(closed_h) if closed_h is not None else None,
    )


def _hiring(tid, status):
    return Ticket(id=tid, category=TicketCategory.HIRING, status=status,
                  title=tid, created_at=hours_ago(5))


# ===========================================================================
# Hiring durations
# ===========================================================================

class TestTimeToOffer:

    def test_demo_requisitions_average_36h(self, kpi_engine, demo_requisitions):
        """(300-276)=24h and (250-202)=48h -> 36h."""
        assert kpi_engine.time_to_offer_hours(demo_requisitions) == 36.0

    def test_non_key_roles_excluded(self, kpi_engine):
        reqs = [
            Requisition(id="A", ticket_id="R1", key_role=True,
                        first_interview_at=hours_ago(30), offer_signed_at=hours_ago(20)),
            Requisition(id="B", ticket_id="R2", key_role=False,
                        first_interview_at=hours_ago(300), offer_signed_at=hours_ago(10)),
        ]
        assert kpi_engine.time_to_offer_hours(reqs) == 10.0

    def test_missing_milestone_excluded_not_zero(self, kpi_engine):
        reqs = [
            Requisition(id="A", ticket_id="R1", key_role=True,
                        first_interview_at=hours_ago(30), offer_signed_at=hours_ago(20)),
            Requisition(id="B", ticket_id="R2", key_role=True, first_interview_at=hours_ago(30)),
        ]
        assert kpi_engine.time_to_offer_hours(reqs) == 10.0

    def test_no_qualifying_requisitions_is_none(self, kpi_engine):
        reqs = [Requisition(id="A", ticket_id="R1", key_role=True)]
        assert kpi_engine.time_to_offer_hours(reqs) is None
        assert kpi_engine.time_to_offer_hours([]) is None


class TestTimeToFill:

    def test_demo_requisitions(self, kpi_engine, demo_requisitions):
        """200, 360, 240, 120 hours -> 230h, key role or not."""
        assert kpi_engine.time_to_fill_hours(demo_requisitions) == 230.0

    def test_key_role_flag_irrelevant(self, kpi_engine):
        reqs = [
            Requisition(id="A", ticket_id="X", key_role=False,
                        approved_at=hours_ago(100), onboarded_at=hours_ago(40)),
        ]
        assert kpi_engine.time_to_fill_hours(reqs) == 60.0

    def test_open_requisitions_excluded(self, kpi_engine):
        reqs = [Requisition(id="A", ticket_id="X", approved_at=hours_ago(100))]
        assert kpi_engine.time_to_fill_hours(reqs) is None


# ===========================================================================
# Fairness SLA
# ===========================================================================

class TestFairnessCloseRate:

    def test_demo_tickets_one_of_two(self, kpi_engine, demo_tickets):
        """F1 took 48h (in SLA), F2 took 100h (breach) -> 50%."""
        assert kpi_engine.fairness_close_rate(demo_tickets, [], NOW) == 50

    def test_no_fairness_tickets_is_none(self, kpi_engine, demo_tickets):
        others = [t for t in demo_tickets if t.category != TicketCategory.FAIRNESS]
        assert kpi_engine.fairness_close_rate(others, [], NOW) is None

    def test_open_cases_count_in_denominator(self, kpi_engine):
        tickets = [_fairness("F1", 60, 12), _fairness("F2", 10), _fairness("F3", 5), _fairness("F4", 1)]
        assert kpi_engine.fairness_close_rate(tickets, [], NOW) == 25

    def test_exactly_72h_is_within_sla(self, kpi_engine):
        assert kpi_engine.fairness_close_rate([_fairness("F1", 80, 8)], [], NOW) == 100

    def test_stop_clock_brings_case_inside_sla(self, kpi_engine, demo_tickets):
        """A 30h pause on F2 turns 100h into 70h -> both cases in SLA."""
        stops = [StopClockInterval(id="S1", ticket_id="F2",
                                   start_at=hours_ago(90), end_at=hours_ago(60))]
        assert kpi_engine.fairness_close_rate(demo_tickets, stops, NOW) == 100

    def test_open_pause_counts_until_now(self, kpi_engine, demo_tickets):
        """A still-open pause started 50h ago covers 30h of F2's window -> 70h."""
        stops = [StopClockInterval(id="S1", ticket_id="F2", start_at=hours_ago(50))]
        assert kpi_engine.fairness_close_rate(demo_tickets, stops, NOW) == 100

    def test_pause_on_other_ticket_ignored(self, kpi_engine, demo_tickets):
        stops = [StopClockInterval(id="S1", ticket_id="R1",
                                   start_at=hours_ago(90), end_at=hours_ago(60))]
        assert kpi_engine.fairness_close_rate(demo_tickets, stops, NOW) == 50

    def test_custom_sla_hours(self, demo_tickets):
        assert KPIEngine(fairness_sla_hours=120).fairness_close_rate(demo_tickets, [], NOW) == 100


# ===========================================================================
# Pool multiple stub
# ===========================================================================

class TestPoolMultiple:

    def test_open_hiring_ticket_gives_three(self, kpi_engine):
        assert kpi_engine.pool_multiple([_hiring("R1", TicketStatus.OPEN)]) == 3

    def test_in_progress_hiring_ticket_gives_three(self, kpi_engine):
        assert kpi_engine.pool_multiple([_hiring("R1", TicketStatus.IN_PROGRESS)]) == 3

    def test_only_closed_hiring_is_none(self, kpi_engine):
        tickets = [_hiring("R1", TicketStatus.CLOSED), _hiring("R2", TicketStatus.RESOLVED)]
        assert kpi_engine.pool_multiple(tickets) is None

    def test_open_non_hiring_is_none(self, kpi_engine):
        assert kpi_engine.pool_multiple([_fairness("F1", 10)]) is None

    def test_no_tickets_is_none(self, kpi_engine):
        assert kpi_engine.pool_multiple([]) is None


# ===========================================================================
# eNPS
# ===========================================================================

class TestEmployeeNPS:

    def test_demo_scores(self, kpi_engine, demo_survey):
        """(3/7 - 2/7) * 100 = 14.28 -> 14."""
        assert kpi_engine.employee_nps(demo_survey) == 14

    def test_empty_is_none(self, kpi_engine):
        assert kpi_engine.employee_nps([]) is None

    def test_all_detractors(self, kpi_engine):
        assert kpi_engine.employee_nps([SurveyResponse(score=s) for s in (0, 3, 6)]) == -100

    def test_passives_only_is_zero(self, kpi_engine):
        assert kpi_engine.employee_nps([SurveyResponse(score=7), SurveyResponse(score=8)]) == 0


# ===========================================================================
# Full report
# ===========================================================================

class TestComputeReport:

    def test_demo_report(self, demo_tickets, demo_requisitions, demo_survey):
        report = compute_report(demo_tickets, demo_requisitions, demo_survey, [], now=NOW)
        assert report.ttp == 36.0
        assert report.ttf == 230.0
        assert report.close72_rate == 50
        assert report.pool_multiple == 3
        assert report.enps == 14

    def test_without_fairness_tickets(self, demo_tickets, demo_requisitions, demo_survey):
        tickets = [t for t in demo_tickets if t.category != TicketCategory.FAIRNESS]
        report = compute_report(tickets, demo_requisitions, demo_survey, now=NOW)
        assert report.close72_rate is None
        assert report.pool_multiple == 3

    def test_empty_inputs_give_all_nulls(self):
        report = compute_report([], [], [], [], now=NOW)
        assert report == KPIReport()
        assert report.to_json_dict() == {
            "ttp": None, "ttf": None, "close72Rate": None, "poolMultiple": None, "eNPS": None,
        }

    def test_wire_keys(self, demo_tickets, demo_requisitions, demo_survey):
        payload = compute_report(demo_tickets, demo_requisitions, demo_survey, now=NOW).to_json_dict()
        assert set(payload) == {"ttp", "ttf", "close72Rate", "poolMultiple", "eNPS"}
        assert payload["close72Rate"] == 50

    def test_inputs_not_mutated(self, demo_tickets, demo_requisitions, demo_survey):
        stops = [StopClockInterval(id="S1", ticket_id="F2", start_at=hours_ago(50))]
        before = (
            [t.model_dump() for t in demo_tickets],
            [r.model_dump() for r in demo_requisitions],
            [s.model_dump() for s in stops],
        )
        compute_report(demo_tickets, demo_requisitions, demo_survey, stops, now=NOW)
        after = (
            [t.model_dump() for t in demo_tickets],
            [r.model_dump() for r in demo_requisitions],
            [s.model_dump() for s in stops],
        )
        assert before == after
        assert stops[0].end_at is None

    def test_deterministic_given_now(self, demo_tickets, demo_requisitions, demo_survey):
        stops = [StopClockInterval(id="S1", ticket_id="F2", start_at=hours_ago(50))]
        first = compute_report(demo_tickets, demo_requisitions, demo_survey, stops, now=NOW)
        second = compute_report(demo_tickets, demo_requisitions, demo_survey, stops, now=NOW)
        assert first == second

    def test_orphaned_requisitions_tolerated(self, demo_requisitions):
        """RQ3/RQ4 reference tickets that do not exist; they still count for ttf."""
        report = compute_report([], demo_requisitions, [], now=NOW)
        assert report.ttf == 230.0
        assert report.pool_multiple is None
