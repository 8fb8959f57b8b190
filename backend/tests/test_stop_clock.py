"""
test_stop_clock.py — Unit tests for StopClockLedger.

Tests cover:
  - pause: appends an open interval, allows concurrent pauses
  - resume: closes the latest-added open pause (insertion order, not start time),
    no-op without an open pause, ticket isolation
  - effective_hours: delegates to effective_duration over the ledger
"""
from app.models.hr_models import StopClockInterval
from app.services.stop_clock import StopClockLedger
from conftest import NOW, hours_ago


class TestPause:

    def test_pause_appends_open_interval(self):
        ledger = StopClockLedger()
        interval = ledger.pause("T1", reason="waiting for documents", now=hours_ago(5))
        assert ledger.intervals == [interval]
        assert interval.ticket_id == "T1"
        assert interval.start_at == hours_ago(5)
        assert interval.end_at is None
        assert interval.reason == "waiting for documents"
        assert interval.id

    def test_concurrent_pauses_not_deduplicated(self):
        ledger = StopClockLedger()
        ledger.pause("T1", now=hours_ago(5))
        ledger.pause("T1", now=hours_ago(4))
        assert len(ledger.intervals_for("T1")) == 2

    def test_mutates_supplied_list_in_place(self):
        backing = []
        StopClockLedger(backing).pause("T1", now=NOW)
        assert len(backing) == 1


class TestResume:

    def test_resume_closes_open_interval(self):
        ledger = StopClockLedger()
        ledger.pause("T1", now=hours_ago(5))
        closed = ledger.resume("T1", now=hours_ago(2))
        assert closed is not None
        assert closed.end_at == hours_ago(2)
        assert not ledger.is_paused("T1")

    def test_resume_without_open_pause_is_noop(self):
        ledger = StopClockLedger()
        assert ledger.resume("T1", now=NOW) is None
        assert ledger.intervals == []

    def test_resume_after_everything_closed_is_noop(self):
        ledger = StopClockLedger()
        ledger.pause("T1", now=hours_ago(5))
        ledger.resume("T1", now=hours_ago(4))
        assert ledger.resume("T1", now=NOW) is None
        assert ledger.intervals[0].end_at == hours_ago(4)

    def test_resume_closes_latest_added_not_latest_started(self):
        """
        Pauses appended out of chronological order: the second-added one
        started earlier, but it is still the one a resume closes.
        """
        ledger = StopClockLedger()
        first = ledger.pause("T1", now=hours_ago(2))
        second = ledger.pause("T1", now=hours_ago(10))
        closed = ledger.resume("T1", now=hours_ago(1))
        assert closed is second
        assert first.end_at is None
        assert second.end_at == hours_ago(1)

    def test_resume_only_touches_its_ticket(self):
        ledger = StopClockLedger()
        ledger.pause("T1", now=hours_ago(5))
        other = ledger.pause("T2", now=hours_ago(3))
        ledger.resume("T1", now=hours_ago(1))
        assert other.end_at is None
        assert ledger.is_paused("T2")
        assert not ledger.is_paused("T1")

    def test_resume_skips_closed_entries_when_scanning_back(self):
        ledger = StopClockLedger([
            StopClockInterval(id="A", ticket_id="T1", start_at=hours_ago(9)),
            StopClockInterval(id="B", ticket_id="T1", start_at=hours_ago(8), end_at=hours_ago(7)),
        ])
        closed = ledger.resume("T1", now=hours_ago(1))
        assert closed.id == "A"


class TestEffectiveHours:

    def test_pause_resume_cycle_excluded(self):
        ledger = StopClockLedger()
        ledger.pause("F2", now=hours_ago(100))
        ledger.resume("F2", now=hours_ago(60))
        # window 120h -> 20h ago = 100h, minus 40h paused
        assert ledger.effective_hours("F2", hours_ago(120), hours_ago(20), now=NOW) == 60.0

    def test_open_pause_counts_until_now(self):
        ledger = StopClockLedger()
        ledger.pause("T1", now=hours_ago(3))
        assert ledger.effective_hours("T1", hours_ago(10), NOW, now=NOW) == 7.0
