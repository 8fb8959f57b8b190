"""Performance monitoring for KPI report computation."""
import functools
import logging
import threading
import time
from typing import Any, Callable, Dict

from app.models.hr_models import KPIReport

logger = logging.getLogger("hcm-api.perf")

REPORT_METRICS = ("ttp", "ttf", "close72Rate", "poolMultiple", "eNPS")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def my_function():
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                f"{func.__qualname__} took {duration_ms} ms",
                extra={"timed_function": func.__qualname__, "duration_ms": duration_ms},
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for KPI report metrics.

    Tracks:
    - Total reports computed
    - Cumulative and average report duration
    - How often each metric came back null (insufficient data)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reports_computed: int = 0
        self._total_duration_ms: float = 0.0
        self._slowest_report_ms: float = 0.0
        self._null_counts: Dict[str, int] = {name: 0 for name in REPORT_METRICS}

    def record_report(self, report: KPIReport, duration_ms: float) -> None:
        """Call once per computed report."""
        payload = report.to_json_dict()
        with self._lock:
            self._reports_computed += 1
            self._total_duration_ms += duration_ms
            self._slowest_report_ms = max(self._slowest_report_ms, duration_ms)
            for name in REPORT_METRICS:
                if payload.get(name) is None:
                    self._null_counts[name] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            reports_computed        : int
            avg_report_duration_ms  : float  (0 if none computed)
            slowest_report_ms       : float
            null_metric_counts      : dict   {metric: count}
        """
        with self._lock:
            avg = (
                round(self._total_duration_ms / self._reports_computed, 2)
                if self._reports_computed > 0
                else 0.0
            )
            return {
                "reports_computed": self._reports_computed,
                "avg_report_duration_ms": avg,
                "slowest_report_ms": round(self._slowest_report_ms, 2),
                "null_metric_counts": dict(self._null_counts),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._reports_computed = 0
            self._total_duration_ms = 0.0
            self._slowest_report_ms = 0.0
            self._null_counts = {name: 0 for name in REPORT_METRICS}


# Module-level singleton
tracker = PerformanceTracker()
