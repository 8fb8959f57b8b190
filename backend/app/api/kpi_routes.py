"""
KPI routes — the HR KPI report and the eNPS pulse survey.

The report is computed from a deep-copied snapshot of the store, so a
concurrent ticket update never changes the data mid-computation.
"""
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from app.api.deps import require_session
from app.db import JsonStore, get_store
from app.models.hr_models import KPIReport, Session, SurveyResponse
from app.services.kpi_engine import compute_report
from app.services.perf_monitor import tracker as perf_tracker
from app.services.time_intervals import utc_now

router = APIRouter(prefix="/api", tags=["KPI"])
logger = logging.getLogger("hcm-kpi")


class SurveySubmitRequest(BaseModel):
    score: float = 10
    comment: Optional[str] = None


@router.get("/kpi", response_model=KPIReport)
async def get_kpi_report(request: Request, store: JsonStore = Depends(get_store)):
    snapshot = await store.snapshot()
    start = time.perf_counter()
    report = compute_report(
        snapshot.tickets,
        snapshot.requisitions,
        snapshot.enps,
        snapshot.stop_clocks,
        now=utc_now(),
    )
    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    perf_tracker.record_report(report, duration_ms)
    logger.debug(
        "KPI report computed",
        extra={"duration_ms": duration_ms, "request_id": getattr(request.state, "request_id", None)},
    )
    return report


@router.post("/enps")
async def submit_enps(
    req: SurveySubmitRequest,
    session: Session = Depends(require_session),
    store: JsonStore = Depends(get_store),
):
    """Record one survey answer. Out-of-range scores are clamped to 0..10."""
    score = max(0.0, min(10.0, float(req.score)))
    comment = req.comment or None
    async with store.transaction():
        store.enps.append(SurveyResponse(score=score, comment=comment))
    await store.save("enps")
    return {"ok": True}
