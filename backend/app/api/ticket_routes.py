"""
Ticket routes — create/list tickets, stop-clock pause/resume, resolution,
per-ticket SLA status, and requisition milestones.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from app.db import JsonStore, get_store
from app.models.hr_models import (
    ACTIVE_STATUSES,
    HRModel,
    Requisition,
    Session,
    Ticket,
    TicketCategory,
    TicketStatus,
    UTCDateTime,
    new_id,
)
from app.api.deps import require_session
from app.services.kpi_engine import FAIRNESS_SLA_HOURS
from app.services.stop_clock import StopClockLedger
from app.services.time_intervals import hours_between, utc_now

router = APIRouter(prefix="/api", tags=["Tickets"])
logger = logging.getLogger("hcm-tickets")


# ─── Pydantic schemas ────────────────────────────────────────────────────────

class TicketCreateRequest(HRModel):
    category: TicketCategory = Field(TicketCategory.OTHER, alias="type")
    title: str = "Untitled"
    description: str = ""
    key_role: bool = False       # only meaningful for HIRING tickets


class StopClockRequest(BaseModel):
    reason: str = ""


class StatusUpdateRequest(BaseModel):
    status: TicketStatus


class RequisitionUpdateRequest(HRModel):
    key_role: Optional[bool] = None
    approved_at: Optional[UTCDateTime] = None
    first_interview_at: Optional[UTCDateTime] = None
    offer_signed_at: Optional[UTCDateTime] = None
    onboarded_at: Optional[UTCDateTime] = None


# ─── Helpers ────────────────────────────────────────────────────────────────

def _find_ticket(store: JsonStore, ticket_id: str) -> Ticket:
    ticket = next((t for t in store.tickets if t.id == ticket_id), None)
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


def _log_extra(request: Request, ticket_id: str) -> dict:
    return {"ticket_id": ticket_id, "request_id": getattr(request.state, "request_id", None)}


# ─── Tickets ────────────────────────────────────────────────────────────────

@router.get("/tickets")
async def list_tickets(store: JsonStore = Depends(get_store)):
    snapshot = await store.snapshot()
    return [t.to_json_dict() for t in snapshot.tickets]


@router.post("/tickets")
async def create_ticket(
    req: TicketCreateRequest,
    request: Request,
    session: Session = Depends(require_session),
    store: JsonStore = Depends(get_store),
):
    """Open a ticket. HIRING tickets also get a requisition record."""
    ticket = Ticket(
        id=new_id(),
        category=req.category,
        status=TicketStatus.OPEN,
        title=req.title or "Untitled",
        description=req.description,
        created_at=utc_now(),
        closed_at=None,
    )
    async with store.transaction():
        # Newest first, matching the list view
        store.tickets.insert(0, ticket)
        if ticket.category == TicketCategory.HIRING:
            store.requisitions.append(
                Requisition(id=new_id(), ticket_id=ticket.id, key_role=req.key_role)
            )
    await store.save("tickets")
    if ticket.category == TicketCategory.HIRING:
        await store.save("requisitions")

    logger.info(
        f"Ticket {ticket.id} ({ticket.category.value}) opened by {session.user_id}",
        extra=_log_extra(request, ticket.id),
    )
    return {"id": ticket.id}


@router.post("/tickets/{ticket_id}/stop")
async def stop_clock(
    ticket_id: str,
    req: Optional[StopClockRequest] = None,
    session: Session = Depends(require_session),
    store: JsonStore = Depends(get_store),
):
    async with store.transaction():
        _find_ticket(store, ticket_id)
        StopClockLedger(store.stop_clocks).pause(ticket_id, reason=req.reason if req else "")
    await store.save("stop_clocks")
    return {"ok": True}


@router.post("/tickets/{ticket_id}/resume")
async def resume_clock(
    ticket_id: str,
    session: Session = Depends(require_session),
    store: JsonStore = Depends(get_store),
):
    """Close the latest open pause; a ticket with no open pause is left as is."""
    async with store.transaction():
        _find_ticket(store, ticket_id)
        closed = StopClockLedger(store.stop_clocks).resume(ticket_id)
    if closed is not None:
        await store.save("stop_clocks")
    return {"ok": True}


@router.post("/tickets/{ticket_id}/status")
async def update_status(
    ticket_id: str,
    req: StatusUpdateRequest,
    request: Request,
    session: Session = Depends(require_session),
    store: JsonStore = Depends(get_store),
):
    """
    Resolution action. RESOLVED/CLOSED stamp ``closedAt`` the first time;
    moving back to OPEN/IN_PROGRESS clears it.
    """
    async with store.transaction():
        ticket = _find_ticket(store, ticket_id)
        ticket.status = req.status
        if req.status in ACTIVE_STATUSES:
            ticket.closed_at = None
        elif ticket.closed_at is None:
            ticket.closed_at = max(utc_now(), ticket.created_at)
        result = ticket.to_json_dict()
    await store.save("tickets")
    logger.info(
        f"Ticket {ticket_id} -> {req.status.value} by {session.user_id}",
        extra=_log_extra(request, ticket_id),
    )
    return result


@router.get("/tickets/{ticket_id}/sla")
async def ticket_sla(ticket_id: str, store: JsonStore = Depends(get_store)):
    """Effective SLA hours so far (created -> closed, or -> now while open)."""
    snapshot = await store.snapshot()
    ticket = next((t for t in snapshot.tickets if t.id == ticket_id), None)
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found")

    now = utc_now()
    end = ticket.closed_at or now
    ledger = StopClockLedger(snapshot.stop_clocks)
    effective = ledger.effective_hours(ticket.id, ticket.created_at, end, now=now)
    sla_hours = FAIRNESS_SLA_HOURS if ticket.category == TicketCategory.FAIRNESS else None

    return {
        "ticketId": ticket.id,
        "elapsedHours": max(0.0, hours_between(ticket.created_at, end)),
        "effectiveHours": effective,
        "paused": ledger.is_paused(ticket.id),
        "slaHours": sla_hours,
        "withinSla": (effective <= sla_hours) if sla_hours is not None else None,
        "stopClocks": [s.to_json_dict() for s in ledger.intervals_for(ticket.id)],
    }


# ─── Requisitions ───────────────────────────────────────────────────────────

@router.get("/requisitions")
async def list_requisitions(store: JsonStore = Depends(get_store)) -> List[dict]:
    snapshot = await store.snapshot()
    return [r.to_json_dict() for r in snapshot.requisitions]


@router.patch("/requisitions/{requisition_id}")
async def update_requisition(
    requisition_id: str,
    req: RequisitionUpdateRequest,
    session: Session = Depends(require_session),
    store: JsonStore = Depends(get_store),
):
    """Record hiring milestones; only the fields present in the body change."""
    async with store.transaction():
        requisition = next((r for r in store.requisitions if r.id == requisition_id), None)
        if requisition is None:
            raise HTTPException(status_code=404, detail="Requisition not found")
        for name, value in req.model_dump(exclude_unset=True).items():
            if name == "key_role" and value is None:
                continue
            setattr(requisition, name, value)
        result = requisition.to_json_dict()
    await store.save("requisitions")
    return result
