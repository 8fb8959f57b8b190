"""
Demo data written on first start (empty ``tickets.json``).

Timestamps are relative to the moment of seeding so the KPI cards show
meaningful numbers straight away:
  - two closed fairness cases (48h and 100h to close)
  - two active hiring tickets
  - four requisitions, two of them key roles
"""
from datetime import datetime, timedelta
from typing import List, Optional

from app.models.hr_models import (
    Requisition,
    Ticket,
    TicketCategory,
    TicketStatus,
)
from app.services.time_intervals import utc_now


def _hours_ago(now: datetime):
    return lambda h: now - timedelta(hours=h)


def demo_tickets(now: Optional[datetime] = None) -> List[Ticket]:
    ago = _hours_ago(now or utc_now())
    return [
        Ticket(id="F1", category=TicketCategory.FAIRNESS, status=TicketStatus.CLOSED,
               title="Fairness complaint 1", created_at=ago(60), closed_at=ago(12)),
        Ticket(id="F2", category=TicketCategory.FAIRNESS, status=TicketStatus.CLOSED,
               title="Fairness complaint 2", created_at=ago(120), closed_at=ago(20)),
        Ticket(id="R1", category=TicketCategory.HIRING, status=TicketStatus.OPEN,
               title="B2B Sales Director", created_at=ago(10)),
        Ticket(id="R2", category=TicketCategory.HIRING, status=TicketStatus.IN_PROGRESS,
               title="Algorithm Engineer", created_at=ago(20)),
    ]


def demo_requisitions(now: Optional[datetime] = None) -> List[Requisition]:
    ago = _hours_ago(now or utc_now())
    return [
        Requisition(id="RQ1", ticket_id="R1", key_role=True, approved_at=ago(400),
                    first_interview_at=ago(300), offer_signed_at=ago(276), onboarded_at=ago(200)),
        Requisition(id="RQ2", ticket_id="R2", key_role=True, approved_at=ago(500),
                    first_interview_at=ago(250), offer_signed_at=ago(202), onboarded_at=ago(140)),
        # Orphaned ticket references are tolerated
        Requisition(id="RQ3", ticket_id="X1", key_role=False, approved_at=ago(400), onboarded_at=ago(160)),
        Requisition(id="RQ4", ticket_id="X2", key_role=False, approved_at=ago(200), onboarded_at=ago(80)),
    ]
