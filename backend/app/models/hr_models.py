"""
HR operations domain models.

Every entity is persisted as a JSON object with camelCase keys and ISO-8601
timestamps (``createdAt``, ``ticketId``, ``keyRole`` ...). Pydantic revives the
timestamps into ``datetime``; naive values are pinned to UTC so the KPI core
only ever compares timezone-aware instants.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(_ensure_utc)]


def new_id() -> str:
    """Short random identifier, e.g. ``id-3f9a1c0b7d2e``."""
    return f"id-{uuid.uuid4().hex[:12]}"


class TicketCategory(str, Enum):
    HIRING = "HIRING"
    ONBOARDING = "ONBOARDING"
    PERFORMANCE = "PERFORMANCE"
    FAIRNESS = "FAIRNESS"
    OTHER = "OTHER"


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


ACTIVE_STATUSES = (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)


class HRModel(BaseModel):
    """Base for stored entities: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Ticket(HRModel):
    id: str
    category: TicketCategory = Field(TicketCategory.OTHER, alias="type")
    status: TicketStatus = TicketStatus.OPEN
    title: str
    description: Optional[str] = None
    created_at: UTCDateTime
    closed_at: Optional[UTCDateTime] = None


class Requisition(HRModel):
    id: str
    ticket_id: str
    key_role: bool = False
    approved_at: Optional[UTCDateTime] = None
    first_interview_at: Optional[UTCDateTime] = None
    offer_signed_at: Optional[UTCDateTime] = None
    onboarded_at: Optional[UTCDateTime] = None


class StopClockInterval(HRModel):
    id: str
    ticket_id: str
    start_at: UTCDateTime
    end_at: Optional[UTCDateTime] = None     # None while the clock is still stopped
    reason: str = ""


class SurveyResponse(HRModel):
    score: float = Field(..., ge=0, le=10)
    comment: Optional[str] = None


class User(HRModel):
    id: str
    user_id: str                 # WeCom UserId
    name: Optional[str] = None
    dept: Optional[str] = None


class Session(HRModel):
    sid: str
    user_id: str
    name: Optional[str] = None
    created_at: int              # epoch milliseconds
    expires_at: int              # epoch milliseconds

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


class KPIReport(BaseModel):
    """
    Output of the KPI engine.

    ``None`` means "undefined, insufficient data" and must never be rendered
    as zero.
    """
    model_config = ConfigDict(populate_by_name=True)

    ttp: Optional[float] = None                                     # first interview -> offer, hours
    ttf: Optional[float] = None                                     # approved -> onboarded, hours
    close72_rate: Optional[int] = Field(None, alias="close72Rate")  # % of fairness cases closed in SLA
    pool_multiple: Optional[int] = Field(None, alias="poolMultiple")
    enps: Optional[int] = Field(None, alias="eNPS")

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
