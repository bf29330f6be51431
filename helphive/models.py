"""
Domain models for help requests and the accounts that create or answer them.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class HelpCategory(StrEnum):
    MEDICAL = "medical"
    TRANSPORT = "transport"
    SHELTER = "shelter"
    SUPPLIES = "supplies"
    OTHER = "other"


class Urgency(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RequestStatus(StrEnum):
    OPEN = "open"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    EXPIRED = "expired"


class Role(StrEnum):
    USER = "user"
    VOLUNTEER = "volunteer"


class Account(BaseModel):
    id: str
    name: str
    role: Role
    latitude: float | None = None
    longitude: float | None = None


class Caller(BaseModel):
    """Identity and role of whoever invokes a core operation."""

    id: str
    role: Role
    latitude: float | None = None
    longitude: float | None = None

    @classmethod
    def from_account(cls, account: Account) -> "Caller":
        return cls(
            id=account.id,
            role=account.role,
            latitude=account.latitude,
            longitude=account.longitude,
        )

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return self.latitude, self.longitude


class HelpRequest(BaseModel):
    id: str
    requester_id: str
    title: str
    description: str
    category: HelpCategory
    urgency: Urgency
    location_name: str
    latitude: float
    longitude: float
    status: RequestStatus = RequestStatus.OPEN
    volunteer_id: str | None = None  # set only once a volunteer accepts
    created_at: datetime
    expires_at: datetime
    completed_at: datetime | None = None

    def is_overdue(self, now: datetime) -> bool:
        return self.status == RequestStatus.OPEN and self.expires_at < now


class EnrichedHelpRequest(HelpRequest):
    requester_name: str
    distance_km: float | None = Field(default=None)
