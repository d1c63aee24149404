"""Contact intake models — form payload, stored submission, relay outcome."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

NAME_MIN_LENGTH = 2
MESSAGE_MIN_LENGTH = 10

# User-facing message per field, returned verbatim on validation failure.
FIELD_MESSAGES: dict[str, str] = {
    "name": f"Name must be at least {NAME_MIN_LENGTH} characters.",
    "email": "Please enter a valid email address.",
    "business": "Business name must be text.",
    "message": f"Message must be at least {MESSAGE_MIN_LENGTH} characters.",
}


class ContactForm(BaseModel):
    """A visitor's contact form payload."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(min_length=NAME_MIN_LENGTH)
    email: EmailStr
    business: str | None = None
    message: str = Field(min_length=MESSAGE_MIN_LENGTH)

    @field_validator("business")
    @classmethod
    def _blank_business_is_none(cls, value: str | None) -> str | None:
        return value or None


class NewsletterSignup(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    email: EmailStr


class ContactSubmission(BaseModel):
    """A persisted contact submission; never mutated once created."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    business: str | None = None
    message: str
    submitted_at: datetime


class RelayStatus(StrEnum):
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class RelayOutcome(BaseModel):
    """What happened when the submission was forwarded to the notification relay."""

    status: RelayStatus
    detail: str = ""


class IntakeResult(BaseModel):
    """A stored submission plus the separately-reported relay outcome."""

    submission: ContactSubmission
    relay: RelayOutcome
