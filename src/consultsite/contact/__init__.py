"""Contact domain — form validation, submission stores, and the intake service."""

from consultsite.contact.models import (
    ContactForm,
    ContactSubmission,
    IntakeResult,
    NewsletterSignup,
    RelayOutcome,
    RelayStatus,
)
from consultsite.contact.services import SubmissionIntakeService, validate
from consultsite.contact.store import (
    JsonSubmissionStore,
    MemorySubmissionStore,
    SubmissionStore,
)

__all__ = [
    "ContactForm",
    "ContactSubmission",
    "IntakeResult",
    "JsonSubmissionStore",
    "MemorySubmissionStore",
    "NewsletterSignup",
    "RelayOutcome",
    "RelayStatus",
    "SubmissionIntakeService",
    "SubmissionStore",
    "validate",
]
