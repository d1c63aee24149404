"""Submission intake service — validate, persist, then relay.

Local persistence and the external relay are not transactional with each
other: once a submission is stored it stays stored, and a relay failure
is reported next to the stored record rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from consultsite.contact.models import (
    FIELD_MESSAGES,
    ContactForm,
    ContactSubmission,
    IntakeResult,
    NewsletterSignup,
    RelayOutcome,
    RelayStatus,
)
from consultsite.contact.store import MemorySubmissionStore, SubmissionStore
from consultsite.errors import FieldError, RelayFailed, ValidationFailed
from consultsite.integrations.web3forms import Web3FormsClient
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _field_errors(exc: ValidationError, model: type[BaseModel]) -> list[FieldError]:
    """Collapse pydantic errors to one user-facing message per field, in field order."""
    failed: dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("body",)
        field = str(loc[0])
        if field in failed:
            continue
        if error.get("type") == "missing":
            failed[field] = f"{field.capitalize()} is required."
        else:
            failed[field] = FIELD_MESSAGES.get(field, error.get("msg", "Invalid value."))

    order = list(model.model_fields)
    ranked = sorted(failed, key=lambda f: order.index(f) if f in order else len(order))
    return [FieldError(field=f, message=failed[f]) for f in ranked]


def validate(model: type[M], payload: Any) -> M:
    """Validate a raw payload against a form model.

    Raises:
        ValidationFailed: With one :class:`FieldError` per bad field.
    """
    if not isinstance(payload, Mapping):
        raise ValidationFailed([FieldError("body", "Request body must be a JSON object.")])
    try:
        return model.model_validate(dict(payload))
    except ValidationError as exc:
        raise ValidationFailed(_field_errors(exc, model)) from exc


class SubmissionIntakeService:
    """Accepts contact and newsletter forms from the site.

    Args:
        store: Where submissions are persisted; volatile by default.
        relay: Optional notification relay.  When absent or unconfigured,
            relaying is skipped.
    """

    def __init__(
        self,
        store: SubmissionStore | None = None,
        relay: Web3FormsClient | None = None,
    ) -> None:
        self.store = store or MemorySubmissionStore()
        self._relay = relay

    @property
    def relay_enabled(self) -> bool:
        return self._relay is not None and self._relay.config.is_configured

    def submit(self, payload: Any) -> IntakeResult:
        """Validate, store, and relay a contact form payload.

        Returns:
            The stored submission and the relay outcome.

        Raises:
            ValidationFailed: If any field is invalid; nothing is stored.
        """
        form = validate(ContactForm, payload)
        submission = self.store.create(form)
        return IntakeResult(submission=submission, relay=self._relay_submission(submission))

    def submissions(self) -> list[ContactSubmission]:
        """Every stored submission in id order."""
        return self.store.list()

    def subscribe_newsletter(self, payload: Any) -> dict:
        """Relay a newsletter signup; nothing is stored locally.

        Raises:
            ValidationFailed: If the email is invalid.
            RelayFailed: If the relay is unconfigured or rejects the signup.
        """
        signup = validate(NewsletterSignup, payload)
        if not self.relay_enabled:
            raise RelayFailed("Newsletter relay is not configured")
        email = str(signup.email)
        return self._relay.submit(  # type: ignore[union-attr]
            {"email": email, "message": f"New newsletter subscription from: {email}"},
            subject="New Newsletter Subscription",
        )

    def _relay_submission(self, submission: ContactSubmission) -> RelayOutcome:
        if not self.relay_enabled:
            return RelayOutcome(status=RelayStatus.SKIPPED, detail="Relay not configured")

        fields = {
            "name": submission.name,
            "email": submission.email,
            "business": submission.business,
            "message": submission.message,
        }
        try:
            self._relay.submit(  # type: ignore[union-attr]
                fields, subject=f"New contact form submission from {submission.name}"
            )
        except RelayFailed as exc:
            logger.warning("Relay failed for submission %d: %s", submission.id, exc)
            return RelayOutcome(status=RelayStatus.FAILED, detail=str(exc))
        return RelayOutcome(status=RelayStatus.DELIVERED)
