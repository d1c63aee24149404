"""Error taxonomy shared by the content pipeline and the contact backend.

``RetrievalFailed`` and ``NotFound`` are distinct: an empty or
missing result is a normal displayable state, a failed retrieval is a
transient one the caller may retry.
"""

from __future__ import annotations

from dataclasses import dataclass


class SiteError(Exception):
    """Base error for consultsite."""


class RetrievalFailed(SiteError):
    """The document store could not be reached or returned garbage."""


class NotFound(SiteError):
    """No document exists for the requested slug."""

    def __init__(self, variant: str, slug: str) -> None:
        super().__init__(f"No {variant} with slug {slug!r}")
        self.variant = variant
        self.slug = slug


class MalformedDocument(SiteError):
    """A raw document is missing required fields or has unusable values."""

    def __init__(self, reason: str, document_id: str | None = None) -> None:
        where = f" (document {document_id})" if document_id else ""
        super().__init__(f"{reason}{where}")
        self.reason = reason
        self.document_id = document_id


@dataclass(frozen=True)
class FieldError:
    """A single user-correctable problem with one form field."""

    field: str
    message: str


class ValidationFailed(SiteError):
    """A submitted payload failed field validation."""

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = errors


class RelayFailed(SiteError):
    """The external notification endpoint rejected or never received a payload."""
