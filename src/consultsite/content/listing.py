"""Listing and filter engine for blog and portfolio pages.

Pure functions over a caller-supplied snapshot of projected documents:
no I/O, no clock, no mutation, and no re-sorting.  Output order is the
input order.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, TypeVar

from consultsite.content.models import ContentDocument
from pydantic import BaseModel, ConfigDict

ALL_FACET = "All"

D = TypeVar("D", bound=ContentDocument)


class ListingResult(BaseModel, Generic[D]):
    """The visible slice of a listing plus the facets offered for selection.

    ``featured`` and ``regular`` partition ``visible`` only when the "All"
    facet is selected; otherwise ``partitioned`` is false, ``featured`` is
    empty, and ``regular`` equals ``visible``.
    """

    model_config = ConfigDict(frozen=True)

    visible: list[D]
    facets: list[str]
    featured: list[D]
    regular: list[D]
    partitioned: bool


def derive_facets(documents: Sequence[ContentDocument]) -> list[str]:
    """Return "All" followed by each distinct facet in first-seen order."""
    seen: dict[str, None] = {}
    for doc in documents:
        for facet in doc.facets:
            seen.setdefault(facet, None)
    seen.pop(ALL_FACET, None)
    return [ALL_FACET, *seen]


def matches(doc: ContentDocument, selected_facet: str = ALL_FACET, search_term: str = "") -> bool:
    """The visibility predicate for one document.

    Visible iff the facet is "All" or one of the document's facets, and the
    search term is empty or a case-insensitive substring of the title, the
    summary (excerpt or description), or any label (tag or technology).
    """
    if selected_facet != ALL_FACET and selected_facet not in doc.facets:
        return False

    needle = search_term.strip().casefold()
    if not needle:
        return True
    haystacks = [doc.title, doc.summary, *doc.labels]
    return any(needle in text.casefold() for text in haystacks)


def apply(
    documents: Sequence[D],
    selected_facet: str = ALL_FACET,
    search_term: str = "",
) -> ListingResult[D]:
    """Filter a document snapshot by facet and search term.

    Args:
        documents: Projected documents, already in display order.
        selected_facet: A facet value, or "All" to match everything.
        search_term: Free text; blank matches everything.

    Returns:
        A :class:`ListingResult` whose facets always reflect the full,
        unfiltered *documents*.
    """
    visible = [doc for doc in documents if matches(doc, selected_facet, search_term)]
    facets = derive_facets(documents)

    if selected_facet == ALL_FACET:
        return ListingResult(
            visible=visible,
            facets=facets,
            featured=[doc for doc in visible if doc.featured],
            regular=[doc for doc in visible if not doc.featured],
            partitioned=True,
        )
    return ListingResult(
        visible=visible,
        facets=facets,
        featured=[],
        regular=list(visible),
        partitioned=False,
    )
