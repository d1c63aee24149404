"""Document store client — shaped GROQ queries returning raw documents.

Translates (variant, order, limit) and (variant, slug) requests into
GROQ, runs them through :class:`SanityAPIClient`, and maps transport
problems onto the retrieval error taxonomy.  Holds no documents between
calls.
"""

from __future__ import annotations

import logging
import urllib.error
from datetime import datetime
from enum import StrEnum
from typing import Any

from consultsite.content.models import DocumentVariant
from consultsite.content.projection import parse_timestamp
from consultsite.errors import NotFound, RetrievalFailed
from consultsite.integrations.sanity import SanityAPIClient

logger = logging.getLogger(__name__)


class SortOrder(StrEnum):
    """Date ordering for collection queries; ties always break on ``_id`` ascending."""

    NEWEST = "newest"
    OLDEST = "oldest"


# Homepage showcase sizes.
FEATURED_LIMITS: dict[DocumentVariant, int] = {
    DocumentVariant.ARTICLE: 3,
    DocumentVariant.PORTFOLIO_ENTRY: 6,
}

_ARTICLE_LIST_FIELDS = """
  _id, _type, title, slug, excerpt, featuredImage, publishedAt,
  author->{name, image},
  categories[]->{title, slug, color},
  tags, featured
"""

_ARTICLE_DETAIL_FIELDS = """
  _id, _type, title, slug, excerpt, featuredImage, content, publishedAt,
  author->{name, image, bio, position},
  categories[]->{title, slug, color},
  tags, featured, seo
"""

_PORTFOLIO_FIELDS = """
  _id, _type, title, slug, client, websiteUrl, previewImage, description,
  technologies, projectType, completedAt, featured, caseStudy, testimonial
"""

_LIST_FIELDS: dict[DocumentVariant, str] = {
    DocumentVariant.ARTICLE: _ARTICLE_LIST_FIELDS,
    DocumentVariant.PORTFOLIO_ENTRY: _PORTFOLIO_FIELDS,
}

_DETAIL_FIELDS: dict[DocumentVariant, str] = {
    DocumentVariant.ARTICLE: _ARTICLE_DETAIL_FIELDS,
    DocumentVariant.PORTFOLIO_ENTRY: _PORTFOLIO_FIELDS,
}


def build_collection_query(
    variant: DocumentVariant,
    order: SortOrder = SortOrder.NEWEST,
    limit: int | None = None,
    *,
    featured_only: bool = False,
) -> str:
    """Render the GROQ text for a collection query."""
    if limit is not None and limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")

    direction = "desc" if order == SortOrder.NEWEST else "asc"
    filters = "_type == $type"
    if featured_only:
        filters += " && featured == true"
    groq = f"*[{filters}] | order({variant.date_field} {direction}, _id asc)"
    if limit is not None:
        groq += f" [0...{limit}]"
    return f"{groq} {{{_LIST_FIELDS[variant]}}}"


def build_slug_query(variant: DocumentVariant) -> str:
    """Render the GROQ text for a single-document lookup by slug."""
    return f"*[_type == $type && slug.current == $slug][0] {{{_DETAIL_FIELDS[variant]}}}"


def stable_order(
    documents: list[dict[str, Any]],
    variant: DocumentVariant,
    order: SortOrder = SortOrder.NEWEST,
) -> list[dict[str, Any]]:
    """Sort raw documents by date, breaking ties by ``_id`` ascending.

    Dates are compared as UTC instants, so offsets and bare dates order
    correctly.  Two stable passes: id ascending first, then date in the
    requested direction, so equal dates keep their id order.  Documents
    whose date cannot be parsed go last, in id order.
    """
    by_id = sorted(documents, key=lambda d: str(d.get("_id", "")))
    dated: list[tuple[datetime, dict[str, Any]]] = []
    undated: list[dict[str, Any]] = []
    for doc in by_id:
        try:
            dated.append((parse_timestamp(doc.get(variant.date_field)), doc))
        except ValueError:
            undated.append(doc)
    dated.sort(key=lambda pair: pair[0], reverse=order == SortOrder.NEWEST)
    return [doc for _, doc in dated] + undated


class DocumentStoreClient:
    """Read-only access to articles and portfolio entries in the store."""

    def __init__(self, api: SanityAPIClient) -> None:
        self._api = api

    def _query(self, groq: str, params: dict[str, Any]) -> Any:
        try:
            return self._api.query(groq, params)
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise RetrievalFailed(f"Document store unreachable: {exc}") from exc
        except (ValueError, KeyError) as exc:
            raise RetrievalFailed(f"Unreadable document store response: {exc}") from exc

    def _collection(self, groq: str, variant: DocumentVariant, order: SortOrder) -> list[dict]:
        result = self._query(groq, {"type": variant.sanity_type})
        if result is None:
            return []
        if not isinstance(result, list):
            kind = type(result).__name__
            raise RetrievalFailed(f"Expected a list of {variant} documents, got {kind}")
        return stable_order(result, variant, order)

    def fetch_collection(
        self,
        variant: DocumentVariant,
        order: SortOrder = SortOrder.NEWEST,
        limit: int | None = None,
    ) -> list[dict]:
        """Fetch every document of a variant, newest first by default.

        Raises:
            RetrievalFailed: On network, timeout, or response-shape failures.
        """
        groq = build_collection_query(variant, order, limit)
        documents = self._collection(groq, variant, order)
        logger.debug("Fetched %d %s documents", len(documents), variant)
        return documents

    def fetch_featured(self, variant: DocumentVariant, limit: int | None = None) -> list[dict]:
        """Fetch featured documents of a variant, capped at the showcase size."""
        limit = limit if limit is not None else FEATURED_LIMITS[variant]
        groq = build_collection_query(variant, SortOrder.NEWEST, limit, featured_only=True)
        return self._collection(groq, variant, SortOrder.NEWEST)

    def fetch_by_slug(self, variant: DocumentVariant, slug: str) -> dict:
        """Fetch one document by slug.

        Raises:
            NotFound: If no document of this variant has the slug.
            RetrievalFailed: On network, timeout, or response-shape failures.
        """
        result = self._query(build_slug_query(variant), {"type": variant.sanity_type, "slug": slug})
        if result is None:
            raise NotFound(str(variant), slug)
        if not isinstance(result, dict):
            raise RetrievalFailed(f"Expected a {variant} document, got {type(result).__name__}")
        return result
