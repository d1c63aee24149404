"""Content repository — store client + projection behind the fetch controller.

Every accessor returns a :class:`~consultsite.fetch.FetchState` rather than
raising, so pages can render loading, error, empty, and ready states from
one value.  The blocking HTTP client runs in a worker thread.
"""

from __future__ import annotations

import asyncio

from consultsite.content.client import DocumentStoreClient, SortOrder
from consultsite.content.models import DocumentVariant
from consultsite.content.projection import ContentProjector
from consultsite.fetch import FetchController, FetchState, QueryKey


class ContentRepository:
    """Cached, coalesced access to projected articles and portfolio entries."""

    def __init__(
        self,
        client: DocumentStoreClient,
        projector: ContentProjector,
        controller: FetchController | None = None,
    ) -> None:
        self._client = client
        self._projector = projector
        self.controller = controller or FetchController()

    # ── Collections ──────────────────────────────────────────────

    async def collection(
        self,
        variant: DocumentVariant,
        order: SortOrder = SortOrder.NEWEST,
        limit: int | None = None,
    ) -> FetchState:
        key = QueryKey.for_collection(variant, order=str(order), limit=limit)

        async def load() -> list:
            raws = await asyncio.to_thread(self._client.fetch_collection, variant, order, limit)
            return self._projector.project_many(raws)

        return await self.controller.fetch(key, load)

    async def featured(self, variant: DocumentVariant, limit: int | None = None) -> FetchState:
        key = QueryKey.for_collection(variant, featured=True, limit=limit)

        async def load() -> list:
            raws = await asyncio.to_thread(self._client.fetch_featured, variant, limit)
            return self._projector.project_many(raws)

        return await self.controller.fetch(key, load)

    async def articles(self) -> FetchState:
        return await self.collection(DocumentVariant.ARTICLE)

    async def portfolio(self) -> FetchState:
        return await self.collection(DocumentVariant.PORTFOLIO_ENTRY)

    async def featured_articles(self) -> FetchState:
        return await self.featured(DocumentVariant.ARTICLE)

    async def featured_portfolio(self) -> FetchState:
        return await self.featured(DocumentVariant.PORTFOLIO_ENTRY)

    # ── Single documents ─────────────────────────────────────────

    async def document(self, variant: DocumentVariant, slug: str) -> FetchState:
        """Fetch one document; a missing slug settles as ``Failed(NotFound)``."""
        key = QueryKey.for_slug(variant, slug)

        async def load():
            raw = await asyncio.to_thread(self._client.fetch_by_slug, variant, slug)
            return self._projector.project(raw)

        return await self.controller.fetch(key, load)

    async def article(self, slug: str) -> FetchState:
        return await self.document(DocumentVariant.ARTICLE, slug)

    async def portfolio_entry(self, slug: str) -> FetchState:
        return await self.document(DocumentVariant.PORTFOLIO_ENTRY, slug)
