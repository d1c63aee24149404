"""Builds the runtime collaborators from a :class:`SiteConfig`."""

from __future__ import annotations

import logging
from pathlib import Path

from consultsite.config import SiteConfig
from consultsite.contact.services import SubmissionIntakeService
from consultsite.contact.store import JsonSubmissionStore, MemorySubmissionStore, SubmissionStore
from consultsite.content.client import DocumentStoreClient
from consultsite.content.projection import ContentProjector
from consultsite.content.repository import ContentRepository
from consultsite.fetch import FetchController
from consultsite.integrations.sanity import SanityAPIClient
from consultsite.integrations.web3forms import Web3FormsClient

logger = logging.getLogger(__name__)


def build_repository(config: SiteConfig) -> ContentRepository:
    """Wire the Sanity client, projector, and fetch controller together."""
    sanity = config.to_sanity_config()
    if not sanity.is_configured:
        logger.warning("Sanity project is not configured; content requests will fail")
    api = SanityAPIClient(sanity)
    return ContentRepository(
        DocumentStoreClient(api),
        ContentProjector(api.images, config.images),
        FetchController(config.cache.freshness),
    )


def build_store(config: SiteConfig) -> SubmissionStore:
    """Return the configured submission store.

    Raises:
        ValueError: If ``contact.store`` names an unknown store.
    """
    kind = config.contact.store
    if kind == "memory":
        return MemorySubmissionStore()
    if kind == "json":
        return JsonSubmissionStore(Path(config.contact.directory))
    raise ValueError(f"Unknown submission store: {kind!r}")


def build_intake_service(
    config: SiteConfig, store: SubmissionStore | None = None
) -> SubmissionIntakeService:
    relay_config = config.to_relay_config()
    relay = Web3FormsClient(relay_config) if relay_config.is_configured else None
    return SubmissionIntakeService(store or build_store(config), relay)
