"""Content domain — typed documents, store client, projection, and listings.

Raw documents flow store client → projection → listing engine; the
repository puts the fetch controller in front of the first two.
"""

from consultsite.content.client import DocumentStoreClient, SortOrder
from consultsite.content.listing import ALL_FACET, ListingResult, apply, derive_facets, matches
from consultsite.content.models import (
    Article,
    Author,
    BlockKind,
    CaseStudy,
    Category,
    ContentBlock,
    ContentDocument,
    DocumentVariant,
    ImageRef,
    PortfolioEntry,
    SeoOverrides,
    Testimonial,
)
from consultsite.content.projection import ContentProjector, ImageSizes, parse_timestamp
from consultsite.content.repository import ContentRepository

__all__ = [
    "ALL_FACET",
    "Article",
    "Author",
    "BlockKind",
    "CaseStudy",
    "Category",
    "ContentBlock",
    "ContentDocument",
    "ContentProjector",
    "ContentRepository",
    "DocumentStoreClient",
    "DocumentVariant",
    "ImageRef",
    "ImageSizes",
    "ListingResult",
    "PortfolioEntry",
    "SeoOverrides",
    "SortOrder",
    "Testimonial",
    "apply",
    "derive_facets",
    "matches",
    "parse_timestamp",
]
