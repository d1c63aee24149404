"""Content domain models — pure Pydantic v2 data types.

These are the view-ready records produced by the projection layer from
raw store documents. Two concrete document variants exist: articles
(blog posts) and portfolio entries (client projects).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class DocumentVariant(StrEnum):
    """Kind of content document held in the store."""

    ARTICLE = "article"
    PORTFOLIO_ENTRY = "portfolio_entry"

    @property
    def sanity_type(self) -> str:
        """The ``_type`` value used for this variant in the store."""
        return _SANITY_TYPES[self]

    @property
    def date_field(self) -> str:
        """Raw field holding the publish or completion date."""
        return _DATE_FIELDS[self]

    @classmethod
    def from_sanity_type(cls, sanity_type: str) -> DocumentVariant:
        for variant, name in _SANITY_TYPES.items():
            if name == sanity_type:
                return variant
        raise ValueError(f"Unknown document type: {sanity_type!r}")


_SANITY_TYPES: dict[DocumentVariant, str] = {
    DocumentVariant.ARTICLE: "blogPost",
    DocumentVariant.PORTFOLIO_ENTRY: "portfolioProject",
}

_DATE_FIELDS: dict[DocumentVariant, str] = {
    DocumentVariant.ARTICLE: "publishedAt",
    DocumentVariant.PORTFOLIO_ENTRY: "completedAt",
}


class BlockKind(StrEnum):
    """Kind of structured body block."""

    PARAGRAPH = "paragraph"
    HEADING = "heading"
    IMAGE = "image"
    CODE = "code"
    QUOTE = "quote"


class ImageRef(BaseModel):
    """An image asset reference with its resolved URL."""

    model_config = ConfigDict(frozen=True)

    ref: str
    url: str
    alt: str = ""


class Author(BaseModel):
    name: str
    image: ImageRef | None = None
    bio: str = ""
    position: str = ""


class Category(BaseModel):
    """A blog category; its title doubles as a listing facet."""

    title: str
    slug: str = ""
    color: str | None = None


class ContentBlock(BaseModel):
    """One block of an article body."""

    kind: BlockKind
    text: str = ""
    level: int | None = None  # headings only
    language: str | None = None  # code only
    filename: str | None = None  # code only
    image: ImageRef | None = None


class SeoOverrides(BaseModel):
    """Per-document overrides for page title, description and keywords."""

    title: str | None = None
    description: str | None = None
    keywords: list[str] = Field(default_factory=list)


class CaseStudy(BaseModel):
    challenge: str = ""
    solution: str = ""
    results: str = ""
    gallery: list[ImageRef] = Field(default_factory=list)


class Testimonial(BaseModel):
    quote: str
    client_name: str = ""
    client_position: str = ""


class ContentDocument(BaseModel, ABC):
    """Fields shared by every document variant; only the subclasses are built."""

    id: str
    slug: str
    title: str
    published_at: datetime
    featured: bool = False

    @property
    @abstractmethod
    def variant(self) -> DocumentVariant:
        """Which kind of document this is."""

    @property
    @abstractmethod
    def facets(self) -> list[str]:
        """Facet values this document belongs to."""

    @property
    @abstractmethod
    def summary(self) -> str:
        """Short descriptive text searched alongside the title."""

    @property
    @abstractmethod
    def labels(self) -> list[str]:
        """Free-text labels searched alongside the title."""


class Article(ContentDocument):
    """A blog post."""

    excerpt: str = ""
    body: list[ContentBlock] = Field(default_factory=list)
    author: Author | None = None
    categories: list[Category] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    seo: SeoOverrides | None = None
    featured_image: ImageRef | None = None

    @property
    def variant(self) -> DocumentVariant:
        return DocumentVariant.ARTICLE

    @property
    def facets(self) -> list[str]:
        return [c.title for c in self.categories]

    @property
    def summary(self) -> str:
        return self.excerpt

    @property
    def labels(self) -> list[str]:
        return self.tags


class PortfolioEntry(ContentDocument):
    """A completed client project."""

    client: str = ""
    website_url: str = ""
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    project_type: str = ""
    case_study: CaseStudy | None = None
    testimonial: Testimonial | None = None
    preview_image: ImageRef | None = None

    @property
    def variant(self) -> DocumentVariant:
        return DocumentVariant.PORTFOLIO_ENTRY

    @property
    def facets(self) -> list[str]:
        return [self.project_type] if self.project_type else []

    @property
    def summary(self) -> str:
        return self.description

    @property
    def labels(self) -> list[str]:
        return self.technologies
