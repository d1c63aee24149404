"""Projection of raw store documents into typed content records.

This is the validating boundary between the loosely-shaped JSON that
comes back from the document store and the view models the rest of the
site consumes.  Required fields are checked up front so a malformed
document never yields a half-built record; optional nested records
(case study, testimonial, SEO overrides) default to ``None``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Any

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
from consultsite.errors import MalformedDocument
from consultsite.integrations.sanity import SanityImageBuilder
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

_HEADING_STYLES = {"h1": 1, "h2": 2, "h3": 3, "h4": 4}


class ImageSizes(BaseModel):
    """Width/height pairs requested for each image role."""

    card: tuple[int, int] = (600, 400)
    hero: tuple[int, int] = (1200, 800)
    body: tuple[int, int] = (800, 500)
    gallery: tuple[int, int] = (500, 375)
    avatar: tuple[int, int] = (80, 80)


def parse_timestamp(value: Any) -> datetime:
    """Normalize a date-like value to an aware UTC datetime.

    Accepts ISO-8601 datetimes (``Z`` or offset suffix), plain ISO dates,
    and ``date``/``datetime`` objects.  Naive values are taken as UTC.

    Raises:
        ValueError: If the value is missing or unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"Not a date: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _items(value: Any) -> list:
    return value if isinstance(value, list) else []


def _slug(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("current")
    return value.strip() if isinstance(value, str) else ""


def _text(value: Any) -> str:
    """Flatten a string or a list of portable-text blocks to plain text."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "\n\n".join(_block_text(b) for b in value if isinstance(b, dict)).strip()
    return ""


def _block_text(block: dict) -> str:
    children = _items(block.get("children"))
    return "".join(
        c["text"] for c in children if isinstance(c, dict) and isinstance(c.get("text"), str)
    )


def _strings(value: Any) -> list[str]:
    """Keep the string items of a list, dropping blanks and duplicates in order."""
    if not isinstance(value, list):
        return []
    seen: dict[str, None] = {}
    for item in value:
        if isinstance(item, str) and item.strip():
            seen.setdefault(item.strip(), None)
    return list(seen)


class ContentProjector:
    """Turns raw documents into :class:`Article` or :class:`PortfolioEntry` records."""

    def __init__(self, images: SanityImageBuilder, sizes: ImageSizes | None = None) -> None:
        self._images = images
        self._sizes = sizes or ImageSizes()

    # ── Public API ───────────────────────────────────────────────

    def project(self, raw: Any) -> ContentDocument:
        """Project one raw document.

        Raises:
            MalformedDocument: If the document is not a mapping, has an unknown
                ``_type``, lacks its id, slug, title, or date, or carries a
                field of the wrong type.
        """
        if not isinstance(raw, dict):
            raise MalformedDocument(f"Expected a document object, got {type(raw).__name__}")

        doc_id = raw.get("_id")
        if not isinstance(doc_id, str) or not doc_id.strip():
            raise MalformedDocument("Missing document identifier")

        try:
            variant = DocumentVariant.from_sanity_type(raw.get("_type", ""))
        except ValueError as exc:
            raise MalformedDocument(str(exc), doc_id) from exc

        try:
            if variant == DocumentVariant.ARTICLE:
                return self._article(raw, doc_id)
            return self._portfolio_entry(raw, doc_id)
        except ValidationError as exc:
            fields = ", ".join(".".join(map(str, err["loc"])) for err in exc.errors())
            raise MalformedDocument(f"Invalid field(s): {fields}", doc_id) from exc

    def project_many(self, raws: Iterable[Any], *, skip_malformed: bool = True) -> list:
        """Project a batch, preserving input order.

        Malformed documents are logged and dropped when *skip_malformed*
        is true; otherwise the first one aborts the batch.
        """
        projected: list[ContentDocument] = []
        for raw in raws:
            try:
                projected.append(self.project(raw))
            except MalformedDocument as exc:
                if not skip_malformed:
                    raise
                logger.warning("Skipping malformed document: %s", exc)
        return projected

    def image(
        self, source: Any, size: tuple[int, int], doc_id: str | None = None
    ) -> ImageRef | None:
        """Resolve an image field to an :class:`ImageRef`, or None when absent."""
        if not source:
            return None
        width, height = size
        try:
            ref = self._images.asset_ref(source)
            url = self._images.url(ref, width, height)
        except ValueError as exc:
            raise MalformedDocument(str(exc), doc_id) from exc
        alt = source.get("alt", "") if isinstance(source, dict) else ""
        return ImageRef(ref=ref, url=url, alt=alt or "")

    # ── Shared fields ────────────────────────────────────────────

    def _common(self, raw: dict, doc_id: str, variant: DocumentVariant) -> dict[str, Any]:
        slug = _slug(raw.get("slug"))
        if not slug:
            raise MalformedDocument("Missing slug", doc_id)

        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            raise MalformedDocument("Missing title", doc_id)

        try:
            published_at = parse_timestamp(raw.get(variant.date_field))
        except ValueError as exc:
            raise MalformedDocument(f"Bad {variant.date_field}: {exc}", doc_id) from exc

        return {
            "id": doc_id,
            "slug": slug,
            "title": title.strip(),
            "published_at": published_at,
            "featured": raw.get("featured") is True,
        }

    # ── Articles ─────────────────────────────────────────────────

    def _article(self, raw: dict, doc_id: str) -> Article:
        common = self._common(raw, doc_id, DocumentVariant.ARTICLE)
        return Article(
            **common,
            excerpt=_text(raw.get("excerpt")),
            body=self._body(raw.get("content"), doc_id),
            author=self._author(raw.get("author"), doc_id),
            categories=self._categories(raw.get("categories")),
            tags=_strings(raw.get("tags")),
            seo=self._seo(raw.get("seo")),
            featured_image=self.image(raw.get("featuredImage"), self._sizes.hero, doc_id),
        )

    def _author(self, raw: Any, doc_id: str) -> Author | None:
        if not isinstance(raw, dict) or not raw.get("name"):
            return None
        return Author(
            name=raw["name"],
            image=self.image(raw.get("image"), self._sizes.avatar, doc_id),
            bio=_text(raw.get("bio")),
            position=raw.get("position") or "",
        )

    @staticmethod
    def _categories(raw: Any) -> list[Category]:
        categories: list[Category] = []
        for item in _items(raw):
            # Dangling references come back as null.
            if not isinstance(item, dict) or not item.get("title"):
                continue
            color = item.get("color")
            if isinstance(color, dict):
                color = color.get("hex")
            categories.append(
                Category(title=item["title"], slug=_slug(item.get("slug")), color=color or None)
            )
        return categories

    @staticmethod
    def _seo(raw: Any) -> SeoOverrides | None:
        if not isinstance(raw, dict):
            return None
        seo = SeoOverrides(
            title=raw.get("metaTitle") or None,
            description=raw.get("metaDescription") or None,
            keywords=_strings(raw.get("keywords")),
        )
        if seo.title is None and seo.description is None and not seo.keywords:
            return None
        return seo

    def _body(self, raw: Any, doc_id: str) -> list[ContentBlock]:
        blocks: list[ContentBlock] = []
        for item in _items(raw):
            if not isinstance(item, dict):
                continue
            block = self._block(item, doc_id)
            if block is None:
                logger.debug("Skipping unsupported block type %r in %s", item.get("_type"), doc_id)
                continue
            blocks.append(block)
        return blocks

    def _block(self, item: dict, doc_id: str) -> ContentBlock | None:
        kind = item.get("_type")
        if kind == "block":
            style = item.get("style")
            if not isinstance(style, str):
                style = "normal"
            text = _block_text(item)
            if style in _HEADING_STYLES:
                return ContentBlock(kind=BlockKind.HEADING, text=text, level=_HEADING_STYLES[style])
            if style == "blockquote":
                return ContentBlock(kind=BlockKind.QUOTE, text=text)
            return ContentBlock(kind=BlockKind.PARAGRAPH, text=text)
        if kind == "image":
            image = self.image(item, self._sizes.body, doc_id)
            if image is None:
                return None
            return ContentBlock(kind=BlockKind.IMAGE, text=image.alt, image=image)
        if kind == "code":
            return ContentBlock(
                kind=BlockKind.CODE,
                text=item.get("code") or "",
                language=item.get("language") or None,
                filename=item.get("filename") or None,
            )
        return None

    # ── Portfolio entries ────────────────────────────────────────

    def _portfolio_entry(self, raw: dict, doc_id: str) -> PortfolioEntry:
        common = self._common(raw, doc_id, DocumentVariant.PORTFOLIO_ENTRY)
        project_type = raw.get("projectType") or ""
        if not isinstance(project_type, str):
            raise MalformedDocument("projectType must be a string", doc_id)
        return PortfolioEntry(
            **common,
            client=raw.get("client") or "",
            website_url=raw.get("websiteUrl") or "",
            description=_text(raw.get("description")),
            technologies=_strings(raw.get("technologies")),
            project_type=project_type.strip(),
            case_study=self._case_study(raw.get("caseStudy"), doc_id),
            testimonial=self._testimonial(raw.get("testimonial")),
            preview_image=self.image(raw.get("previewImage"), self._sizes.card, doc_id),
        )

    def _case_study(self, raw: Any, doc_id: str) -> CaseStudy | None:
        if not isinstance(raw, dict):
            return None
        gallery = [
            image
            for image in (
                self.image(item, self._sizes.gallery, doc_id)
                for item in _items(raw.get("additionalImages"))
            )
            if image is not None
        ]
        study = CaseStudy(
            challenge=_text(raw.get("challenge")),
            solution=_text(raw.get("solution")),
            results=_text(raw.get("results")),
            gallery=gallery,
        )
        if not (study.challenge or study.solution or study.results or study.gallery):
            return None
        return study

    @staticmethod
    def _testimonial(raw: Any) -> Testimonial | None:
        if not isinstance(raw, dict) or not raw.get("quote"):
            return None
        return Testimonial(
            quote=_text(raw["quote"]),
            client_name=raw.get("clientName") or "",
            client_position=raw.get("clientPosition") or "",
        )
