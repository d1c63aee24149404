"""Tests for the document store client and its GROQ queries."""

from __future__ import annotations

import urllib.error
from unittest.mock import MagicMock

import pytest

from consultsite.content.client import (
    FEATURED_LIMITS,
    DocumentStoreClient,
    SortOrder,
    build_collection_query,
    build_slug_query,
    stable_order,
)
from consultsite.content.models import DocumentVariant
from consultsite.errors import NotFound, RetrievalFailed


def _make_client(result=None, side_effect=None) -> tuple[DocumentStoreClient, MagicMock]:
    api = MagicMock()
    api.query.return_value = result
    api.query.side_effect = side_effect
    return DocumentStoreClient(api), api


# ── Query text ──────────────────────────────────────────────────────────

class TestBuildCollectionQuery:
    def test_articles_newest_first_with_id_tiebreak(self):
        groq = build_collection_query(DocumentVariant.ARTICLE)
        assert groq.startswith("*[_type == $type] | order(publishedAt desc, _id asc) {")
        assert "categories[]->{title, slug, color}" in groq

    def test_portfolio_oldest_first(self):
        groq = build_collection_query(DocumentVariant.PORTFOLIO_ENTRY, SortOrder.OLDEST)
        assert "order(completedAt asc, _id asc)" in groq
        assert "caseStudy" in groq

    def test_limit_slice(self):
        groq = build_collection_query(DocumentVariant.ARTICLE, limit=3)
        assert "[0...3]" in groq

    def test_featured_filter(self):
        groq = build_collection_query(DocumentVariant.ARTICLE, limit=3, featured_only=True)
        assert groq.startswith("*[_type == $type && featured == true]")

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, limit):
        with pytest.raises(ValueError):
            build_collection_query(DocumentVariant.ARTICLE, limit=limit)


class TestBuildSlugQuery:
    def test_first_match_by_slug(self):
        groq = build_slug_query(DocumentVariant.ARTICLE)
        assert groq.startswith("*[_type == $type && slug.current == $slug][0]")
        assert "content" in groq
        assert "seo" in groq


class TestStableOrder:
    def test_newest_first_ties_by_id(self):
        docs = [
            {"_id": "c", "publishedAt": "2024-01-01"},
            {"_id": "b", "publishedAt": "2024-02-01"},
            {"_id": "a", "publishedAt": "2024-01-01"},
        ]
        ordered = stable_order(docs, DocumentVariant.ARTICLE)
        assert [d["_id"] for d in ordered] == ["b", "a", "c"]

    def test_oldest_first_ties_by_id(self):
        docs = [
            {"_id": "z", "completedAt": "2023-05-01"},
            {"_id": "y", "completedAt": "2023-05-01"},
            {"_id": "x", "completedAt": "2024-01-01"},
        ]
        ordered = stable_order(docs, DocumentVariant.PORTFOLIO_ENTRY, SortOrder.OLDEST)
        assert [d["_id"] for d in ordered] == ["y", "z", "x"]

    def test_compares_instants_not_strings(self):
        docs = [
            {"_id": "utc", "publishedAt": "2024-01-01T09:00:00Z"},
            {"_id": "offset", "publishedAt": "2024-01-01T10:00:00+02:00"},
            {"_id": "bare", "publishedAt": "2024-01-01"},
        ]
        ordered = stable_order(docs, DocumentVariant.ARTICLE)
        assert [d["_id"] for d in ordered] == ["utc", "offset", "bare"]

    def test_unparseable_dates_go_last(self):
        docs = [
            {"_id": "b", "publishedAt": "someday"},
            {"_id": "a"},
            {"_id": "c", "publishedAt": "2024-01-01"},
        ]
        ordered = stable_order(docs, DocumentVariant.ARTICLE, SortOrder.OLDEST)
        assert [d["_id"] for d in ordered] == ["c", "a", "b"]

    def test_does_not_mutate_input(self):
        docs = [{"_id": "b"}, {"_id": "a"}]
        stable_order(docs, DocumentVariant.ARTICLE)
        assert [d["_id"] for d in docs] == ["b", "a"]


# ── DocumentStoreClient ─────────────────────────────────────────────────

class TestFetchCollection:
    def test_passes_type_parameter(self):
        client, api = _make_client(result=[])
        client.fetch_collection(DocumentVariant.PORTFOLIO_ENTRY)
        groq, params = api.query.call_args[0]
        assert "order(completedAt desc" in groq
        assert params == {"type": "portfolioProject"}

    def test_empty_collection_is_not_an_error(self):
        client, _ = _make_client(result=[])
        assert client.fetch_collection(DocumentVariant.ARTICLE) == []

    def test_null_result_is_empty(self):
        client, _ = _make_client(result=None)
        assert client.fetch_collection(DocumentVariant.ARTICLE) == []

    def test_result_is_reordered_deterministically(self):
        client, _ = _make_client(
            result=[
                {"_id": "b", "publishedAt": "2024-01-01"},
                {"_id": "a", "publishedAt": "2024-01-01"},
            ]
        )
        docs = client.fetch_collection(DocumentVariant.ARTICLE)
        assert [d["_id"] for d in docs] == ["a", "b"]

    def test_network_error_is_retrieval_failure(self):
        client, _ = _make_client(side_effect=urllib.error.URLError("connection refused"))
        with pytest.raises(RetrievalFailed, match="unreachable"):
            client.fetch_collection(DocumentVariant.ARTICLE)

    def test_timeout_is_retrieval_failure(self):
        client, _ = _make_client(side_effect=TimeoutError("timed out"))
        with pytest.raises(RetrievalFailed):
            client.fetch_collection(DocumentVariant.ARTICLE)

    def test_bad_json_is_retrieval_failure(self):
        client, _ = _make_client(side_effect=ValueError("Expecting value"))
        with pytest.raises(RetrievalFailed, match="Unreadable"):
            client.fetch_collection(DocumentVariant.ARTICLE)

    def test_missing_result_member_is_retrieval_failure(self):
        client, _ = _make_client(side_effect=KeyError("result"))
        with pytest.raises(RetrievalFailed):
            client.fetch_collection(DocumentVariant.ARTICLE)

    def test_non_list_result_is_retrieval_failure(self):
        client, _ = _make_client(result={"_id": "a"})
        with pytest.raises(RetrievalFailed, match="Expected a list"):
            client.fetch_collection(DocumentVariant.ARTICLE)


class TestFetchFeatured:
    def test_default_showcase_limits(self):
        assert FEATURED_LIMITS[DocumentVariant.ARTICLE] == 3
        assert FEATURED_LIMITS[DocumentVariant.PORTFOLIO_ENTRY] == 6

        client, api = _make_client(result=[])
        client.fetch_featured(DocumentVariant.PORTFOLIO_ENTRY)
        groq = api.query.call_args[0][0]
        assert "featured == true" in groq
        assert "[0...6]" in groq

    def test_explicit_limit(self):
        client, api = _make_client(result=[])
        client.fetch_featured(DocumentVariant.ARTICLE, limit=1)
        assert "[0...1]" in api.query.call_args[0][0]


class TestFetchBySlug:
    def test_returns_document(self):
        client, api = _make_client(result={"_id": "post-1", "_type": "blogPost"})
        doc = client.fetch_by_slug(DocumentVariant.ARTICLE, "ai-tools")
        assert doc["_id"] == "post-1"
        assert api.query.call_args[0][1] == {"type": "blogPost", "slug": "ai-tools"}

    def test_missing_slug_is_not_found(self):
        client, _ = _make_client(result=None)
        with pytest.raises(NotFound) as excinfo:
            client.fetch_by_slug(DocumentVariant.ARTICLE, "nope")
        assert excinfo.value.slug == "nope"
        assert "nope" in str(excinfo.value)

    def test_not_found_is_not_a_retrieval_failure(self):
        client, _ = _make_client(result=None)
        with pytest.raises(NotFound):
            try:
                client.fetch_by_slug(DocumentVariant.ARTICLE, "nope")
            except RetrievalFailed:
                pytest.fail("NotFound must not be reported as RetrievalFailed")

    def test_unreachable_store(self):
        client, _ = _make_client(side_effect=OSError("network down"))
        with pytest.raises(RetrievalFailed):
            client.fetch_by_slug(DocumentVariant.ARTICLE, "ai-tools")
