"""
consultsite HTTP API
====================

Contact intake plus read-only content listings for the site frontend.

Endpoints:
- POST /api/contact              -> store a contact submission (+ relay)
- GET  /api/contact              -> all stored submissions (admin)
- POST /api/newsletter           -> relay a newsletter signup
- GET  /api/articles             -> filtered article listing + facets
- GET  /api/articles/featured    -> homepage featured articles
- GET  /api/articles/{slug}      -> one article
- GET  /api/portfolio            -> filtered portfolio listing + facets
- GET  /api/portfolio/featured   -> homepage featured projects
- GET  /api/portfolio/{slug}     -> one portfolio entry
- GET/POST /api/assistant        -> chat widget greeting / reply

Usage:
    uvicorn consultsite.api.server:create_app --factory --reload
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from consultsite import __version__, assistant
from consultsite.config import SiteConfig, load_config
from consultsite.contact.services import SubmissionIntakeService
from consultsite.content.listing import ALL_FACET, apply
from consultsite.content.models import ContentDocument
from consultsite.content.repository import ContentRepository
from consultsite.errors import (
    MalformedDocument,
    NotFound,
    RelayFailed,
    RetrievalFailed,
    ValidationFailed,
)
from consultsite.factory import build_intake_service, build_repository
from consultsite.fetch import Failed, FetchState, Ready
from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# RESPONSE HELPERS
# =============================================================================


def _message(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


def _validation_error(exc: ValidationFailed) -> JSONResponse:
    return _message(400, "Validation error", errors=[asdict(e) for e in exc.errors])


def _dump(doc: ContentDocument) -> dict:
    return doc.model_dump(mode="json")


def _failure(state: Failed) -> JSONResponse:
    """Map a failed fetch onto a status code; unknown causes are 500s."""
    cause = state.cause
    if isinstance(cause, NotFound):
        return _message(404, str(cause))
    if isinstance(cause, RetrievalFailed):
        return _message(503, "Content is temporarily unavailable, please try again")
    if isinstance(cause, MalformedDocument):
        logger.warning("Malformed document served as 502: %s", cause)
        return _message(502, "Content is temporarily unavailable")
    logger.error("Unexpected content failure: %r", cause)
    return _message(500, "An error occurred while loading content")


def _listing(state: FetchState, facet: str, search: str) -> JSONResponse | dict:
    if isinstance(state, Failed):
        return _failure(state)
    if not isinstance(state, Ready):
        return _message(503, "Content is still loading")
    result = apply(state.payload, facet, search)
    return {
        "facets": result.facets,
        "selected": facet,
        "search": search,
        "partitioned": result.partitioned,
        "visible": [_dump(d) for d in result.visible],
        "featured": [_dump(d) for d in result.featured],
        "regular": [_dump(d) for d in result.regular],
        "stale": state.revalidating,
    }


def _documents(state: FetchState) -> JSONResponse | dict:
    if isinstance(state, Failed):
        return _failure(state)
    if not isinstance(state, Ready):
        return _message(503, "Content is still loading")
    return {"documents": [_dump(d) for d in state.payload], "stale": state.revalidating}


def _document(state: FetchState) -> JSONResponse | dict:
    if isinstance(state, Failed):
        return _failure(state)
    if not isinstance(state, Ready):
        return _message(503, "Content is still loading")
    return {"document": _dump(state.payload), "stale": state.revalidating}


# =============================================================================
# APP FACTORY
# =============================================================================


def create_app(
    config: SiteConfig | None = None,
    *,
    repository: ContentRepository | None = None,
    intake: SubmissionIntakeService | None = None,
) -> FastAPI:
    """Build the API application.

    Collaborators default to those described by *config* (itself loaded
    from the usual config sources when omitted).
    """
    config = config or load_config()
    repository = repository or build_repository(config)
    intake = intake or build_intake_service(config)

    app = FastAPI(
        title="consultsite API",
        version=__version__,
        description="Content listings and contact intake for the consultancy website",
    )
    app.state.config = config
    app.state.repository = repository
    app.state.intake = intake

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def _admin_denied(request: Request) -> JSONResponse | None:
        token = config.api.admin_token
        if not token:
            return None
        if request.headers.get("authorization", "") != f"Bearer {token}":
            return _message(401, "Authentication required")
        return None

    # ── Health ───────────────────────────────────────────────────

    @app.get("/health")
    async def health_check():
        """System status."""
        return {"status": "online", "version": __version__}

    # ── Contact intake ───────────────────────────────────────────

    @app.post("/api/contact")
    async def create_contact(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        try:
            result = await run_in_threadpool(intake.submit, payload)
        except ValidationFailed as exc:
            return _validation_error(exc)
        except Exception:
            logger.exception("Error processing contact form")
            return _message(500, "An error occurred while processing your request")

        return JSONResponse(
            status_code=201,
            content={
                "message": "Contact form submitted successfully",
                "submission": result.submission.model_dump(mode="json"),
                "relay": result.relay.model_dump(mode="json"),
            },
        )

    @app.get("/api/contact")
    async def list_contacts(request: Request):
        denied = _admin_denied(request)
        if denied is not None:
            return denied
        try:
            submissions = await run_in_threadpool(intake.submissions)
        except Exception:
            logger.exception("Error fetching contact submissions")
            return _message(500, "An error occurred while fetching contact submissions")
        return {"submissions": [s.model_dump(mode="json") for s in submissions]}

    @app.post("/api/newsletter")
    async def subscribe_newsletter(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        try:
            await run_in_threadpool(intake.subscribe_newsletter, payload)
        except ValidationFailed as exc:
            return _validation_error(exc)
        except RelayFailed as exc:
            logger.warning("Newsletter relay failed: %s", exc)
            return _message(502, "Failed to subscribe, please try again later")
        return _message(201, "You've been subscribed to our newsletter")

    # ── Articles ─────────────────────────────────────────────────

    @app.get("/api/articles")
    async def list_articles(
        category: str = Query(ALL_FACET),
        search: str = Query(""),
    ):
        return _listing(await repository.articles(), category, search)

    @app.get("/api/articles/featured")
    async def featured_articles():
        return _documents(await repository.featured_articles())

    @app.get("/api/articles/{slug}")
    async def get_article(slug: str):
        return _document(await repository.article(slug))

    # ── Portfolio ────────────────────────────────────────────────

    @app.get("/api/portfolio")
    async def list_portfolio(
        project_type: str = Query(ALL_FACET, alias="type"),
        search: str = Query(""),
    ):
        return _listing(await repository.portfolio(), project_type, search)

    @app.get("/api/portfolio/featured")
    async def featured_portfolio():
        return _documents(await repository.featured_portfolio())

    @app.get("/api/portfolio/{slug}")
    async def get_portfolio_entry(slug: str):
        return _document(await repository.portfolio_entry(slug))

    # ── Chat widget ──────────────────────────────────────────────

    @app.get("/api/assistant")
    async def assistant_greeting():
        return {"reply": assistant.GREETING}

    @app.post("/api/assistant")
    async def assistant_reply(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        message = payload.get("message") if isinstance(payload, dict) else None
        if not isinstance(message, str) or not message.strip():
            return _message(400, "Validation error", errors=[
                {"field": "message", "message": "Message must not be empty."}
            ])
        return {"reply": assistant.reply(message)}

    return app
