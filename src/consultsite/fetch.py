"""Fetch lifecycle controller — keyed cache, request coalescing, fetch states.

Each query is identified by a :class:`QueryKey`.  For a given key the
controller guarantees at most one in-flight retrieval, serves cached
results inside a freshness window, and after the window keeps showing
the last good payload while a single background refresh runs
(stale-while-revalidate).  Failures are stored as-is in a ``Failed``
state and are never retried automatically.

Runs on a single asyncio event loop; there is no thread safety.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FRESHNESS = timedelta(minutes=5)

Loader = Callable[[], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Query keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryKey:
    """Value-equal, hashable identity of a query.

    Parameters are stored sorted by name, so two keys built from the same
    parameters in a different order are equal.
    """

    variant: str
    slug: str | None = None
    params: tuple[tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(sorted(self.params)))

    @classmethod
    def for_collection(cls, variant: str, **params: Any) -> QueryKey:
        return cls(str(variant), None, tuple((k, v) for k, v in params.items() if v is not None))

    @classmethod
    def for_slug(cls, variant: str, slug: str) -> QueryKey:
        return cls(str(variant), slug)

    def to_string(self) -> str:
        """Stable serialized form, e.g. ``article/my-post?limit=3``."""
        text = self.variant
        if self.slug is not None:
            text += f"/{self.slug}"
        if self.params:
            text += "?" + "&".join(f"{k}={v}" for k, v in self.params)
        return text

    def __str__(self) -> str:
        return self.to_string()


# ---------------------------------------------------------------------------
# Fetch states
# ---------------------------------------------------------------------------


class FetchStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class Idle:
    status: FetchStatus = field(default=FetchStatus.IDLE, init=False)


@dataclass(frozen=True)
class Loading:
    status: FetchStatus = field(default=FetchStatus.LOADING, init=False)


@dataclass(frozen=True)
class Ready(Generic[T]):
    """A payload is available.

    ``revalidating`` is set while a background refresh of a stale payload
    is in flight.
    """

    payload: T
    fetched_at: datetime
    revalidating: bool = False
    status: FetchStatus = field(default=FetchStatus.READY, init=False)


@dataclass(frozen=True)
class Failed:
    """The most recent retrieval raised ``cause``."""

    cause: BaseException
    status: FetchStatus = field(default=FetchStatus.ERROR, init=False)


FetchState = Idle | Loading | Ready | Failed

IDLE = Idle()
LOADING = Loading()


@dataclass
class _Entry:
    state: FetchState
    # Monotonic time the state was settled; None while loading.
    settled_at: float | None = None


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class FetchController:
    """Keyed fetch cache with coalescing and stale-while-revalidate.

    Args:
        freshness: How long a settled result is served without refetching.
        clock: Monotonic seconds source, injectable for tests.
    """

    def __init__(
        self,
        freshness: timedelta = DEFAULT_FRESHNESS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._freshness = freshness.total_seconds()
        self._clock = clock
        self._entries: dict[QueryKey, _Entry] = {}
        self._inflight: dict[QueryKey, asyncio.Task] = {}

    # ── Inspection ───────────────────────────────────────────────

    def state(self, key: QueryKey) -> FetchState:
        """Current state for *key*; ``Idle`` if never requested."""
        entry = self._entries.get(key)
        return entry.state if entry is not None else IDLE

    def is_fresh(self, key: QueryKey) -> bool:
        """Whether *key* holds a settled result inside the freshness window."""
        entry = self._entries.get(key)
        if entry is None or entry.settled_at is None:
            return False
        return self._clock() - entry.settled_at < self._freshness

    def in_flight(self, key: QueryKey) -> bool:
        return key in self._inflight

    # ── Requests ─────────────────────────────────────────────────

    async def fetch(self, key: QueryKey, loader: Loader) -> FetchState:
        """Request *key*, loading it with *loader* only when necessary.

        - Fresh ready or failed result: returned from cache, no retrieval.
        - Stale ready result: returned immediately with ``revalidating``
          set while one background refresh runs.
        - Otherwise (idle, loading, or stale failure): enters ``Loading``
          and waits for the single shared retrieval.
        """
        entry = self._entries.get(key)

        if entry is not None and isinstance(entry.state, Ready):
            if self.is_fresh(key) or key in self._inflight:
                return entry.state
            self._spawn(key, loader)
            entry.state = replace(entry.state, revalidating=True)
            logger.debug("Serving stale %s while revalidating", key)
            return entry.state

        if entry is not None and isinstance(entry.state, Failed) and self.is_fresh(key):
            return entry.state

        return await self._load(key, loader)

    async def refetch(self, key: QueryKey, loader: Loader) -> FetchState:
        """Caller-initiated retry that ignores the freshness window.

        A ready payload stays visible (``revalidating``) until the new
        result arrives; anything else re-enters ``Loading``.
        """
        entry = self._entries.get(key)
        if entry is not None and isinstance(entry.state, Ready):
            task = self._spawn(key, loader)
            entry.state = replace(entry.state, revalidating=True)
            return await asyncio.shield(task)
        return await self._load(key, loader)

    def subscribe(self, key: QueryKey, loader: Loader) -> Subscription:
        """Create a view-owned handle for *key*; see :class:`Subscription`."""
        return Subscription(self, key, loader)

    def invalidate(self, key: QueryKey | None = None) -> None:
        """Forget the cached state of one key, or of every key.

        In-flight retrievals are left running; their results are still
        recorded when they arrive.
        """
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    # ── Internals ────────────────────────────────────────────────

    async def _load(self, key: QueryKey, loader: Loader) -> FetchState:
        task = self._spawn(key, loader)
        entry = self._entries.get(key)
        if entry is None or not isinstance(entry.state, Ready):
            self._entries[key] = _Entry(LOADING)
        # Shield so a caller being cancelled does not abort the shared retrieval.
        return await asyncio.shield(task)

    def _spawn(self, key: QueryKey, loader: Loader) -> asyncio.Task:
        """Start a retrieval for *key* unless one is already running."""
        task = self._inflight.get(key)
        if task is None:
            logger.debug("Retrieving %s", key)
            task = asyncio.ensure_future(self._run(key, loader))
            self._inflight[key] = task
        return task

    async def _run(self, key: QueryKey, loader: Loader) -> FetchState:
        try:
            payload = await loader()
        except Exception as exc:
            state = self._settle_failure(key, exc)
        else:
            state = Ready(payload=payload, fetched_at=datetime.now(tz=UTC))
            self._entries[key] = _Entry(state, self._clock())
        finally:
            self._inflight.pop(key, None)
        return state

    def _settle_failure(self, key: QueryKey, exc: Exception) -> FetchState:
        entry = self._entries.get(key)
        if entry is not None and isinstance(entry.state, Ready):
            # A stale payload is never replaced by an error.
            logger.warning("Background refresh of %s failed: %s", key, exc)
            entry.state = replace(entry.state, revalidating=False)
            return entry.state
        logger.info("Retrieval of %s failed: %s", key, exc)
        state = Failed(cause=exc)
        self._entries[key] = _Entry(state, self._clock())
        return state


class Subscription:
    """A single view's interest in one query.

    Tearing the view down with :meth:`cancel` stops results from being
    applied to :attr:`state`; the shared retrieval keeps running and its
    result still lands in the controller's cache.
    """

    def __init__(self, controller: FetchController, key: QueryKey, loader: Loader) -> None:
        self._controller = controller
        self._loader = loader
        self.key = key
        self.state: FetchState = controller.state(key)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    async def resolve(self) -> FetchState:
        """Fetch through the controller and apply the result unless cancelled."""
        if self._cancelled:
            return self.state
        if not self._controller.is_fresh(self.key) and not isinstance(self.state, Ready):
            self.state = LOADING

        state = await self._controller.fetch(self.key, self._loader)
        if self._cancelled:
            logger.debug("Discarding %s result for torn-down subscriber", self.key)
            return self.state
        self.state = state
        return state

    async def retry(self) -> FetchState:
        """Caller-initiated retry through :meth:`FetchController.refetch`."""
        if self._cancelled:
            return self.state
        state = await self._controller.refetch(self.key, self._loader)
        if not self._cancelled:
            self.state = state
        return self.state
