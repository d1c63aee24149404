"""Sanity content lake integration — config, query client, and image URLs.

The query client speaks the HTTP query API directly via urllib; the image
builder mirrors the CDN URL scheme so URLs can be produced without a
network round-trip.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.parse
import urllib.request
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

CDN_BASE = "https://cdn.sanity.io/images"

# image-<assetId>-<width>x<height>-<format>
_IMAGE_REF_RE = re.compile(r"^image-(?P<asset>[A-Za-z0-9]+)-(?P<dims>\d+x\d+)-(?P<fmt>[a-z0-9]+)$")


class SanityConfig(BaseModel):
    """Configuration for reading from a Sanity dataset."""

    project_id: str = ""
    dataset: str = "production"
    api_version: str = "2024-01-01"
    use_cdn: bool = False
    token: str = ""
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id and self.dataset)


class SanityImageBuilder:
    """Builds CDN URLs for image asset references.

    The same reference and dimensions always produce the same URL, so
    callers can cache rendered images by URL.
    """

    def __init__(self, project_id: str, dataset: str) -> None:
        self.project_id = project_id
        self.dataset = dataset

    @staticmethod
    def asset_ref(source: Any) -> str:
        """Extract the ``image-…`` asset reference from an image field.

        Accepts a bare reference string, an ``{"asset": {"_ref": ...}}``
        image object, or an already-dereferenced ``{"asset": {"_id": ...}}``.

        Raises:
            ValueError: If no reference can be found.
        """
        if isinstance(source, str):
            return source
        if isinstance(source, dict):
            asset = source.get("asset")
            if isinstance(asset, dict):
                ref = asset.get("_ref") or asset.get("_id")
                if isinstance(ref, str) and ref:
                    return ref
            ref = source.get("_ref")
            if isinstance(ref, str) and ref:
                return ref
        raise ValueError(f"Not an image reference: {source!r}")

    def url(self, source: Any, width: int | None = None, height: int | None = None) -> str:
        """Return the CDN URL for an image, optionally resized.

        Raises:
            ValueError: If the source is not a well-formed image reference.
        """
        ref = self.asset_ref(source)
        match = _IMAGE_REF_RE.match(ref)
        if match is None:
            raise ValueError(f"Malformed image reference: {ref!r}")

        filename = f"{match['asset']}-{match['dims']}.{match['fmt']}"
        url = f"{CDN_BASE}/{self.project_id}/{self.dataset}/{filename}"

        params: list[tuple[str, int]] = []
        if width is not None:
            params.append(("w", width))
        if height is not None:
            params.append(("h", height))
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        return url


class SanityAPIClient:
    """Client for the Sanity HTTP query API.

    Handles query-string encoding, optional token auth, and timeouts via
    urllib. Transport errors propagate to the caller unchanged.
    """

    def __init__(self, config: SanityConfig) -> None:
        self.config = config
        self.images = SanityImageBuilder(config.project_id, config.dataset)

    @property
    def base_url(self) -> str:
        host = "apicdn.sanity.io" if self.config.use_cdn else "api.sanity.io"
        return f"https://{self.config.project_id}.{host}/v{self.config.api_version}"

    def _request(self, path: str) -> dict:
        """Make a GET request to the Sanity API and decode the JSON body."""
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"

        req = urllib.request.Request(url, method="GET", headers=headers)
        with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def query_url(self, groq: str, params: dict[str, Any] | None = None) -> str:
        """Build the query path for a GROQ query and its ``$`` parameters."""
        qs: list[tuple[str, str]] = [("query", groq)]
        for name in sorted(params or {}):
            qs.append((f"${name}", json.dumps(params[name])))
        return f"/data/query/{self.config.dataset}?{urllib.parse.urlencode(qs)}"

    def query(self, groq: str, params: dict[str, Any] | None = None) -> Any:
        """Run a GROQ query and return its ``result`` value.

        Args:
            groq: The GROQ query text.
            params: Values bound to ``$name`` placeholders in the query.

        Returns:
            Whatever the query projects: a list, a single object, or None.

        Raises:
            KeyError: If the response carries no ``result`` member.
        """
        path = self.query_url(groq, params)
        logger.debug("Sanity query %s params=%s", groq.split("{")[0].strip(), params)
        body = self._request(path)
        return body["result"]
