"""Web3Forms integration — relays form payloads to an inbox by email."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from consultsite.errors import RelayFailed
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.web3forms.com/submit"


class RelayConfig(BaseModel):
    """Configuration for the outbound notification relay."""

    access_key: str = ""
    endpoint: str = DEFAULT_ENDPOINT
    to_email: str = ""
    from_name: str = "Blackbox Logic Website"
    subject: str = "New Contact Form Submission"
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.access_key and self.endpoint)


class Web3FormsClient:
    """Client for the Web3Forms submit endpoint.

    Every failure mode (transport error, non-JSON reply, ``success: false``)
    surfaces as :class:`RelayFailed`.
    """

    def __init__(self, config: RelayConfig) -> None:
        self.config = config

    def build_payload(self, fields: dict[str, Any], *, subject: str | None = None) -> dict:
        """Merge form fields with the relay envelope.

        Envelope keys win over form fields so a visitor cannot redirect
        the notification.
        """
        payload: dict[str, Any] = {k: v for k, v in fields.items() if v is not None}
        payload.update(
            {
                "access_key": self.config.access_key,
                "subject": subject or self.config.subject,
                "from_name": self.config.from_name,
            }
        )
        if self.config.to_email:
            payload["to_email"] = self.config.to_email
        return payload

    def submit(self, fields: dict[str, Any], *, subject: str | None = None) -> dict:
        """POST a payload to the relay endpoint.

        Returns:
            The decoded response body.

        Raises:
            RelayFailed: If the relay could not be reached or reported failure.
        """
        payload = self.build_payload(fields, subject=subject)
        req = urllib.request.Request(
            self.config.endpoint,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
                result = json.loads(resp.read().decode("utf-8"))
        except (urllib.error.URLError, TimeoutError, ValueError) as exc:
            raise RelayFailed(f"Relay request failed: {exc}") from exc

        if not isinstance(result, dict) or not result.get("success"):
            message = result.get("message") if isinstance(result, dict) else None
            raise RelayFailed(message or "Relay reported failure")
        return result
