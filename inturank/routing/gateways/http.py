"""HTTP delivery gateway — posts messages to the email relay API.

The relay (``POST {base}/api/send-email``) takes ``{to, subject, message,
html}`` JSON and forwards it to the email provider, keeping provider
credentials server side.  A relay without credentials answers
``503 {"error": "Email not configured"}``; that reply is raised as
``ConfigurationMissing`` so it can be told apart from a transient failure.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from inturank.models.messages import DeliveryResult, DeliveryStatus, EmailMessage
from inturank.routing.gateways import ConfigurationMissing, TransportFailure

logger = logging.getLogger(__name__)

SEND_EMAIL_PATH = "/api/send-email"
NOT_CONFIGURED_ERROR = "Email not configured"


def build_endpoint(base_url: str) -> str:
    """Return the send-email URL for a relay base URL ('' stays '')."""
    base = (base_url or "").strip()
    if not base:
        return ""
    return f"{base.rstrip('/')}{SEND_EMAIL_PATH}"


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class HttpDeliveryGateway:
    """Delivers messages through the email relay with ``httpx``.

    Parameters
    ----------
    endpoint:
        Full send-email URL.  Empty means email is not configured.
    timeout_seconds:
        Per-request timeout.
    client:
        Optional pre-built ``httpx.Client`` (tests pass one with a mock
        transport).  When omitted the gateway owns its client.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    @property
    def gateway_name(self) -> str:
        return "http"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def deliver(self, message: EmailMessage) -> DeliveryResult:
        if not self._endpoint:
            raise ConfigurationMissing("email not configured: no relay endpoint set")

        body: dict[str, str] = {
            "to": message.to,
            "subject": message.subject,
            "message": message.body_text,
        }
        if message.body_html:
            body["html"] = message.body_html

        try:
            response = self._client.post(self._endpoint, json=body)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"relay unreachable at {self._endpoint}: {exc}") from exc

        if response.is_success:
            logger.info("Email relay accepted %r for %s", message.subject, message.to)
            return DeliveryResult(
                status=DeliveryStatus.DELIVERED, status_code=response.status_code
            )

        payload = _error_payload(response)
        if response.status_code == 503 and payload.get("error") == NOT_CONFIGURED_ERROR:
            raise ConfigurationMissing(
                "email not configured on the relay", status_code=response.status_code
            )
        detail = payload.get("details") or payload.get("error") or response.reason_phrase
        raise TransportFailure(
            f"relay rejected message ({response.status_code}): {detail}",
            status_code=response.status_code,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpDeliveryGateway:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"HttpDeliveryGateway(endpoint={self._endpoint!r})"
