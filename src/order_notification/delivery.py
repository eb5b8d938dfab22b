"""
order_notification.delivery — Outbound webhook delivery.

The handler talks to a Deliverer, not to requests directly. Production uses
SlackWebhookDeliverer; tests substitute a fake that returns a canned
DeliveryResult or raises DeliveryError.

One POST per call, no retries, no session reuse.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlsplit

import requests

from order_notification.exceptions import DeliveryError


@dataclass(frozen=True)
class DeliveryResult:
    status_code: int
    reason: str
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Deliverer(Protocol):
    def deliver(self, url: str, payload: dict[str, Any]) -> DeliveryResult: ...


class SlackWebhookDeliverer:
    """POST a JSON payload to a Slack incoming webhook.

    timeout=None leaves the call unbounded; the Lambda timeout is then the
    only limit on how long the request blocks.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def deliver(self, url: str, payload: dict[str, Any]) -> DeliveryResult:
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            # requests embeds the full URL in its messages; the path is the webhook secret.
            host = urlsplit(url).hostname
            error_type = type(exc).__name__
            raise DeliveryError(
                f"{error_type} calling {host}", url_host=host, error_type=error_type
            ) from None

        return DeliveryResult(
            status_code=response.status_code,
            reason=response.reason or "",
            body=response.text,
        )
