"""
order_notification.models — Request-scoped value types.

InboundRequest      — method, case-insensitive headers and raw body text
OrderNotification   — the three optional order fields and their display text
RelayResponse       — status code + JSON body, convertible to a Lambda proxy response

None of these outlive a single invocation.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from requests.structures import CaseInsensitiveDict

from order_notification.exceptions import PayloadError

INVALID_JSON = "Invalid JSON"
NOT_AN_OBJECT = "Request body must be an object"

MESSAGE_TEMPLATE = "📦 New Order: {name} • ${total} • ID: {order_id}"


@dataclass(frozen=True)
class InboundRequest:
    method: str
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: str | None = None
    is_base64_encoded: bool = False

    @classmethod
    def build(
        cls,
        method: str = "POST",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
        is_base64_encoded: bool = False,
    ) -> InboundRequest:
        return cls(
            method=method,
            headers=CaseInsensitiveDict(headers or {}),
            body=body,
            is_base64_encoded=is_base64_encoded,
        )

    @classmethod
    def from_lambda_event(cls, event: dict[str, Any]) -> InboundRequest:
        """Adapt a Function URL (payload v2) or API Gateway REST proxy event."""
        method = (
            event.get("requestContext", {}).get("http", {}).get("method")
            or event.get("httpMethod")
            or ""
        )
        headers = event.get("headers") or {}
        body = event.get("body")
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return cls.build(
            method=str(method).upper(),
            headers=headers,
            body=body,
            is_base64_encoded=bool(event.get("isBase64Encoded")),
        )

    def header(self, name: str) -> str | None:
        value = self.headers.get(name)
        return None if value is None else str(value)

    @property
    def body_size(self) -> int:
        return len(self.body) if self.body else 0

    def text_body(self) -> str | None:
        """Body as UTF-8 text, decoding base64 when the platform flagged it."""
        if not self.body or not self.is_base64_encoded:
            return self.body
        try:
            return base64.b64decode(self.body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise PayloadError(public_message=INVALID_JSON, detail=str(exc)) from exc


def parse_json_object(body: str | None) -> dict[str, Any]:
    """Parse the request body; an absent or empty body is an empty object."""
    if not body:
        return {}
    try:
        parsed = json.loads(body)
    except ValueError as exc:
        raise PayloadError(public_message=INVALID_JSON, detail=str(exc)) from exc
    if not isinstance(parsed, dict):
        raise PayloadError(
            public_message=NOT_AN_OBJECT, detail=f"got JSON {type(parsed).__name__}"
        )
    return parsed


def _display(value: Any, default: str) -> str:
    if not value:
        return default
    if isinstance(value, bool):
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class OrderNotification:
    order_id: Any = None
    name: Any = None
    total: Any = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> OrderNotification:
        return cls(
            order_id=payload.get("orderId"),
            name=payload.get("name"),
            total=payload.get("total"),
        )

    def presence(self) -> dict[str, bool]:
        return {
            "has_order_id": bool(self.order_id),
            "has_name": bool(self.name),
            "has_total": bool(self.total),
        }

    def format_message(self) -> str:
        return MESSAGE_TEMPLATE.format(
            name=_display(self.name, "Unknown"),
            total=_display(self.total, "0"),
            order_id=_display(self.order_id, "N/A"),
        )

    def slack_payload(self) -> dict[str, str]:
        return {"text": self.format_message()}


@dataclass(frozen=True)
class RelayResponse:
    status_code: int
    body: dict[str, Any]

    @classmethod
    def error(cls, status_code: int, message: str) -> RelayResponse:
        return cls(status_code, {"error": message})

    def to_lambda(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(self.body),
        }
