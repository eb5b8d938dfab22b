#!/usr/bin/env python3
"""
dev_invoke.py — Run the order notification relay locally.

Builds a Lambda Function URL event from the arguments and pushes it through
the relay in-process. Point --webhook-url at the mock Slack server
(tests/mocks/mock_slack) or a real incoming webhook.

Usage:
    uv run uvicorn tests.mocks.mock_slack.main:app --port 8766 &
    uv run python scripts/dev_invoke.py \\
        --secret local-secret \\
        --order-id 123 --name "#1001" --total 99.99 \\
        [--token <bearer token, defaults to --secret>] \\
        [--webhook-url http://localhost:8766/services/T000/B000/XXXX] \\
        [--raw-body '{"orderId": "123"}']
"""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from order_notification.config import RelayConfig  # noqa: E402
from order_notification.delivery import SlackWebhookDeliverer  # noqa: E402
from order_notification.handler import handle, logger  # noqa: E402
from order_notification.models import InboundRequest  # noqa: E402
from order_notification.observability import PowertoolsLog  # noqa: E402

DEFAULT_WEBHOOK_URL = "http://localhost:8766/services/T000/B000/XXXX"


def build_event(token: str | None, body: str | None) -> dict[str, Any]:
    headers = {"content-type": "application/json", "user-agent": "dev-invoke"}
    if token is not None:
        headers["authorization"] = f"Bearer {token}"
    return {
        "version": "2.0",
        "rawPath": "/",
        "headers": headers,
        "requestContext": {"http": {"method": "POST", "path": "/"}},
        "body": body,
        "isBase64Encoded": False,
    }


def build_body(args: argparse.Namespace) -> str | None:
    if args.raw_body is not None:
        return args.raw_body
    order = {
        key: value
        for key, value in (("orderId", args.order_id), ("name", args.name), ("total", args.total))
        if value is not None
    }
    return json.dumps(order) if order else None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--secret", required=True, help="Shared secret the relay expects")
    parser.add_argument("--token", default=None, help="Bearer token to send (default: --secret)")
    parser.add_argument("--no-auth", action="store_true", help="Omit the Authorization header")
    parser.add_argument("--webhook-url", default=DEFAULT_WEBHOOK_URL, help="Slack webhook URL")
    parser.add_argument("--order-id", default=None)
    parser.add_argument("--name", default=None)
    parser.add_argument("--total", default=None)
    parser.add_argument("--raw-body", default=None, help="Send this body verbatim")
    parser.add_argument("--timeout", type=float, default=10.0, help="Outbound timeout seconds")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    token = None if args.no_auth else (args.token or args.secret)
    event = build_event(token, build_body(args))

    config = RelayConfig(
        shared_secret=args.secret,
        webhook_url=args.webhook_url,
        timeout_seconds=args.timeout,
    )
    response = handle(
        InboundRequest.from_lambda_event(event),
        config=config,
        deliverer=SlackWebhookDeliverer(timeout=config.timeout_seconds),
        log=PowertoolsLog(logger),
        request_id=f"dev-{uuid.uuid4()}",
    )
    print(json.dumps(response.to_lambda(), indent=2))
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    raise SystemExit(main())
