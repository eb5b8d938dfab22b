"""
order_notification.handler — Order notification relay Lambda.

Invoked through a Lambda Function URL. Authenticates the caller with a static
Bearer token, turns the order JSON into a one-line message and POSTs it to a
Slack incoming webhook.

Every outcome is a JSON response; nothing is retried or stored:
    500  configuration missing
    401  missing or wrong Bearer token
    400  body is not valid JSON / not a JSON object
    502  Slack call raised or returned non-2xx
    200  delivered
"""

from __future__ import annotations

import hmac
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext

from order_notification.config import RelayConfig
from order_notification.delivery import Deliverer, SlackWebhookDeliverer
from order_notification.exceptions import DeliveryError, PayloadError
from order_notification.models import (
    InboundRequest,
    OrderNotification,
    RelayResponse,
    parse_json_object,
)
from order_notification.observability import ERROR, INFO, WARNING, PowertoolsLog, StructuredLog

logger = Logger(service="order-notification")
tracer = Tracer()

BEARER_PREFIX = "Bearer "

INTERNAL_ERROR = "Internal Server Error"
UNAUTHORIZED = "Unauthorized"
DELIVERY_FAILED = "Slack integration failed"

# Built once per execution environment; warm invocations reuse it.
CONFIG = RelayConfig.from_env()


def _bearer_token(auth_header: str) -> str | None:
    if not auth_header.startswith(BEARER_PREFIX):
        return None
    return auth_header[len(BEARER_PREFIX) :]


def _token_matches(provided: str | None, secret: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8"))


def handle(
    request: InboundRequest,
    *,
    config: RelayConfig,
    deliverer: Deliverer,
    log: StructuredLog,
    request_id: str,
) -> RelayResponse:
    """Run one relay request through auth, parsing, formatting and delivery."""
    log.log(
        INFO,
        "Request received",
        {
            "request_id": request_id,
            "method": request.method,
            "user_agent": request.header("user-agent"),
            "has_auth": bool(request.header("authorization")),
            "body_size": request.body_size,
        },
    )

    # 1. Configuration
    missing = config.missing()
    if missing:
        log.log(
            ERROR,
            f"{missing[0]} environment variable not set",
            {"request_id": request_id, "missing_setting": missing[0]},
        )
        return RelayResponse.error(500, INTERNAL_ERROR)
    secret = config.shared_secret or ""
    webhook_url = config.webhook_url or ""

    # 2. Authentication
    auth_header = request.header("authorization") or ""
    provided = _bearer_token(auth_header)
    if not _token_matches(provided, secret):
        log.log(
            WARNING,
            "Authentication failed",
            {
                "request_id": request_id,
                "has_bearer": auth_header.startswith(BEARER_PREFIX),
                "auth_header_length": len(auth_header),
            },
        )
        return RelayResponse.error(401, UNAUTHORIZED)

    log.log(INFO, "Authentication successful", {"request_id": request_id})

    # 3. Body
    try:
        payload = parse_json_object(request.text_body())
    except PayloadError as exc:
        log.log(
            ERROR,
            exc.public_message,
            {"request_id": request_id, "error": exc.detail},
        )
        return RelayResponse.error(400, exc.public_message)

    order = OrderNotification.from_payload(payload)
    log.log(
        INFO,
        "Request body parsed successfully",
        {"request_id": request_id, **order.presence()},
    )

    # 4 + 5. Format and deliver
    log.log(INFO, "Posting to Slack", {"request_id": request_id})
    try:
        result = deliverer.deliver(webhook_url, order.slack_payload())
    except DeliveryError as exc:
        log.log(
            ERROR,
            "Slack post failed",
            {
                "request_id": request_id,
                "error": str(exc),
                "error_type": exc.error_type,
                "url_host": exc.url_host,
            },
            exc_info=exc,
        )
        return RelayResponse.error(502, DELIVERY_FAILED)

    if not result.ok:
        log.log(
            ERROR,
            "Slack API error",
            {
                "request_id": request_id,
                "status": result.status_code,
                "status_text": result.reason,
                "response_body": result.body,
            },
        )
        return RelayResponse.error(502, DELIVERY_FAILED)

    log.log(
        INFO,
        "Successfully posted to Slack",
        {"request_id": request_id, "slack_status": result.status_code},
    )

    # 6. Done
    log.log(INFO, "Request completed successfully", {"request_id": request_id})
    return RelayResponse(200, {"message": "Success", "requestId": request_id})


@logger.inject_lambda_context(correlation_id_path=correlation_paths.LAMBDA_FUNCTION_URL)
@tracer.capture_lambda_handler
def lambda_handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Lambda Function URL entry point."""
    request_id = context.aws_request_id
    try:
        request = InboundRequest.from_lambda_event(event)
        response = handle(
            request,
            config=CONFIG,
            deliverer=SlackWebhookDeliverer(timeout=CONFIG.timeout_seconds),
            log=PowertoolsLog(logger),
            request_id=request_id,
        )
    except Exception:
        logger.exception("Unhandled relay handler error", extra={"request_id": request_id})
        response = RelayResponse.error(500, INTERNAL_ERROR)
    return response.to_lambda()
