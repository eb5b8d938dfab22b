"""
order_notification — Shopify Flow order webhook to Slack relay.

handle() is the whole request pipeline; lambda_handler (in
order_notification.handler) adapts it to a Lambda Function URL.
"""

from order_notification.config import RelayConfig
from order_notification.delivery import DeliveryResult, SlackWebhookDeliverer
from order_notification.exceptions import DeliveryError, PayloadError
from order_notification.models import InboundRequest, OrderNotification, RelayResponse

__all__ = [
    "DeliveryError",
    "DeliveryResult",
    "InboundRequest",
    "OrderNotification",
    "PayloadError",
    "RelayConfig",
    "RelayResponse",
    "SlackWebhookDeliverer",
]
