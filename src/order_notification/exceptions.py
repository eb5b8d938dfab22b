"""
order_notification.exceptions — Relay failure types.

Each exception carries the context needed to log the failure; the handler
maps it onto a fixed client-facing response body.
"""


class PayloadError(Exception):
    """
    Raised when the request body cannot be turned into an order payload.

    Attributes:
        public_message: Text returned to the caller in the ``error`` field.
        detail:         Parser diagnostic for the log entry (never returned).
    """

    def __init__(self, *, public_message: str, detail: str | None = None) -> None:
        self.public_message = public_message
        self.detail = detail
        super().__init__(detail or public_message)


class DeliveryError(Exception):
    """
    Raised when the outbound webhook call fails at the transport level.

    A non-2xx reply is NOT a DeliveryError; it comes back as a DeliveryResult
    with ``ok`` false so the handler can log the destination's response body.

    Attributes:
        url_host:   Host part of the destination URL (the full URL is a secret).
        error_type: Class name of the underlying transport exception.
    """

    def __init__(
        self, message: str, *, url_host: str | None = None, error_type: str | None = None
    ) -> None:
        self.url_host = url_host
        self.error_type = error_type
        super().__init__(message)
