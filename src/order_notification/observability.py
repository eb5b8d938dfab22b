"""
order_notification.observability — Structured log capability.

The relay core emits entries through StructuredLog.log(level, message, fields).
PowertoolsLog forwards them to an aws_lambda_powertools Logger, which writes
one JSON line per entry (timestamp, level, message, service, correlation_id,
Lambda context keys, plus the entry's fields).
"""

from __future__ import annotations

from typing import Any, Protocol

from aws_lambda_powertools import Logger

DEBUG = "DEBUG"
INFO = "INFO"
WARNING = "WARNING"
ERROR = "ERROR"


class StructuredLog(Protocol):
    def log(
        self,
        level: str,
        message: str,
        fields: dict[str, Any] | None = None,
        *,
        exc_info: BaseException | None = None,
    ) -> None: ...


class PowertoolsLog:
    """Adapter from StructuredLog onto a powertools Logger.

    Accepts DEBUG, INFO, WARNING and ERROR in any case; anything else is a
    ValueError.
    """

    _METHODS = {DEBUG: "debug", INFO: "info", WARNING: "warning", ERROR: "error"}

    def __init__(self, logger: Logger) -> None:
        self._logger = logger

    def log(
        self,
        level: str,
        message: str,
        fields: dict[str, Any] | None = None,
        *,
        exc_info: BaseException | None = None,
    ) -> None:
        method_name = self._METHODS.get(level.upper())
        if method_name is None:
            raise ValueError(f"Unknown log level: {level!r}")
        method = getattr(self._logger, method_name)
        if exc_info is not None:
            method(message, extra=fields or {}, exc_info=exc_info)
        else:
            method(message, extra=fields or {})
