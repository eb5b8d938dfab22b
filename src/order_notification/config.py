"""
order_notification.config — Relay configuration, read once at process start.

Values come from the Lambda environment (set by the CDK stack). The shared
secret may instead live in an SSM SecureString named by
FLOW_SHARED_SECRET_PARAM; the environment value wins when both are present.

Missing values are NOT an import-time failure: the handler reports them on
each request as a configuration fault (500) so the cause shows up in the logs.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

logger = Logger(service="order-notification")

SHARED_SECRET_ENV = "FLOW_SHARED_SECRET"  # pragma: allowlist secret
SHARED_SECRET_PARAM_ENV = "FLOW_SHARED_SECRET_PARAM"  # pragma: allowlist secret
WEBHOOK_URL_ENV = "SLACK_WEBHOOK_URL"
TIMEOUT_ENV = "SLACK_TIMEOUT_SECONDS"

_ssm_client = None


def get_ssm():
    """Lazy initialization of the SSM client."""
    global _ssm_client
    if _ssm_client is None:
        region = os.environ.get("AWS_REGION", "eu-west-2")
        _ssm_client = boto3.client("ssm", region_name=region)
    return _ssm_client


def _non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    return value if value.strip() else None


def _parse_timeout(value: str | None) -> float | None:
    text = _non_empty(value)
    if text is None:
        return None
    try:
        timeout = float(text)
    except ValueError:
        logger.warning("Ignoring non-numeric timeout", extra={"variable": TIMEOUT_ENV})
        return None
    if not math.isfinite(timeout):
        logger.warning("Ignoring non-finite timeout", extra={"variable": TIMEOUT_ENV})
        return None
    return timeout if timeout > 0 else None


def fetch_secret_parameter(name: str) -> str | None:
    """Read a SecureString parameter, returning None if it cannot be read."""
    try:
        response = get_ssm().get_parameter(Name=name, WithDecryption=True)
    except (ClientError, BotoCoreError):
        logger.exception("Failed to read shared secret from SSM", extra={"parameter": name})
        return None
    return _non_empty(response.get("Parameter", {}).get("Value"))


@dataclass(frozen=True)
class RelayConfig:
    """Injected configuration for the relay handler.

    shared_secret and webhook_url are both required for a request to
    succeed; either may be None here so the handler can name what is missing.
    """

    shared_secret: str | None
    webhook_url: str | None
    timeout_seconds: float | None = None

    def __repr__(self) -> str:
        # Both values are secrets; keep them out of tracebacks and debug output.
        return (
            f"RelayConfig(shared_secret={'<set>' if self.shared_secret else None}, "
            f"webhook_url={'<set>' if self.webhook_url else None}, "
            f"timeout_seconds={self.timeout_seconds!r})"
        )

    def missing(self) -> list[str]:
        """Names of required settings that are absent, secret first."""
        names = []
        if not self.shared_secret:
            names.append(SHARED_SECRET_ENV)
        if not self.webhook_url:
            names.append(WEBHOOK_URL_ENV)
        return names

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelayConfig:
        env = os.environ if environ is None else environ

        secret = _non_empty(env.get(SHARED_SECRET_ENV))
        if secret is None:
            param_name = _non_empty(env.get(SHARED_SECRET_PARAM_ENV))
            if param_name:
                secret = fetch_secret_parameter(param_name)

        return cls(
            shared_secret=secret,
            webhook_url=_non_empty(env.get(WEBHOOK_URL_ENV)),
            timeout_seconds=_parse_timeout(env.get(TIMEOUT_ENV)),
        )
