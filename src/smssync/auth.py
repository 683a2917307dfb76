"""Shared-secret check applied to every SMSSync request.

The device sends the secret as a ``secret`` query parameter or body
field. Delivery acknowledgements (``POST ?task=sent``) and delivery
reports (``POST ?task=result``) are sent without it by the device, so
they are let through unchecked.
"""

from __future__ import annotations

import hmac
from collections.abc import Mapping
from typing import Any

import structlog

from .config import SmsSyncConfig
from .errors import AuthenticationFailed
from .tasks import TASK_RESULT, TASK_SENT

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def provided_secret(query: Mapping[str, Any], body: Mapping[str, Any]) -> str | None:
    """Secret from the query string, falling back to the body."""
    secret = query.get("secret") or body.get("secret")
    if secret is None:
        return None
    return str(secret)


def is_exempt(method: str, query: Mapping[str, Any]) -> bool:
    return method.upper() == "POST" and query.get("task") in (TASK_SENT, TASK_RESULT)


def is_authorized(
    config: SmsSyncConfig,
    method: str,
    query: Mapping[str, Any],
    body: Mapping[str, Any],
) -> bool:
    if not config.secret:
        return True

    secret = provided_secret(query, body)
    if secret is not None and hmac.compare_digest(secret.encode(), config.secret.encode()):
        return True

    return is_exempt(method, query)


def authenticate(
    config: SmsSyncConfig,
    method: str,
    query: Mapping[str, Any],
    body: Mapping[str, Any],
) -> None:
    """Raise AuthenticationFailed unless the request may proceed."""
    if is_authorized(config, method, query, body):
        return

    logger.warning(
        "smssync.secret_mismatch",
        method=method.upper(),
        task=query.get("task"),
        secret_provided=provided_secret(query, body) is not None,
    )
    raise AuthenticationFailed()
