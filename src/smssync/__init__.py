"""FastAPI endpoint for the SMSSync Android gateway protocol."""

from __future__ import annotations

from .config import SmsSyncConfig
from .dispatcher import Handlers, SmsSync
from .errors import (
    AuthenticationFailed,
    DeliveryReportFailed,
    ReceiveFailed,
    SendFailed,
    SmsSyncError,
)
from .router import create_router

__all__ = [
    "AuthenticationFailed",
    "DeliveryReportFailed",
    "Handlers",
    "ReceiveFailed",
    "SendFailed",
    "SmsSync",
    "SmsSyncConfig",
    "SmsSyncError",
    "create_router",
]
