from __future__ import annotations

from typing import ClassVar


class SmsSyncError(Exception):
    """
    Base class for failures rendered back to the device.

    The message falls back to the class default when none is given.
    """

    default_message: ClassVar[str] = "SMSSync request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationFailed(SmsSyncError):
    default_message = "Secret Key Mismatch"

    def __init__(self, message: str | None = None) -> None:
        # The device expects this text verbatim
        super().__init__(self.default_message)


class ReceiveFailed(SmsSyncError):
    default_message = "Fail to process received message"


class SendFailed(SmsSyncError):
    default_message = "Fail to obtain message to send"


class DeliveryReportFailed(SmsSyncError):
    default_message = "Fail to process delivery reports"
