from __future__ import annotations

from typing import Any

from .errors import SmsSyncError
from .sms import flatten, has_reply
from .tasks import TASK_SEND


def receive_envelope(result: Any, reply: bool) -> dict[str, Any]:
    """
    Acknowledge a received SMS.

    When replies are enabled and the handler returned at least one message
    with a recipient, the acknowledgement carries those messages instead.
    The `error` key is dropped in that case, not set to null.
    """
    if reply and has_reply(result):
        return {
            "payload": {
                "success": True,
                "task": TASK_SEND,
                "messages": flatten(result),
            }
        }
    return {"payload": {"success": True, "error": None}}


def send_envelope(messages: Any, secret: str) -> dict[str, Any]:
    return {
        "payload": {
            "task": TASK_SEND,
            "secret": secret,
            "messages": flatten(messages),
        }
    }


def sent_envelope(queued: Any) -> dict[str, Any]:
    return {"queued_messages": flatten(queued)}


def queued_envelope(uuids: Any) -> dict[str, Any]:
    return {"message_uuids": flatten(uuids)}


def delivered_envelope() -> dict[str, Any]:
    return {"payload": {"success": True, "error": None}}


def error_envelope(error: SmsSyncError) -> dict[str, Any]:
    return {"payload": {"success": False, "error": error.message}}
