from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Final

# Values of the `task` query parameter / envelope field
TASK_SEND: Final[str] = "send"
TASK_SENT: Final[str] = "sent"
TASK_RESULT: Final[str] = "result"


class Task(StrEnum):
    RECEIVE_MESSAGE = "receive_message"
    SEND_POLL = "send_poll"
    SENT_ACK = "sent_ack"
    DELIVERY_RESULT = "delivery_result"
    QUEUED_POLL = "queued_poll"


def classify(method: str, query: Mapping[str, Any]) -> Task:
    """
    Map an HTTP method and the `task` query parameter to a protocol task.

      POST ?task=sent    -> SENT_ACK
      POST ?task=result  -> DELIVERY_RESULT
      POST (otherwise)   -> RECEIVE_MESSAGE
      GET  ?task=result  -> QUEUED_POLL
      GET  (otherwise)   -> SEND_POLL
    """
    task = query.get("task")

    if method.upper() == "POST":
        if task == TASK_SENT:
            return Task.SENT_ACK
        if task == TASK_RESULT:
            return Task.DELIVERY_RESULT
        return Task.RECEIVE_MESSAGE

    if task == TASK_RESULT:
        return Task.QUEUED_POLL
    return Task.SEND_POLL
