from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any, Final, TypedDict

from pydantic import BaseModel

# Fields SMSSync posts for a received SMS; anything else is dropped
MESSAGE_FIELDS: Final[tuple[str, ...]] = (
    "from",
    "message",
    "message_id",
    "sent_to",
    "device_id",
    "sent_timestamp",
)

# `from` is a keyword, so these use the functional TypedDict syntax
NormalizedMessage = TypedDict(
    "NormalizedMessage",
    {
        "from": str,
        "message": str,
        "message_id": str,
        "sent_to": str,
        "device_id": str,
        "sent_timestamp": str,
        "hash": str,
    },
    total=False,
)


class OutgoingSms(TypedDict, total=False):
    to: str
    message: str
    uuid: str


class DeliveryReport(TypedDict, total=False):
    uuid: str
    sent_result_code: int
    sent_result_message: str
    delivered_result_code: int
    delivered_result_message: str


def message_hash(fields: Mapping[str, Any]) -> str:
    """
    Deterministic SHA-1 fingerprint of a message.

    Key order does not matter; values that are not JSON types are hashed
    through their string form.
    """
    canonical = json.dumps(fields, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def normalize_message(body: Mapping[str, Any]) -> NormalizedMessage:
    """Keep only the SMS fields of a posted body and add their hash."""
    picked = {field: body[field] for field in MESSAGE_FIELDS if field in body}
    message: dict[str, Any] = dict(picked)
    message["hash"] = message_hash(picked)
    return message  # type: ignore[return-value]


def flatten(value: Any) -> list[Any]:
    """None -> [], list/tuple -> list, anything else -> [value]."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _recipient(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get("to")
    return getattr(item, "to", None)


def has_reply(result: Any) -> bool:
    """True if at least one returned message has a recipient."""
    return any(_recipient(item) for item in flatten(result))


class OutboxRequest(BaseModel):
    to: str
    message: str
    uuid: str | None = None
