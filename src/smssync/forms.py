"""Decoding of URL-encoded request bodies.

SMSSync posts ``application/x-www-form-urlencoded`` bodies; lists and
records use bracket notation::

    queued_messages[]=a&queued_messages[]=b
    message_result[0][uuid]=a&message_result[0][sent_result_code]=0
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

_SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")


def _split_key(key: str) -> list[str]:
    head, bracket, rest = key.partition("[")
    if not bracket or not head:
        return [key]
    segments = _SEGMENT_RE.findall(bracket + rest)
    # Anything that is not a clean run of [..] groups is a plain key
    if "".join(f"[{s}]" for s in segments) != bracket + rest:
        return [key]
    return [head, *segments]


def _assign(node: dict[str, Any], path: list[str], value: Any) -> None:
    for segment in path[:-1]:
        if segment == "":
            segment = str(len(node))
        child = node.get(segment)
        if not isinstance(child, dict):
            child = node[segment] = {}
        node = child

    last = path[-1]
    if last == "":
        last = str(len(node))

    if last not in node:
        node[last] = value
    elif isinstance(node[last], list):
        node[last].append(value)
    else:
        node[last] = [node[last], value]


def _listify(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    converted = {key: _listify(item) for key, item in value.items()}
    if converted and all(key.isdigit() for key in converted):
        return [converted[key] for key in sorted(converted, key=int)]
    return converted


def decode_form(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for key, value in pairs:
        _assign(body, _split_key(key), value)
    return {key: _listify(value) for key, value in body.items()}
