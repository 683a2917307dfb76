from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import SmsSyncConfig
from .dispatcher import Handlers, SmsSync
from .forms import decode_form

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_body(request: Request) -> dict[str, Any]:
    """
    Decode a device request body into a mapping.

    JSON and URL-encoded/multipart forms are accepted; a body without a
    content type is read as JSON. Other content types, a missing body, or
    a JSON document that is not an object decode to an empty mapping.
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        return decode_form(form.multi_items())

    if content_type and content_type != "application/json" and not content_type.endswith("+json"):
        return {}

    raw = await request.body()
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Malformed JSON body") from exc

    return data if isinstance(data, Mapping) else {}


def create_router(config: SmsSyncConfig, handlers: Handlers) -> APIRouter:
    """
    Build an APIRouter serving the SMSSync endpoint at `config.path`.

    Every call returns an independent router; nothing is shared between
    configurations. With `inline_errors` disabled, SmsSyncError is raised
    out of the route for the application's exception handlers.
    """
    smssync = SmsSync(config, handlers)
    router = APIRouter(tags=["smssync"])

    @router.get(config.path)
    async def smssync_get(request: Request) -> JSONResponse:
        """Device polls for messages to send (or, with ?task=result, for queued uuids)."""
        body = await read_body(request)
        envelope = await smssync.handle("GET", dict(request.query_params), body)
        return JSONResponse(jsonable_encoder(envelope))

    @router.post(config.path)
    async def smssync_post(request: Request) -> JSONResponse:
        """Device submits a received SMS, a sent queue (?task=sent) or delivery reports (?task=result)."""
        body = await read_body(request)
        envelope = await smssync.handle("POST", dict(request.query_params), body)
        return JSONResponse(jsonable_encoder(envelope))

    return router
