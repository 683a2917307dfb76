"""Request pipeline for the SMSSync device protocol.

One ``SmsSync`` instance serves one endpoint configuration::

    authenticate -> classify -> application handler -> envelope

Handlers are supplied by the application. Each one may be an ``async def``
or a plain function; plain functions run in the threadpool so blocking
work (database access, HTTP calls) does not stall the event loop.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from starlette.concurrency import run_in_threadpool

from . import responses
from .auth import authenticate
from .config import SmsSyncConfig
from .errors import DeliveryReportFailed, ReceiveFailed, SendFailed, SmsSyncError
from .sms import normalize_message
from .tasks import Task, classify

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

Handler = Callable[..., Any]


@dataclass(frozen=True)
class Handlers:
    on_receive: Handler  # (message) -> reply | [reply, ...] | None
    on_send: Handler  # () -> [outgoing sms, ...]
    on_sent: Handler  # (queued uuids) -> echoed back to the device
    on_queued: Handler  # () -> [uuid awaiting delivery report, ...]
    on_delivered: Handler  # (delivery reports) -> ignored


async def call_handler(handler: Handler, *args: Any) -> Any:
    """Invoke a handler once and wait for its single result."""
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)

    result = await run_in_threadpool(handler, *args)
    # e.g. a callable object whose __call__ is async
    if inspect.isawaitable(result):
        return await result
    return result


class SmsSync:
    def __init__(self, config: SmsSyncConfig, handlers: Handlers) -> None:
        self.config = config
        self.handlers = handlers
        self._routes: dict[Task, Callable[[Mapping[str, Any]], Awaitable[dict[str, Any]]]] = {
            Task.RECEIVE_MESSAGE: self._receive,
            Task.SEND_POLL: self._send,
            Task.SENT_ACK: self._sent,
            Task.DELIVERY_RESULT: self._delivered,
            Task.QUEUED_POLL: self._queued,
        }

    async def handle(
        self,
        method: str,
        query: Mapping[str, Any],
        body: Mapping[str, Any],
    ) -> dict[str, Any]:
        """
        Process one device request and return the JSON envelope.

        With inline errors disabled, failures are raised as SmsSyncError
        for the caller to render.
        """
        try:
            authenticate(self.config, method, query, body)
            task = classify(method, query)
            logger.debug("smssync.request", method=method.upper(), task=task.value)
            return await self._routes[task](body)
        except SmsSyncError as error:
            if not self.config.inline_errors:
                raise
            return responses.error_envelope(error)

    async def _receive(self, body: Mapping[str, Any]) -> dict[str, Any]:
        message = normalize_message(body)
        try:
            result = await call_handler(self.handlers.on_receive, message)
        except Exception as exc:
            raise self._failure(ReceiveFailed, exc, task=Task.RECEIVE_MESSAGE) from exc
        return responses.receive_envelope(result, reply=self.config.reply)

    async def _send(self, body: Mapping[str, Any]) -> dict[str, Any]:
        try:
            messages = await call_handler(self.handlers.on_send)
        except Exception as exc:
            raise self._failure(SendFailed, exc, task=Task.SEND_POLL) from exc
        return responses.send_envelope(messages, secret=self.config.secret)

    async def _sent(self, body: Mapping[str, Any]) -> dict[str, Any]:
        queued = body.get("queued_messages")
        try:
            result = await call_handler(self.handlers.on_sent, queued)
        except Exception:
            # The device always gets an acknowledgement list, possibly empty
            logger.exception("smssync.handler_failed", task=Task.SENT_ACK.value)
            result = None
        return responses.sent_envelope(result)

    async def _delivered(self, body: Mapping[str, Any]) -> dict[str, Any]:
        reports = body.get("message_result")
        try:
            await call_handler(self.handlers.on_delivered, reports)
        except Exception as exc:
            raise self._failure(DeliveryReportFailed, exc, task=Task.DELIVERY_RESULT) from exc
        return responses.delivered_envelope()

    async def _queued(self, body: Mapping[str, Any]) -> dict[str, Any]:
        try:
            uuids = await call_handler(self.handlers.on_queued)
        except Exception:
            logger.exception("smssync.handler_failed", task=Task.QUEUED_POLL.value)
            uuids = None
        return responses.queued_envelope(uuids)

    @staticmethod
    def _failure(kind: type[SmsSyncError], exc: Exception, task: Task) -> SmsSyncError:
        logger.warning("smssync.handler_failed", task=task.value, error=repr(exc))
        return kind(str(exc) or None)
