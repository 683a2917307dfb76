from __future__ import annotations

import hmac
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from . import store
from .config import Settings, get_settings
from .db import SessionLocal, init_db
from .dispatcher import Handlers
from .errors import AuthenticationFailed, SmsSyncError
from .router import create_router
from .sms import NormalizedMessage, OutboxRequest, OutgoingSms

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")


def configure_logging(settings: Settings) -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            settings.log_level.lower(),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_handlers(settings: Settings, session_factory: sessionmaker[Session]) -> Handlers:
    """
    SMSSync handlers backed by the message store.

    Each call opens its own session; the handlers are plain functions and
    run in the threadpool.
    """

    def with_session(fn: Callable[..., T], *args: Any) -> T:
        db = session_factory()
        try:
            return fn(db, *args)
        finally:
            db.close()

    def on_receive(message: NormalizedMessage) -> OutgoingSms | None:
        row = with_session(store.record_incoming, message)
        logger.info("sms.received", uuid=row.uuid, phone=row.phone, device_id=row.device_id)

        if not settings.echo or not message.get("from"):
            return None
        return {"to": message["from"], "message": message.get("message", ""), "uuid": str(uuid.uuid4())}

    def on_send() -> list[OutgoingSms]:
        return with_session(store.pending_outgoing)

    def on_sent(queued: list[str] | None) -> list[str]:
        uuids = with_session(store.mark_queued, queued)
        logger.info("sms.queued_by_device", count=len(uuids))
        return uuids

    def on_queued() -> list[str]:
        return with_session(store.awaiting_delivery)

    def on_delivered(reports: list[dict[str, Any]] | None) -> int:
        updated = with_session(store.apply_delivery_reports, reports)
        logger.info("sms.delivery_reports", updated=updated)
        return updated

    return Handlers(
        on_receive=on_receive,
        on_send=on_send,
        on_sent=on_sent,
        on_queued=on_queued,
        on_delivered=on_delivered,
    )


async def smssync_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Renders adapter failures when inline errors are disabled."""
    status_code = 401 if isinstance(exc, AuthenticationFailed) else 502
    message = exc.message if isinstance(exc, SmsSyncError) else str(exc)
    logger.warning("smssync.error", path=request.url.path, status_code=status_code, error=message)
    return JSONResponse({"detail": message}, status_code=status_code)


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    settings = settings or get_settings()
    session_factory = SessionLocal if engine is None else sessionmaker(bind=engine, autoflush=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: runs once before the app starts serving requests
        configure_logging(settings)
        if engine is None:
            init_db()
        else:
            init_db(bind=engine)
        yield

    app = FastAPI(title="smssync", version="0.1.0", lifespan=lifespan)
    app.include_router(create_router(settings.smssync(), build_handlers(settings, session_factory)))
    app.add_exception_handler(SmsSyncError, smssync_error_handler)

    # --- Admin protection ---

    def verify_admin(request: Request) -> None:
        """Require an X-Admin-Token header matching ADMIN_TOKEN."""
        if not settings.admin_token:
            # Misconfiguration; safer to refuse access than to queue anything.
            raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")

        token = request.headers.get("X-Admin-Token", "")
        if not hmac.compare_digest(token.encode(), settings.admin_token.encode()):
            raise HTTPException(status_code=401, detail="Invalid admin token")

    def get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    @app.post("/outbox", dependencies=[Depends(verify_admin)])
    def outbox(payload: OutboxRequest, db: Session = Depends(get_db)) -> JSONResponse:
        """
        Queue an SMS for the device.

        Accepts JSON:

          { "to": "+27123456789", "message": "Dumela", "uuid": "optional" }
        """
        row = store.enqueue_outgoing(db, to=payload.to, text=payload.message, uuid=payload.uuid)
        logger.info("sms.enqueued", uuid=row.uuid, phone=row.phone)
        return JSONResponse({"status": "ok", "uuid": row.uuid}, status_code=201)

    return app


app = create_app()
