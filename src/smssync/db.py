from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .config import get_settings


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class SmsMessage(Base):
    __tablename__ = "sms_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String, nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String, nullable=False)
    direction: Mapped[str] = mapped_column(String(3), nullable=False)  # "in" / "out"
    text: Mapped[str] = mapped_column(String, nullable=False)
    # in: "received"; out: "pending" -> "queued" -> "delivered" / "failed"
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    hash: Mapped[str | None] = mapped_column(String(40), nullable=True)
    device_id: Mapped[str | None] = mapped_column(String, nullable=True)
    sent_to: Mapped[str | None] = mapped_column(String, nullable=True)
    sent_timestamp: Mapped[str | None] = mapped_column(String, nullable=True)
    sent_result_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sent_result_message: Mapped[str | None] = mapped_column(String, nullable=True)
    delivered_result_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    delivered_result_message: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# --- Engine & Session factory ---

settings = get_settings()

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind: Engine = engine) -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=bind)
