"""Message store used by the reference application.

Outgoing SMS move through these states as the device works its queue::

    pending  --(GET, device fetches)--> still pending
    pending  --(POST ?task=sent)------> queued
    queued   --(POST ?task=result)----> delivered | failed

``GET ?task=result`` lists the uuids still in ``queued``.
"""

from __future__ import annotations

import uuid as uuid_lib
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from sqlalchemy.orm import Session

from .db import SmsMessage
from .sms import DeliveryReport, NormalizedMessage, OutgoingSms, flatten


def _as_int(value: Any) -> int | None:
    """Result codes arrive as ints (JSON) or strings (form posts)."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def record_incoming(db: Session, message: NormalizedMessage) -> SmsMessage:
    """Store an SMS received by the device."""
    row = SmsMessage(
        uuid=message.get("message_id") or message["hash"],
        phone=message.get("from") or "",
        direction="in",
        text=message.get("message") or "",
        status="received",
        hash=message["hash"],
        device_id=message.get("device_id"),
        sent_to=message.get("sent_to"),
        sent_timestamp=None if message.get("sent_timestamp") is None else str(message["sent_timestamp"]),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def enqueue_outgoing(db: Session, to: str, text: str, uuid: str | None = None) -> SmsMessage:
    """Queue an SMS for the device to pick up on its next poll."""
    row = SmsMessage(
        uuid=uuid or str(uuid_lib.uuid4()),
        phone=to,
        direction="out",
        text=text,
        status="pending",
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def pending_outgoing(db: Session, limit: int | None = None) -> list[OutgoingSms]:
    query = (
        db.query(SmsMessage)
        .filter(SmsMessage.direction == "out", SmsMessage.status == "pending")
        .order_by(SmsMessage.created_at, SmsMessage.id)
    )
    if limit is not None:
        query = query.limit(limit)
    return [{"to": m.phone, "message": m.text, "uuid": m.uuid} for m in query.all()]


def mark_queued(db: Session, uuids: Iterable[str] | str | None) -> list[str]:
    """
    Record that the device has queued these messages for sending.

    Returns the uuids as given so the device can drop them from its list;
    unknown uuids are echoed too, otherwise the device would resend them
    forever.
    """
    uuids = [str(u) for u in flatten(uuids)]
    if uuids:
        rows = (
            db.query(SmsMessage)
            .filter(
                SmsMessage.direction == "out",
                SmsMessage.status == "pending",
                SmsMessage.uuid.in_(uuids),
            )
            .all()
        )
        for row in rows:
            row.status = "queued"
        db.commit()
    return uuids


def awaiting_delivery(db: Session) -> list[str]:
    rows = (
        db.query(SmsMessage.uuid)
        .filter(SmsMessage.direction == "out", SmsMessage.status == "queued")
        .order_by(SmsMessage.created_at, SmsMessage.id)
        .all()
    )
    return [r.uuid for r in rows]


def apply_delivery_reports(
    db: Session, reports: Sequence[DeliveryReport] | DeliveryReport | None
) -> int:
    """
    Update outgoing messages from device delivery reports.

    A non-zero sent result code marks the message failed; a zero delivered
    result code marks it delivered. Returns the number of rows updated.
    """
    updated = 0
    for report in flatten(reports):
        if not isinstance(report, Mapping) or not report.get("uuid"):
            continue

        row = (
            db.query(SmsMessage)
            .filter(SmsMessage.direction == "out", SmsMessage.uuid == str(report["uuid"]))
            .first()
        )
        if row is None:
            continue

        row.sent_result_code = _as_int(report.get("sent_result_code"))
        row.sent_result_message = report.get("sent_result_message")
        row.delivered_result_code = _as_int(report.get("delivered_result_code"))
        row.delivered_result_message = report.get("delivered_result_message")

        if row.sent_result_code not in (None, 0):
            row.status = "failed"
        elif row.delivered_result_code == 0:
            row.status = "delivered"
        updated += 1

    db.commit()
    return updated


def recent_messages(db: Session, limit: int, direction: str | None = None) -> list[SmsMessage]:
    query = db.query(SmsMessage)
    if direction:
        query = query.filter(SmsMessage.direction == direction)
    return query.order_by(SmsMessage.created_at.desc(), SmsMessage.id.desc()).limit(limit).all()
