from __future__ import annotations

import argparse
import csv

from .db import SessionLocal, SmsMessage
from .store import recent_messages


def _format_str(value: str | None) -> str:
    """Normalise None/whitespace for display."""
    if value is None:
        return ""
    return value.strip()


def load_recent(limit: int, direction: str | None = None) -> list[SmsMessage]:
    db = SessionLocal()
    try:
        return recent_messages(db, limit=limit, direction=direction)
    finally:
        db.close()


def print_messages(messages: list[SmsMessage]) -> None:
    """Print messages in a human-readable form."""
    for m in messages:
        print("-" * 80)
        arrow = "<-" if m.direction == "in" else "->"
        print(f"#{m.id} {arrow} {m.phone} | status={m.status} | uuid={m.uuid} | at={m.created_at}")
        print(f"  {_format_str(m.text)}")
        if m.delivered_result_message or m.sent_result_message:
            print(
                f"  sent={m.sent_result_code}:{_format_str(m.sent_result_message)} "
                f"delivered={m.delivered_result_code}:{_format_str(m.delivered_result_message)}"
            )


def export_messages_csv(messages: list[SmsMessage], csv_path: str) -> None:
    with open(csv_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "id",
                "created_at",
                "uuid",
                "direction",
                "phone",
                "status",
                "text",
                "device_id",
                "sent_result_code",
                "delivered_result_code",
            ]
        )
        for m in messages:
            writer.writerow(
                [
                    m.id,
                    m.created_at.isoformat() if m.created_at else "",
                    m.uuid,
                    m.direction,
                    m.phone,
                    m.status,
                    _format_str(m.text),
                    m.device_id or "",
                    "" if m.sent_result_code is None else m.sent_result_code,
                    "" if m.delivered_result_code is None else m.delivered_result_code,
                ]
            )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Inspect recent SMS stored by the smssync reference app."
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of most recent messages to show/export (default: 20).",
    )
    parser.add_argument(
        "--direction",
        choices=["in", "out"],
        default=None,
        help="Only received (in) or outgoing (out) messages.",
    )
    parser.add_argument(
        "--csv",
        type=str,
        default="",
        help="Optional path to export messages as CSV. If omitted, only prints to stdout.",
    )
    args = parser.parse_args(argv)

    messages = load_recent(limit=args.limit, direction=args.direction)
    if args.csv:
        export_messages_csv(messages, csv_path=args.csv)
        print(f"Exported {len(messages)} messages to {args.csv}")
    else:
        print_messages(messages)


if __name__ == "__main__":
    main()
