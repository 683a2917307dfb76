from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from smssync.config import SmsSyncConfig
from smssync.dispatcher import Handlers
from smssync.errors import SmsSyncError
from smssync.router import create_router

SMS = {
    "from": "+1",
    "message": "hi",
    "message_id": "m1",
    "sent_to": "+2",
    "device_id": "d1",
    "sent_timestamp": "t1",
}


def echo_reply(message: dict[str, Any]) -> dict[str, Any]:
    return {"to": message["from"], "uuid": message["message_id"], "message": message["message"]}


def failing(*args: Any) -> Any:
    raise RuntimeError("handler exploded")


def make_app(config: SmsSyncConfig | None = None, **overrides: Any) -> FastAPI:
    handlers: dict[str, Any] = {
        "on_receive": echo_reply,
        "on_send": lambda: [{"to": "+1", "message": "x", "uuid": "u1"}],
        "on_sent": lambda queued: queued,
        "on_queued": lambda: ["u1"],
        "on_delivered": lambda reports: None,
    }
    handlers.update(overrides)
    app = FastAPI()
    app.include_router(create_router(config or SmsSyncConfig(), Handlers(**handlers)))
    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(make_app())


def test_receive_message_replies(client: TestClient) -> None:
    resp = client.post("/smssync?secret=smssync", json=SMS)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {
        "payload": {
            "success": True,
            "task": "send",
            "messages": [{"to": "+1", "uuid": "m1", "message": "hi"}],
        }
    }


def test_send_poll(client: TestClient) -> None:
    resp = client.get("/smssync?secret=smssync")

    assert resp.status_code == 200
    assert resp.json() == {
        "payload": {
            "task": "send",
            "secret": "smssync",
            "messages": [{"to": "+1", "message": "x", "uuid": "u1"}],
        }
    }


def test_sent_ack(client: TestClient) -> None:
    resp = client.post("/smssync?task=sent&secret=smssync", json={"queued_messages": ["u1"]})

    assert resp.json() == {"queued_messages": ["u1"]}


def test_missing_secret(client: TestClient) -> None:
    resp = client.get("/smssync")

    assert resp.status_code == 200
    assert resp.json() == {"payload": {"success": False, "error": "Secret Key Mismatch"}}


def test_secret_in_body(client: TestClient) -> None:
    resp = client.post("/smssync", json={**SMS, "secret": "smssync"})

    assert resp.json()["payload"]["success"] is True


def test_delivery_result_without_secret(client: TestClient) -> None:
    reports = [
        {
            "uuid": "u1",
            "sent_result_code": 0,
            "sent_result_message": "SMSSync Message Sent",
            "delivered_result_code": -1,
            "delivered_result_message": "",
        }
    ]
    resp = client.post("/smssync?task=result", json={"message_result": reports})

    assert resp.json() == {"payload": {"success": True, "error": None}}


def test_queued_poll(client: TestClient) -> None:
    resp = client.get("/smssync?task=result&secret=smssync")

    assert resp.json() == {"message_uuids": ["u1"]}


def test_form_encoded_receive() -> None:
    seen: list[dict[str, Any]] = []

    def on_receive(message: dict[str, Any]) -> None:
        seen.append(message)

    client = TestClient(make_app(on_receive=on_receive))
    resp = client.post("/smssync", data={**SMS, "secret": "smssync"})

    assert resp.json() == {"payload": {"success": True, "error": None}}
    assert seen[0]["message_id"] == "m1"
    assert "secret" not in seen[0]


def test_form_encoded_sent_ack(client: TestClient) -> None:
    resp = client.post("/smssync?task=sent", data={"queued_messages[]": ["u1", "u2"]})

    assert resp.json() == {"queued_messages": ["u1", "u2"]}


def test_malformed_json_is_rejected(client: TestClient) -> None:
    resp = client.post(
        "/smssync?secret=smssync",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 400


def test_custom_endpoint_and_secret() -> None:
    client = TestClient(make_app(SmsSyncConfig(endpoint="/gateway", secret="k")))

    assert client.get("/gateway?secret=k").json()["payload"]["secret"] == "k"
    assert client.get("/smssync?secret=k").status_code == 404


def test_reply_disabled() -> None:
    client = TestClient(make_app(SmsSyncConfig(reply=False)))

    resp = client.post("/smssync?secret=smssync", json=SMS)

    assert resp.json() == {"payload": {"success": True, "error": None}}


def test_handler_failure_inline() -> None:
    client = TestClient(make_app(on_send=failing))

    resp = client.get("/smssync?secret=smssync")

    assert resp.status_code == 200
    assert resp.json() == {"payload": {"success": False, "error": "handler exploded"}}


def test_errors_forwarded_to_exception_handler() -> None:
    app = make_app(SmsSyncConfig(inline_errors=False), on_receive=failing)

    @app.exception_handler(SmsSyncError)
    async def handle(request: Request, exc: SmsSyncError) -> JSONResponse:
        return JSONResponse({"forwarded": exc.message, "kind": type(exc).__name__}, status_code=500)

    client = TestClient(app)

    resp = client.post("/smssync?secret=smssync", json=SMS)
    assert resp.status_code == 500
    assert resp.json() == {"forwarded": "handler exploded", "kind": "ReceiveFailed"}

    resp = client.get("/smssync")
    assert resp.json() == {"forwarded": "Secret Key Mismatch", "kind": "AuthenticationFailed"}


def test_routers_are_independent() -> None:
    app = FastAPI()
    handlers = Handlers(
        on_receive=lambda m: None,
        on_send=lambda: [],
        on_sent=lambda q: q,
        on_queued=lambda: [],
        on_delivered=lambda r: None,
    )
    app.include_router(create_router(SmsSyncConfig(endpoint="a", secret="one"), handlers))
    app.include_router(create_router(SmsSyncConfig(endpoint="b", secret="two"), handlers))
    client = TestClient(app)

    assert client.get("/a?secret=one").json()["payload"]["secret"] == "one"
    assert client.get("/b?secret=one").json()["payload"]["error"] == "Secret Key Mismatch"
    assert client.get("/b?secret=two").json()["payload"]["secret"] == "two"


def test_unsupported_content_type_reads_as_empty_body() -> None:
    seen: list[dict[str, Any]] = []

    def on_receive(message: dict[str, Any]) -> None:
        seen.append(message)

    client = TestClient(make_app(on_receive=on_receive))
    resp = client.post(
        "/smssync?secret=smssync",
        content=b"from=+1 message=hi",
        headers={"content-type": "text/plain"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"payload": {"success": True, "error": None}}
    assert set(seen[0]) == {"hash"}


def test_vendor_json_content_type_is_decoded() -> None:
    client = TestClient(make_app())
    resp = client.post(
        "/smssync?task=sent",
        content=b'{"queued_messages": ["u1"]}',
        headers={"content-type": "application/vnd.smssync+json"},
    )

    assert resp.json() == {"queued_messages": ["u1"]}
