from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketDisconnect

from errors import ReportValidationError, TransportError
from routes.ingest import build_report, decode_envelope
from store import StatusStore

WS_PATH = "/measure/v1/ws"

FULL_STATUS = b'{"src":"dev-1","dst":"ws","method":"NotifyFullStatus"}'


def _stream_then_break(ws, *frames: bytes) -> int:
    """
    Sends frames, then a broken one. The server closes the connection on
    the broken frame, so once the close arrives every earlier frame has
    been handled. Returns the close code.
    """
    for frame in frames:
        ws.send_bytes(frame)
    ws.send_text("this is not json")
    with pytest.raises(WebSocketDisconnect) as exc_info:
        ws.receive_text()
    return exc_info.value.code


# ── envelope / report helpers ─────────────────────────────────────


def test_decode_envelope_ignores_extra_fields() -> None:
    envelope = decode_envelope(
        b'{"src":"shellyplusht-1","dst":"ws","method":"NotifyFullStatus","params":{"ts":1}}'
    )

    assert envelope.src == "shellyplusht-1"
    assert envelope.dst == "ws"
    assert envelope.method == "NotifyFullStatus"


def test_decode_envelope_defaults_missing_fields() -> None:
    envelope = decode_envelope(b'{"method":"NotifyEvent"}')

    assert envelope.src == ""
    assert envelope.dst == ""


def test_decode_envelope_treats_null_fields_as_empty() -> None:
    envelope = decode_envelope(b'{"src":null,"dst":null,"method":"NotifyFullStatus"}')

    assert envelope.src == ""
    assert envelope.dst == ""
    assert envelope.method == "NotifyFullStatus"


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[1, 2]",
        b'{"src": 42}',
        b"\xff\xfe",
        b'{"src":"dev-1","method":"NotifyFullStatus","params":{"t":NaN}}',
        b'{"src":"dev-1","method":"NotifyFullStatus","v":Infinity}',
        b'{"src":"dev-1","method":"NotifyFullStatus","v":-Infinity}',
    ],
)
def test_decode_envelope_rejects_garbage(raw: bytes) -> None:
    with pytest.raises(TransportError):
        decode_envelope(raw)


def test_build_report_serializes_all_fields() -> None:
    document = build_report("dev-2", "21.5", "")

    assert json.loads(document) == {"device": "dev-2", "temperature": "21.5", "humidity": ""}


@pytest.mark.parametrize(
    "device, temperature, humidity",
    [("", "21.5", "40"), ("dev-2", "", "")],
)
def test_build_report_rejects_incomplete(device: str, temperature: str, humidity: str) -> None:
    with pytest.raises(ReportValidationError):
        build_report(device, temperature, humidity)


# ── WS /measure/v1/ws ─────────────────────────────────────────────


def test_full_status_is_stored_verbatim(client: TestClient, store: StatusStore) -> None:
    with client.websocket_connect(WS_PATH) as ws:
        code = _stream_then_break(ws, FULL_STATUS)

    assert code == 1007
    assert store.get("dev-1") == FULL_STATUS

    response = client.get("/measure/v1/collect", params={"device": "dev-1"})
    assert response.status_code == 200
    assert response.content == b'{"status":' + FULL_STATUS + b"}"


def test_text_frames_are_stored_too(client: TestClient, store: StatusStore) -> None:
    with client.websocket_connect(WS_PATH) as ws:
        ws.send_text(FULL_STATUS.decode("utf-8"))
        _stream_then_break(ws)

    assert store.get("dev-1") == FULL_STATUS


@pytest.mark.parametrize("method", ["NotifyStatus", "NotifyEvent", "SomethingElse", ""])
def test_other_methods_are_skipped(client: TestClient, store: StatusStore, method: str) -> None:
    frame = json.dumps({"src": "dev-1", "dst": "ws", "method": method}).encode("utf-8")

    with client.websocket_connect(WS_PATH) as ws:
        _stream_then_break(ws, frame)

    assert store.get_all() == {}
    response = client.get("/measure/v1/collect", params={"device": "dev-1"})
    assert response.status_code == 404


def test_latest_full_status_wins(client: TestClient, store: StatusStore) -> None:
    second = b'{"src":"dev-1","dst":"ws","method":"NotifyFullStatus","params":{"n":2}}'

    with client.websocket_connect(WS_PATH) as ws:
        _stream_then_break(ws, FULL_STATUS, b'{"src":"dev-1","method":"NotifyStatus"}', second)

    assert store.get("dev-1") == second


def test_missing_src_is_stored_under_empty_id(client: TestClient, store: StatusStore) -> None:
    frame = b'{"method":"NotifyFullStatus"}'

    with client.websocket_connect(WS_PATH) as ws:
        _stream_then_break(ws, frame)

    assert store.get("") == frame


def test_bad_frame_closes_only_its_connection(client: TestClient, store: StatusStore) -> None:
    with client.websocket_connect(WS_PATH) as healthy:
        with client.websocket_connect(WS_PATH) as broken:
            assert _stream_then_break(broken) == 1007

        _stream_then_break(healthy, FULL_STATUS)

    assert store.get("dev-1") == FULL_STATUS


def test_client_disconnect_keeps_stored_status(client: TestClient, store: StatusStore) -> None:
    with client.websocket_connect(WS_PATH) as ws:
        _stream_then_break(ws, FULL_STATUS)

    with client.websocket_connect(WS_PATH) as ws:
        ws.close()

    assert store.get("dev-1") == FULL_STATUS


def test_non_standard_number_closes_stream_and_stores_nothing(client: TestClient, store: StatusStore) -> None:
    frame = b'{"src":"dev-bad","method":"NotifyFullStatus","params":{"t":NaN}}'

    with client.websocket_connect(WS_PATH) as ws:
        ws.send_bytes(frame)
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    assert exc_info.value.code == 1007
    assert store.get_all() == {}

    response = client.get("/measure/v1/collect")
    assert response.json() == {"devices": {}}


def test_null_src_is_stored_under_empty_id(client: TestClient, store: StatusStore) -> None:
    frame = b'{"src":null,"method":"NotifyFullStatus"}'

    with client.websocket_connect(WS_PATH) as ws:
        _stream_then_break(ws, frame)

    assert store.get("") == frame



# ── GET /measure/v1/report ────────────────────────────────────────


def test_report_stores_document(client: TestClient) -> None:
    response = client.get("/measure/v1/report", params={"dev": "dev-2", "temp": "21.5", "hum": ""})

    assert response.status_code == 200
    assert response.json() == {}

    collected = client.get("/measure/v1/collect", params={"device": "dev-2"})
    assert collected.status_code == 200
    assert collected.json()["status"]["device"] == "dev-2"
    assert collected.json()["status"]["temperature"] == "21.5"


def test_report_with_humidity_only(client: TestClient, store: StatusStore) -> None:
    response = client.get("/measure/v1/report", params={"dev": "dev-3", "hum": "55"})

    assert response.status_code == 200
    assert json.loads(store.get("dev-3"))["humidity"] == "55"


def test_report_without_device_is_rejected(client: TestClient, store: StatusStore) -> None:
    response = client.get("/measure/v1/report", params={"dev": "", "temp": "21.5"})

    assert response.status_code == 400
    assert store.get_all() == {}


def test_report_without_measurements_is_rejected(client: TestClient, store: StatusStore) -> None:
    store.put("dev-2", b'{"old":true}')

    response = client.get("/measure/v1/report", params={"dev": "dev-2"})

    assert response.status_code == 400
    assert store.get("dev-2") == b'{"old":true}'


def test_report_replaces_streamed_status(client: TestClient, store: StatusStore) -> None:
    with client.websocket_connect(WS_PATH) as ws:
        _stream_then_break(ws, FULL_STATUS)

    client.get("/measure/v1/report", params={"dev": "dev-1", "temp": "19"})

    assert json.loads(store.get("dev-1")) == {"device": "dev-1", "temperature": "19", "humidity": ""}