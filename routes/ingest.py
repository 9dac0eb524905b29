# ─────────────────────────────────────────────────────────────────
# routes/ingest.py — Ingestion Endpoints (producers)
#
# Two ways a device status gets into the store:
#
#   WS  /measure/v1/ws      → devices push JSON notifications over a
#                             long-lived websocket
#   GET /measure/v1/report  → simple sensors call a URL with
#                             ?dev=...&temp=...&hum=...
#
# This file only knows HOW to receive and validate. Storage is
# StatusStore's job (store.py), injected via dependencies.get_store.
# ─────────────────────────────────────────────────────────────────

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from dependencies import get_store
from errors import EncodingError, ReportValidationError, TransportError
from models import METHOD_NOTIFY_FULL_STATUS, Envelope, ReportStatus
from store import StatusStore

logger = logging.getLogger("ingest")

router = APIRouter(
    prefix="/measure/v1",
    tags=["Ingest"]
)


def _reject_constant(token: str):
    # NaN and Infinity are not JSON, and stored frames are served back as-is
    raise ValueError(f"non-standard JSON token {token}")


def decode_envelope(raw: bytes) -> Envelope:
    """
    Parses the routing fields of a streamed message or raises TransportError.

    The whole frame must be strict UTF-8 JSON, since collect splices the
    stored bytes straight into its response.
    """
    try:
        document = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise TransportError(f"undecodable frame: {exc}") from exc

    try:
        return Envelope.model_validate(document)
    except ValidationError as exc:
        raise TransportError(f"undecodable envelope ({exc.error_count()} error(s))") from exc


def build_report(device: str, temperature: str, humidity: str) -> bytes:
    """
    Validates the report fields and returns the serialized document.

    Rules:
    - device must be set
    - at least one of temperature / humidity must be set
    """

    if not device:
        raise ReportValidationError("Parameter 'dev' is required.")

    if not temperature and not humidity:
        raise ReportValidationError("At least one of 'temp' or 'hum' is required.")

    report = ReportStatus(device=device, temperature=temperature, humidity=humidity)

    try:
        return report.model_dump_json().encode("utf-8")
    except PydanticSerializationError as exc:
        raise EncodingError(f"Could not serialize report for '{device}': {exc}") from exc


async def _read_frame(websocket: WebSocket) -> bytes:
    # Devices may send text or binary frames, both are kept as bytes
    message = await websocket.receive()

    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))

    if message.get("bytes") is not None:
        return message["bytes"]
    return message["text"].encode("utf-8")


# ─────────────────────────────────────────────────────────────────
# WS /measure/v1/ws — Streaming status notifications
# ─────────────────────────────────────────────────────────────────

@router.websocket("/ws")
async def stream_status(websocket: WebSocket, store: StatusStore = Depends(get_store)):
    """
    Reads notifications from one device connection until it goes away.

    Flow, per frame:
    1. Read the frame (text or binary)
    2. Decode the envelope → undecodable closes THIS connection only
    3. NotifyFullStatus → store the entire frame under envelope.src
    4. Any other method → skip it and keep reading

    Nothing is ever sent back to the device.
    """

    await websocket.accept()
    peer = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    logger.info(f"🔌 Stream opened from {peer}")

    try:
        while True:
            raw = await _read_frame(websocket)
            logger.debug(f"recv from {peer}: {raw!r}")

            envelope = decode_envelope(raw)

            if envelope.method != METHOD_NOTIFY_FULL_STATUS:
                continue

            store.put(envelope.src, raw)
            logger.debug(f"📥 Full status stored for '{envelope.src}' ({len(raw)} bytes)")

    except WebSocketDisconnect as exc:
        logger.info(f"🔌 Stream from {peer} closed by client (code {exc.code})")

    except TransportError as exc:
        logger.warning(f"⚠️  Dropping stream from {peer}: {exc}")
        await websocket.close(code=status.WS_1007_INVALID_FRAME_PAYLOAD_DATA)


# ─────────────────────────────────────────────────────────────────
# GET /measure/v1/report — One-shot sensor report
# ─────────────────────────────────────────────────────────────────

@router.get("/report")
def report_status(
    dev: str = Query("", description="Device identifier"),
    temp: str = Query("", description="Temperature, kept as sent"),
    hum: str = Query("", description="Humidity, kept as sent"),
    store: StatusStore = Depends(get_store),
):
    """
    Stores a small status document built from query parameters.

    e.g. /measure/v1/report?dev=dev-2&temp=21.5

    Invalid requests get a 400 and never touch the store.
    """

    try:
        document = build_report(dev, temp, hum)
    except (ReportValidationError, EncodingError) as exc:
        logger.warning(f"❌ Report rejected (dev='{dev}'): {exc}")
        raise HTTPException(status_code=400, detail=str(exc))

    store.put(dev, document)

    logger.info(f"📥 Report stored for '{dev}' | temp: '{temp}' | hum: '{hum}'")

    return {}
