# ─────────────────────────────────────────────────────────────────
# routes/collect.py — Query Endpoint (the only consumer surface)
#
#   GET /measure/v1/collect                 → every live device
#   GET /measure/v1/collect?device=dev-1    → one device, 404 if absent
#
# Payloads are already JSON documents, so they are spliced into the
# response body as-is instead of being parsed and re-encoded.
# ─────────────────────────────────────────────────────────────────

import json
import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from dependencies import get_store
from errors import NotFoundError
from store import StatusStore

logger = logging.getLogger("collect")

router = APIRouter(
    prefix="/measure/v1",
    tags=["Collect"]
)


def _json_response(body: bytes) -> Response:
    return Response(content=body, media_type="application/json")


def render_status(payload: bytes) -> bytes:
    """{"status": <payload>}"""
    return b'{"status":' + payload + b"}"


def render_devices(snapshot: Dict[str, bytes]) -> bytes:
    """{"devices": {"<id>": <payload>, ...}}"""
    members = [
        json.dumps(device_id).encode("utf-8") + b":" + payload
        for device_id, payload in snapshot.items()
    ]
    return b'{"devices":{' + b",".join(members) + b"}}"


@router.get("/collect")
def collect_status(
    device: str = Query("", description="Only return this device"),
    store: StatusStore = Depends(get_store),
):
    """
    Returns the last known status of one device, or of all of them.
    Read-only, nothing in the store changes here.

    A miss for one device is a 404 carrying only FastAPI's
    {"detail": "..."} body, never a "status" key.
    """

    if device:
        try:
            payload = store.get(device)
        except NotFoundError as exc:
            logger.debug(f"🔍 Collect miss for '{device}'")
            raise HTTPException(status_code=404, detail=str(exc))

        return _json_response(render_status(payload))

    snapshot = store.get_all()
    logger.debug(f"🔍 Collect all | {len(snapshot)} device(s)")

    return _json_response(render_devices(snapshot))
