# ─────────────────────────────────────────────────────────────────
# models.py — Data Models (Pydantic Schemas)
#
# All wire shapes live here:
#   - Envelope      → the routing header on every streamed message
#   - ReportStatus  → the document built from a one-shot report
#
# Pydantic rejects a malformed envelope before it reaches the store.
# ─────────────────────────────────────────────────────────────────

from pydantic import BaseModel, field_validator

# Method tags sent by the devices over the websocket.
# Only a full status notification is written to the store.
METHOD_NOTIFY_FULL_STATUS = "NotifyFullStatus"
METHOD_NOTIFY_STATUS = "NotifyStatus"    # partial status, ignored
METHOD_NOTIFY_EVENT = "NotifyEvent"      # device event, ignored


class Envelope(BaseModel):
    """
    The routing fields every streamed message carries, e.g.

    {
        "src": "shellyplusht-08b61fcf",
        "dst": "ws",
        "method": "NotifyFullStatus",
        "params": {...}
    }

    Anything besides these three fields is ignored here. The store
    keeps the whole original message, not this model.
    Missing or null fields decode as empty strings.
    """

    src: str = ""     # device that sent the message, used as the store key
    dst: str = ""     # destination the device addressed
    method: str = ""  # notification kind

    @field_validator("src", "dst", "method", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return "" if value is None else value


class ReportStatus(BaseModel):
    """
    The document stored for a one-shot report, e.g.

    {"device": "dev-2", "temperature": "21.5", "humidity": ""}

    Measurements stay strings. This layer never parses them as numbers.
    """

    device: str
    temperature: str = ""
    humidity: str = ""
