# ─────────────────────────────────────────────────────────────────
# errors.py — Error Taxonomy
#
# Every failure the service knows about has a class here.
# The store only ever raises NotFoundError. The adapters raise the
# rest and turn them into HTTP responses or a closed websocket at
# the boundary where they happen.
# ─────────────────────────────────────────────────────────────────


class MeasureError(Exception):
    """Base class for all errors raised by the measure service."""


class NotFoundError(MeasureError):
    """No live status entry exists for the requested device."""

    def __init__(self, device_id: str):
        super().__init__(f"No live status for device '{device_id}'.")
        self.device_id = device_id


class ReportValidationError(MeasureError):
    """A one-shot report request is missing required fields."""


class EncodingError(MeasureError):
    """A report document could not be serialized."""


class TransportError(MeasureError):
    """A streamed frame could not be read or decoded."""
