# ─────────────────────────────────────────────────────────────────
# logging_config.py — Logging Setup
#
# One format for ALL log messages:
# %(asctime)s    → timestamp e.g. "2026-03-01 10:34:22"
# %(levelname)s  → severity e.g. "INFO", "WARNING"
# %(name)s       → which logger sent this e.g. "ingest"
# %(message)s    → the actual message
#
# Every module creates its own named logger with
# logging.getLogger("<module>") and never configures handlers itself.
# ─────────────────────────────────────────────────────────────────

import logging

LOG_FORMAT = "%(asctime)s — %(levelname)s — [%(name)s] — %(message)s"


def configure_logging(level: str = "INFO"):
    """Applies the service-wide log format and level. Safe to call twice."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True
    )
