# ─────────────────────────────────────────────────────────────────
# config.py — Runtime Settings
#
# Three sources, later ones win:
#   1. DEFAULTS below
#   2. MEASURE_* environment variables  e.g. MEASURE_CACHE_TTL=30m
#   3. command line flags               e.g. --cache-ttl 30m
#
# Durations accept "3h", "1h30m", "90s", "250ms" or plain seconds.
# ─────────────────────────────────────────────────────────────────

import argparse
import math
import os
import re
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, field_validator

from store import DEFAULT_TTL
from sweeper import DEFAULT_SWEEP_INTERVAL

ENV_PREFIX = "MEASURE_"

DEFAULTS = {
    "host": "0.0.0.0",
    "port": 8080,
    "tls_cert": "",
    "tls_key": "",
    "cache_ttl": DEFAULT_TTL,
    "sweep_interval": DEFAULT_SWEEP_INTERVAL,
    "shutdown_timeout": 10.0,
    "log_level": "INFO",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value) -> float:
    """Converts "1h30m" style strings (or plain numbers) to seconds."""
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if not text or position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


class Settings(BaseModel):
    host: str = DEFAULTS["host"]
    port: int = DEFAULTS["port"]
    tls_cert: str = DEFAULTS["tls_cert"]
    tls_key: str = DEFAULTS["tls_key"]
    cache_ttl: float = DEFAULTS["cache_ttl"]
    sweep_interval: float = DEFAULTS["sweep_interval"]
    shutdown_timeout: float = DEFAULTS["shutdown_timeout"]
    log_level: str = DEFAULTS["log_level"]

    @field_validator("cache_ttl", "sweep_interval", "shutdown_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        seconds = parse_duration(value)
        if not math.isfinite(seconds) or seconds <= 0:
            raise ValueError("duration must be positive and finite")
        return seconds

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def tls_enabled(self) -> bool:
        # Both halves are needed, same as uvicorn's ssl_certfile/ssl_keyfile
        return bool(self.tls_cert and self.tls_key)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="measure",
        description="Caches the last status reported by each IoT device and serves it over HTTP."
    )
    # default=None everywhere so unset flags fall through to env/defaults
    parser.add_argument("--host", default=None, help="Interface to bind.")
    parser.add_argument("--port", type=int, default=None, help="Listening port for webserver.")
    parser.add_argument("--tls-cert", default=None, help="Path to TLS certificate. Needs --tls-key too.")
    parser.add_argument("--tls-key", default=None, help="Path to TLS key. Needs --tls-cert too.")
    parser.add_argument("--cache-ttl", default=None, help="How long a device status stays in cache (e.g. 3h).")
    parser.add_argument("--sweep-interval", default=None, help="How often expired entries are reclaimed (e.g. 1m).")
    parser.add_argument("--shutdown-timeout", default=None, help="Grace period for in-flight requests on shutdown.")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return parser


def load_settings(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Merges defaults, MEASURE_* environment variables and command line flags."""

    if environ is None:
        environ = os.environ

    values = dict(DEFAULTS)

    for name in DEFAULTS:
        env_value = environ.get(ENV_PREFIX + name.upper())
        if env_value:
            values[name] = env_value

    args = build_parser().parse_args(argv)
    for name, flag_value in vars(args).items():
        if flag_value is not None:
            values[name] = flag_value

    return Settings(**values)
