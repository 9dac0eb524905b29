# ─────────────────────────────────────────────────────────────────
# store.py — In-Memory Device Status Store
#
# This file owns all data storage for the application.
# The websocket reader, the report handler and the collect handler
# all go through StatusStore. None of them touch the dict directly.
#
# Structure of the mapping:
#   Key   → device id (string) e.g. "shellyplusht-08b61fcf"
#   Value → StatusEntry (raw payload bytes + expiry deadline)
#
# Resets on server restart. Only the last status per device is kept.
# ─────────────────────────────────────────────────────────────────

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from errors import NotFoundError

logger = logging.getLogger("store")

# 3 hours, in seconds
DEFAULT_TTL = 3 * 60 * 60


@dataclass(frozen=True)
class StatusEntry:
    """One device's last known status and the moment it stops being valid."""

    device_id: str
    payload: bytes     # stored verbatim, never parsed here
    expires_at: float  # clock() value after which the entry is absent

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class StatusStore:
    """
    Thread-safe mapping of device id → last status payload with a fixed TTL.

    Expiry is lazy: get() and get_all() never return an entry past its
    deadline, whether or not it has been physically removed yet.
    purge_expired() reclaims memory from devices that stopped reporting
    and is driven by the background sweeper (see sweeper.py).

    Callers run on the event loop (websocket readers) and on FastAPI's
    thread pool (plain `def` routes), so every access holds one lock.
    Nothing inside the lock does I/O or logging.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        if not math.isfinite(ttl) or ttl <= 0:
            raise ValueError(f"ttl must be a positive finite number, got {ttl!r}")
        self._ttl = float(ttl)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, StatusEntry] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def put(self, device_id: str, payload: bytes) -> StatusEntry:
        """
        Inserts or replaces the entry for device_id and resets its TTL.
        Overwrites silently, the newest write always wins.
        """
        payload = bytes(payload)
        with self._lock:
            entry = StatusEntry(
                device_id=device_id,
                payload=payload,
                expires_at=self._clock() + self._ttl,
            )
            self._entries[device_id] = entry
        return entry

    def get(self, device_id: str) -> bytes:
        """Returns the live payload for device_id or raises NotFoundError."""
        with self._lock:
            entry = self._entries.get(device_id)
            if entry is not None and entry.is_expired(self._clock()):
                # Expired but not swept yet, drop it now
                del self._entries[device_id]
                entry = None

        if entry is None:
            raise NotFoundError(device_id)
        return entry.payload

    def get_all(self) -> Dict[str, bytes]:
        """Snapshot of every live entry. Iteration order is unspecified."""
        with self._lock:
            now = self._clock()
            return {
                device_id: entry.payload
                for device_id, entry in self._entries.items()
                if not entry.is_expired(now)
            }

    def purge_expired(self) -> int:
        """Removes every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                device_id
                for device_id, entry in self._entries.items()
                if entry.is_expired(now)
            ]
            for device_id in expired:
                del self._entries[device_id]

        if expired:
            logger.debug(f"Purged {len(expired)} expired entries: {expired}")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._entries.values() if not entry.is_expired(now))
