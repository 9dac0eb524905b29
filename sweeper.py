# ─────────────────────────────────────────────────────────────────
# sweeper.py — Background Expiry Sweep
#
# The store already hides expired entries on read. This loop
# physically removes them, so devices that stop reporting do not
# keep their last payload in memory forever.
#
# asyncio.sleep() pauses ONLY this coroutine. The server keeps
# handling requests and websocket frames while the sweeper waits.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging

from store import StatusStore

logger = logging.getLogger("sweeper")

# 1 minute, in seconds
DEFAULT_SWEEP_INTERVAL = 60.0


async def sweep_expired(store: StatusStore, interval: float = DEFAULT_SWEEP_INTERVAL):
    """
    Calls store.purge_expired() every `interval` seconds until cancelled.

    Started from the application lifespan (see main.py) and cancelled
    on shutdown. Cancellation is the normal way out of the loop, so it
    returns quietly instead of propagating.
    """

    if interval <= 0:
        raise ValueError(f"sweep interval must be positive, got {interval!r}")

    logger.info(f"🧹 Expiry sweep started | every {interval:g}s | ttl {store.ttl:g}s")

    try:
        while True:
            await asyncio.sleep(interval)

            removed = store.purge_expired()
            if removed:
                logger.info(f"🧹 Reclaimed {removed} expired device status entries")

    except asyncio.CancelledError:
        logger.info("🧹 Expiry sweep stopped")
        return
