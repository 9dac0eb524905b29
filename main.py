# ─────────────────────────────────────────────────────────────────
# main.py — Application Setup & Entry Point
#
# Builds the FastAPI app and owns the one StatusStore instance.
# The store is created here, attached to app.state and handed to
# the routes through dependencies.get_store. No module-level
# globals are shared between files.
#
# Run it:
#   python main.py --port 8080 --cache-ttl 3h
#   uvicorn --factory main:create_app_from_env   (MEASURE_* env vars)
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI

from config import Settings, load_settings
from logging_config import configure_logging
from routes import collect, ingest
from store import StatusStore
from sweeper import sweep_expired

__version__ = "1.0.0"

logger = logging.getLogger("main")


def create_app(settings: Optional[Settings] = None, store: Optional[StatusStore] = None) -> FastAPI:
    """
    Builds the application around a StatusStore.

    Passing a store lets tests control its clock and TTL; otherwise one
    is created with settings.cache_ttl.
    """

    if settings is None:
        settings = Settings()
    if store is None:
        store = StatusStore(ttl=settings.cache_ttl)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # The sweeper lives exactly as long as the server does
        sweeper = asyncio.create_task(sweep_expired(store, settings.sweep_interval))
        logger.info(f"✅ Measure started | cache ttl: {store.ttl:g}s")
        try:
            yield
        finally:
            sweeper.cancel()
            await sweeper
            logger.info("🛑 Measure stopped")

    app = FastAPI(
        title="Measure",
        description="Last known status of IoT devices, pushed over websocket or reported over HTTP",
        version=__version__,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.store = store

    app.include_router(ingest.router)
    app.include_router(collect.router)

    # ─────────────────────────────────────────────────────────────
    # GET / — Health check
    # ─────────────────────────────────────────────────────────────

    @app.get("/")
    def root():
        return {
            "message": "Measure is running",
            "version": __version__,
            "docs": "/docs",
            "devices": len(store)
        }

    return app


def create_app_from_env() -> FastAPI:
    """
    App factory for `uvicorn --factory main:create_app_from_env`.

    Settings come from MEASURE_* environment variables only, and are read
    when uvicorn calls this, not when the module is imported.
    """
    settings = load_settings(argv=[])
    configure_logging(settings.log_level)
    return create_app(settings)


def main(argv: Optional[Sequence[str]] = None):
    settings = load_settings(argv)
    configure_logging(settings.log_level)

    options = {}
    if settings.tls_enabled:
        options["ssl_certfile"] = settings.tls_cert
        options["ssl_keyfile"] = settings.tls_key
        logger.info(f"🔒 TLS enabled | cert: {settings.tls_cert}")
    elif settings.tls_cert or settings.tls_key:
        logger.warning("⚠️  TLS needs both --tls-cert and --tls-key, serving plain HTTP")

    # uvicorn handles SIGINT/SIGTERM: in-flight requests finish,
    # open websockets are closed, then the lifespan stops the sweeper
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.shutdown_timeout,
        **options
    )


if __name__ == "__main__":
    main()
