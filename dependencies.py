# ─────────────────────────────────────────────────────────────────
# dependencies.py — Shared FastAPI Dependencies
# ─────────────────────────────────────────────────────────────────

from fastapi.requests import HTTPConnection

from store import StatusStore


def get_store(connection: HTTPConnection) -> StatusStore:
    """
    Returns the StatusStore owned by the running application.

    HTTPConnection covers both plain requests and websockets, so the
    same dependency serves every route. The store is attached in
    main.create_app().
    """
    return connection.app.state.store
