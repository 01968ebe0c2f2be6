"""FastAPI application factory.

Lifespan
--------
Unless a :class:`~rankbridge.service.BridgeService` was handed to
:func:`create_app`, startup opens the SQLite content store, initialises the
schema and builds the service (stored on ``app.state.bridge``).  Shutdown
closes the connection it opened.

Routers
-------
    /breakdance-rankmath/v1    rendered content, editor bootstrap
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from rankbridge import __version__
from rankbridge.api.routers import rendered_content as rendered_content_router
from rankbridge.cms import get_connection, init_db
from rankbridge.config import settings
from rankbridge.logging_setup import configure_logging
from rankbridge.service import BridgeService, build_service

API_PREFIX = "/breakdance-rankmath/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the bridge service on startup unless one was injected."""
    if getattr(app.state, "bridge", None) is not None:
        yield
        return

    configure_logging(settings)
    conn = get_connection()
    init_db(conn)
    app.state.bridge = build_service(conn, settings)
    try:
        yield
    finally:
        conn.close()


def create_app(service: Optional[BridgeService] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="rankbridge API",
        description=(
            "Supplies SEO content analysis with the rendered output of "
            "page-builder content items."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    if service is not None:
        app.state.bridge = service

    app.include_router(
        rendered_content_router.router, prefix=API_PREFIX, tags=["rendered-content"]
    )

    return app


# Module-level instance used by uvicorn:
#   uvicorn rankbridge.api.app:app
app = create_app()
