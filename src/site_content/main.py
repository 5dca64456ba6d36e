"""
Application Entry Point

Composition root for the content service: builds the snapshot store, wires
it into the HTTP layer, performs the initial content load and owns the
background refresh task.

Startup order
-------------
1. Resolve settings (a configuration error aborts startup)
2. Configure logging
3. Sync the mirror and load the first snapshot, blocking; a failure aborts
   startup because there is nothing to serve
4. Start the background refresh task

Run with:

    uvicorn site_content.main:app
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI

from .api import health_routes
from .config import Settings, get_settings
from .content.refresh import ContentRefresher, stop_refresher
from .content.store import SnapshotStore
from .core.errors import unhandled_exception_handler
from .logging_setup import configure_logging


logger = logging.getLogger("site.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[SnapshotStore] = None,
    refresher: Optional[ContentRefresher] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Explicit settings; read from the environment at startup when omitted.

    store : Optional[SnapshotStore]
        Store shared with the request handlers. A new empty store is created
        when omitted.

    refresher : Optional[ContentRefresher]
        Pre-built refresher (tests inject one with fake sync/load steps).
        Built from settings at startup when omitted.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    if store is None:
        store = refresher.store if refresher is not None else SnapshotStore()

    app = FastAPI(
        title="site-content-server",
        version="1.0.0",
    )

    app.state.store = store
    app.state.refresher = refresher
    app.state.refresh_task = None

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)

    # --------------------------------------------------------------
    # Startup: initial load, then background refresh
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup() -> None:
        refresher = app.state.refresher
        if refresher is None:
            cfg = settings or get_settings()
            configure_logging(cfg.log_level, cfg.log_json)
            refresher = ContentRefresher(cfg.sync_config(), app.state.store)
            app.state.refresher = refresher

        logger.info("Starting site-content-server")

        # Blocks startup until the first snapshot is published.
        await asyncio.to_thread(refresher.initial_load)

        app.state.refresh_task = refresher.start()

    # --------------------------------------------------------------
    # Shutdown: stop background refresh
    # --------------------------------------------------------------

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        logger.info("Shutting down site-content-server")
        refresher = app.state.refresher
        await stop_refresher(
            app.state.refresh_task,
            refresher,
            timeout=refresher.config.timeout if refresher is not None else None,
        )
        app.state.refresh_task = None

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
