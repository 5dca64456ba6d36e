"""
HTTP error handling.

Content pipeline failures never reach a request: the refresh loop absorbs
them and readers keep the previous snapshot. A route that still raises gets
a 500 naming the failed path and the snapshot it was served from, so a
report can be matched to a mirror commit; the exception itself only goes to
the log.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("site.errors")


def _served_revision(request: Request):
    store = getattr(request.app.state, "store", None)
    snapshot = store.load() if store is not None else None
    return snapshot.revision if snapshot is not None else None


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    revision = _served_revision(request)
    logger.error(
        "%s %s failed (content revision %s)",
        request.method,
        request.url.path,
        revision,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "request_failed",
            "path": request.url.path,
            "revision": revision,
        },
    )
