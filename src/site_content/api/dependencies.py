from fastapi import HTTPException, Request

from ..content.snapshot import Snapshot
from ..content.store import SnapshotStore


def get_snapshot_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def require_snapshot(request: Request) -> Snapshot:
    """
    Resolve the current snapshot, or fail with 503 before the first load.

    Serving before the first load is a degraded state, not a crash.
    """
    snapshot = get_snapshot_store(request).load()
    if snapshot is None:
        raise HTTPException(status_code=503, detail="Content not loaded yet")
    return snapshot
