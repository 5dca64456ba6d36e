from fastapi import APIRouter, Depends

from .dependencies import get_snapshot_store, require_snapshot
from .models import ContentStatus, HealthResponse
from ..content.snapshot import Snapshot
from ..content.store import SnapshotStore

router = APIRouter(tags=["health"])


def _status(snapshot: Snapshot, store: SnapshotStore) -> ContentStatus:
    return ContentStatus(**snapshot.summary(), version=store.version)


@router.get("/health", response_model=HealthResponse)
def health(store: SnapshotStore = Depends(get_snapshot_store)):
    snapshot = store.load()
    if snapshot is None:
        return HealthResponse(status="loading")
    return HealthResponse(status="ok", content=_status(snapshot, store))


@router.get("/content/status", response_model=ContentStatus)
def content_status(
    snapshot: Snapshot = Depends(require_snapshot),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    return _status(snapshot, store)
