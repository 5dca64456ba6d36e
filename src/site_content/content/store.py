"""
Snapshot Store

Holds the currently published `Snapshot` behind a single reference.

Concurrency model
-----------------
- `load()` is one attribute read: constant time, never blocks, never takes a
  lock, and returns either the old or the new snapshot in full.
- `store()` rebinds that attribute in one step. Writers are serialised by a
  lock that readers never touch, so the publish counter stays consistent
  with the published reference.
- Snapshots are immutable, so handing the same instance to many readers is
  safe without copying.
"""

from __future__ import annotations

from threading import Lock
from typing import Optional

from .snapshot import Snapshot


class SnapshotStore:
    """
    Process-wide holder of the latest content snapshot.

    Created empty by the application's composition root and passed to every
    component that needs it; `load()` returns None until the first
    successful load has been published.
    """

    def __init__(self, initial: Optional[Snapshot] = None) -> None:
        self._snapshot: Optional[Snapshot] = None
        self._version = 0
        self._write_lock = Lock()
        if initial is not None:
            self.store(initial)

    def load(self) -> Optional[Snapshot]:
        """Return the most recently published snapshot, or None."""
        return self._snapshot

    def store(self, snapshot: Snapshot) -> None:
        """Publish `snapshot`, replacing the current one atomically."""
        if not isinstance(snapshot, Snapshot):
            raise TypeError(
                f"SnapshotStore only publishes Snapshot instances, got {type(snapshot).__name__}"
            )
        with self._write_lock:
            self._snapshot = snapshot
            self._version += 1

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version
