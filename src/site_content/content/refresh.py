"""
Background content refresh.

`ContentRefresher` ties the mirror, the loader and the store together:

    idle wait --tick--> sync --ok--> load --ok--> publish --> idle wait
                          |            |
                          +--failure---+--> log, keep previous snapshot

Only one cycle runs at a time. If a cycle overruns the interval, the missed
ticks are skipped rather than queued. Cancelling the task stops the loop at
the idle wait, or abandons an in-flight cycle without publishing it.

Mirror lock
-----------
The blocking sync + load runs in a worker thread that cannot be interrupted.
It holds a per-directory lock until it returns, so a cycle abandoned by
cancellation still keeps every later sync of the same mirror (from this or
any other refresher in the process) waiting until its git work is over.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from .errors import ContentLoadError, SyncError
from .loader import load_from_dir
from .snapshot import Snapshot
from .store import SnapshotStore
from .sync import SyncConfig, SyncResult, clone_or_pull

logger = logging.getLogger("site.refresh")

SyncFn = Callable[[SyncConfig], SyncResult]
LoadFn = Callable[..., Snapshot]


# ---------------------------------------------------------------------
# Mirror Locks
# ---------------------------------------------------------------------

_mirror_locks: Dict[str, threading.Lock] = {}
_mirror_locks_guard = threading.Lock()


def mirror_lock(directory: Path | str) -> threading.Lock:
    """Return the process-wide lock serialising work on one mirror directory."""
    key = os.path.abspath(directory)
    with _mirror_locks_guard:
        lock = _mirror_locks.get(key)
        if lock is None:
            lock = _mirror_locks[key] = threading.Lock()
        return lock


# ---------------------------------------------------------------------
# Refresher
# ---------------------------------------------------------------------

class ContentRefresher:
    """Keeps a `SnapshotStore` populated from a mirrored content repo."""

    def __init__(
        self,
        config: SyncConfig,
        store: SnapshotStore,
        *,
        sync: SyncFn = clone_or_pull,
        loader: LoadFn = load_from_dir,
    ) -> None:
        self.config = config
        self.store = store
        self._sync = sync
        self._loader = loader
        self._cycle_lock = asyncio.Lock()
        self._mirror_lock = mirror_lock(config.directory)
        self.cycles = 0
        self.failures = 0

    @property
    def interval(self) -> float:
        return self.config.interval.total_seconds()

    @property
    def busy(self) -> bool:
        """True while a worker thread is syncing or loading this mirror."""
        return self._mirror_lock.locked()

    # ------------------------------------------------------------------
    # Blocking steps
    # ------------------------------------------------------------------

    def refresh_once(self) -> Snapshot:
        """
        Sync the mirror, then build a new snapshot from it.

        The snapshot is returned, not published. Blocks for the duration of
        the git and filesystem work, and first waits for any earlier worker
        still holding the mirror.

        Raises
        ------
        SyncError
            If the mirror could not be updated.
        ContentLoadError
            If the content tree could not be loaded.
        """
        with self._mirror_lock:
            result = self._sync(self.config)
            return self._loader(Path(self.config.directory), revision=result.revision)

    def initial_load(self) -> Snapshot:
        """
        Perform the first load synchronously and publish it.

        Any failure propagates: without a first snapshot there is nothing to
        fall back to, so startup must abort.
        """
        snapshot = self.refresh_once()
        self.store.store(snapshot)
        logger.info(
            "Content loaded: %d posts, %d projects (revision %s)",
            len(snapshot.posts),
            len(snapshot.projects),
            snapshot.revision,
        )
        return snapshot

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no worker holds the mirror.

        Returns False if `timeout` seconds pass first.
        """
        acquired = self._mirror_lock.acquire(timeout=-1 if timeout is None else timeout)
        if acquired:
            self._mirror_lock.release()
        return acquired

    # ------------------------------------------------------------------
    # Async loop
    # ------------------------------------------------------------------

    async def run_cycle(self) -> bool:
        """
        Run one sync + load + publish cycle.

        Returns True when a new snapshot was published. Failures are logged
        and leave the previous snapshot in place. If a cycle is already in
        flight, or an abandoned worker still holds the mirror, this call does
        nothing and returns False.
        """
        if self._cycle_lock.locked() or self.busy:
            logger.warning("Refresh cycle already running; skipping")
            return False

        async with self._cycle_lock:
            self.cycles += 1
            try:
                snapshot = await asyncio.to_thread(self.refresh_once)
            except SyncError as exc:
                self.failures += 1
                logger.error("Content sync failed (%s): %s", self.config.repo_url, exc)
                return False
            except ContentLoadError as exc:
                self.failures += 1
                logger.error("Content reload failed (%s): %s", self.config.directory, exc)
                return False
            except Exception:
                self.failures += 1
                logger.exception("Unexpected error in content refresh cycle")
                return False

            self.store.store(snapshot)
            logger.info(
                "Content reloaded: %d posts, %d projects (revision %s)",
                len(snapshot.posts),
                len(snapshot.projects),
                snapshot.revision,
            )
            return True

    async def run(self) -> None:
        """
        Refresh on a fixed interval until cancelled.
        """
        interval = self.interval
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval
        logger.info("Content refresh started (every %.0fs)", interval)

        while True:
            try:
                await asyncio.sleep(max(0.0, next_tick - loop.time()))
                await self.run_cycle()
            except asyncio.CancelledError:
                logger.info("Content refresh cancelled.")
                break

            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                missed = int((now - next_tick) // interval) + 1
                next_tick += missed * interval
                logger.warning(
                    "Refresh cycle overran the %.0fs interval; skipped %d tick(s)",
                    interval,
                    missed,
                )

    def start(self) -> asyncio.Task:
        """Schedule `run()` on the running event loop."""
        return asyncio.create_task(self.run(), name="content-refresh")


async def stop_refresher(
    task: Optional[asyncio.Task],
    refresher: Optional[ContentRefresher] = None,
    *,
    timeout: Optional[float] = None,
) -> None:
    """
    Cancel a refresh task and wait for it to finish.

    When `refresher` is given, also wait (up to `timeout` seconds) for a
    worker thread abandoned by the cancellation to release the mirror.
    """
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    if refresher is not None and refresher.busy:
        logger.info("Waiting for in-flight content sync to finish")
        if not await asyncio.to_thread(refresher.wait_idle, timeout):
            logger.warning("Content sync still running after %ss", timeout)
