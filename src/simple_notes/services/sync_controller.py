"""Synchronization controller: decides when the store is mirrored to disk.

- Structural changes (create, delete, rename, move) are mirrored immediately.
- Content edits are debounced: each edit restarts a single timer and the
  edit is committed to the store and mirrored once the timer fires.
- Every change is also written synchronously to the local cache.

The controller drives the advisory status ``idle -> saving -> saved -> idle``
(or ``saving -> error -> idle``). The status never blocks further edits.
"""

import logging
import threading
from typing import Callable, List, Optional, Tuple

from simple_notes.config import config
from simple_notes.exceptions import DecodeError, StorageError
from simple_notes.models.schema import NoteStore, OperationResult, SyncStatus
from simple_notes.storage.disk_mirror import DiskMirror
from simple_notes.storage.local_cache import LocalCache

logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus], None]

# Where the state returned by load() came from
LOADED_FROM_MIRROR = "mirror"
LOADED_FROM_CACHE = "cache"
LOADED_EMPTY = "empty"


class SyncController:
    """Pushes a :class:`NoteStore` to the disk mirror and the local cache."""

    def __init__(
        self,
        store: NoteStore,
        mirror: DiskMirror,
        cache: LocalCache,
        autosave_delay: Optional[float] = None,
        status_reset_delay: Optional[float] = None,
    ) -> None:
        self.store = store
        self.mirror = mirror
        self.cache = cache
        self._autosave_delay = (
            config.autosave_delay if autosave_delay is None else autosave_delay
        )
        self._status_reset_delay = (
            config.status_reset_delay
            if status_reset_delay is None
            else status_reset_delay
        )
        self._lock = threading.RLock()
        self._flush_timer: Optional[threading.Timer] = None
        self._status_timer: Optional[threading.Timer] = None
        self._pending: Optional[Tuple[str, str]] = None
        self._generation = 0
        self._status = SyncStatus.IDLE
        self._listeners: List[StatusListener] = []

    # =========================================================================
    # Status
    # =========================================================================

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def lock(self):
        """Held around every store mutation; the autosave timer commits under it."""
        return self._lock

    @property
    def has_pending_edit(self) -> bool:
        with self._lock:
            return self._pending is not None

    def pending_content(self, file_id: Optional[str]) -> Optional[str]:
        """Uncommitted text of ``file_id``, if an edit of it is pending."""
        with self._lock:
            if self._pending is not None and self._pending[0] == file_id:
                return self._pending[1]
            return None

    def add_status_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked on every status transition."""
        self._listeners.append(listener)

    def set_status(self, status: SyncStatus) -> None:
        with self._lock:
            if self._status_timer is not None:
                self._status_timer.cancel()
                self._status_timer = None
            self._status = status
            if status in (SyncStatus.SAVED, SyncStatus.ERROR):
                self._status_timer = threading.Timer(
                    self._status_reset_delay, self._reset_status
                )
                self._status_timer.daemon = True
                self._status_timer.start()

        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.warning(f"Status listener failed: {e}")

    def _reset_status(self) -> None:
        """Called by timer. Returns a settled status to idle."""
        if self._status in (SyncStatus.SAVED, SyncStatus.ERROR):
            self.set_status(SyncStatus.IDLE)

    # =========================================================================
    # Startup
    # =========================================================================

    def load(self) -> str:
        """Populate the store: local cache first, then the disk mirror.

        A present and decodable whole-store file overrides the cached state
        in full. A missing or corrupt one leaves the cached state (or an
        empty store) in place.

        Returns:
            Which tier the loaded state came from.
        """
        source = LOADED_EMPTY
        cached = self.cache.load_store()
        with self._lock:
            if cached is not None:
                self.store.replace_with(cached)
                source = LOADED_FROM_CACHE

        try:
            mirrored = self.mirror.read_store()
        except (DecodeError, StorageError) as e:
            logger.warning(f"Ignoring unreadable whole-store file: {e}")
            mirrored = None

        if mirrored is not None:
            with self._lock:
                self.store.replace_with(mirrored)
            source = LOADED_FROM_MIRROR

        logger.info(
            f"Session loaded from {source}: {len(self.store.folders)} folders, "
            f"{len(self.store.files)} files"
        )
        return source

    # =========================================================================
    # Structural changes
    # =========================================================================

    def structural_change(self) -> OperationResult:
        """Cache and mirror the store immediately.

        A pending edit stays pending: it is kept in the cached copy but only
        reaches the mirror when its timer fires.
        """
        self._cache_current()
        return self._mirror_now()

    # =========================================================================
    # Content edits (debounced)
    # =========================================================================

    def content_edited(self, file_id: Optional[str], content: str) -> bool:
        """Record an edit of the open note and restart the quiescence timer.

        The edit is cached right away (overlaid on a copy of the store) and
        committed to the store when the timer fires.

        Returns:
            False if no note is open, True otherwise.
        """
        if file_id is None:
            return False

        with self._lock:
            self._pending = (file_id, content)
            self._cache_current()

            if self._flush_timer is not None:
                self._flush_timer.cancel()
            self._generation += 1
            self._flush_timer = threading.Timer(
                self._autosave_delay, self._debounce_flush, args=(self._generation,)
            )
            self._flush_timer.daemon = True
            self._flush_timer.start()

        self.set_status(SyncStatus.SAVING)
        return True

    def commit_pending(self) -> bool:
        """Apply a pending edit to the store without mirroring it.

        Returns:
            True if an edit was pending.
        """
        with self._lock:
            if self._flush_timer is not None:
                self._flush_timer.cancel()
                self._flush_timer = None
            if self._pending is None:
                return False
            file_id, content = self._pending
            self._pending = None
            self.store.set_content(file_id, content)
            self.cache.save_store(self.store)
            return True

    def discard_pending(self, file_id: str) -> None:
        """Drop a pending edit of ``file_id`` (used when that note is deleted)."""
        with self._lock:
            if self._pending is not None and self._pending[0] == file_id:
                self._pending = None
                if self._flush_timer is not None:
                    self._flush_timer.cancel()
                    self._flush_timer = None

    def flush(self) -> OperationResult:
        """Cancel the timer, commit any pending edit and mirror immediately."""
        with self._lock:
            if not self.commit_pending():
                self._cache_current()
        return self._mirror_now()

    def _debounce_flush(self, generation: int) -> None:
        """Called by timer. Commits the pending edit and mirrors the store.

        A timer superseded by a later edit does nothing, even if it fired
        before it could be cancelled.
        """
        with self._lock:
            if generation != self._generation:
                return
            committed = self.commit_pending()
        if committed:
            self._mirror_now()

    # =========================================================================
    # Shutdown
    # =========================================================================

    def shutdown(self) -> None:
        """Flush a pending edit and stop timers."""
        if self.has_pending_edit:
            logger.info("Flushing pending edit on shutdown")
            self.flush()
        with self._lock:
            if self._status_timer is not None:
                self._status_timer.cancel()
                self._status_timer = None

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def snapshot(self) -> NoteStore:
        """Consistent deep copy of the committed store."""
        with self._lock:
            return self.store.model_copy(deep=True)

    def _cache_current(self) -> None:
        """Cache the store with any pending edit overlaid on it."""
        with self._lock:
            if self._pending is None:
                self.cache.save_store(self.store)
                return
            overlay = self.store.model_copy(deep=True)
            overlay.set_content(*self._pending)
            self.cache.save_store(overlay)

    def _mirror_now(self) -> OperationResult:
        self.set_status(SyncStatus.SAVING)
        result = self.mirror.batch_write(self.snapshot())
        if result.success:
            self.set_status(SyncStatus.SAVED)
        else:
            logger.error(f"Filesystem save failed: {result.error}")
            self.set_status(SyncStatus.ERROR)
        return result
