"""Tests for the synchronization controller."""
import threading
import time
from unittest.mock import MagicMock, patch

from simple_notes.models.schema import NoteStore, OperationResult, SyncStatus
from simple_notes.services.sync_controller import (
    LOADED_EMPTY,
    LOADED_FROM_CACHE,
    LOADED_FROM_MIRROR,
    SyncController,
)

TEST_AUTOSAVE_DELAY = 0.1


def make_controller(mirror, cache, store=None, delay=TEST_AUTOSAVE_DELAY):
    return SyncController(
        store if store is not None else NoteStore(),
        mirror,
        cache,
        autosave_delay=delay,
        status_reset_delay=0.05,
    )


class TestLoad:
    """Tests for the two-tier startup load."""

    def test_empty(self, mirror, cache):
        controller = make_controller(mirror, cache)
        assert controller.load() == LOADED_EMPTY
        assert controller.store == NoteStore()

    def test_cache_only(self, mirror, cache):
        cached = NoteStore()
        cached.create_file("cached.txt")
        cache.save_store(cached)
        controller = make_controller(mirror, cache)
        assert controller.load() == LOADED_FROM_CACHE
        assert controller.store == cached

    def test_mirror_overrides_cache(self, mirror, cache):
        cached = NoteStore()
        cached.create_file("cached.txt")
        cache.save_store(cached)
        on_disk = NoteStore()
        on_disk.create_file("disk.txt")
        mirror.write_store(on_disk)

        store = NoteStore()
        controller = make_controller(mirror, cache, store=store)

        assert controller.load() == LOADED_FROM_MIRROR
        assert store == on_disk

    def test_corrupt_mirror_falls_back_to_cache(self, mirror, cache):
        cached = NoteStore()
        cached.create_file("cached.txt")
        cache.save_store(cached)
        mirror.ensure_root()
        mirror.store_path.write_bytes(b"\xff garbage")

        controller = make_controller(mirror, cache)

        assert controller.load() == LOADED_FROM_CACHE
        assert controller.store == cached


class TestStructuralChanges:
    """Tests for immediate mirroring."""

    def test_structural_change_mirrors_and_caches(self, mirror, cache):
        store = NoteStore()
        controller = make_controller(mirror, cache, store=store)
        store.create_file("a.txt", "body")

        result = controller.structural_change()

        assert result.success
        assert mirror.read_store() == store
        assert cache.load_store() == store
        assert controller.status == SyncStatus.SAVED


class TestDebounce:
    """Tests for debounced content edits."""

    def test_burst_of_edits_writes_once(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store)
        write_times = []
        fired = threading.Event()

        def record(snapshot):
            write_times.append(time.monotonic())
            fired.set()
            return OperationResult.ok(count=len(snapshot.files))

        with patch.object(mirror, "batch_write", side_effect=record) as batch_write:
            for i in range(10):
                controller.content_edited(file_id, f"text {i}")
                last_edit = time.monotonic()
                time.sleep(TEST_AUTOSAVE_DELAY / 10)
            assert fired.wait(timeout=2)
            time.sleep(TEST_AUTOSAVE_DELAY * 2)

        assert batch_write.call_count == 1
        assert write_times[0] - last_edit >= TEST_AUTOSAVE_DELAY * 0.8
        assert batch_write.call_args[0][0].files[file_id].content == "text 9"
        assert store.files[file_id].content == "text 9"

    def test_edit_is_cached_before_flush(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store, delay=10)

        controller.content_edited(file_id, "crash-safe")

        assert cache.load_store().files[file_id].content == "crash-safe"
        assert store.files[file_id].content == ""
        assert controller.has_pending_edit
        assert controller.pending_content(file_id) == "crash-safe"
        controller.discard_pending(file_id)

    def test_structural_change_keeps_cached_edit(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store, delay=10)
        controller.content_edited(file_id, "unsaved words")

        store.create_folder("Other")
        controller.structural_change()

        cached = cache.load_store()
        assert cached.files[file_id].content == "unsaved words"
        assert len(cached.folders) == 1
        assert mirror.read_store().files[file_id].content == ""
        assert controller.pending_content(file_id) == "unsaved words"
        controller.discard_pending(file_id)

    def test_superseded_timer_does_not_commit(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store, delay=10)
        controller.content_edited(file_id, "first")
        controller.content_edited(file_id, "second")

        # The first edit's timer firing late, after the second edit restarted it
        with patch.object(mirror, "batch_write") as batch_write:
            controller._debounce_flush(1)

        batch_write.assert_not_called()
        assert controller.pending_content(file_id) == "second"
        assert store.files[file_id].content == ""
        controller.discard_pending(file_id)

    def test_timer_commit_waits_for_lock(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store)
        controller.content_edited(file_id, "later")

        with controller.lock:
            time.sleep(TEST_AUTOSAVE_DELAY * 3)
            assert store.files[file_id].content == ""
        time.sleep(TEST_AUTOSAVE_DELAY * 3)

        assert store.files[file_id].content == "later"
        assert not controller.has_pending_edit

    def test_no_open_file(self, mirror, cache):

        controller = make_controller(mirror, cache)
        assert controller.content_edited(None, "x") is False
        assert not controller.has_pending_edit

    def test_flush_commits_immediately(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store, delay=10)
        controller.content_edited(file_id, "now")

        result = controller.flush()

        assert result.success
        assert not controller.has_pending_edit
        assert mirror.read_store().files[file_id].content == "now"

    def test_discard_cancels_flush(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store)
        controller.content_edited(file_id, "never written")
        with patch.object(mirror, "batch_write") as batch_write:
            controller.discard_pending(file_id)
            time.sleep(TEST_AUTOSAVE_DELAY * 3)
        batch_write.assert_not_called()

    def test_shutdown_flushes_pending_edit(self, mirror, cache):
        store = NoteStore()
        file_id = store.create_file("a.txt")
        controller = make_controller(mirror, cache, store=store, delay=10)
        controller.content_edited(file_id, "last words")

        controller.shutdown()

        assert mirror.read_store().files[file_id].content == "last words"


class TestStatus:
    """Tests for the advisory status state machine."""

    def test_saved_then_idle(self, mirror, cache):
        controller = make_controller(mirror, cache)
        seen = []
        controller.add_status_listener(seen.append)

        controller.structural_change()
        time.sleep(0.3)

        assert seen == [SyncStatus.SAVING, SyncStatus.SAVED, SyncStatus.IDLE]
        assert controller.status == SyncStatus.IDLE

    def test_error_then_idle(self, mirror, cache):
        controller = make_controller(mirror, cache)
        seen = []
        controller.add_status_listener(seen.append)

        with patch.object(
            mirror, "batch_write", return_value=OperationResult.failed("disk gone")
        ):
            result = controller.structural_change()
        time.sleep(0.3)

        assert not result.success
        assert seen == [SyncStatus.SAVING, SyncStatus.ERROR, SyncStatus.IDLE]

    def test_failing_listener_does_not_break_sync(self, mirror, cache):
        controller = make_controller(mirror, cache)
        controller.add_status_listener(MagicMock(side_effect=RuntimeError("ui gone")))
        assert controller.structural_change().success
