"""Tests for the import/export bridge."""
import json
from unittest.mock import patch

import pytest

from simple_notes.exceptions import DecodeError, ErrorCode, StorageError
from simple_notes.models.schema import NoteStore
from simple_notes.services.interchange import InterchangeBridge, suggested_export_name


@pytest.fixture
def bridge():
    return InterchangeBridge()


class TestExport:
    """Tests for exporting notes as plain text."""

    def test_suggested_name(self):
        assert suggested_export_name("draft.snote") == "draft.txt"
        assert suggested_export_name("todo.txt") == "todo.txt"

    def test_export_note(self, bridge, tmp_path):
        path = bridge.export_note(tmp_path / "out.txt", "héllo")
        assert path.read_text(encoding="utf-8") == "héllo"

    def test_export_note_failure(self, bridge, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            bridge.export_note(tmp_path / "missing" / "out.txt", "x")
        assert exc_info.value.code == ErrorCode.EXPORT_FAILED

    def test_export_all(self, bridge, tmp_path):
        store = NoteStore()
        work = store.create_folder("Work")
        store.create_folder("Empty")
        store.create_file("todo.txt", "A", folder_id=work)
        store.create_file("a/b", "B")
        root = tmp_path / "export"

        assert bridge.export_all(store, root) == 2

        assert (root / "Work" / "todo.txt").read_text(encoding="utf-8") == "A"
        assert (root / "a_b.txt").read_text(encoding="utf-8") == "B"
        assert (root / "Empty").is_dir()

    def test_export_all_failure(self, bridge, tmp_path):
        store = NoteStore()
        store.create_file("a.txt", "A")
        with patch("pathlib.Path.write_text", side_effect=PermissionError("denied")):
            with pytest.raises(StorageError) as exc_info:
                bridge.export_all(store, tmp_path / "export")
        assert exc_info.value.code == ErrorCode.EXPORT_FAILED


class TestScanFolder:
    """Tests for scanning a folder tree."""

    def test_folder_is_path_relative_to_root(self, bridge, tmp_path):
        (tmp_path / "Notes").mkdir()
        (tmp_path / "Notes" / "a.txt").write_text("in folder", encoding="utf-8")
        (tmp_path / "a.txt").write_text("at root", encoding="utf-8")
        (tmp_path / "Notes" / "Deep").mkdir()
        (tmp_path / "Notes" / "Deep" / "d.txt").write_text("deep", encoding="utf-8")
        (tmp_path / "ignored.md").write_text("nope", encoding="utf-8")

        imported = {(n.folder, n.name): n.content for n in bridge.scan_folder(tmp_path)}

        assert imported == {
            (None, "a.txt"): "at root",
            ("Notes", "a.txt"): "in folder",
            ("Notes/Deep", "d.txt"): "deep",
        }

    def test_same_leaf_name_in_different_branches(self, bridge, tmp_path):
        for branch, name in (("A", "x.txt"), ("B", "y.txt")):
            deep = tmp_path / branch / "Deep"
            deep.mkdir(parents=True)
            (deep / name).write_text(branch, encoding="utf-8")

        folders = {n.name: n.folder for n in bridge.scan_folder(tmp_path)}

        assert folders == {"x.txt": "A/Deep", "y.txt": "B/Deep"}


    def test_snote_files_are_renamed(self, bridge, tmp_path):
        (tmp_path / "draft.snote").write_bytes("binary-ish ✓".encode("utf-8"))
        (tmp_path / "broken.snote").write_bytes(b"\xff\xfe")

        imported = bridge.scan_folder(tmp_path)

        assert [(n.name, n.content) for n in imported] == [("draft.txt", "binary-ish ✓")]

    def test_missing_folder(self, bridge, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            bridge.scan_folder(tmp_path / "nope")
        assert exc_info.value.code == ErrorCode.IMPORT_FAILED

    def test_empty_folder(self, bridge, tmp_path):
        assert bridge.scan_folder(tmp_path) == []


class TestDatabase:
    """Tests for the whole-store JSON round trip."""

    def test_round_trip(self, bridge, tmp_path):
        store = NoteStore()
        store.create_file("a.txt", "x", folder_id=store.create_folder("F"))
        path = bridge.export_database(store, tmp_path / "backup.json")

        text = path.read_text(encoding="utf-8")
        assert json.loads(text)["folders"]
        assert "\n  " in text
        assert bridge.read_database(path) == store

    def test_invalid_json(self, bridge, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")
        with pytest.raises(DecodeError):
            bridge.read_database(path)

    def test_missing_file(self, bridge, tmp_path):
        with pytest.raises(StorageError):
            bridge.read_database(tmp_path / "missing.json")

    def test_lone_surrogate_escape_is_rejected(self, bridge, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(
            '{"folders": {}, "files": {"f": {"id": "f", "name": "a.txt", '
            '"content": "bad \\udc80", "folderId": null}}}',
            encoding="utf-8",
        )
        with pytest.raises(DecodeError):
            bridge.read_database(path)
