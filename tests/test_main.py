"""Tests for the command-line entry point."""
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from simple_notes import main as entry


class TestMain:
    """Tests for argument handling and startup."""

    def test_parse_args_defaults(self, monkeypatch):
        monkeypatch.delenv("SIMPLE_NOTES_LOG_LEVEL", raising=False)
        args = entry.parse_args([])
        assert args.log_level == "INFO"

    def test_update_config(self, test_config, tmp_path):
        args = entry.parse_args(["--data-dir", str(tmp_path), "--notes-dir", "mine"])
        entry.update_config(args)
        assert test_config.data_dir == tmp_path
        assert test_config.notes_dir == Path("mine")

    def test_runs_server(self, test_config, tmp_path):
        server = MagicMock()
        with patch.object(entry, "configure_logging", return_value=None), \
                patch.object(entry, "NotesMcpServer", return_value=server) as server_cls:
            entry.main(["--data-dir", str(tmp_path)])
        server_cls.assert_called_once()
        server.run.assert_called_once()
        assert (tmp_path / "notes").is_dir()

    def test_server_failure_exits(self, test_config, tmp_path):
        server = MagicMock()
        server.run.side_effect = RuntimeError("transport closed")
        with patch.object(entry, "configure_logging", return_value=None), \
                patch.object(entry, "NotesMcpServer", return_value=server):
            with pytest.raises(SystemExit) as exc_info:
                entry.main(["--data-dir", str(tmp_path)])
        assert exc_info.value.code == 1
