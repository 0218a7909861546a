"""Unit tests for StateManager.

Tests for the StateManager class that handles history persistence.
"""

import json
import logging
from pathlib import Path

import pytest
from rdprune.core.state import StateManager
from rdprune.models.history import RunRecord, create_run_record


def _record(archive: str = "/backup", name: str = "a") -> RunRecord:
    return create_run_record(archive=archive, plan_hash="f" * 64, names=[name])


class TestStateManagerInit:
    """Tests for StateManager initialization."""

    def test_default_state_dir(self, tmp_path: Path) -> None:
        """StateManager follows XDG_STATE_HOME by default."""
        manager = StateManager()
        assert manager.history_path == tmp_path / "xdg-state" / "rdprune" / "history.jsonl"

    def test_custom_state_dir(self, tmp_path: Path) -> None:
        """StateManager uses custom state directory when provided."""
        manager = StateManager(state_dir=tmp_path)
        assert manager.history_path == tmp_path / "history.jsonl"


class TestRecordRun:
    """Tests for StateManager.record_run."""

    @pytest.fixture
    def manager(self, tmp_path: Path) -> StateManager:
        """Create a StateManager with temporary directory."""
        return StateManager(state_dir=tmp_path / "state")

    def test_creates_file(self, manager: StateManager) -> None:
        """record_run creates the directory and file."""
        manager.record_run(_record())
        assert manager.history_path.exists()

    def test_appends_json_lines(self, manager: StateManager) -> None:
        """Each record is one JSON line."""
        manager.record_run(_record(name="a"))
        manager.record_run(_record(name="b"))

        lines = manager.history_path.read_text().splitlines()

        assert len(lines) == 2
        assert json.loads(lines[1])["names"] == ["b"]

    def test_default_dir_created(self) -> None:
        """The default state directory is created on first use."""
        manager = StateManager()
        manager.record_run(_record())
        assert manager.history_path.exists()


class TestGetHistory:
    """Tests for StateManager.get_history."""

    @pytest.fixture
    def manager(self, tmp_path: Path) -> StateManager:
        return StateManager(state_dir=tmp_path)

    def test_empty(self, manager: StateManager) -> None:
        """No history file means no records."""
        assert manager.get_history() == []

    def test_newest_first_with_limit(self, manager: StateManager) -> None:
        """Records come back newest first, up to the limit."""
        for name in ("a", "b", "c"):
            manager.record_run(_record(name=name))

        history = manager.get_history(limit=2)

        assert [r.names for r in history] == [("c",), ("b",)]

    def test_filter_by_archive(self, manager: StateManager) -> None:
        """Only records for the requested archive are returned."""
        manager.record_run(_record(archive="/one"))
        manager.record_run(_record(archive="/two"))

        assert [r.archive for r in manager.get_history(archive="/one")] == ["/one"]

    def test_corrupt_lines_skipped(
        self, manager: StateManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Corrupt lines are skipped with a warning."""
        manager.record_run(_record())
        with manager.history_path.open("a") as f:
            f.write("not json\n\n")

        with caplog.at_level(logging.WARNING):
            history = manager.get_history()

        assert len(history) == 1
        assert "corrupt history line 2" in caplog.text
