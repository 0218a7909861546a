"""Unit tests for the rdprune command line.

Tests for argument handling, confirmation, exit codes and history recording.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from archive_builder import TS1, TS2, ArchiveBuilder, block, read_text
from rdprune import __version__
from rdprune.cli.main import app
from rdprune.core.errors import InstallError, PlanTampered
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def archive(builder: ArchiveBuilder) -> ArchiveBuilder:
    """Archive with one file to prune and one to keep."""
    builder.mirror_file("a/b")
    builder.mirror_file("a/c")
    builder.increment("a/b", TS1, "snapshot", compressed=True)
    builder.metadata("mirror_metadata", TS2, block("a/b", Type="reg") + block("a/c", Type="reg"))
    return builder


def _flat(output: str) -> str:
    """Output with rich line wrapping undone."""
    return " ".join(output.split())


def _history(tmp_path: Path) -> list[dict[str, object]]:
    path = tmp_path / "xdg-state" / "rdprune" / "history.jsonl"
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestArguments:
    """Tests for argument validation."""

    def test_version(self) -> None:
        """-V prints the version."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_recursive_flags_conflict(self, archive: ArchiveBuilder) -> None:
        """-R and -r cannot be combined."""
        result = runner.invoke(app, [str(archive.root), "/a", "-R", "-r"])
        assert result.exit_code == 1
        assert "mutually exclusive" in _flat(result.output)

    def test_relative_pattern(self, archive: ArchiveBuilder) -> None:
        """Relative patterns are usage errors."""
        result = runner.invoke(app, [str(archive.root), "a/b", "--yes"])
        assert result.exit_code == 1
        assert "must be an absolute path" in _flat(result.output)
        assert (archive.root / "a/b").exists()

    def test_missing_pattern(self, archive: ArchiveBuilder) -> None:
        """At least one pattern is required."""
        result = runner.invoke(app, [str(archive.root)])
        assert result.exit_code == 2

    def test_not_an_archive(self, tmp_path: Path) -> None:
        result = runner.invoke(app, [str(tmp_path), "/a", "--yes"])
        assert result.exit_code == 1
        assert "not an rdiff-backup archive" in _flat(result.output)

    def test_broken_config(self, archive: ArchiveBuilder, tmp_path: Path) -> None:
        """An unreadable config file exits before touching the archive."""
        config = tmp_path / "config.toml"
        config.write_text("keep_temp = [\n")

        result = runner.invoke(app, [str(archive.root), "/a/b", "--yes", "--config", str(config)])

        assert result.exit_code == 1
        assert "Invalid TOML" in _flat(result.output)
        assert (archive.root / "a/b").exists()

    def test_unusable_temp_dir(self, archive: ArchiveBuilder, tmp_path: Path) -> None:
        """A temp_dir that cannot be created is reported, not a traceback."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        config = tmp_path / "config.toml"
        config.write_text(f"temp_dir = \"{blocker / 'sub'}\"\n")

        result = runner.invoke(app, [str(archive.root), "/a/b", "--yes", "--config", str(config)])

        assert result.exit_code == 1
        assert not isinstance(result.exception, RuntimeError)
        assert "Cannot create temporary directory parent" in _flat(result.output)
        assert (archive.root / "a/b").exists()


class TestPrune:
    """Tests for complete runs through the CLI."""

    def test_yes_prunes_and_records_history(self, archive: ArchiveBuilder, tmp_path: Path) -> None:
        """--yes skips the prompt, prunes, and appends a history record."""
        result = runner.invoke(app, [str(archive.root), "/a/b", "--yes"])

        assert result.exit_code == 0, result.output
        assert not (archive.root / "a/b").exists()
        assert (archive.root / "a/c").exists()
        metadata = read_text(archive.data_dir / f"mirror_metadata.{TS2}.snapshot.gz")
        assert metadata == block("a/c", Type="reg")

        (record,) = _history(tmp_path)
        assert record["names"] == ["a/b"]
        assert record["archive"] == str(archive.root.resolve())
        assert record["success"] is True

    def test_confirm_yes(self, archive: ArchiveBuilder) -> None:
        """Answering y at the prompt prunes."""
        result = runner.invoke(app, [str(archive.root), "/a/b"], input="y\n")

        assert result.exit_code == 0, result.output
        assert "Planned Deletions" in result.output
        assert not (archive.root / "a/b").exists()

    def test_confirm_no(self, archive: ArchiveBuilder, tmp_path: Path) -> None:
        """Declining the prompt leaves everything in place."""
        result = runner.invoke(app, [str(archive.root), "/a/b"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert (archive.root / "a/b").exists()
        assert _history(tmp_path) == []

    def test_dry_run(self, archive: ArchiveBuilder, tmp_path: Path) -> None:
        """-n shows the plan and outcomes without changing anything."""
        original = (archive.data_dir / f"mirror_metadata.{TS2}.snapshot.gz").read_bytes()

        result = runner.invoke(app, [str(archive.root), "/a/b", "-n"])

        assert result.exit_code == 0, result.output
        assert "would be removed" in _flat(result.output)
        assert (archive.root / "a/b").exists()
        assert (archive.data_dir / f"mirror_metadata.{TS2}.snapshot.gz").read_bytes() == original
        assert _history(tmp_path) == []

    def test_nothing_to_delete(self, archive: ArchiveBuilder) -> None:
        result = runner.invoke(app, [str(archive.root), "/nope", "--yes"])
        assert result.exit_code == 0
        assert "Nothing to delete." in _flat(result.output)

    def test_directory_hint(self, archive: ArchiveBuilder) -> None:
        """Skipped directories are reported with a hint to use -R."""
        result = runner.invoke(app, [str(archive.root), "/a", "--yes"])

        assert result.exit_code == 0
        assert "use -R or -r" in _flat(result.output)
        assert (archive.root / "a/b").exists()

    def test_recursive(self, archive: ArchiveBuilder) -> None:
        """-R removes whole directories."""
        result = runner.invoke(app, [str(archive.root), "/a", "-R", "--yes"])

        assert result.exit_code == 0, result.output
        assert not (archive.root / "a").exists()
        assert read_text(archive.data_dir / f"mirror_metadata.{TS2}.snapshot.gz") == ""

    def test_history_disabled_in_config(
        self, archive: ArchiveBuilder, tmp_path: Path
    ) -> None:
        """record_history = false skips the history file."""
        config = tmp_path / "config.toml"
        config.write_text("record_history = false\n")

        result = runner.invoke(app, [str(archive.root), "/a/b", "--yes", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert _history(tmp_path) == []


class TestExitCodes:
    """Tests for mapping engine errors to exit codes."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (PlanTampered("a" * 64, "b" * 64), 3),
            (InstallError("Cannot install x"), 5),
        ],
    )
    def test_error_exit_codes(
        self, archive: ArchiveBuilder, error: Exception, code: int
    ) -> None:
        """Each error category has its own exit code."""
        with patch("rdprune.cli.main.PruneEngine") as engine_cls:
            engine_cls.return_value.run.side_effect = error
            result = runner.invoke(app, [str(archive.root), "/a/b", "--yes"])

        assert result.exit_code == code
        assert "Error:" in result.output

    def test_malformed_metadata_exit_code(self, archive: ArchiveBuilder) -> None:
        """A broken metadata stream exits with the parse error code."""
        archive.metadata("mirror_metadata", TS1, "garbage\n")

        result = runner.invoke(app, [str(archive.root), "/a/b", "--yes"])

        assert result.exit_code == 6
        assert (archive.root / "a/b").exists()
