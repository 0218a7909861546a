"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from archive_builder import ArchiveBuilder


@pytest.fixture
def builder(tmp_path: Path) -> ArchiveBuilder:
    """An empty archive below tmp_path/archive."""
    return ArchiveBuilder(tmp_path / "archive")


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config and history lookups away from the real home directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.delenv("RDPRUNE_PAGER", raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    """Undo the root logger changes configure_logging makes."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def sample_metadata() -> str:
    """Four blocks, the last two hard links sharing one inode."""
    return (
        "File .\n"
        "  Type dir\n"
        "File a\n"
        "  Type dir\n"
        "File a/b\n"
        "  Type reg\n"
        "  Size 4\n"
        "  SHA1Digest 1111\n"
        "  NumHardLinks 2\n"
        "  Inode 42\n"
        "  DeviceLoc 7\n"
        "File a/c\n"
        "  Type reg\n"
        "  Size 4\n"
        "  NumHardLinks 2\n"
        "  Inode 42\n"
        "  DeviceLoc 7\n"
    )
