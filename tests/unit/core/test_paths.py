"""Unit tests for XDG path management.

Tests for the paths module that provides XDG-compliant directory paths.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from rdprune.core.paths import (
    APP_NAME,
    ensure_state_dir,
    get_config_dir,
    get_config_path,
    get_state_dir,
)


class TestGetConfigDir:
    """Tests for get_config_dir function."""

    def test_default_config_dir(self) -> None:
        """get_config_dir returns default path when XDG_CONFIG_HOME not set."""
        with patch.dict(os.environ, {}, clear=True):
            result = get_config_dir()
            expected = Path.home() / ".config" / APP_NAME

        assert result == expected

    def test_custom_xdg_config_home(self, tmp_path: Path) -> None:
        """get_config_dir respects XDG_CONFIG_HOME environment variable."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            result = get_config_dir()

        assert result == tmp_path / APP_NAME

    def test_config_path(self, tmp_path: Path) -> None:
        """get_config_path points at config.toml."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            assert get_config_path() == tmp_path / APP_NAME / "config.toml"


class TestGetStateDir:
    """Tests for get_state_dir function."""

    def test_default_state_dir(self) -> None:
        """get_state_dir returns default path when XDG_STATE_HOME not set."""
        with patch.dict(os.environ, {}, clear=True):
            result = get_state_dir()
            expected = Path.home() / ".local" / "state" / APP_NAME

        assert result == expected


class TestEnsureStateDir:
    """Tests for ensure_state_dir function."""

    def test_creates_directory(self, tmp_path: Path) -> None:
        """ensure_state_dir creates the directory when it doesn't exist."""
        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path / "state")}):
            result = ensure_state_dir()

        assert result.is_dir()

    def test_permission_error(self, tmp_path: Path) -> None:
        """ensure_state_dir raises RuntimeError on permission error."""
        with (
            patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path)}),
            patch.object(Path, "mkdir", side_effect=PermissionError("denied")),
            pytest.raises(RuntimeError, match="Permission denied"),
        ):
            ensure_state_dir()
