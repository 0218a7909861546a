"""rdprune configuration and settings.

Configuration is optional and stored in ~/.config/rdprune/config.toml.
Command-line flags always take precedence over values loaded here.
"""

import os
import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rdprune.core.paths import get_config_path

# Environment variable that forces the review pager on or off
PAGER_ENV_VAR = "RDPRUNE_PAGER"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


class PruneConfig(BaseModel):
    """Configuration for rdprune runs.

    Attributes:
        backup_margin_bytes: Safety margin added to the backup space budget.
        keep_temp: Keep the per-run temporary workspace after exit.
        keep_backups: Keep numbered backups of replaced metadata files.
        temp_dir: Parent directory for temporary workspaces (None = system default).
        pager: Page long deletion plans through the terminal pager.
        record_history: Append committed runs to the history file.
    """

    model_config = ConfigDict(extra="forbid")

    backup_margin_bytes: Annotated[
        int,
        Field(ge=0, description="Extra bytes required on top of backup copies"),
    ] = 10 * 1024 * 1024
    keep_temp: Annotated[
        bool,
        Field(description="Keep the temporary workspace"),
    ] = False
    keep_backups: Annotated[
        bool,
        Field(description="Keep backups of replaced metadata files"),
    ] = False
    temp_dir: Annotated[
        Path | None,
        Field(description="Parent directory for temporary workspaces"),
    ] = None
    pager: Annotated[
        bool,
        Field(description="Show the deletion plan through a pager"),
    ] = False
    record_history: Annotated[
        bool,
        Field(description="Record committed runs to history.jsonl"),
    ] = True


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> PruneConfig:
    """Load configuration from a TOML file.

    A missing file is not an error: defaults are returned. The
    RDPRUNE_PAGER environment variable overrides the ``pager`` setting.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated PruneConfig object.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    data: dict[str, object] = {}
    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config {config_path}: {e}") from e

    pager_env = os.environ.get(PAGER_ENV_VAR, "").strip().lower()
    if pager_env in _TRUTHY:
        data["pager"] = True
    elif pager_env in _FALSY:
        data["pager"] = False

    try:
        return PruneConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e
