"""Run history model.

This module defines the record appended to the history file after each
committed prune, so that past removals from an archive can be audited.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class RunRecord:
    """Record of one committed prune.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        timestamp: When the prune was committed (ISO 8601 with timezone).
        archive: Absolute path of the archive root.
        plan_hash: Hash the plan was confirmed with.
        names: ArchiveNames removed.
        subtrees: Directory names removed with their subtree.
        metadata_files: Metadata files that were rewritten.
        success: Whether every removal succeeded.
        metadata: Additional context (command, mode, etc.).
    """

    id: str
    timestamp: str
    archive: str
    plan_hash: str
    names: tuple[str, ...]
    subtrees: tuple[str, ...] = ()
    metadata_files: tuple[str, ...] = ()
    success: bool = True
    metadata: dict[str, Any] = field(default_factory=lambda: {})

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.id:
            msg = "Run record ID cannot be empty"
            raise ValueError(msg)
        if not self.archive:
            msg = "Archive path cannot be empty"
            raise ValueError(msg)
        if not self.names and not self.subtrees:
            msg = "Run record must name at least one removed path"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "archive": self.archive,
            "plan_hash": self.plan_hash,
            "names": list(self.names),
            "subtrees": list(self.subtrees),
            "metadata_files": list(self.metadata_files),
            "success": self.success,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunRecord":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            archive=data["archive"],
            plan_hash=data["plan_hash"],
            names=tuple(data["names"]),
            subtrees=tuple(data.get("subtrees", ())),
            metadata_files=tuple(data.get("metadata_files", ())),
            success=data.get("success", True),
            metadata=data.get("metadata", {}),
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        # Names may carry undecodable bytes as lone surrogates
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=True)

    @classmethod
    def from_json_line(cls, line: str) -> "RunRecord":
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))


def create_run_record(
    archive: str,
    plan_hash: str,
    names: list[str],
    subtrees: list[str] | None = None,
    metadata_files: list[str] | None = None,
    success: bool = True,
    metadata: dict[str, Any] | None = None,
) -> RunRecord:
    """Factory function to create a new RunRecord.

    Automatically generates a unique ID and current timestamp.

    Raises:
        ValueError: If nothing was removed.
    """
    return RunRecord(
        id=uuid.uuid4().hex[:12],
        timestamp=datetime.now(UTC).isoformat(),
        archive=archive,
        plan_hash=plan_hash,
        names=tuple(names),
        subtrees=tuple(subtrees or ()),
        metadata_files=tuple(metadata_files or ()),
        success=success,
        metadata=metadata or {},
    )
