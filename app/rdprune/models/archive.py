"""Archive domain models.

This module defines the records the scanner produces for an archive:
increments decoded from their filenames and the per-name history
entries the cutoff analysis works on.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from rdprune.archive.layout import IncrementType, parse_timestamp

# Sorts after every real timestamp
ALIVE_NOW = datetime.max.replace(tzinfo=UTC)


class HistoryKind(str, Enum):
    """Kind of a history entry.

    Attributes:
        SNAPSHOT: Earliest record is a full snapshot increment.
        DIFF: Earliest record is a reverse diff increment.
        DIR: Earliest record is a directory marker.
        MISSING: Earliest record says the name did not exist yet.
        ALIVE: Synthetic entry for a name that exists right now.
    """

    SNAPSHOT = "snapshot"
    DIFF = "diff"
    DIR = "dir"
    MISSING = "missing"
    ALIVE = "alive"

    @classmethod
    def from_increment(cls, increment_type: IncrementType) -> "HistoryKind":
        return cls(increment_type.value)


@dataclass(frozen=True, slots=True)
class IncrementRecord:
    """An increment file decoded into its archive identity.

    Attributes:
        name: ArchiveName the increment belongs to.
        timestamp: Raw timestamp string from the filename.
        increment_type: Snapshot, diff, dir or missing.
        compressed: Whether the increment carries a .gz suffix.
        path: Path of the increment file relative to the increments directory.
    """

    name: str
    timestamp: str
    increment_type: IncrementType
    compressed: bool
    path: str

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.name:
            msg = "Increment name cannot be empty"
            raise ValueError(msg)

    @property
    def instant(self) -> datetime:
        """Timestamp as an aware datetime."""
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Earliest known state of one ArchiveName.

    Attributes:
        name: ArchiveName.
        instant: When the state was recorded (ALIVE_NOW for live names).
        kind: What the earliest record was.
    """

    name: str
    instant: datetime
    kind: HistoryKind

    @classmethod
    def alive(cls, name: str) -> "HistoryEntry":
        """Synthetic entry for a name present in the current mirror."""
        return cls(name=name, instant=ALIVE_NOW, kind=HistoryKind.ALIVE)

    @classmethod
    def from_increment(cls, record: IncrementRecord) -> "HistoryEntry":
        return cls(
            name=record.name,
            instant=record.instant,
            kind=HistoryKind.from_increment(record.increment_type),
        )
