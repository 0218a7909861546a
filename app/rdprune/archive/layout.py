"""On-disk layout of an rdiff-backup archive.

Knows the names of the metadata directory and its files, and how
increment and metadata filenames encode their timestamp and type.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

DATA_DIR_NAME = "rdiff-backup-data"
INCREMENTS_DIR_NAME = "increments"
LONG_FILENAME_DIR_NAME = "long_filename_data"

COMPRESSION_SUFFIX = ".gz"

# YYYY-MM-DDThh:mm:ss with Z or a +hh:mm / -hh:mm offset. The
# "compatible" variant replaces colons by dashes.
_TIMESTAMP_PATTERN = (
    r"\d{4}-\d{2}-\d{2}T\d{2}[:-]\d{2}[:-]\d{2}(?:Z|[+-]\d{2}[:-]\d{2})"
)

_INCREMENT_RE = re.compile(
    rf"^(?P<base>.+)\.(?P<ts>{_TIMESTAMP_PATTERN})\.(?P<type>snapshot|diff|dir|missing)"
    rf"(?P<gz>\.gz)?$",
    re.DOTALL,
)

_METADATA_RE = re.compile(
    rf"^(?P<kind>mirror_metadata|access_control_lists|extended_attributes|file_statistics)"
    rf"\.(?P<ts>{_TIMESTAMP_PATTERN})(?:\.(?P<variant>snapshot|data|diff))?(?P<gz>\.gz)?$"
)


class IncrementType(str, Enum):
    """Type of a recorded increment.

    Attributes:
        SNAPSHOT: Full copy of the file as it was.
        DIFF: Reverse delta against the next newer version.
        DIR: Directory marker carrying the directory's old attributes.
        MISSING: The path did not exist at this point in time.
    """

    SNAPSHOT = "snapshot"
    DIFF = "diff"
    DIR = "dir"
    MISSING = "missing"


class MetadataKind(str, Enum):
    """Kind of chained metadata file in the data directory."""

    MIRROR_METADATA = "mirror_metadata"
    ACCESS_CONTROL_LISTS = "access_control_lists"
    EXTENDED_ATTRIBUTES = "extended_attributes"
    FILE_STATISTICS = "file_statistics"


@dataclass(frozen=True, slots=True)
class DecodedIncrement:
    """Parts of an increment filename."""

    base: str
    timestamp: str
    increment_type: IncrementType
    compressed: bool


@dataclass(frozen=True, slots=True)
class MetadataFile:
    """A metadata file of the chain, decoded from its filename.

    Attributes:
        path: Absolute path of the file.
        kind: Which record grammar the file uses.
        timestamp: Raw timestamp string from the filename.
        compressed: Whether the file is gzip compressed.
        is_diff: Whether the file is a reverse-diffed metadata file.
    """

    path: Path
    kind: MetadataKind
    timestamp: str
    compressed: bool
    is_diff: bool = False

    @property
    def instant(self) -> datetime:
        """Timestamp of the file as an aware datetime."""
        return parse_timestamp(self.timestamp)


def parse_timestamp(value: str) -> datetime:
    """Parse an archive timestamp into an aware datetime.

    Accepts both the regular and the colon-free "compatible" form.

    Raises:
        ValueError: If the value is not an archive timestamp.
    """
    if not re.fullmatch(_TIMESTAMP_PATTERN, value):
        msg = f"Not an archive timestamp: {value!r}"
        raise ValueError(msg)
    date_part, time_part = value.split("T", 1)
    if time_part.endswith("Z"):
        clock, offset = time_part[:-1], "+00:00"
    else:
        clock, offset = time_part[:-6], time_part[-6:]
    clock = clock.replace("-", ":")
    offset = offset[0] + offset[1:].replace("-", ":")
    return datetime.fromisoformat(f"{date_part}T{clock}{offset}")


def decode_increment_name(filename: str) -> DecodedIncrement | None:
    """Split an increment filename into base name, timestamp and type.

    Args:
        filename: Last path segment of a file in the increments tree.

    Returns:
        DecodedIncrement, or None if the name is not an increment.
    """
    match = _INCREMENT_RE.match(filename)
    if match is None:
        return None
    return DecodedIncrement(
        base=match.group("base"),
        timestamp=match.group("ts"),
        increment_type=IncrementType(match.group("type")),
        compressed=match.group("gz") is not None,
    )


def decode_metadata_name(path: Path) -> MetadataFile | None:
    """Recognise a chained metadata file by its name.

    Returns:
        MetadataFile, or None for anything else in the data directory.
    """
    match = _METADATA_RE.match(path.name)
    if match is None:
        return None
    return MetadataFile(
        path=path,
        kind=MetadataKind(match.group("kind")),
        timestamp=match.group("ts"),
        compressed=match.group("gz") is not None,
        is_diff=match.group("variant") == "diff",
    )


class ArchiveLayout:
    """Paths of one archive.

    Args:
        root: Archive root directory (the mirror).
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def data_dir(self) -> Path:
        return self.root / DATA_DIR_NAME

    @property
    def increments_dir(self) -> Path:
        return self.data_dir / INCREMENTS_DIR_NAME

    @property
    def long_filename_dir(self) -> Path:
        return self.data_dir / LONG_FILENAME_DIR_NAME

    def is_archive(self) -> bool:
        """Check whether the root looks like an rdiff-backup archive."""
        return self.root.is_dir() and self.data_dir.is_dir()

    def uses_long_filenames(self) -> bool:
        """Check for auxiliary long-filename storage, which is not supported."""
        directory = self.long_filename_dir
        if not directory.is_dir():
            return False
        return any(directory.iterdir())

    def metadata_files(self) -> list[MetadataFile]:
        """List chained metadata files, oldest first.

        Returns:
            MetadataFile entries sorted by timestamp, then kind.
        """
        if not self.data_dir.is_dir():
            return []
        files = [
            decoded
            for entry in self.data_dir.iterdir()
            if entry.is_file() and (decoded := decode_metadata_name(entry)) is not None
        ]
        return sorted(files, key=lambda f: (f.instant, f.kind.value, f.path.name))
