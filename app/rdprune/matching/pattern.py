"""Path pattern compilation.

Turns the absolute path globs given on the command line into a matcher
that works on ArchiveNames, for mirror entries and for increment files
alike. Compilation is pure: patterns are validated before any I/O.
"""

import fnmatch
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from rdprune.archive.layout import decode_increment_name
from rdprune.core.errors import MalformedPattern
from rdprune.models.archive import IncrementRecord

_WILDCARD_CHARS = frozenset("*?[")


class RecursionMode(str, Enum):
    """How far a pattern reaches into the tree.

    Attributes:
        NONE: Segment-aligned literal structure; directories are never deleted.
        FULL: Wildcards may cross "/"; matched directories go with their subtree.
        LIMITED: Wildcards only in the last segment; matched directories go
            with their subtree, but matching itself never descends.
    """

    NONE = "none"
    FULL = "full"
    LIMITED = "limited"

    @property
    def recursive(self) -> bool:
        return self is not RecursionMode.NONE


def has_wildcard(segment: str) -> bool:
    """Check whether a glob segment contains wildcard characters."""
    return any(c in _WILDCARD_CHARS for c in segment)


@dataclass(frozen=True, slots=True)
class PathPattern:
    """A validated glob addressing ArchiveNames.

    Attributes:
        raw: The pattern as given, e.g. "/home/user/*.iso".
        segments: Path segments without the leading "/".
        mode: Recursion mode the pattern was compiled for.
    """

    raw: str
    segments: tuple[str, ...]
    mode: RecursionMode

    @property
    def glob(self) -> str:
        """The pattern relative to the archive root."""
        return "/".join(self.segments)

    @property
    def literal_dirs(self) -> tuple[str, ...]:
        """Leading wildcard-free segments, excluding the last segment."""
        literal: list[str] = []
        for segment in self.segments[:-1]:
            if has_wildcard(segment):
                break
            literal.append(segment)
        return tuple(literal)

    def matches(self, name: str) -> bool:
        """Check an ArchiveName against this pattern."""
        if self.mode is RecursionMode.FULL:
            return fnmatch.fnmatchcase(name, self.glob)
        parts = name.split("/")
        if len(parts) != len(self.segments):
            return False
        return all(fnmatch.fnmatchcase(p, s) for p, s in zip(parts, self.segments, strict=True))


def parse_pattern(raw: str, mode: RecursionMode) -> PathPattern:
    """Validate and compile one pattern.

    Args:
        raw: Absolute path glob.
        mode: Recursion mode of the run.

    Returns:
        Compiled PathPattern.

    Raises:
        MalformedPattern: If the pattern is relative, contains "." or ".."
            segments, repeated or trailing separators, or (in limited mode)
            a wildcard outside the last segment.
    """
    if not raw.startswith("/"):
        raise MalformedPattern(raw, "must be an absolute path")
    if raw == "/":
        raise MalformedPattern(raw, "the archive root cannot be deleted")
    if "//" in raw:
        raise MalformedPattern(raw, "repeated path separators")
    if raw.endswith("/"):
        raise MalformedPattern(raw, "trailing path separator")

    segments = tuple(raw[1:].split("/"))
    if any(s in (".", "..") for s in segments):
        raise MalformedPattern(raw, "'.' and '..' segments are not allowed")
    if "\0" in raw:
        raise MalformedPattern(raw, "NUL characters are not allowed")
    if mode is RecursionMode.LIMITED and any(has_wildcard(s) for s in segments[:-1]):
        raise MalformedPattern(raw, "wildcards are only allowed in the last segment with -r")

    return PathPattern(raw=raw, segments=segments, mode=mode)


class PathMatcher:
    """Matches ArchiveNames against a set of compiled patterns.

    Example:
        >>> matcher = PathMatcher.compile(["/home/*/cache"], RecursionMode.NONE)
        >>> matcher.matches("home/alice/cache")
        True
    """

    def __init__(self, patterns: Sequence[PathPattern], mode: RecursionMode) -> None:
        if not patterns:
            msg = "At least one pattern is required"
            raise ValueError(msg)
        self.patterns = tuple(patterns)
        self.mode = mode

    @classmethod
    def compile(cls, raw_patterns: Sequence[str], mode: RecursionMode) -> "PathMatcher":
        """Validate all patterns and build a matcher.

        Raises:
            MalformedPattern: On the first invalid pattern.
        """
        if not raw_patterns:
            raise MalformedPattern("", "no path patterns given")
        return cls([parse_pattern(p, mode) for p in raw_patterns], mode)

    def matches(self, name: str) -> bool:
        """Check a mirror name."""
        return any(p.matches(name) for p in self.patterns)

    def match_increment(self, path: str) -> IncrementRecord | None:
        """Decode an increment file path and match its ArchiveName.

        Args:
            path: File path relative to the increments directory.

        Returns:
            The decoded IncrementRecord if it belongs to a matched name.
        """
        record = decode_increment_path(path)
        if record is None or not self.matches(record.name):
            return None
        return record

    def scan_start(self) -> str:
        """Deepest directory every pattern is confined to.

        Scanning from here instead of the archive root sees every entry
        any pattern can match, including the increment files that live
        next to a matched name.
        """
        common: list[str] = []
        for parts in zip(*(p.literal_dirs for p in self.patterns), strict=False):
            if any(part != parts[0] for part in parts):
                break
            common.append(parts[0])
        return "/".join(common)


def decode_increment_path(path: str) -> IncrementRecord | None:
    """Turn an increments-tree file path into an IncrementRecord.

    Returns:
        IncrementRecord, or None if the filename has no increment suffix.
    """
    directory, _, filename = path.rpartition("/")
    decoded = decode_increment_name(filename)
    if decoded is None:
        return None
    name = f"{directory}/{decoded.base}" if directory else decoded.base
    return IncrementRecord(
        name=name,
        timestamp=decoded.timestamp,
        increment_type=decoded.increment_type,
        compressed=decoded.compressed,
        path=path,
    )
