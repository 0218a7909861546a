"""Deletion plan models.

Defines the canonical DeletionSet, the escaped views each record
grammar compares against, rewrite outcomes, and the jobs the committer
installs.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


def _is_covered(name: str, names: frozenset[str], subtrees: frozenset[str]) -> bool:
    if name in names:
        return True
    if not subtrees:
        return False
    probe = name
    while True:
        if probe in subtrees:
            return True
        if "/" not in probe:
            return False
        probe = probe.rsplit("/", 1)[0]


@dataclass(frozen=True, slots=True)
class EscapedNames:
    """Membership test against a DeletionSet in one quoting scheme.

    All quoting schemes escape byte by byte and leave "/" alone, so
    a quoted descendant still starts with its quoted ancestor.
    """

    names: frozenset[str]
    subtrees: frozenset[str]

    def __contains__(self, quoted_name: object) -> bool:
        if not isinstance(quoted_name, str):
            return False
        return _is_covered(quoted_name, self.names, self.subtrees)


@dataclass(frozen=True, slots=True)
class DeletionSet:
    """Sorted, deduplicated set of ArchiveNames slated for removal.

    Attributes:
        names: Names removed individually.
        subtrees: Directory names removed together with everything below.
    """

    names: tuple[str, ...]
    subtrees: tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str], subtrees: Iterable[str] = ()) -> "DeletionSet":
        """Build a canonical set from unsorted input."""
        subtree_set = set(subtrees)
        # A subtree root is removed through its subtree
        name_set = set(names) - subtree_set
        return cls(names=tuple(sorted(name_set)), subtrees=tuple(sorted(subtree_set)))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return _is_covered(name, frozenset(self.names), frozenset(self.subtrees))

    def __iter__(self) -> Iterator[str]:
        return iter(sorted((*self.names, *self.subtrees)))

    def __len__(self) -> int:
        return len(self.names) + len(self.subtrees)

    def __bool__(self) -> bool:
        return bool(self.names or self.subtrees)

    def escaped(self, quote: Callable[[str], str]) -> EscapedNames:
        """Project the set into a record grammar's quoted representation."""
        return EscapedNames(
            names=frozenset(quote(n) for n in (*self.names, *self.subtrees)),
            subtrees=frozenset(quote(n) for n in self.subtrees),
        )

    def serialize(self) -> bytes:
        """NUL-delimited canonical form, used for the plan file and its hash.

        Each record is a one-letter kind ("F" for a single name, "D" for a
        subtree) followed by the name.
        """
        records = [f"F{n}" for n in self.names] + [f"D{n}" for n in self.subtrees]
        return b"".join(r.encode("utf-8", "surrogateescape") + b"\0" for r in records)

    @classmethod
    def deserialize(cls, data: bytes) -> "DeletionSet":
        """Inverse of serialize()."""
        names: list[str] = []
        subtrees: list[str] = []
        for raw in data.split(b"\0"):
            if not raw:
                continue
            record = raw.decode("utf-8", "surrogateescape")
            kind, name = record[0], record[1:]
            if kind == "D":
                subtrees.append(name)
            else:
                names.append(name)
        return cls.of(names, subtrees)


class RewriteStatus(str, Enum):
    """Outcome of rewriting one record stream.

    Attributes:
        CHANGED: At least one record was dropped; the new stream must be installed.
        UNCHANGED: Nothing matched; no install needed.
    """

    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class RewriteResult:
    """Result of a rewrite.

    Attributes:
        status: Changed or unchanged.
        content: The rewritten stream (same as the input when unchanged).
        removed: Number of records dropped.
        checksums_moved: Number of checksums handed to a surviving hard link.
    """

    status: RewriteStatus
    content: str
    removed: int = 0
    checksums_moved: int = 0

    @property
    def changed(self) -> bool:
        return self.status == RewriteStatus.CHANGED


@dataclass(frozen=True, slots=True)
class RewritePlan:
    """A confirmed deletion set and the hash it was confirmed with."""

    deletion_set: DeletionSet
    plan_hash: str
    plan_file: Path


@dataclass(frozen=True, slots=True)
class InstallJob:
    """A rewritten file waiting to be swapped into place.

    Attributes:
        source: Temporary file holding the final (possibly compressed) content.
        destination: Metadata file to replace.
        keep_backup: Keep the numbered backup of the original after the swap.
    """

    source: Path
    destination: Path
    keep_backup: bool = False
