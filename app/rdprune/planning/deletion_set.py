"""Deletion set construction.

Merges mirror and increment matches into one canonical DeletionSet. In
non-recursive mode directories are never deleted, and a name that was a
directory at one time and a file at another is left alone entirely.
"""

import logging
from dataclasses import dataclass, field

from rdprune.archive.layout import IncrementType
from rdprune.archive.scanner import ScanResult
from rdprune.matching.pattern import RecursionMode
from rdprune.models.plan import DeletionSet

logger = logging.getLogger(__name__)

_CONTENT_TYPES = frozenset({IncrementType.SNAPSHOT, IncrementType.DIFF})


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Output of the builder.

    Attributes:
        deletion_set: The canonical set of names to remove.
        collisions: Names used both as directory and non-directory across
            history; excluded, resolving them needs recursive mode.
        skipped_dirs: Directory names excluded in non-recursive mode.
    """

    deletion_set: DeletionSet
    collisions: tuple[str, ...] = field(default=())
    skipped_dirs: tuple[str, ...] = field(default=())


def _topmost(names: set[str]) -> set[str]:
    """Drop every name that lies below another name of the set."""
    result: set[str] = set()
    for name in sorted(names, key=lambda n: n.count("/")):
        probe = name
        covered = False
        while "/" in probe:
            probe = probe.rsplit("/", 1)[0]
            if probe in result:
                covered = True
                break
        if not covered:
            result.add(name)
    return result


class DeletionSetBuilder:
    """Builds a DeletionSet from a ScanResult.

    Args:
        mode: Recursion mode of the run.
    """

    def __init__(self, mode: RecursionMode) -> None:
        self._mode = mode

    def build(self, scan: ScanResult) -> BuildResult:
        """Merge scan results into the final set.

        Returns:
            BuildResult with the set and everything excluded from it.
        """
        if self._mode.recursive:
            return self._build_recursive(scan)
        return self._build_flat(scan)

    def _build_flat(self, scan: ScanResult) -> BuildResult:
        as_dir: set[str] = set(scan.mirror_dir_names) | set(scan.increment_dir_names)
        as_file: set[str] = set(scan.mirror_files)
        candidates: set[str] = set(scan.mirror_files)

        for record in scan.increment_files:
            candidates.add(record.name)
            if record.increment_type is IncrementType.DIR:
                as_dir.add(record.name)
            elif record.increment_type in _CONTENT_TYPES:
                as_file.add(record.name)

        collisions = sorted(as_dir & as_file)
        skipped_dirs = sorted(as_dir - as_file)

        for name in collisions:
            logger.warning(
                "Skipping %s: it was a directory at one time and a file at another "
                "(use recursive mode to remove it)",
                name,
            )
        for name in skipped_dirs:
            logger.info("Skipping directory %s (not in recursive mode)", name)

        names = candidates - as_dir
        return BuildResult(
            deletion_set=DeletionSet.of(names),
            collisions=tuple(collisions),
            skipped_dirs=tuple(skipped_dirs),
        )

    def _build_recursive(self, scan: ScanResult) -> BuildResult:
        dirs: set[str] = set(scan.mirror_dirs) | set(scan.mirror_dir_names)
        dirs |= set(scan.increment_dirs) | set(scan.increment_dir_names)
        dirs |= {r.name for r in scan.increment_files if r.increment_type is IncrementType.DIR}

        subtrees = _topmost(dirs)
        probe = DeletionSet.of((), subtrees)
        names = {n for n in scan.mirror_files if n not in probe}
        names |= {r.name for r in scan.increment_files if r.name not in probe}
        return BuildResult(deletion_set=DeletionSet.of(names, subtrees))
