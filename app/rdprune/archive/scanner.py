"""Archive scanner.

Walks the mirror tree and the increments tree of an archive and collects
every entry a PathMatcher selects. In recursive modes everything below a
matched directory is selected as well.
"""

import logging
from dataclasses import dataclass, field

from rdprune.archive.layout import DATA_DIR_NAME, ArchiveLayout
from rdprune.archive.walker import TreeWalker
from rdprune.core.errors import UnsupportedFormat
from rdprune.matching.pattern import PathMatcher, decode_increment_path
from rdprune.models.archive import IncrementRecord

logger = logging.getLogger(__name__)


def _under(path: str, roots: set[str]) -> bool:
    """Check whether path lies strictly below one of roots."""
    probe = path
    while "/" in probe:
        probe = probe.rsplit("/", 1)[0]
        if probe in roots:
            return True
    return False


@dataclass(slots=True)
class ScanResult:
    """Everything a scan matched.

    Attributes:
        mirror_files: Matched non-directory mirror names.
        mirror_dirs: Matched mirror directories, children before parents
            (recursive modes only).
        mirror_dir_names: Mirror directories the patterns named directly.
        increment_files: Matched increment files, decoded.
        increment_dirs: Matched increments-tree directories, children before
            parents (recursive modes only).
        increment_dir_names: Increments-tree directories the patterns named directly.
        unrecognized: Increments-tree files without an increment suffix.
    """

    mirror_files: list[str] = field(default_factory=lambda: [])
    mirror_dirs: list[str] = field(default_factory=lambda: [])
    mirror_dir_names: list[str] = field(default_factory=lambda: [])
    increment_files: list[IncrementRecord] = field(default_factory=lambda: [])
    increment_dirs: list[str] = field(default_factory=lambda: [])
    increment_dir_names: list[str] = field(default_factory=lambda: [])
    unrecognized: list[str] = field(default_factory=lambda: [])

    @property
    def is_empty(self) -> bool:
        return not (
            self.mirror_files
            or self.mirror_dirs
            or self.mirror_dir_names
            or self.increment_files
            or self.increment_dirs
            or self.increment_dir_names
        )


class TreeScanner:
    """Scans an archive for entries matching a set of patterns.

    Args:
        layout: Archive to scan.
        matcher: Compiled patterns with their recursion mode.
        walker: Tree walking capability.
    """

    def __init__(self, layout: ArchiveLayout, matcher: PathMatcher, walker: TreeWalker) -> None:
        self._layout = layout
        self._matcher = matcher
        self._walker = walker

    def scan(self) -> ScanResult:
        """Scan mirror and increments.

        Returns:
            ScanResult with all matches.

        Raises:
            UnsupportedFormat: If the archive stores long filenames separately.
        """
        result = ScanResult()
        start = self._matcher.scan_start()
        logger.info("Scanning archive %s from %r", self._layout.root, start or "/")

        self._scan_mirror(start, result)

        if self._layout.uses_long_filenames():
            msg = (
                f"Archive {self._layout.root} uses long filename storage "
                f"({self._layout.long_filename_dir}), which cannot be pruned"
            )
            raise UnsupportedFormat(msg)

        self._scan_increments(start, result)

        logger.info(
            "Matched %d mirror file(s), %d mirror dir(s), %d increment(s)",
            len(result.mirror_files),
            len(result.mirror_dirs) or len(result.mirror_dir_names),
            len(result.increment_files),
        )
        return result

    def _scan_mirror(self, start: str, result: ScanResult) -> None:
        recursive = self._matcher.mode.recursive
        roots: set[str] = set()
        dirs: list[str] = []

        for entry in self._walker.walk(
            self._layout.root, start, exclude=frozenset({DATA_DIR_NAME})
        ):
            matched = self._matcher.matches(entry.path)
            if recursive and not matched:
                matched = _under(entry.path, roots)
            if not matched:
                continue

            if not entry.is_dir:
                result.mirror_files.append(entry.path)
                continue

            if self._matcher.matches(entry.path):
                result.mirror_dir_names.append(entry.path)
            if recursive:
                roots.add(entry.path)
                dirs.append(entry.path)

        # Pre-order reversed puts every child before its parent
        result.mirror_dirs = list(reversed(dirs))

    def _scan_increments(self, start: str, result: ScanResult) -> None:
        recursive = self._matcher.mode.recursive
        roots: set[str] = set()
        dirs: list[str] = []

        for entry in self._walker.walk(self._layout.increments_dir, start):
            if entry.is_dir:
                named = self._matcher.matches(entry.path)
                if named:
                    result.increment_dir_names.append(entry.path)
                if recursive and (named or _under(entry.path, roots)):
                    roots.add(entry.path)
                    dirs.append(entry.path)
                continue

            record = decode_increment_path(entry.path)
            if record is None:
                if recursive and _under(entry.path, roots):
                    result.unrecognized.append(entry.path)
                logger.debug("Ignoring non-increment file %s", entry.path)
                continue

            matched = self._matcher.matches(record.name)
            if recursive and not matched:
                matched = _under(entry.path, roots) or _under(record.name, roots)
            if matched:
                result.increment_files.append(record)

        result.increment_dirs = list(reversed(dirs))
