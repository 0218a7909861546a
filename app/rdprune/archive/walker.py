"""Tree walking capability.

The scanner never touches the filesystem directly: it asks a TreeWalker
for the entries below a directory. LocalTreeWalker walks a real tree,
MemoryTreeWalker serves a fixed listing so matching logic can be
exercised without one.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalkEntry:
    """An entry found below a walk root.

    Attributes:
        path: Path relative to the walk root, "/"-separated.
        is_dir: True for real directories (symlinks are never directories).
    """

    path: str
    is_dir: bool

    @property
    def depth(self) -> int:
        """Number of path segments."""
        return self.path.count("/") + 1


class TreeWalker(ABC):
    """Abstract base class for tree walkers.

    Example:
        >>> walker = LocalTreeWalker()
        >>> for entry in walker.walk(Path("/backup"), start="home"):
        ...     print(entry.path, entry.is_dir)
    """

    @abstractmethod
    def walk(
        self,
        root: Path,
        start: str = "",
        *,
        exclude: frozenset[str] = frozenset(),
    ) -> Iterator[WalkEntry]:
        """Yield every entry below ``root/start`` in pre-order.

        Paths are reported relative to ``root``, so an entry found while
        walking ``start="a"`` is reported as ``a/...``. The start directory
        itself is not reported. A missing start yields nothing.

        Args:
            root: Directory all reported paths are relative to.
            start: Relative directory to begin at ("" for the root).
            exclude: Relative paths that are neither reported nor descended.

        Yields:
            WalkEntry instances, parents before children, siblings sorted.
        """


class LocalTreeWalker(TreeWalker):
    """Walks a real directory tree without following symlinks."""

    def walk(
        self,
        root: Path,
        start: str = "",
        *,
        exclude: frozenset[str] = frozenset(),
    ) -> Iterator[WalkEntry]:
        top = root / start if start else root
        if not top.is_dir() or top.is_symlink():
            return
        yield from self._walk_dir(top, start, exclude)

    def _walk_dir(
        self, directory: Path, prefix: str, exclude: frozenset[str]
    ) -> Iterator[WalkEntry]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except PermissionError:
            logger.warning("Permission denied scanning directory: %s", directory)
            return

        for entry in entries:
            rel = f"{prefix}/{entry.name}" if prefix else entry.name
            if rel in exclude:
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                logger.warning("Cannot determine type of: %s", entry.path)
                continue
            yield WalkEntry(path=rel, is_dir=is_dir)
            if is_dir:
                yield from self._walk_dir(Path(entry.path), rel, exclude)


class MemoryTreeWalker(TreeWalker):
    """Serves walks from in-memory listings.

    Args:
        trees: Mapping of root directory to its entries. Each entry is a
            relative path; a trailing "/" marks a directory. Parent
            directories are implied.
    """

    def __init__(self, trees: dict[Path, Iterable[str]]) -> None:
        self._trees: dict[Path, dict[str, bool]] = {}
        for root, listing in trees.items():
            entries: dict[str, bool] = {}
            for raw in listing:
                is_dir = raw.endswith("/")
                path = raw.rstrip("/")
                parts = path.split("/")
                for i in range(1, len(parts)):
                    entries["/".join(parts[:i])] = True
                entries[path] = entries.get(path, False) or is_dir
            self._trees[root] = entries

    def walk(
        self,
        root: Path,
        start: str = "",
        *,
        exclude: frozenset[str] = frozenset(),
    ) -> Iterator[WalkEntry]:
        entries = self._trees.get(root, {})
        if start and not entries.get(start, False):
            return
        prefix = f"{start}/" if start else ""

        def excluded(path: str) -> bool:
            return any(path == e or path.startswith(f"{e}/") for e in exclude)

        # Sorting by segment tuples gives pre-order with sorted siblings
        for path in sorted(entries, key=lambda p: p.split("/")):
            if not path.startswith(prefix) or excluded(path):
                continue
            yield WalkEntry(path=path, is_dir=entries[path])
