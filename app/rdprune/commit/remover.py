"""Physical removal of pruned paths.

Runs after every metadata file is installed. Removal order is fixed:
mirror files, mirror directories (deepest first), increment files,
increment directories (deepest first), so a directory is only removed
once everything below it is gone.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rdprune.archive.layout import ArchiveLayout
from rdprune.archive.scanner import ScanResult
from rdprune.models.plan import DeletionSet

logger = logging.getLogger(__name__)


class RemovalStage(str, Enum):
    """Stages of physical removal, in execution order."""

    MIRROR_FILES = "mirror_files"
    MIRROR_DIRS = "mirror_dirs"
    INCREMENT_FILES = "increment_files"
    INCREMENT_DIRS = "increment_dirs"


@dataclass(frozen=True, slots=True)
class RemovalResult:
    """Result of removing one path.

    Attributes:
        path: Absolute path that was operated on.
        stage: Removal stage the path belongs to.
        success: Whether the removal completed successfully.
        error: Error message if the removal failed, None otherwise.
        dry_run: Whether this was a dry-run (no actual removal).
    """

    path: str
    stage: RemovalStage
    success: bool
    error: str | None = None
    dry_run: bool = False


@dataclass(slots=True)
class RemovalPlan:
    """Absolute paths to remove, grouped by stage."""

    mirror_files: list[Path] = field(default_factory=lambda: [])
    mirror_dirs: list[Path] = field(default_factory=lambda: [])
    increment_files: list[Path] = field(default_factory=lambda: [])
    increment_dirs: list[Path] = field(default_factory=lambda: [])

    @classmethod
    def from_scan(
        cls, layout: ArchiveLayout, scan: ScanResult, deletion_set: DeletionSet
    ) -> "RemovalPlan":
        """Select the scanned paths that belong to names in the deletion set.

        Names excluded from the set (collisions, directories in
        non-recursive mode) keep all of their files.
        """
        increments = layout.increments_dir
        plan = cls()
        plan.mirror_files = [layout.root / n for n in scan.mirror_files if n in deletion_set]
        plan.mirror_dirs = [layout.root / n for n in scan.mirror_dirs if n in deletion_set]
        plan.increment_files = [
            increments / r.path for r in scan.increment_files if r.name in deletion_set
        ]
        plan.increment_files += [increments / p for p in scan.unrecognized if p in deletion_set]
        plan.increment_dirs = [increments / p for p in scan.increment_dirs if p in deletion_set]
        return plan

    def stages(self) -> list[tuple[RemovalStage, list[Path]]]:
        return [
            (RemovalStage.MIRROR_FILES, self.mirror_files),
            (RemovalStage.MIRROR_DIRS, self.mirror_dirs),
            (RemovalStage.INCREMENT_FILES, self.increment_files),
            (RemovalStage.INCREMENT_DIRS, self.increment_dirs),
        ]

    def __len__(self) -> int:
        return sum(len(paths) for _, paths in self.stages())


class ArchiveRemover:
    """Removes files and emptied directories from an archive.

    Failures are isolated per path: every path is attempted and reported.

    Attributes:
        _dry_run: If True, report what would be removed without removing.
    """

    def __init__(self, dry_run: bool = False) -> None:
        self._dry_run = dry_run

    def remove(self, plan: RemovalPlan) -> list[RemovalResult]:
        """Remove every path of the plan in stage order.

        Returns:
            One RemovalResult per path.
        """
        results: list[RemovalResult] = []
        for stage, paths in plan.stages():
            is_dir_stage = stage in (RemovalStage.MIRROR_DIRS, RemovalStage.INCREMENT_DIRS)
            for path in paths:
                results.append(self._remove_single(path, stage, is_dir_stage))
        return results

    def _remove_single(self, path: Path, stage: RemovalStage, is_dir: bool) -> RemovalResult:
        if self._dry_run:
            logger.info("Dry-run: would remove %s", path)
            return RemovalResult(path=str(path), stage=stage, success=True, dry_run=True)

        try:
            if is_dir:
                path.rmdir()
            elif path.exists() or path.is_symlink():
                path.unlink()
            else:
                return RemovalResult(
                    path=str(path),
                    stage=stage,
                    success=False,
                    error=f"Path does not exist: {path}",
                )
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
            return RemovalResult(path=str(path), stage=stage, success=False, error=str(e))

        logger.debug("Removed %s", path)
        return RemovalResult(path=str(path), stage=stage, success=True)
