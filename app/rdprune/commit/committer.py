"""Plan confirmation and crash-safe installation.

The committer owns the single integrity gate of a run: the plan is
hashed when it is shown for confirmation and hashed again, from the
file on disk, right before anything in the archive changes. It then
swaps rewritten metadata files into place so that each destination is
always either fully original or fully replaced.
"""

import hashlib
import logging
import os
import re
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import NamedTuple

from rdprune.commit.session import Session
from rdprune.core.errors import InstallError, InsufficientSpace, PlanTampered, WorkspaceError
from rdprune.models.plan import DeletionSet, InstallJob, RewritePlan

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_MARGIN = 10 * 1024 * 1024


class DiskUsage(NamedTuple):
    total: int
    used: int
    free: int


def plan_hash(data: bytes) -> str:
    """SHA-256 hex digest of a serialized plan."""
    return hashlib.sha256(data).hexdigest()


def next_backup_path(destination: Path) -> Path:
    """Numbered backup path ``<name>.~N~`` with the smallest N not in use."""
    pattern = re.compile(rf"^{re.escape(destination.name)}\.~(\d+)~$")
    used: set[int] = set()
    for sibling in destination.parent.iterdir():
        match = pattern.match(sibling.name)
        if match:
            used.add(int(match.group(1)))
    number = 1
    while number in used:
        number += 1
    return destination.with_name(f"{destination.name}.~{number}~")


class PlanCommitter:
    """Confirms plans and installs rewritten files.

    Args:
        session: Workspace of the current run.
        keep_backups: Retain numbered backups of replaced files.
        backup_margin: Bytes required on top of the backup copies.
        disk_usage: Free-space probe, shutil.disk_usage by default.
    """

    def __init__(
        self,
        session: Session,
        *,
        keep_backups: bool = False,
        backup_margin: int = DEFAULT_BACKUP_MARGIN,
        disk_usage: Callable[[Path], DiskUsage] | None = None,
    ) -> None:
        self._session = session
        self._keep_backups = keep_backups
        self._backup_margin = backup_margin
        self._disk_usage = disk_usage or shutil.disk_usage

    def prepare(self, deletion_set: DeletionSet) -> RewritePlan:
        """Write the plan to the workspace and hash it for confirmation.

        Raises:
            WorkspaceError: If the plan file cannot be written.
        """
        data = deletion_set.serialize()
        plan_file = self._session.plan_path
        try:
            plan_file.write_bytes(data)
        except OSError as e:
            msg = f"Cannot write plan file {plan_file}: {e}"
            raise WorkspaceError(msg) from e
        digest = plan_hash(data)
        logger.info("Plan with %d name(s) has hash %s", len(deletion_set), digest[:12])
        return RewritePlan(deletion_set=deletion_set, plan_hash=digest, plan_file=plan_file)

    def verify(self, plan: RewritePlan) -> DeletionSet:
        """Re-read and rehash the plan file.

        Returns:
            The deletion set as stored in the plan file.

        Raises:
            PlanTampered: If the file is gone or its hash changed.
        """
        try:
            data = plan.plan_file.read_bytes()
        except OSError as e:
            raise PlanTampered(plan.plan_hash, f"unreadable ({e})") from e
        actual = plan_hash(data)
        if actual != plan.plan_hash:
            raise PlanTampered(plan.plan_hash, actual)
        return DeletionSet.deserialize(data)

    def check_space(self, jobs: Sequence[InstallJob], volume: Path) -> None:
        """Make sure retained backups fit on the metadata volume.

        Only enforced when backups are kept.

        Raises:
            InsufficientSpace: If the budget exceeds the free space.
            WorkspaceError: If the sizes or the free space cannot be read.
        """
        if not self._keep_backups or not jobs:
            return
        try:
            originals = sum(job.destination.stat().st_size for job in jobs)
            available = self._disk_usage(volume).free
        except OSError as e:
            msg = f"Cannot measure backup space on {volume}: {e}"
            raise WorkspaceError(msg) from e
        required = originals + self._backup_margin
        logger.debug("Backup budget %d bytes, %d free", required, available)
        if required > available:
            raise InsufficientSpace(required, available)

    def job_for(self, source: Path, destination: Path) -> InstallJob:
        return InstallJob(source=source, destination=destination, keep_backup=self._keep_backups)

    def install(self, job: InstallJob) -> None:
        """Swap one rewritten file into place.

        The original is copied to a numbered backup first. The new content
        goes to a sibling temporary file that replaces the destination in
        one rename. If that fails, the original is put back from the backup.

        Raises:
            InstallError: If the file could not be installed.
        """
        destination = job.destination
        backup: Path | None = None
        try:
            backup = next_backup_path(destination)
            shutil.copy2(destination, backup)
        except OSError as e:
            if backup is not None:
                backup.unlink(missing_ok=True)
            msg = f"Cannot back up {destination}: {e}"
            raise InstallError(msg) from e

        staging = destination.with_name(f".{destination.name}.rdprune-new")
        try:
            shutil.copyfile(job.source, staging)
            shutil.copymode(destination, staging)
            os.replace(staging, destination)
        except OSError as e:
            staging.unlink(missing_ok=True)
            self._restore(backup, destination)
            msg = f"Cannot install {destination}: {e}"
            raise InstallError(msg) from e

        if job.keep_backup:
            logger.info("Installed %s (backup %s)", destination, backup.name)
        else:
            backup.unlink(missing_ok=True)
            logger.info("Installed %s", destination)

    def install_all(self, jobs: Sequence[InstallJob]) -> list[Path]:
        """Install jobs in order, stopping at the first failure.

        Files installed before a failure stay installed; running the same
        prune again finishes the job.

        Returns:
            Destinations installed.

        Raises:
            InstallError: On the first failed install.
        """
        installed: list[Path] = []
        for job in jobs:
            self.install(job)
            installed.append(job.destination)
        return installed

    def _restore(self, backup: Path, destination: Path) -> None:
        staging = destination.with_name(f".{destination.name}.rdprune-restore")
        try:
            shutil.copy2(backup, staging)
            os.replace(staging, destination)
        except OSError as e:
            logger.error("Could not restore %s from %s: %s", destination, backup, e)
            staging.unlink(missing_ok=True)
            return
        backup.unlink(missing_ok=True)
        logger.warning("Restored %s from backup", destination)
