"""Prune engine.

Runs a prune as a fixed sequence of phases::

    SCAN -> PLAN -> REVIEW -> REWRITE -> VERIFY | INSTALL -> REMOVE -> DONE

Everything left of the bar only reads the archive and writes to the
session workspace; cancelling there leaves the archive untouched. VERIFY
re-checks the confirmed plan hash and is the last chance to abort.
INSTALL is the point of no return.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rdprune.archive.layout import ArchiveLayout, MetadataFile, MetadataKind
from rdprune.archive.scanner import ScanResult, TreeScanner
from rdprune.archive.walker import LocalTreeWalker, TreeWalker
from rdprune.commit.committer import DEFAULT_BACKUP_MARGIN, DiskUsage, PlanCommitter
from rdprune.commit.remover import ArchiveRemover, RemovalPlan, RemovalResult
from rdprune.commit.session import Session
from rdprune.core.errors import MalformedStream, UnsupportedFormat, UsageError
from rdprune.matching.pattern import PathMatcher, RecursionMode
from rdprune.models.plan import DeletionSet, InstallJob, RewritePlan, RewriteResult
from rdprune.planning.cutoff import CutoffAnalyzer, CutoffResult
from rdprune.planning.deletion_set import BuildResult, DeletionSetBuilder
from rdprune.rewrite.aux_records import AclRecordRewriter, StatisticsRewriter
from rdprune.rewrite.codec import Compressor, GzipCompressor
from rdprune.rewrite.metadata import MetadataRewriter

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Phases of a run, in order."""

    SCAN = "scan"
    PLAN = "plan"
    REVIEW = "review"
    REWRITE = "rewrite"
    VERIFY = "verify"
    INSTALL = "install"
    REMOVE = "remove"
    DONE = "done"

    @property
    def destructive(self) -> bool:
        """Whether the archive may change in this phase."""
        return self in (Phase.INSTALL, Phase.REMOVE, Phase.DONE)


POINT_OF_NO_RETURN = Phase.INSTALL


class MetadataStatus(str, Enum):
    """What happened to one metadata file."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class MetadataOutcome:
    """Rewrite outcome of one metadata file.

    Attributes:
        file: The metadata file.
        status: Changed, unchanged, or skipped by the cutoff.
        removed: Records dropped from it.
    """

    file: MetadataFile
    status: MetadataStatus
    removed: int = 0


@dataclass(frozen=True, slots=True)
class PruneOptions:
    """Settings of one run.

    Attributes:
        archive_root: Root directory of the archive.
        patterns: Absolute path globs to delete.
        mode: Recursion mode.
        dry_run: Only report planned actions.
        keep_temp: Keep the session workspace.
        keep_backups: Keep numbered backups of replaced metadata files.
        backup_margin_bytes: Extra space required when keeping backups.
        temp_dir: Parent directory for the session workspace.
    """

    archive_root: Path
    patterns: tuple[str, ...]
    mode: RecursionMode = RecursionMode.NONE
    dry_run: bool = False
    keep_temp: bool = False
    keep_backups: bool = False
    backup_margin_bytes: int = DEFAULT_BACKUP_MARGIN
    temp_dir: Path | None = None


@dataclass(frozen=True, slots=True)
class Review:
    """What the confirmation callback gets to see."""

    plan: RewritePlan
    build: BuildResult
    scan: ScanResult
    removal: RemovalPlan
    cutoff: CutoffResult


ReviewCallback = Callable[[Review], bool]


@dataclass(slots=True)
class PruneReport:
    """Everything a run did or would do.

    Attributes:
        phase: Last phase reached.
        build: The deletion set and its exclusions.
        cutoff: History cutoff used for metadata files.
        plan_hash: Hash the plan was confirmed with.
        metadata: Per-file rewrite outcomes.
        installed: Metadata files replaced.
        planned_removal: Paths selected for physical removal.
        removal: Physical removal results.
        confirmed: False when the user declined the plan.
        dry_run: Whether this was a dry run.
    """

    phase: Phase = Phase.SCAN
    build: BuildResult | None = None
    cutoff: CutoffResult | None = None
    plan_hash: str | None = None
    metadata: list[MetadataOutcome] = field(default_factory=lambda: [])
    installed: list[Path] = field(default_factory=lambda: [])
    planned_removal: RemovalPlan | None = None
    removal: list[RemovalResult] = field(default_factory=lambda: [])
    confirmed: bool = True
    dry_run: bool = False

    @property
    def deletion_set(self) -> DeletionSet:
        return self.build.deletion_set if self.build else DeletionSet.of(())

    @property
    def failures(self) -> list[RemovalResult]:
        return [r for r in self.removal if not r.success]

    @property
    def changed_files(self) -> list[MetadataFile]:
        return [m.file for m in self.metadata if m.status == MetadataStatus.CHANGED]


def _always_confirm(_review: Review) -> bool:
    return True


class PruneEngine:
    """Removes paths from an archive and from its metadata chain.

    Args:
        options: Run settings.
        walker: Tree walking capability (local filesystem by default).
        compressor: Stream codec (gzip by default).
        review: Called with the finalized plan; returning False aborts
            the run without changes. Confirms automatically by default.
        disk_usage: Free-space probe for the backup budget.
    """

    def __init__(
        self,
        options: PruneOptions,
        *,
        walker: TreeWalker | None = None,
        compressor: Compressor | None = None,
        review: ReviewCallback | None = None,
        disk_usage: Callable[[Path], DiskUsage] | None = None,
    ) -> None:
        self._options = options
        self._layout = ArchiveLayout(options.archive_root)
        self._walker = walker or LocalTreeWalker()
        self._compressor = compressor or GzipCompressor()
        self._review = review or _always_confirm
        self._disk_usage = disk_usage

    @property
    def layout(self) -> ArchiveLayout:
        return self._layout

    def run(self) -> PruneReport:
        """Execute all phases.

        Returns:
            PruneReport describing the run.

        Raises:
            MalformedPattern: On invalid patterns, before any I/O.
            UsageError: If the archive root is not an archive.
            UnsupportedFormat: On archives the engine cannot rewrite.
            MalformedStream: If a metadata file does not parse.
            PlanTampered: If the plan changed during review.
            InsufficientSpace: If retained backups would not fit.
            InstallError: If a metadata file could not be installed.
        """
        options = self._options
        report = PruneReport(dry_run=options.dry_run)

        matcher = PathMatcher.compile(options.patterns, options.mode)
        if not self._layout.is_archive():
            msg = f"{options.archive_root} is not an rdiff-backup archive"
            raise UsageError(msg)

        scan = TreeScanner(self._layout, matcher, self._walker).scan()

        report.phase = Phase.PLAN
        report.cutoff = CutoffAnalyzer.from_scan(scan).analyze()
        report.build = DeletionSetBuilder(options.mode).build(scan)
        deletion_set = report.build.deletion_set
        if not deletion_set:
            logger.info("Nothing to delete")
            report.phase = Phase.DONE
            return report

        removal = RemovalPlan.from_scan(self._layout, scan, deletion_set)
        report.planned_removal = removal

        with Session(parent=options.temp_dir, keep=options.keep_temp) as session:
            committer = PlanCommitter(
                session,
                keep_backups=options.keep_backups,
                backup_margin=options.backup_margin_bytes,
                disk_usage=self._disk_usage,
            )
            plan = committer.prepare(deletion_set)
            report.plan_hash = plan.plan_hash

            if options.dry_run:
                report.phase = Phase.REWRITE
                self._rewrite_chain(deletion_set, report.cutoff, session, committer, report)
                report.removal = ArchiveRemover(dry_run=True).remove(removal)
                return report

            report.phase = Phase.REVIEW
            review = Review(
                plan=plan, build=report.build, scan=scan, removal=removal, cutoff=report.cutoff
            )
            if not self._review(review):
                logger.info("Plan declined, nothing changed")
                report.confirmed = False
                return report

            report.phase = Phase.REWRITE
            jobs = self._rewrite_chain(deletion_set, report.cutoff, session, committer, report)

            report.phase = Phase.VERIFY
            committer.verify(plan)
            committer.check_space(jobs, self._layout.data_dir)

            report.phase = Phase.INSTALL
            logger.info("Point of no return: installing %d metadata file(s)", len(jobs))
            report.installed = committer.install_all(jobs)

            report.phase = Phase.REMOVE
            report.removal = ArchiveRemover().remove(removal)

        report.phase = Phase.DONE
        return report

    def _rewrite_chain(
        self,
        deletion_set: DeletionSet,
        cutoff: CutoffResult,
        session: Session,
        committer: PlanCommitter,
        report: PruneReport,
    ) -> list[InstallJob]:
        """Rewrite every metadata file the cutoff does not exclude."""
        rewriters = {
            MetadataKind.MIRROR_METADATA: MetadataRewriter(deletion_set),
            MetadataKind.ACCESS_CONTROL_LISTS: AclRecordRewriter(deletion_set),
            MetadataKind.EXTENDED_ATTRIBUTES: AclRecordRewriter(deletion_set),
            MetadataKind.FILE_STATISTICS: StatisticsRewriter(deletion_set),
        }
        jobs: list[InstallJob] = []

        for meta in self._layout.metadata_files():
            if not cutoff.requires(meta.instant):
                logger.debug("Skipping %s (before cutoff)", meta.path.name)
                report.metadata.append(MetadataOutcome(meta, MetadataStatus.SKIPPED))
                continue
            if meta.is_diff:
                msg = f"Cannot rewrite reverse-diffed metadata file {meta.path.name}"
                raise UnsupportedFormat(msg)

            result = self._rewrite_file(meta, rewriters[meta.kind])
            if not result.changed:
                report.metadata.append(MetadataOutcome(meta, MetadataStatus.UNCHANGED))
                continue

            report.metadata.append(MetadataOutcome(meta, MetadataStatus.CHANGED, result.removed))
            target = session.allocate(meta.path.name)
            self._compressor.write_text(target, result.content, meta.compressed)
            jobs.append(committer.job_for(target, meta.path))
            logger.info("Rewrote %s: %d record(s) removed", meta.path.name, result.removed)

        return jobs

    def _rewrite_file(
        self,
        meta: MetadataFile,
        rewriter: MetadataRewriter | AclRecordRewriter | StatisticsRewriter,
    ) -> RewriteResult:
        try:
            text = self._compressor.read_text(meta.path, meta.compressed)
        except OSError as e:
            msg = f"Cannot read {meta.path}: {e}"
            raise MalformedStream(msg) from e
        try:
            return rewriter.rewrite(text)
        except MalformedStream as e:
            msg = f"{meta.path.name}: {e}"
            raise MalformedStream(msg) from e
