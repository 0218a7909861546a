"""History cutoff analysis.

Determines how far back the metadata chain has to be rewritten. A name
whose earliest increment says it was *missing* only has content from that
point on, so metadata files dated before it cannot describe it. If every
matched name is like that, older metadata files can be skipped. A single
name that existed before recorded history began disables the cutoff.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from rdprune.archive.scanner import ScanResult
from rdprune.models.archive import HistoryEntry, HistoryKind, IncrementRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CutoffResult:
    """Outcome of the cutoff analysis.

    Attributes:
        cutoff: Earliest instant whose metadata must be scanned, or None
            when the whole chain has to be scanned.
        blocking: Names whose history prevents a cutoff.
    """

    cutoff: datetime | None
    blocking: tuple[str, ...] = ()

    def requires(self, instant: datetime) -> bool:
        """Check whether a metadata file dated ``instant`` must be rewritten."""
        return self.cutoff is None or instant >= self.cutoff


class CutoffAnalyzer:
    """Tracks the earliest history entry per ArchiveName."""

    def __init__(self) -> None:
        self._earliest: dict[str, HistoryEntry] = {}

    @classmethod
    def from_scan(cls, scan: ScanResult) -> "CutoffAnalyzer":
        """Seed an analyzer with everything a scan found."""
        analyzer = cls()
        for name in scan.mirror_files:
            analyzer.observe_alive(name)
        for name in (*scan.mirror_dirs, *scan.mirror_dir_names):
            analyzer.observe_alive(name)
        for name in (*scan.increment_dirs, *scan.increment_dir_names):
            analyzer.observe_alive(name)
        for record in scan.increment_files:
            analyzer.observe_increment(record)
        return analyzer

    @property
    def history(self) -> dict[str, HistoryEntry]:
        """Earliest entry per name."""
        return dict(self._earliest)

    def observe_alive(self, name: str) -> None:
        """Record that a name exists right now."""
        self._observe(HistoryEntry.alive(name))

    def observe_increment(self, record: IncrementRecord) -> None:
        """Record an increment of a matched name."""
        self._observe(HistoryEntry.from_increment(record))

    def _observe(self, entry: HistoryEntry) -> None:
        current = self._earliest.get(entry.name)
        if current is None or entry.instant < current.instant:
            self._earliest[entry.name] = entry

    def analyze(self) -> CutoffResult:
        """Compute the global cutoff.

        Returns:
            CutoffResult with the earliest timestamp across all names, or
            no cutoff if any name's earliest entry is not a missing marker.
        """
        if not self._earliest:
            return CutoffResult(cutoff=None)

        blocking = tuple(
            sorted(
                name for name, entry in self._earliest.items() if entry.kind != HistoryKind.MISSING
            )
        )
        if blocking:
            logger.info(
                "No history cutoff: %d name(s) predate recorded history (e.g. %s)",
                len(blocking),
                blocking[0],
            )
            return CutoffResult(cutoff=None, blocking=blocking)

        cutoff = min(entry.instant for entry in self._earliest.values())
        logger.info("History cutoff at %s", cutoff.isoformat())
        return CutoffResult(cutoff=cutoff)
