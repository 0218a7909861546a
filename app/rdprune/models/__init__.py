"""Data models for rdprune.

This package contains the archive, plan, and run history models.
"""

from rdprune.models.archive import ALIVE_NOW, HistoryEntry, HistoryKind, IncrementRecord
from rdprune.models.history import RunRecord, create_run_record
from rdprune.models.plan import (
    DeletionSet,
    EscapedNames,
    InstallJob,
    RewritePlan,
    RewriteResult,
    RewriteStatus,
)

__all__ = [
    "ALIVE_NOW",
    "DeletionSet",
    "EscapedNames",
    "HistoryEntry",
    "HistoryKind",
    "IncrementRecord",
    "InstallJob",
    "RewritePlan",
    "RewriteResult",
    "RewriteStatus",
    "RunRecord",
    "create_run_record",
]
