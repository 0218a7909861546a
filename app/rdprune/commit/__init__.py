"""Plan confirmation, installation and physical removal."""

from rdprune.commit.committer import PlanCommitter, plan_hash
from rdprune.commit.remover import ArchiveRemover, RemovalPlan, RemovalResult
from rdprune.commit.session import Session

__all__ = [
    "ArchiveRemover",
    "PlanCommitter",
    "RemovalPlan",
    "RemovalResult",
    "Session",
    "plan_hash",
]
