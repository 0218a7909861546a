"""Deletion planning: history cutoff and deletion set construction."""

from rdprune.planning.cutoff import CutoffAnalyzer, CutoffResult
from rdprune.planning.deletion_set import BuildResult, DeletionSetBuilder

__all__ = ["BuildResult", "CutoffAnalyzer", "CutoffResult", "DeletionSetBuilder"]
