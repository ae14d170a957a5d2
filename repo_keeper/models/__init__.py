"""Data models for repo-keeper."""

from .branch import BranchStatus
from .repository import RepositoryRecord, RepositoryStatus
from .outcome import BranchUpdateResult, SyncOutcome, SyncReport, UpdateAction
from .prune import PruneCandidate, PruneReason, PruneResult
from .tag import TagRemovalResult

__all__ = [
    "BranchStatus",
    "RepositoryRecord",
    "RepositoryStatus",
    "BranchUpdateResult",
    "SyncOutcome",
    "SyncReport",
    "UpdateAction",
    "PruneCandidate",
    "PruneReason",
    "PruneResult",
    "TagRemovalResult",
]
