"""Branch pruning models"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from repo_keeper.models.branch import BranchStatus
from repo_keeper.models.repository import RepositoryRecord


class PruneReason(Enum):
    """Why a branch is a deletion candidate."""
    MERGED = "merged"
    GONE = "gone"
    STALE = "stale"


@dataclass(frozen=True)
class PruneCandidate:
    """A local branch that matches at least one enabled prune criterion."""
    repository_path: str
    branch: BranchStatus
    reasons: FrozenSet[PruneReason]
    record: Optional[RepositoryRecord] = None

    @property
    def branch_name(self) -> str:
        return self.branch.name

    @property
    def can_be_safely_deleted(self) -> bool:
        return self.branch.can_be_safely_deleted

    @property
    def requires_force(self) -> bool:
        return not self.can_be_safely_deleted


@dataclass(frozen=True)
class PruneResult:
    """Outcome of deleting one candidate."""
    candidate: PruneCandidate
    deleted: bool
    forced: bool = False
    dry_run: bool = False
    error: Optional[str] = None
