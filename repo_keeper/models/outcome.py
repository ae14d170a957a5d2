"""Synchronization result models"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class UpdateAction(Enum):
    """What happened to a branch during synchronization."""
    SKIPPED = "skipped"
    FAST_FORWARDED = "fast-forwarded"
    MERGED = "merged"
    PUSHED = "pushed"
    PUBLISHED = "published"  # Pushed with --set-upstream
    FAILED = "failed"


@dataclass(frozen=True)
class BranchUpdateResult:
    """Result of updating one branch."""
    branch: str
    action: UpdateAction
    error: Optional[str] = None
    note: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SyncOutcome:
    """Per-repository result of an update attempt."""
    repository_path: str
    name: str
    succeeded: bool
    failed_branch: Optional[str] = None
    error_message: Optional[str] = None
    branch_results: Tuple[BranchUpdateResult, ...] = ()
    stashed: bool = False


@dataclass
class SyncReport:
    """Aggregate of a synchronization pass."""
    outcomes: List[SyncOutcome] = field(default_factory=list)

    def add(self, outcome: SyncOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.succeeded)

    @property
    def failures(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if not o.succeeded]
