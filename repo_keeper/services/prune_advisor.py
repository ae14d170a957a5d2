"""Branch pruning recommendations and deletion."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from repo_keeper.constants import DEFAULT_PROTECTED_BRANCHES
from repo_keeper.exceptions import GitOperationError, OperationCancelledError
from repo_keeper.logging_config import get_logger
from repo_keeper.models import (
    BranchStatus,
    PruneCandidate,
    PruneReason,
    PruneResult,
    RepositoryStatus,
)
from repo_keeper.services.git.executor import GitCommandExecutor, git_args
from repo_keeper.services.interaction import Interaction, NullInteraction

logger = get_logger(__name__)


@dataclass(frozen=True)
class PruneCriteria:
    """Enabled prune axes. A branch matching any of them is a candidate."""
    merged: bool = False
    gone: bool = False
    older_than_days: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.merged and not self.gone and self.older_than_days is None

    def effective(self) -> "PruneCriteria":
        """With nothing enabled, fall back to merged branches."""
        if self.is_empty:
            return PruneCriteria(merged=True)
        return self


def describe_candidate(candidate: PruneCandidate) -> str:
    reasons = ", ".join(sorted(reason.value for reason in candidate.reasons))
    label = f"{candidate.branch_name} ({reasons})"
    if candidate.requires_force:
        label += " [not fully merged]"
    return label


class PruneAdvisor:
    """Finds local branches worth deleting and deletes the chosen ones."""

    def __init__(
        self,
        executor: GitCommandExecutor,
        criteria: Optional[PruneCriteria] = None,
        protected_branches: Optional[Iterable[str]] = None,
        interaction: Optional[Interaction] = None,
    ):
        self.executor = executor
        self.criteria = (criteria or PruneCriteria()).effective()
        self.protected_branches = set(
            DEFAULT_PROTECTED_BRANCHES if protected_branches is None else protected_branches
        )
        self.interaction = interaction or NullInteraction()

    def advise(
        self, statuses: Iterable[RepositoryStatus], now: Optional[datetime] = None
    ) -> List[PruneCandidate]:
        """Candidates in repository then branch order.

        Repositories with errors, the checked out branch and protected
        branches are never proposed.
        """
        now = now or datetime.now(timezone.utc)
        candidates = []
        for status in statuses:
            if status.has_errors:
                logger.debug(f"Skipping {status.display_name}: {status.error_message}")
                continue
            for branch in status.local_branches:
                if branch.is_current or branch.name in self.protected_branches:
                    continue
                reasons = self._reasons(branch, now)
                if reasons:
                    candidates.append(
                        PruneCandidate(status.path, branch, frozenset(reasons), status.record)
                    )
        return candidates

    def select(self, candidates: List[PruneCandidate], automatic: bool = False) -> List[PruneCandidate]:
        if automatic or not candidates:
            return list(candidates)
        return self.interaction.select("Branches to delete", candidates, describe_candidate)

    def delete(
        self,
        candidates: Iterable[PruneCandidate],
        force: bool = False,
        dry_run: bool = False,
    ) -> List[PruneResult]:
        """Delete each candidate independently.

        Fully merged branches are deleted with ``branch -d``. The others need
        ``force`` and ``branch -D``; without it they are reported as skipped.
        """
        results = []
        for candidate in candidates:
            results.append(self._delete_one(candidate, force, dry_run))
        deleted = sum(1 for r in results if r.deleted)
        logger.info(f"Deleted {deleted} of {len(results)} branches")
        return results

    def _delete_one(self, candidate: PruneCandidate, force: bool, dry_run: bool) -> PruneResult:
        if candidate.requires_force and not force:
            return PruneResult(
                candidate, deleted=False, error="not fully merged; use --force to delete"
            )

        forced = candidate.requires_force
        if dry_run:
            self.interaction.notify(
                f"Would delete {candidate.branch_name} in {candidate.repository_path}"
            )
            return PruneResult(candidate, deleted=False, forced=forced, dry_run=True)

        flag = "-D" if forced else "-d"
        args = ["branch", flag, candidate.branch_name]
        if candidate.record is not None:
            args = git_args(candidate.record, *args)
        try:
            self.executor.run_checked(candidate.repository_path, args)
        except OperationCancelledError as e:
            return PruneResult(candidate, deleted=False, forced=forced, error=e.message)
        except GitOperationError as e:
            logger.warning(f"Could not delete {candidate.branch_name}: {e.message}")
            return PruneResult(candidate, deleted=False, forced=forced, error=e.message)

        self.interaction.notify(f"Deleted {candidate.branch_name} in {candidate.repository_path}")
        return PruneResult(candidate, deleted=True, forced=forced)

    def _reasons(self, branch: BranchStatus, now: datetime) -> set:
        reasons = set()
        if self.criteria.merged and branch.is_fully_merged:
            reasons.add(PruneReason.MERGED)
        if self.criteria.gone and branch.is_gone:
            reasons.add(PruneReason.GONE)
        if self.criteria.older_than_days is not None and branch.last_commit_date is not None:
            if now - branch.last_commit_date > timedelta(days=self.criteria.older_than_days):
                reasons.add(PruneReason.STALE)
        return reasons
