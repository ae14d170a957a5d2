"""Synchronization of out-of-sync repositories."""

from typing import Iterable, List, Optional, Tuple

from repo_keeper.constants import DEFAULT_REMOTE, STASH_MESSAGE
from repo_keeper.exceptions import (
    ConfigurationError,
    GitOperationError,
    OperationCancelledError,
    SynchronizationFailure,
)
from repo_keeper.logging_config import get_logger
from repo_keeper.models import (
    BranchStatus,
    BranchUpdateResult,
    RepositoryRecord,
    RepositoryStatus,
    SyncOutcome,
    SyncReport,
    UpdateAction,
)
from repo_keeper.services.git.executor import GitCommandExecutor, git_args
from repo_keeper.services.interaction import Interaction, NullInteraction

logger = get_logger(__name__)

CANCELLED_MESSAGE = "Operation cancelled"
_NOTHING_STASHED = "No local changes to save"


def describe_status(status: RepositoryStatus) -> str:
    """One-line summary used when offering a repository for update."""
    parts = [status.display_name]
    if status.commits_ahead:
        parts.append(f"↑{status.commits_ahead}")
    if status.commits_behind:
        parts.append(f"↓{status.commits_behind}")
    if status.has_uncommitted_changes:
        parts.append("(uncommitted changes)")
    return " ".join(parts)


class SynchronizationEngine:
    """Brings local branches in line with their upstreams.

    Repositories are handled one at a time. A failure is recorded in the
    repository's SyncOutcome and never stops the rest of the batch.
    """

    def __init__(
        self,
        executor: GitCommandExecutor,
        interaction: Optional[Interaction] = None,
        with_uncommitted: bool = False,
        push_new_branches: bool = False,
        push: bool = False,
    ):
        """Initialize the engine.

        Args:
            executor: Runs the git commands
            interaction: Progress and selection hooks
            with_uncommitted: Stash local changes and update those repositories too
            push_new_branches: Publish branches without an upstream
            push: Push branches that are ahead of their upstream
        """
        self.executor = executor
        self.interaction = interaction or NullInteraction()
        self.with_uncommitted = with_uncommitted
        self.push_new_branches = push_new_branches
        self.push = push

    def find_out_of_sync(
        self,
        statuses: Iterable[RepositoryStatus],
        with_uncommitted: Optional[bool] = None,
    ) -> List[RepositoryStatus]:
        """Repositories that can be updated: no errors, not synced, and clean
        unless uncommitted changes are allowed."""
        allow_changes = self.with_uncommitted if with_uncommitted is None else with_uncommitted
        return [
            status for status in statuses
            if status.is_out_of_sync
            and (allow_changes or not status.has_uncommitted_changes)
        ]

    def select(self, candidates: List[RepositoryStatus], automatic: bool = False) -> List[RepositoryStatus]:
        """Pick the repositories to update."""
        if automatic or not candidates:
            return list(candidates)
        return self.interaction.select(
            "Repositories to update", candidates, describe_status
        )

    def synchronize(self, statuses: Iterable[RepositoryStatus]) -> SyncReport:
        """Update each repository in order and report every outcome."""
        report = SyncReport()
        for status in statuses:
            if self.executor.cancelled:
                report.add(self._failed(status, CANCELLED_MESSAGE))
                continue

            self.interaction.notify(f"Updating {status.display_name}...")
            try:
                outcome = self._synchronize_repository(status)
            except OperationCancelledError:
                outcome = self._failed(status, CANCELLED_MESSAGE)
            except Exception as e:
                logger.error(f"Unexpected error updating {status.display_name}: {e}", exc_info=True)
                outcome = self._failed(status, str(e))

            if not outcome.succeeded:
                self.interaction.notify(
                    f"Failed to update {outcome.name}: {outcome.error_message}"
                )
            report.add(outcome)

        logger.info(f"Synchronization finished: {report.succeeded} succeeded, {report.failed} failed")
        return report

    def _synchronize_repository(self, status: RepositoryStatus) -> SyncOutcome:
        record = status.record
        name = status.display_name

        if not status.local_branches:
            error = ConfigurationError("Repository has no local branches to update")
            return self._failed(status, str(error))
        if status.has_uncommitted_changes and not self.with_uncommitted:
            return self._failed(status, "Repository has uncommitted changes")

        stashed = False
        if status.has_uncommitted_changes:
            try:
                stashed = self._stash(record)
            except OperationCancelledError:
                raise
            except GitOperationError as e:
                return self._failed(status, f"Could not stash changes: {e.message}")

        tracker = _HeadTracker(self.executor, record, status.current_branch)
        results: List[BranchUpdateResult] = []
        failure: Optional[SynchronizationFailure] = None

        try:
            for branch in status.local_branches:
                result = self._update_branch(record, branch, tracker)
                results.append(result)
                if not result.ok:
                    failure = SynchronizationFailure(name, branch.name, result.error)
                    break
        finally:
            restore_errors = self._restore(record, tracker, stashed)

        if failure is None and restore_errors:
            failure = SynchronizationFailure(name, None, "; ".join(restore_errors))
        elif failure is not None and restore_errors:
            failure = SynchronizationFailure(
                name, failure.branch, "; ".join([failure.message, *restore_errors])
            )

        if failure is not None:
            logger.warning(str(failure))
            return SyncOutcome(
                repository_path=record.path,
                name=name,
                succeeded=False,
                failed_branch=failure.branch,
                error_message=failure.message,
                branch_results=tuple(results),
                stashed=stashed,
            )

        logger.info(f"Updated {name}")
        return SyncOutcome(
            repository_path=record.path,
            name=name,
            succeeded=True,
            branch_results=tuple(results),
            stashed=stashed,
        )

    def _update_branch(
        self, record: RepositoryRecord, branch: BranchStatus, tracker: "_HeadTracker"
    ) -> BranchUpdateResult:
        """Apply the update rule for one branch. Git failures become a FAILED result."""
        try:
            return self._apply_branch_rule(record, branch, tracker)
        except OperationCancelledError:
            raise
        except GitOperationError as e:
            return BranchUpdateResult(branch.name, UpdateAction.FAILED, error=e.message or str(e))

    def _apply_branch_rule(
        self, record: RepositoryRecord, branch: BranchStatus, tracker: "_HeadTracker"
    ) -> BranchUpdateResult:
        run_checked = self.executor.run_checked
        cwd = record.path

        if branch.is_gone:
            # Never resurrect a branch deleted on the remote
            return BranchUpdateResult(branch.name, UpdateAction.SKIPPED, note="upstream gone")

        if not branch.has_upstream:
            if not self.push_new_branches:
                return BranchUpdateResult(branch.name, UpdateAction.SKIPPED, note="no upstream")
            if not record.remote_url:
                return BranchUpdateResult(branch.name, UpdateAction.SKIPPED, note="no remote")
            run_checked(cwd, git_args(record, "push", "--set-upstream", DEFAULT_REMOTE, branch.name))
            return BranchUpdateResult(branch.name, UpdateAction.PUBLISHED)

        if branch.is_synced:
            return BranchUpdateResult(branch.name, UpdateAction.SKIPPED, note="in sync")

        upstream_ref = branch.upstream_ref or branch.upstream

        if branch.behind_count > 0 and branch.ahead_count == 0:
            if tracker.head == branch.name:
                run_checked(cwd, git_args(record, "merge", "--ff-only", upstream_ref))
            else:
                # Fast-forward without touching the working tree
                run_checked(
                    cwd, git_args(record, "fetch", ".", f"{upstream_ref}:refs/heads/{branch.name}")
                )
            return BranchUpdateResult(branch.name, UpdateAction.FAST_FORWARDED)

        if branch.is_diverged:
            tracker.checkout(branch.name)
            merge = self.executor.run(cwd, git_args(record, "merge", "--no-edit", upstream_ref))
            if not merge.ok:
                abort = self.executor.run(cwd, git_args(record, "merge", "--abort"))
                if not abort.ok:
                    logger.warning(f"merge --abort failed in {cwd}: {abort.stderr}")
                return BranchUpdateResult(
                    branch.name,
                    UpdateAction.FAILED,
                    error=merge.stderr or merge.stdout or f"merge exited with {merge.exit_code}",
                )
            if self.push:
                self._push(record, branch)
                return BranchUpdateResult(branch.name, UpdateAction.MERGED, note="pushed")
            return BranchUpdateResult(branch.name, UpdateAction.MERGED)

        # Ahead only
        if not self.push:
            return BranchUpdateResult(branch.name, UpdateAction.SKIPPED, note="ahead, push disabled")
        self._push(record, branch)
        return BranchUpdateResult(branch.name, UpdateAction.PUSHED)

    def _push(self, record: RepositoryRecord, branch: BranchStatus) -> None:
        remote = branch.remote_name or DEFAULT_REMOTE
        remote_ref = branch.remote_ref or f"refs/heads/{branch.name}"
        self.executor.run_checked(
            record.path, git_args(record, "push", remote, f"{branch.name}:{remote_ref}")
        )

    def _stash(self, record: RepositoryRecord) -> bool:
        """Stash local changes. Returns True if a stash entry was created."""
        output = self.executor.run_checked(
            record.path,
            git_args(record, "stash", "push", "--include-untracked", "-m", STASH_MESSAGE),
        )
        created = _NOTHING_STASHED not in output
        if created:
            logger.debug(f"Stashed local changes in {record.path}")
        return created

    def _restore(self, record: RepositoryRecord, tracker: "_HeadTracker", stashed: bool) -> List[str]:
        """Check out the original branch and pop the stash. Returns error messages."""
        errors = []
        try:
            tracker.restore()
        except OperationCancelledError:
            raise
        except GitOperationError as e:
            errors.append(f"Could not check out the original branch: {e.message}")

        if stashed:
            try:
                self.executor.run_checked(record.path, git_args(record, "stash", "pop"))
            except OperationCancelledError:
                raise
            except GitOperationError as e:
                errors.append(f"Could not restore stashed changes: {e.message}")
        return errors

    @staticmethod
    def _failed(status: RepositoryStatus, message: str) -> SyncOutcome:
        return SyncOutcome(
            repository_path=status.path,
            name=status.display_name,
            succeeded=False,
            error_message=message,
        )


class _HeadTracker:
    """Remembers what was checked out so it can be put back."""

    def __init__(self, executor: GitCommandExecutor, record: RepositoryRecord, current: Optional[str]):
        self.executor = executor
        self.record = record
        self.original = current
        self.head = current
        self._detached_at: Optional[str] = None
        self._moved = False

    def checkout(self, branch: str) -> None:
        if self.head == branch:
            return
        if self.original is None and self._detached_at is None:
            self._detached_at = self.executor.run_checked(
                self.record.path, git_args(self.record, "rev-parse", "HEAD")
            ).strip()
        self.executor.run_checked(self.record.path, git_args(self.record, "checkout", "--quiet", branch))
        self.head = branch
        self._moved = True

    def restore(self) -> None:
        if not self._moved:
            return
        target: Tuple[str, ...]
        if self.original is not None:
            target = ("checkout", "--quiet", self.original)
        else:
            target = ("checkout", "--quiet", "--detach", self._detached_at)
        self.executor.run_checked(self.record.path, git_args(self.record, *target))
        self.head = self.original
        self._moved = False
