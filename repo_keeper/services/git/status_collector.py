"""Branch status collection for repo-keeper."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Sequence

from repo_keeper.constants import DEFAULT_PROTECTED_BRANCHES, DEFAULT_REMOTE
from repo_keeper.exceptions import RepoKeeperError, StatusCollectionError
from repo_keeper.logging_config import get_logger
from repo_keeper.models import BranchStatus, RepositoryRecord, RepositoryStatus
from repo_keeper.services.git.executor import GitCommandExecutor, git_args
from repo_keeper.services.git.parsers import (
    parse_ahead_behind,
    parse_commit_date,
    parse_porcelain_status,
    parse_ref_names,
    parse_upstream,
)
from repo_keeper.utils import get_optimal_worker_count

logger = get_logger(__name__)

ProgressCallback = Callable[[str], None]

_UPSTREAM_FORMAT = (
    "--format=%(upstream)%09%(upstream:short)%09%(upstream:remotename)%09%(upstream:remoteref)"
)


class BranchStatusCollector:
    """Builds a RepositoryStatus snapshot for each repository."""

    def __init__(
        self,
        executor: GitCommandExecutor,
        protected_branches: Optional[Iterable[str]] = None,
        root: Optional[str] = None,
    ):
        """Initialize the collector.

        Args:
            executor: Runs the git queries
            protected_branches: Branches never reported as fully merged
            root: Scan root used to build hierarchical repository names
        """
        self.executor = executor
        self.protected_branches = set(
            DEFAULT_PROTECTED_BRANCHES if protected_branches is None else protected_branches
        )
        self.root = root

    def collect(
        self,
        record: RepositoryRecord,
        reference_branch: Optional[str] = None,
        fetch_first: bool = True,
    ) -> RepositoryStatus:
        """Collect the status of one repository.

        Never raises for repository-level problems: the returned status
        carries ``error_message`` instead.
        """
        name = record.hierarchical_name(self.root)
        try:
            return self._collect(record, name, reference_branch, fetch_first)
        except RepoKeeperError as e:
            if self.executor.cancelled:
                message = "Operation cancelled"
            else:
                message = getattr(e, "message", None) or str(e)
            logger.warning(f"Could not collect status of {name}: {message}")
            return RepositoryStatus(record=record, error_message=message, name=name)
        except ValueError as e:
            # Unexpected query output
            error = StatusCollectionError(name, str(e))
            logger.warning(str(error))
            return RepositoryStatus(record=record, error_message=error.message, name=name)
        except Exception as e:
            logger.error(f"Unexpected error collecting status of {name}: {e}", exc_info=True)
            return RepositoryStatus(record=record, error_message=str(e) or type(e).__name__, name=name)

    def collect_many(
        self,
        records: Sequence[RepositoryRecord],
        reference_branch: Optional[str] = None,
        fetch_first: bool = True,
        workers: Optional[int] = None,
        sequential: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[RepositoryStatus]:
        """Collect statuses concurrently. Results keep the input order."""
        def work(record: RepositoryRecord) -> RepositoryStatus:
            if on_progress:
                on_progress(f"Checking {record.hierarchical_name(self.root)}...")
            return self.collect(record, reference_branch, fetch_first)

        if sequential or len(records) <= 1:
            return [work(record) for record in records]

        max_workers = min(get_optimal_worker_count(workers), len(records))
        logger.debug(f"Collecting {len(records)} repositories with {max_workers} workers")
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(work, records))

    def _collect(
        self,
        record: RepositoryRecord,
        name: str,
        reference_branch: Optional[str],
        fetch_first: bool,
    ) -> RepositoryStatus:
        run = self.executor.run
        checked = self.executor.run_checked
        cwd = record.path

        # Exit code 1 means the key is unset: a local-only repository
        remote = run(cwd, git_args(record, "config", "--get", f"remote.{DEFAULT_REMOTE}.url"))
        remote_url = remote.stdout.strip() if remote.ok else None
        if remote_url != record.remote_url:
            record = RepositoryRecord(record.path, record.git_dir, record.is_submodule, remote_url)

        if fetch_first and remote_url:
            checked(cwd, git_args(record, "fetch", "--prune", "--tags", DEFAULT_REMOTE))

        status_output = checked(cwd, git_args(record, "status", "--porcelain"))
        has_changes = parse_porcelain_status(status_output).has_changes

        branch_names = parse_ref_names(
            checked(cwd, git_args(record, "for-each-ref", "--format=%(refname:short)", "refs/heads/"))
        )

        head = run(cwd, git_args(record, "symbolic-ref", "--quiet", "--short", "HEAD"))
        current = head.stdout.strip() if head.ok else None  # None = detached HEAD

        branches = tuple(
            self._branch_status(record, branch, current, reference_branch)
            for branch in branch_names
        )
        return RepositoryStatus(
            record=record,
            has_uncommitted_changes=has_changes,
            local_branches=branches,
            name=name,
        )

    def _branch_status(
        self,
        record: RepositoryRecord,
        branch: str,
        current: Optional[str],
        reference_branch: Optional[str],
    ) -> BranchStatus:
        cwd = record.path
        upstream = parse_upstream(
            self.executor.run_checked(
                cwd, git_args(record, "for-each-ref", _UPSTREAM_FORMAT, f"refs/heads/{branch}")
            )
        )

        is_gone = False
        ahead = behind = 0
        if upstream is not None:
            is_gone = not self._ref_exists(record, upstream.ref)
            if not is_gone:
                ahead, behind = parse_ahead_behind(
                    self.executor.run_checked(
                        cwd,
                        git_args(record, "rev-list", "--left-right", "--count",
                                 f"{branch}...{upstream.ref}"),
                    )
                )

        is_merged = self._is_ancestor(record, branch, reference_branch or "HEAD")

        # Merged into the reference branch or HEAD; being in its own upstream is not enough
        is_current = branch == current
        is_fully_merged = (
            is_merged
            and not is_current
            and branch != reference_branch
            and branch not in self.protected_branches
        )

        last_commit = parse_commit_date(
            self.executor.run_checked(cwd, git_args(record, "log", "-1", "--format=%cI", branch, "--"))
        )

        return BranchStatus(
            repository_path=record.path,
            name=branch,
            upstream=upstream.short_name if upstream else None,
            is_current=is_current,
            ahead_count=ahead,
            behind_count=behind,
            is_merged=is_merged,
            is_gone=is_gone,
            last_commit_date=last_commit,
            is_fully_merged=is_fully_merged,
            upstream_ref=upstream.ref if upstream else None,
            remote_name=upstream.remote_name if upstream else None,
            remote_ref=upstream.remote_ref if upstream else None,
        )

    def _ref_exists(self, record: RepositoryRecord, ref: str) -> bool:
        result = self.executor.run(
            record.path, git_args(record, "show-ref", "--verify", "--quiet", ref)
        )
        return result.ok

    def _is_ancestor(self, record: RepositoryRecord, branch: str, target: str) -> bool:
        """``merge-base --is-ancestor``: exit 0 = yes, 1 = no, other = error."""
        result = self.executor.run(
            record.path, git_args(record, "merge-base", "--is-ancestor", branch, target)
        )
        if result.exit_code in (0, 1):
            return result.ok
        # Unknown reference branch or unborn HEAD
        logger.debug(f"{result.operation} in {record.path}: {result.stderr}")
        return False
