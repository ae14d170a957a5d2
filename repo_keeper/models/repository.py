"""Repository models"""
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from repo_keeper.models.branch import BranchStatus


@dataclass(frozen=True)
class RepositoryRecord:
    """A repository found on disk. Identity is the canonical path."""
    path: str
    git_dir: str
    is_submodule: bool = False
    remote_url: Optional[str] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep)) or self.path

    def hierarchical_name(self, root: Optional[str] = None) -> str:
        """Path relative to the scan root using forward slashes."""
        if not root:
            return self.name
        try:
            relative = os.path.relpath(self.path, root)
        except ValueError:  # Different drives on Windows
            return self.name
        if relative in (".", "") or relative.startswith(".."):
            return self.name
        return relative.replace(os.sep, "/")


@dataclass(frozen=True)
class RepositoryStatus:
    """Snapshot of one repository, built fresh on every scan."""
    record: RepositoryRecord
    has_uncommitted_changes: bool = False
    local_branches: Tuple[BranchStatus, ...] = ()
    error_message: Optional[str] = None
    name: str = ""

    @property
    def path(self) -> str:
        return self.record.path

    @property
    def remote_url(self) -> Optional[str]:
        return self.record.remote_url

    @property
    def display_name(self) -> str:
        return self.name or self.record.name

    @property
    def has_errors(self) -> bool:
        return bool(self.error_message and self.error_message.strip())

    @property
    def are_branches_synced(self) -> bool:
        """True when every branch is 0/0. Vacuously true without branches."""
        return all(branch.is_synced for branch in self.local_branches)

    @property
    def is_out_of_sync(self) -> bool:
        return not self.has_errors and not self.are_branches_synced

    @property
    def current_branch(self) -> Optional[str]:
        return next((b.name for b in self.local_branches if b.is_current), None)

    @property
    def tracked_branches_count(self) -> int:
        return sum(1 for b in self.local_branches if b.has_upstream)

    @property
    def untracked_branches_count(self) -> int:
        return sum(1 for b in self.local_branches if not b.has_upstream)

    @property
    def commits_ahead(self) -> int:
        return sum(b.ahead_count for b in self.local_branches)

    @property
    def commits_behind(self) -> int:
        return sum(b.behind_count for b in self.local_branches)
