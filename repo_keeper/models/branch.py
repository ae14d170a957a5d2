"""Branch model"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class BranchStatus:
    """Relation of one local branch to its upstream.

    ``ahead_count`` counts commits present locally but not upstream,
    ``behind_count`` counts commits present upstream but not locally.
    """
    repository_path: str
    name: str
    upstream: Optional[str] = None  # Short name, e.g. origin/main
    is_current: bool = False
    ahead_count: int = 0
    behind_count: int = 0
    is_merged: bool = False
    is_gone: bool = False
    last_commit_date: Optional[datetime] = None
    is_fully_merged: bool = False
    upstream_ref: Optional[str] = None  # refs/remotes/origin/main
    remote_name: Optional[str] = None
    remote_ref: Optional[str] = None  # refs/heads/main on the remote

    @property
    def is_synced(self) -> bool:
        return self.ahead_count == 0 and self.behind_count == 0

    @property
    def has_upstream(self) -> bool:
        """Upstream is configured, whether or not its ref still resolves."""
        return bool(self.upstream)

    @property
    def is_tracked(self) -> bool:
        return self.has_upstream and not self.is_gone

    @property
    def can_be_safely_deleted(self) -> bool:
        return self.is_fully_merged

    @property
    def is_diverged(self) -> bool:
        return self.ahead_count > 0 and self.behind_count > 0
