"""Git-related services for repo-keeper."""

from .executor import CommandResult, GitCommandExecutor, git_args
from .status_collector import BranchStatusCollector
from .tags import TagService

__all__ = [
    "CommandResult",
    "GitCommandExecutor",
    "git_args",
    "BranchStatusCollector",
    "TagService",
]
