"""Shared constants for repo-keeper."""

from dataclasses import dataclass
from typing import List


GIT_DIR = ".git"
GIT_MODULES_FILE = ".gitmodules"
GITDIR_PREFIX = "gitdir:"
DEFAULT_REMOTE = "origin"

DEFAULT_PROTECTED_BRANCHES = ("master", "main", "develop")

STASH_MESSAGE = "repo-keeper autostash"


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    style: str = ""


OUT_OF_SYNC_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("repository", "Repository", "grey70"),
    ColumnDefinition("remote", "Remote URL", "blue"),
    ColumnDefinition("ahead", "Ahead", "red"),
    ColumnDefinition("behind", "Behind", "yellow"),
    ColumnDefinition("changes", "Changes", ""),
]

STATUS_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("repository", "Repository", ""),
    ColumnDefinition("branch", "Branch", ""),
    ColumnDefinition("upstream", "Upstream", "dim"),
    ColumnDefinition("sync", "Sync", ""),
    ColumnDefinition("last_commit", "Last Commit", ""),
    ColumnDefinition("notes", "Notes", ""),
]


# Symbol constants
SYMBOL_OK = "✓"
SYMBOL_FAILED = "✗"
SYMBOL_WARNING = "⚠"
SYMBOL_CURRENT_BRANCH = "*"
SYMBOL_AHEAD = "↑"
SYMBOL_BEHIND = "↓"


class BranchStyleType:
    """Style types for branches."""

    PROTECTED = "protected"
    DELETABLE = "deletable"
    WARNING = "warning"  # Needs a forcing delete
    ACTIVE = "active"


# CLI colors (Rich color names)
CLI_COLORS = {
    BranchStyleType.PROTECTED: "cyan",
    BranchStyleType.DELETABLE: "green",
    BranchStyleType.WARNING: "red",
    BranchStyleType.ACTIVE: None,
}
