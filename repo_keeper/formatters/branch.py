"""Branch name and sync formatting utilities."""

from repo_keeper.constants import (
    SYMBOL_AHEAD,
    SYMBOL_BEHIND,
    SYMBOL_CURRENT_BRANCH,
    SYMBOL_OK,
)
from repo_keeper.models import BranchStatus


def format_branch_name(name: str, is_current: bool = False) -> str:
    """
    Format branch name with optional current branch indicator.

    Args:
        name: Branch name
        is_current: Whether this is the current branch

    Returns:
        Formatted branch name
    """
    return name + (SYMBOL_CURRENT_BRANCH if is_current else "")


def format_counts(ahead: int, behind: int) -> str:
    """Counts such as "↑2 ↓1", empty when both are zero."""
    parts = []
    if ahead:
        parts.append(f"{SYMBOL_AHEAD}{ahead}")
    if behind:
        parts.append(f"{SYMBOL_BEHIND}{behind}")
    return " ".join(parts)


def format_sync(branch: BranchStatus) -> str:
    """
    Format how a branch relates to its upstream.

    Returns:
        "gone" for a deleted upstream, "local only" without upstream,
        ✓ when synced, otherwise the ahead/behind counts
    """
    if branch.is_gone:
        return "[red]gone[/red]"
    if not branch.has_upstream:
        return "[dim]local only[/dim]"
    if branch.is_synced:
        return SYMBOL_OK
    return format_counts(branch.ahead_count, branch.behind_count)
