"""Status, outcome and deletion formatting utilities."""

from typing import Iterable

from repo_keeper.constants import (
    BranchStyleType,
    SYMBOL_FAILED,
    SYMBOL_OK,
    SYMBOL_WARNING,
)
from repo_keeper.models import (
    BranchStatus,
    PruneCandidate,
    PruneResult,
    RepositoryStatus,
    SyncOutcome,
    TagRemovalResult,
)


def format_changes(status: RepositoryStatus) -> str:
    """Working tree indicator of a repository."""
    if status.has_errors:
        return SYMBOL_WARNING
    return "[yellow]uncommitted[/yellow]" if status.has_uncommitted_changes else SYMBOL_OK


def format_notes(branch: BranchStatus) -> str:
    notes = []
    if branch.is_fully_merged:
        notes.append("merged")
    if branch.is_diverged:
        notes.append("diverged")
    return ", ".join(notes)


def format_prune_reasons(candidate: PruneCandidate) -> str:
    """Reasons sorted by name, e.g. "gone, merged"."""
    return ", ".join(sorted(reason.value for reason in candidate.reasons))


def format_outcome(outcome: SyncOutcome) -> str:
    if outcome.succeeded:
        return f"[green]{SYMBOL_OK}[/green] {outcome.name}"
    where = f" (branch {outcome.failed_branch})" if outcome.failed_branch else ""
    return f"[red]{SYMBOL_FAILED}[/red] {outcome.name}{where}: {outcome.error_message}"


def format_prune_result(result: PruneResult) -> str:
    name = result.candidate.branch_name
    if result.dry_run:
        return f"[dim]would delete[/dim] {name}"
    if result.deleted:
        suffix = " (forced)" if result.forced else ""
        return f"[green]{SYMBOL_OK}[/green] deleted {name}{suffix}"
    return f"[red]{SYMBOL_FAILED}[/red] {name}: {result.error}"


def format_tag_result(result: TagRemovalResult) -> str:
    places = []
    if result.local_removed:
        places.append("local")
    if result.remote_removed:
        places.append("remote")
    removed = f" ({', '.join(places)})" if places else ""
    if result.ok:
        return f"[green]{SYMBOL_OK}[/green] {result.tag}{removed}"
    return f"[red]{SYMBOL_FAILED}[/red] {result.tag}{removed}: {result.error}"


def get_branch_style_type(
    branch: BranchStatus, protected_branches: Iterable[str]
) -> str:
    """
    Determine the style type for a branch row.

    Args:
        branch: Branch status
        protected_branches: Names of protected branches

    Returns:
        Style type constant from BranchStyleType
    """
    if branch.name in protected_branches:
        return BranchStyleType.PROTECTED
    if branch.is_current:
        return BranchStyleType.ACTIVE
    if branch.can_be_safely_deleted:
        return BranchStyleType.DELETABLE
    if branch.is_gone:
        return BranchStyleType.WARNING
    return BranchStyleType.ACTIVE
