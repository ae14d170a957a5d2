"""Display and formatting service for repository information"""
from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.table import Table

from repo_keeper.constants import CLI_COLORS, OUT_OF_SYNC_COLUMNS, STATUS_COLUMNS
from repo_keeper.exceptions import DiscoveryError
from repo_keeper.formatters import (
    format_branch_name,
    format_changes,
    format_counts,
    format_date,
    format_notes,
    format_outcome,
    format_prune_reasons,
    format_prune_result,
    format_sync,
    format_tag_result,
    get_branch_style_type,
)
from repo_keeper.logging_config import get_logger
from repo_keeper.models import (
    PruneCandidate,
    PruneResult,
    RepositoryStatus,
    SyncReport,
    TagRemovalResult,
)

logger = get_logger(__name__)


class DisplayService:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def display_out_of_sync_table(self, statuses: List[RepositoryStatus]) -> None:
        """One row per repository that needs an update."""
        if not statuses:
            self.console.print("[green]All repositories are in sync.[/green]")
            return

        table = Table(title="Out of sync repositories")
        for col in OUT_OF_SYNC_COLUMNS:
            table.add_column(col.label, style=col.style or None)

        for status in statuses:
            table.add_row(
                status.display_name,
                status.remote_url or "-",
                str(status.commits_ahead) if status.commits_ahead else "",
                str(status.commits_behind) if status.commits_behind else "",
                format_changes(status),
            )
        self.console.print(table)

    def display_status_table(
        self, statuses: List[RepositoryStatus], protected_branches: Iterable[str]
    ) -> None:
        """One row per local branch of every repository."""
        protected = set(protected_branches)
        table = Table()
        for col in STATUS_COLUMNS:
            table.add_column(col.label, style=col.style or None)

        for status in statuses:
            if status.has_errors:
                table.add_row(status.display_name, "", "", "", "", f"[red]{status.error_message}[/red]")
                continue
            if not status.local_branches:
                table.add_row(status.display_name, "[dim]no branches[/dim]", "", "", "", "")
                continue

            for index, branch in enumerate(status.local_branches):
                style_type = get_branch_style_type(branch, protected)
                table.add_row(
                    status.display_name if index == 0 else "",
                    format_branch_name(branch.name, branch.is_current),
                    branch.upstream or "",
                    format_sync(branch),
                    format_date(branch.last_commit_date),
                    format_notes(branch),
                    style=CLI_COLORS.get(style_type),
                )
        self.console.print(table)

        total = len(statuses)
        errored = sum(1 for s in statuses if s.has_errors)
        out_of_sync = sum(1 for s in statuses if s.is_out_of_sync)
        dirty = sum(1 for s in statuses if s.has_uncommitted_changes)
        self.console.print(
            f"\n{total} repositories: {out_of_sync} out of sync, "
            f"{dirty} with uncommitted changes, {errored} with errors"
        )

    def display_sync_report(self, report: SyncReport) -> None:
        for outcome in report.outcomes:
            self.console.print(format_outcome(outcome))
            if self.verbose:
                for result in outcome.branch_results:
                    note = f" ({result.note})" if result.note else ""
                    error = f": {result.error}" if result.error else ""
                    self.console.print(f"    {result.branch}: {result.action.value}{note}{error}")
        self.console.print(
            f"\nUpdated {report.succeeded} repositories, {report.failed} failed"
        )

    def display_prune_candidates(self, candidates: List[PruneCandidate]) -> None:
        if not candidates:
            self.console.print("No branches to prune.")
            return

        table = Table(title="Prune candidates")
        table.add_column("Repository")
        table.add_column("Branch")
        table.add_column("Reasons")
        table.add_column("Sync")
        table.add_column("Last Commit")
        for candidate in candidates:
            branch = candidate.branch
            table.add_row(
                candidate.repository_path,
                branch.name,
                format_prune_reasons(candidate),
                format_counts(branch.ahead_count, branch.behind_count),
                format_date(branch.last_commit_date),
                style="red" if candidate.requires_force else None,
            )
        self.console.print(table)

    def display_prune_results(self, results: List[PruneResult]) -> None:
        for result in results:
            self.console.print(f"{result.candidate.repository_path}: {format_prune_result(result)}")

    def display_tags(self, found: Dict[str, List[str]]) -> None:
        if not found:
            self.console.print("No matching tags.")
            return
        for path, tags in found.items():
            self.console.print(f"[bold]{path}[/bold]")
            for tag in tags:
                self.console.print(f"  {tag}")

    def display_tag_results(self, results: List[TagRemovalResult]) -> None:
        for result in results:
            self.console.print(f"{result.repository_path}: {format_tag_result(result)}")

    def display_discovery_errors(self, errors: List[DiscoveryError]) -> None:
        for error in errors:
            self.console.print(f"[yellow]{error}[/yellow]")
