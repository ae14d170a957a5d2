"""Core functionality for repo-keeper"""

import signal
import sys
from contextlib import nullcontext
from typing import Dict, List, Optional, Sequence, Union

from rich.console import Console
from rich.progress import Progress

from repo_keeper.config import Config
from repo_keeper.logging_config import get_logger
from repo_keeper.models import (
    PruneResult,
    RepositoryRecord,
    RepositoryStatus,
    SyncReport,
    TagRemovalResult,
)
from repo_keeper.services.discovery import RepositoryDiscoverer, canonical_path
from repo_keeper.services.display_service import DisplayService
from repo_keeper.services.git.executor import GitCommandExecutor
from repo_keeper.services.git.status_collector import BranchStatusCollector
from repo_keeper.services.git.tags import TagService
from repo_keeper.services.interaction import (
    AutomaticInteraction,
    ConsoleInteraction,
    Interaction,
)
from repo_keeper.services.prune_advisor import PruneAdvisor, PruneCriteria
from repo_keeper.services.sync_engine import SynchronizationEngine

console = Console()
logger = get_logger(__name__)

# Module-level reference to the active FleetKeeper instance for signal handling
_active_keeper: Optional["FleetKeeper"] = None


def _signal_handler(signum, frame):
    """First interrupt cancels running git commands, the second exits."""
    if signum != signal.SIGINT:
        return
    print()  # New line after ^C
    if _active_keeper and not _active_keeper.executor.cancelled:
        console.print("\n[yellow]Interrupted! Cancelling running git operations...[/yellow]")
        _active_keeper.cancel()
    else:
        console.print("\n[yellow]Interrupted! Exiting...[/yellow]")
        sys.exit(1)


class FleetKeeper:
    """Runs the fleet-wide operations for one scan root."""

    def __init__(
        self,
        root: str,
        config: Union[Config, dict],
        interaction: Optional[Interaction] = None,
        show_progress: bool = True,
    ):
        """Initialize FleetKeeper.

        Args:
            root: Directory to scan for repositories
            config: Configuration dict or Config object
            interaction: Progress and selection hooks; chosen from the config when omitted
            show_progress: Show a Rich progress bar while collecting statuses
        """
        self.root = canonical_path(root)
        if isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config
        self.show_progress = show_progress

        if interaction is None:
            interaction = AutomaticInteraction() if self.config.automatic else ConsoleInteraction(console)
        self.interaction = interaction

        self.executor = GitCommandExecutor(
            timeout=self.config.timeout,
            log_all_commands=self.config.log_all_git_commands,
        )
        self.discoverer = RepositoryDiscoverer(
            include_submodules=self.config.include_submodules,
            repository_filters=self.config.repository_filters,
        )
        self.collector = BranchStatusCollector(
            self.executor,
            protected_branches=self.config.protected_branches,
            root=self.root,
        )
        self.display = DisplayService(console, verbose=self.config.verbose)

    def install_signal_handler(self) -> None:
        global _active_keeper
        _active_keeper = self
        signal.signal(signal.SIGINT, _signal_handler)

    def cancel(self) -> None:
        self.executor.cancel()

    def discover(self) -> List[RepositoryRecord]:
        records = self.discoverer.discover(self.root)
        if self.discoverer.errors:
            self.display.display_discovery_errors(self.discoverer.errors)
        return records

    def collect(self, records: Sequence[RepositoryRecord]) -> List[RepositoryStatus]:
        """Collect statuses with a progress bar."""
        progress_context = Progress(console=console) if self.show_progress else nullcontext()
        with progress_context as progress:
            task = None
            if progress is not None:
                task = progress.add_task("Checking repositories", total=len(records))

            def on_progress(message: str) -> None:
                logger.debug(message)
                if progress is not None:
                    progress.update(task, advance=1, description=message)

            return self.collector.collect_many(
                records,
                reference_branch=self.config.reference_branch,
                fetch_first=self.config.fetch,
                workers=self.config.workers,
                sequential=self.config.sequential or self.config.debug,
                on_progress=on_progress,
            )

    def status(self) -> List[RepositoryStatus]:
        statuses = self.collect(self.discover())
        self.display.display_status_table(statuses, self.config.protected_branches)
        return statuses

    def sync(self, show_only: bool = False) -> Optional[SyncReport]:
        """Update out-of-sync repositories. Returns None when nothing ran."""
        engine = SynchronizationEngine(
            self.executor,
            self.interaction,
            with_uncommitted=self.config.with_uncommitted,
            push_new_branches=self.config.push_new_branches,
            push=self.config.push,
        )
        statuses = self.collect(self.discover())
        candidates = engine.find_out_of_sync(statuses)
        self.display.display_out_of_sync_table(candidates)
        if show_only or not candidates:
            return None

        selected = engine.select(candidates, automatic=self.config.automatic)
        if not selected:
            self.interaction.notify("Nothing selected.")
            return None

        report = engine.synchronize(selected)
        self.display.display_sync_report(report)
        return report

    def prune(self) -> List[PruneResult]:
        criteria = PruneCriteria(
            merged=self.config.prune_merged,
            gone=self.config.prune_gone,
            older_than_days=self.config.older_than_days,
        )
        advisor = PruneAdvisor(
            self.executor,
            criteria,
            protected_branches=self.config.protected_branches,
            interaction=self.interaction,
        )
        candidates = advisor.advise(self.collect(self.discover()))
        self.display.display_prune_candidates(candidates)
        if not candidates:
            return []

        selected = advisor.select(candidates, automatic=self.config.automatic)
        results = advisor.delete(selected, force=self.config.force, dry_run=self.config.dry_run)
        self.display.display_prune_results(results)
        return results

    def list_tags(self, patterns: Sequence[str]) -> Dict[str, List[str]]:
        found = TagService(self.executor).find_tags(self.discover(), patterns)
        self.display.display_tags(found)
        return found

    def remove_tags(self, patterns: Sequence[str], local_only: bool = False) -> List[TagRemovalResult]:
        service = TagService(self.executor)
        records = self.discover()
        found = service.find_tags(records, patterns)
        self.display.display_tags(found)
        if not found:
            return []

        paths = list(found)
        if not self.config.automatic:
            paths = self.interaction.select(
                "Repositories to remove tags from",
                paths,
                lambda path: f"{path}: {', '.join(found[path])}",
            )
        chosen = [record for record in records if record.path in paths]
        results = service.remove_tags(chosen, patterns, remote=not local_only)
        self.display.display_tag_results(results)
        return results
