"""Command-line interface for repo-keeper"""

import sys
from typing import List, Optional

from rich.console import Console

from repo_keeper.cli.args import config_overrides, parse_args
from repo_keeper.config import Config
from repo_keeper.core.fleet_keeper import FleetKeeper
from repo_keeper.exceptions import ConfigurationError
from repo_keeper.logging_config import setup_logging
from repo_keeper.utils import get_threading_info

console = Console()


def _print_debug_info(config: Config) -> None:
    console.print("[yellow]Debug mode enabled[/yellow]")

    threading_info = get_threading_info()
    console.print("[yellow]Threading Information:[/yellow]")
    console.print(f"  Python version: {threading_info['python_version']}")
    console.print(f"  Threading mode: {threading_info['mode']}")
    console.print(f"  CPU count: {threading_info['cpu_count']}")
    console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
    console.print(f"  Free-threading enabled: {threading_info['free_threading']}")

    console.print("[yellow]Configuration:[/yellow]")
    for key, value in config.to_dict().items():
        console.print(f"  {key}: {value}")
    console.print("[dim]Note: Debug mode forces sequential processing for readable logs[/dim]")


def run_command(keeper: FleetKeeper, args) -> int:
    """Dispatch a parsed command. Returns the process exit code."""
    if args.command == "status":
        statuses = keeper.status()
        return 1 if any(s.has_errors for s in statuses) else 0

    if args.command == "sync":
        report = keeper.sync(show_only=args.show_only)
        return 1 if report is not None and report.failed else 0

    if args.command == "prune-branches":
        results = keeper.prune()
        return 1 if any(r.error for r in results) else 0

    if args.command == "tags":
        if args.tags_command == "list":
            keeper.list_tags([args.pattern])
            return 0
        results = keeper.remove_tags(args.patterns, local_only=args.local_only)
        return 1 if any(not r.ok for r in results) else 0

    raise ConfigurationError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)
        config = Config.load(parsed_args.config, **config_overrides(parsed_args))

        setup_logging(verbose=config.verbose, debug=config.debug, log_file=config.log_file)

        if config.debug:
            _print_debug_info(config)

        keeper = FleetKeeper(parsed_args.root, config)
        keeper.install_signal_handler()
        return run_command(keeper, parsed_args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
