"""Command-line argument parsing for repo-keeper."""

import argparse
from typing import List, Optional

from repo_keeper.__version__ import __version__


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--config", metavar="PATH", help="JSON settings file (default: ~/.repo-keeper/config.json)")
    parser.add_argument(
        "--timeout", type=float, metavar="SECONDS", help="Time limit for each git command"
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel workers for status collection (default: auto-detect based on CPU and threading mode)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        default=None,
        help="Force sequential processing (disable parallelism)",
    )
    parser.add_argument(
        "--no-submodules",
        dest="include_submodules",
        action="store_false",
        default=None,
        help="Do not scan submodules",
    )
    parser.add_argument(
        "--filter",
        dest="repository_filters",
        action="append",
        metavar="PATTERN",
        help="Only handle repositories whose path matches the wildcard (repeatable)",
    )
    parser.add_argument(
        "--log-git-commands",
        dest="log_all_git_commands",
        action="store_true",
        default=None,
        help="Log every git command that is run",
    )
    parser.add_argument("--log-file", metavar="PATH", help="Also write the log to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-keeper",
        description="Keep a directory tree full of git repositories in sync",
    )
    parser.add_argument("--version", action="version", version=f"repo-keeper {__version__}")
    _add_global_options(parser)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    sync = subparsers.add_parser("sync", help="Update out-of-sync repositories")
    sync.add_argument("root", help="Directory to scan")
    sync.add_argument(
        "--show-only", action="store_true", help="List out-of-sync repositories without updating"
    )
    sync.add_argument(
        "--with-uncommitted",
        action="store_true",
        default=None,
        help="Stash uncommitted changes and update those repositories too",
    )
    sync.add_argument(
        "--push-new-branches",
        action="store_true",
        default=None,
        help="Publish local branches that have no upstream",
    )
    sync.add_argument(
        "--push", action="store_true", default=None, help="Push branches that are ahead"
    )
    sync.add_argument(
        "--automatic", action="store_true", default=None, help="Update every candidate without asking"
    )
    sync.add_argument(
        "--no-fetch", dest="fetch", action="store_false", default=None, help="Do not fetch first"
    )
    sync.add_argument("--reference-branch", help="Branch that merged state is compared against")

    status = subparsers.add_parser("status", help="Show branch status of every repository")
    status.add_argument("root", help="Directory to scan")
    status.add_argument(
        "--no-fetch", dest="fetch", action="store_false", default=None, help="Do not fetch first"
    )
    status.add_argument("--reference-branch", help="Branch that merged state is compared against")

    prune = subparsers.add_parser("prune-branches", help="Delete merged, gone or stale branches")
    prune.add_argument("root", help="Directory to scan")
    prune.add_argument(
        "--merged", dest="prune_merged", action="store_true", default=None,
        help="Branches fully merged into their upstream (default)",
    )
    prune.add_argument(
        "--gone", dest="prune_gone", action="store_true", default=None,
        help="Branches whose upstream was deleted",
    )
    prune.add_argument(
        "--older-than", dest="older_than_days", type=int, metavar="DAYS",
        help="Branches without commits for more than DAYS days",
    )
    prune.add_argument(
        "--automatic", action="store_true", default=None, help="Delete every candidate without asking"
    )
    prune.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Preview mode - show what would be deleted without actually deleting",
    )
    prune.add_argument(
        "--force", action="store_true", default=None, help="Also delete branches that are not fully merged"
    )
    prune.add_argument("--protected", dest="protected_branches", nargs="*", help="Protected branches")
    prune.add_argument(
        "--no-fetch", dest="fetch", action="store_false", default=None, help="Do not fetch first"
    )

    tags = subparsers.add_parser("tags", help="List or remove tags")
    tag_commands = tags.add_subparsers(dest="tags_command", metavar="ACTION")
    tag_commands.required = True

    tags_list = tag_commands.add_parser("list", help="List tags matching a wildcard")
    tags_list.add_argument("root", help="Directory to scan")
    tags_list.add_argument("pattern", nargs="?", default="*", help="Wildcard, e.g. 'v1.*'")

    tags_remove = tag_commands.add_parser("remove", help="Remove tags matching wildcards")
    tags_remove.add_argument("root", help="Directory to scan")
    tags_remove.add_argument("patterns", nargs="+", metavar="PATTERN", help="Wildcards to remove")
    tags_remove.add_argument(
        "--local-only", action="store_true", help="Keep the tags on the remote"
    )
    tags_remove.add_argument(
        "--automatic", action="store_true", default=None, help="Remove without asking"
    )

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


# Namespace attributes that map straight onto Config fields
CONFIG_OPTIONS = (
    "verbose",
    "debug",
    "timeout",
    "workers",
    "sequential",
    "include_submodules",
    "repository_filters",
    "log_all_git_commands",
    "log_file",
    "with_uncommitted",
    "push_new_branches",
    "push",
    "automatic",
    "fetch",
    "reference_branch",
    "prune_merged",
    "prune_gone",
    "older_than_days",
    "dry_run",
    "force",
    "protected_branches",
)


def config_overrides(args: argparse.Namespace) -> dict:
    """Config overrides given on the command line. Unset options are None."""
    overrides = {name: getattr(args, name, None) for name in CONFIG_OPTIONS}
    # store_true flags default to False; only an explicit flag overrides the file
    for name in ("verbose", "debug"):
        if not overrides[name]:
            overrides[name] = None
    return overrides
