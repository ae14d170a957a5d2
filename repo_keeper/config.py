"""Configuration handling for repo-keeper"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

from repo_keeper.constants import DEFAULT_PROTECTED_BRANCHES
from repo_keeper.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path.home() / ".repo-keeper" / "config.json"

# Keys of the settings file written by earlier releases
_LEGACY_KEYS = {
    "logAllGitCommands": "log_all_git_commands",
    "logFilePath": "log_file",
    "includeSubmodules": "include_submodules",
    "repositoryFilters": "repository_filters",
}


@dataclass
class Config:
    """Configuration for repo-keeper with validation."""

    # Status collection
    reference_branch: Optional[str] = None  # None = compare against HEAD
    fetch: bool = True

    # Synchronization
    with_uncommitted: bool = False  # Stash and update repositories with local changes
    push_new_branches: bool = False
    push: bool = False
    automatic: bool = False  # Select every candidate without prompting

    # Branch pruning
    prune_merged: bool = False
    prune_gone: bool = False
    older_than_days: Optional[int] = None
    protected_branches: List[str] = field(
        default_factory=lambda: list(DEFAULT_PROTECTED_BRANCHES)
    )
    dry_run: bool = False
    force: bool = False

    # Discovery
    include_submodules: bool = True
    repository_filters: List[str] = field(default_factory=list)

    # Execution
    timeout: float = 300.0  # Seconds per git command
    sequential: bool = False
    workers: Optional[int] = None  # None = auto-detect

    # Logging
    verbose: bool = False
    debug: bool = False
    log_all_git_commands: bool = False
    log_file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_timeout()
        self._validate_older_than_days()
        self._validate_workers()
        self._validate_reference_branch()
        self._validate_list_fields()

    def _validate_timeout(self):
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

    def _validate_older_than_days(self):
        if self.older_than_days is not None and self.older_than_days < 0:
            raise ConfigurationError(
                f"older_than_days must not be negative, got {self.older_than_days}"
            )

    def _validate_workers(self):
        if self.workers is not None and self.workers <= 0:
            raise ConfigurationError(f"workers must be positive, got {self.workers}")

    def _validate_reference_branch(self):
        """Blank reference branch means HEAD."""
        if self.reference_branch is not None:
            self.reference_branch = self.reference_branch.strip() or None

    def _validate_list_fields(self):
        if not isinstance(self.protected_branches, list):
            raise ConfigurationError("protected_branches must be a list")
        if not isinstance(self.repository_filters, list):
            raise ConfigurationError("repository_filters must be a list")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        normalized = {_LEGACY_KEYS.get(k, k): v for k, v in config_dict.items()}
        filtered = {k: v for k, v in normalized.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def load(cls, path: Union[str, Path, None] = None, **overrides) -> "Config":
        """Load a JSON settings file and apply overrides on top of it.

        A missing file yields the defaults. Overrides whose value is None are
        ignored so unset CLI flags do not mask file values.
        """
        config_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH
        data: dict = {}
        if config_path.is_file():
            try:
                data = json.loads(config_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise ConfigurationError(f"Could not read settings file {config_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigurationError(f"Settings file {config_path} must contain an object")
        elif path:
            raise ConfigurationError(f"Settings file not found: {config_path}")

        data = {_LEGACY_KEYS.get(k, k): v for k, v in data.items()}
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)
