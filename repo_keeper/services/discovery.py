"""Repository discovery for repo-keeper."""

import os
import sys
from typing import Callable, List, Optional, Sequence, Set, Tuple

from git.config import GitConfigParser

from repo_keeper.constants import DEFAULT_REMOTE, GIT_DIR, GIT_MODULES_FILE
from repo_keeper.exceptions import ConfigurationError, DiscoveryError
from repo_keeper.logging_config import get_logger
from repo_keeper.models import RepositoryRecord
from repo_keeper.services.git.parsers import (
    matches_wildcard,
    parse_gitdir_pointer,
    parse_submodule_paths,
)

logger = get_logger(__name__)

ErrorCallback = Callable[[DiscoveryError], None]


def canonical_path(path: str) -> str:
    """Absolute path with symlinks resolved."""
    return os.path.realpath(os.path.abspath(os.path.expanduser(path)))


def identity_key(path: str) -> str:
    """Key under which two spellings of the same directory compare equal."""
    key = os.path.normcase(canonical_path(path))
    # normcase is a no-op on macOS although its default filesystem ignores case
    if sys.platform == "darwin":
        key = key.casefold()
    return key


def resolve_git_dir(path: str) -> Optional[Tuple[str, bool]]:
    """Locate the metadata directory of a repository rooted at ``path``.

    Returns:
        (git_dir, via_pointer) or None when ``path`` is not a repository root

    Raises:
        DiscoveryError: ``.git`` exists but cannot be followed
    """
    dot_git = os.path.join(path, GIT_DIR)
    if os.path.isdir(dot_git):
        return canonical_path(dot_git), False
    if not os.path.isfile(dot_git):
        return None

    try:
        with open(dot_git, encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise DiscoveryError(path, f"cannot read {GIT_DIR} file: {e}")

    target = parse_gitdir_pointer(content)
    if target is None:
        raise DiscoveryError(path, f"{GIT_DIR} file has no gitdir line")
    if not os.path.isabs(target):
        target = os.path.join(path, target)
    if not os.path.isdir(target):
        raise DiscoveryError(path, f"gitdir {target} does not exist")
    return canonical_path(target), True


def read_remote_url(git_dir: str, remote: str = DEFAULT_REMOTE) -> Optional[str]:
    """Read ``remote.<name>.url`` straight from the repository config."""
    # Linked worktrees keep their config in the common directory
    config_dir = git_dir
    commondir_file = os.path.join(git_dir, "commondir")
    if os.path.isfile(commondir_file):
        try:
            with open(commondir_file, encoding="utf-8") as f:
                common = f.read().strip()
            config_dir = os.path.normpath(os.path.join(git_dir, common))
        except OSError as e:
            logger.debug(f"Cannot read {commondir_file}: {e}")

    config_path = os.path.join(config_dir, "config")
    if not os.path.isfile(config_path):
        return None

    try:
        parser = GitConfigParser(config_path, read_only=True)
        parser.read()
        url = parser.get_value(f'remote "{remote}"', "url", default="")
    except Exception as e:
        logger.debug(f"Cannot read remote url from {config_path}: {e}")
        return None
    return str(url) or None


class RepositoryDiscoverer:
    """Finds repositories below a root directory.

    The walk uses an explicit stack of pending directories and a visited set
    of identity keys, so submodules referenced twice, symlink cycles and
    deep trees are all handled without recursion. Repository roots are not
    descended into; nested repositories are reached through ``.gitmodules``.
    """

    def __init__(
        self,
        include_submodules: bool = True,
        repository_filters: Optional[Sequence[str]] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.include_submodules = include_submodules
        self.repository_filters = list(repository_filters or [])
        self.on_error = on_error
        self.errors: List[DiscoveryError] = []

    def discover(self, root: str) -> List[RepositoryRecord]:
        """Return every repository below ``root`` in traversal order.

        Unreadable directories are reported through ``errors`` and
        ``on_error`` and otherwise skipped.

        Raises:
            ConfigurationError: ``root`` is not a directory
        """
        root_path = canonical_path(root)
        if not os.path.isdir(root_path):
            raise ConfigurationError(f"Not a directory: {root}")

        self.errors = []
        records: List[RepositoryRecord] = []
        visited: Set[str] = set()
        # (path, referenced from a .gitmodules manifest)
        stack: List[Tuple[str, bool]] = [(root_path, False)]

        while stack:
            path, from_manifest = stack.pop()
            key = identity_key(path)
            if key in visited:
                continue
            visited.add(key)

            try:
                resolved = resolve_git_dir(path)
            except DiscoveryError as e:
                self._report(e)
                continue

            if resolved is not None:
                record = self._make_record(path, resolved, from_manifest)
                logger.debug(f"Found repository {record.path}")
                records.append(record)
                if self.include_submodules:
                    stack.extend(reversed(self._submodules_of(record.path)))
                continue

            stack.extend((child, False) for child in reversed(self._child_dirs(path)))

        if self.repository_filters:
            records = [r for r in records if self._matches_filters(r, root_path)]

        logger.info(f"Discovered {len(records)} repositories under {root_path}")
        return records

    def _make_record(self, path: str, resolved: Tuple[str, bool], from_manifest: bool) -> RepositoryRecord:
        git_dir, via_pointer = resolved
        # Submodule metadata lives under <superproject>/.git/modules/
        in_modules = via_pointer and "/modules/" in git_dir.replace(os.sep, "/")
        return RepositoryRecord(
            path=canonical_path(path),
            git_dir=git_dir,
            is_submodule=from_manifest or in_modules,
            remote_url=read_remote_url(git_dir),
        )

    def _child_dirs(self, path: str) -> List[str]:
        try:
            with os.scandir(path) as entries:
                children = []
                for entry in entries:
                    if entry.name == GIT_DIR:
                        continue
                    try:
                        if entry.is_dir():
                            children.append(entry.path)
                    except OSError as e:
                        self._report(DiscoveryError(entry.path, str(e)))
        except OSError as e:
            self._report(DiscoveryError(path, e.strerror or str(e)))
            return []
        return sorted(children)

    def _submodules_of(self, repo_path: str) -> List[Tuple[str, bool]]:
        manifest = os.path.join(repo_path, GIT_MODULES_FILE)
        if not os.path.isfile(manifest):
            return []

        try:
            with open(manifest, encoding="utf-8") as f:
                paths = parse_submodule_paths(f.read())
        except OSError as e:
            self._report(DiscoveryError(manifest, str(e)))
            return []

        submodules = []
        for relative in paths:
            candidate = os.path.normpath(os.path.join(repo_path, relative))
            # Uninitialized submodules have no .git yet
            if os.path.exists(os.path.join(candidate, GIT_DIR)):
                submodules.append((candidate, True))
            else:
                logger.debug(f"Submodule {relative} of {repo_path} is not initialized")
        return submodules

    def _matches_filters(self, record: RepositoryRecord, root: str) -> bool:
        name = record.hierarchical_name(root)
        return any(matches_wildcard(name, pattern) for pattern in self.repository_filters)

    def _report(self, error: DiscoveryError) -> None:
        logger.warning(str(error))
        self.errors.append(error)
        if self.on_error:
            self.on_error(error)
