"""Parsers for the text formats git prints.

Each parser takes the raw stdout of one query. Empty output always means
"no matches" and yields an empty result, never an error.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from fnmatch import fnmatchcase
from typing import List, Optional, Tuple

from repo_keeper.constants import GITDIR_PREFIX

_SUBMODULE_PATH = re.compile(r"^\s*path\s*=\s*(.+?)\s*$", re.MULTILINE)
_DETACHED = re.compile(r"^\(.*(HEAD|detached).*\)$", re.IGNORECASE)


@dataclass(frozen=True)
class FileStatusSummary:
    """Working tree state derived from ``git status --porcelain``."""
    modified: bool = False
    untracked: bool = False
    staged: bool = False

    @property
    def has_changes(self) -> bool:
        return self.modified or self.untracked or self.staged


@dataclass(frozen=True)
class UpstreamInfo:
    """Upstream configuration of one local branch."""
    ref: str  # refs/remotes/origin/main
    short_name: str  # origin/main
    remote_name: Optional[str] = None
    remote_ref: Optional[str] = None  # refs/heads/main


def parse_porcelain_status(output: str) -> FileStatusSummary:
    """Parse ``git status --porcelain`` (v1).

    Grammar: one ``XY <path>`` line per entry, X = index status, Y = work
    tree status, ``??`` = untracked, ``!!`` = ignored.
    """
    modified = untracked = staged = False

    for line in output.splitlines():
        if len(line) < 2:
            continue

        index_status = line[0]
        worktree_status = line[1]

        if line.startswith("??"):
            untracked = True
            continue
        if line.startswith("!!"):
            continue

        if index_status != " ":
            staged = True
        if worktree_status != " ":
            modified = True

    return FileStatusSummary(modified=modified, untracked=untracked, staged=staged)


def parse_ref_names(output: str) -> List[str]:
    """Parse one ref name per line, e.g. ``for-each-ref --format=%(refname:short)``.

    One pair of surrounding quotes left by shells that echo the format
    string is dropped and detached-HEAD placeholders such as
    ``(HEAD detached at 1a2b3c)`` skipped.
    """
    names = []
    for line in output.splitlines():
        name = line.strip().lstrip("*").strip()
        if len(name) >= 2 and name[0] == name[-1] == "'":
            name = name[1:-1]
        if not name or _DETACHED.match(name):
            continue
        names.append(name)
    return names


def parse_upstream(output: str) -> Optional[UpstreamInfo]:
    """Parse ``%(upstream)%09%(upstream:short)%09%(upstream:remotename)%09%(upstream:remoteref)``.

    An empty line means the branch has no upstream configured.
    """
    lines = output.strip().splitlines()
    if not lines:
        return None
    line = lines[0]

    fields = line.split("\t")
    ref = fields[0].strip()
    if not ref:
        return None
    short_name = fields[1].strip() if len(fields) > 1 and fields[1].strip() else ref
    remote_name = fields[2].strip() if len(fields) > 2 and fields[2].strip() else None
    remote_ref = fields[3].strip() if len(fields) > 3 and fields[3].strip() else None
    return UpstreamInfo(ref, short_name, remote_name, remote_ref)


def parse_ahead_behind(output: str) -> Tuple[int, int]:
    """Parse ``rev-list --left-right --count A...B`` as (only A, only B).

    Grammar: ``<left>\\t<right>``. Empty output yields (0, 0); a single
    number is the left side.

    Raises:
        ValueError: the counts are not integers
    """
    text = output.strip()
    if not text:
        return 0, 0

    counts = text.split()
    left = int(counts[0])
    right = int(counts[1]) if len(counts) > 1 else 0
    return left, right


def parse_commit_date(output: str) -> Optional[datetime]:
    """Parse a strict ISO 8601 date (``%cI``). Empty output yields None."""
    text = output.strip()
    if not text:
        return None
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def parse_submodule_paths(content: str) -> List[str]:
    """Return the ``path = <value>`` entries of a ``.gitmodules`` file."""
    return [match.group(1) for match in _SUBMODULE_PATH.finditer(content)]


def parse_gitdir_pointer(content: str) -> Optional[str]:
    """Return the target of a ``gitdir: <path>`` indirection file."""
    text = content.strip()
    if not text.lower().startswith(GITDIR_PREFIX):
        return None
    target = text[len(GITDIR_PREFIX):].strip()
    return target or None


def matches_wildcard(name: str, pattern: str) -> bool:
    """Case-insensitive shell-style match (``*`` and ``?``)."""
    return fnmatchcase(name.lower(), pattern.lower())
