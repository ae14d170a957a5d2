"""Pytest fixtures for repo-keeper tests"""
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import git
import pytest

from repo_keeper.exceptions import GitOperationError
from repo_keeper.models import BranchStatus, RepositoryRecord, RepositoryStatus
from repo_keeper.services.discovery import read_remote_url, resolve_git_dir
from repo_keeper.services.git.executor import CommandResult, GitCommandExecutor, _describe


def configure_identity(repo: git.Repo) -> None:
    """Local identity so commits and merges work on any machine."""
    writer = repo.config_writer()
    writer.set_value("user", "name", "Test User")
    writer.set_value("user", "email", "test@example.com")
    writer.set_value("commit", "gpgsign", "false")
    writer.set_value("tag", "gpgsign", "false")
    writer.release()


def commit_file(repo: git.Repo, name: str, content: str, message: str, date: str = None):
    """Write a file in the work tree and commit it."""
    path = Path(repo.working_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    if date:
        return repo.index.commit(message, author_date=date, commit_date=date)
    return repo.index.commit(message)


def init_repo(path: Path) -> git.Repo:
    """Create a repository with one commit on ``main``."""
    path.mkdir(parents=True, exist_ok=True)
    repo = git.Repo.init(path)
    configure_identity(repo)
    commit_file(repo, "README.md", "# Test Repository\n", "Initial commit")
    repo.git.branch("-M", "main")
    return repo


def make_record(path) -> RepositoryRecord:
    """RepositoryRecord for a repository without going through discovery."""
    real = os.path.realpath(str(path))
    git_dir, _ = resolve_git_dir(real)
    return RepositoryRecord(path=real, git_dir=git_dir, remote_url=read_remote_url(git_dir))


def make_branch(name: str = "main", path: str = "/repos/a", **kwargs) -> BranchStatus:
    kwargs.setdefault("upstream", f"origin/{name}")
    kwargs.setdefault("upstream_ref", f"refs/remotes/origin/{name}")
    kwargs.setdefault("remote_name", "origin")
    kwargs.setdefault("remote_ref", f"refs/heads/{name}")
    return BranchStatus(repository_path=path, name=name, **kwargs)


def make_status(path: str = "/repos/a", branches=(), **kwargs) -> RepositoryStatus:
    record = RepositoryRecord(path=path, git_dir=f"{path}/.git", remote_url="git@example.com:a.git")
    kwargs.setdefault("name", os.path.basename(path))
    return RepositoryStatus(record=record, local_branches=tuple(branches), **kwargs)


class FakeExecutor:
    """Records commands; fails the ones matching ``fail_when``."""

    def __init__(self, fail_when=None, run_results=None):
        self.fail_when = fail_when or (lambda working_dir, command: None)
        self.run_results = run_results or {}
        self.calls = []
        self.arg_lists = []
        self.cancelled = False

    def _command(self, args):
        self.arg_lists.append(list(args))
        return _describe(args)

    def run(self, working_dir, args, on_stdout_line=None, on_stderr_line=None):
        command = self._command(args)
        self.calls.append((working_dir, command))
        exit_code, stderr = self.run_results.get(command, (0, ""))
        return CommandResult(tuple(args), exit_code, "", stderr)

    def run_checked(self, working_dir, args, on_stdout_line=None, on_stderr_line=None):
        command = self._command(args)
        self.calls.append((working_dir, command))
        message = self.fail_when(working_dir, command)
        if message:
            raise GitOperationError(command, working_dir, message, 1)
        if command.startswith("git stash push"):
            return "Saved working directory and index state On main: repo-keeper autostash"
        return ""

    def commands(self, working_dir=None):
        return [c for d, c in self.calls if working_dir is None or d == working_dir]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def executor():
    return GitCommandExecutor(timeout=60)


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo = init_repo(temp_dir / "fleet" / "local_repo")
    yield repo
    repo.close()


@pytest.fixture
def remote_setup(temp_dir):
    """A bare remote, a seed clone that pushes to it, and a clone under test.

    The clone lives below ``root`` so discovery finds it.
    """
    bare_path = temp_dir / "remote.git"
    bare = git.Repo.init(bare_path, bare=True)
    bare.git.symbolic_ref("HEAD", "refs/heads/main")

    seed = init_repo(temp_dir / "seed")
    seed.create_remote("origin", str(bare_path))
    seed.git.push("-u", "origin", "main")

    root = temp_dir / "fleet"
    clone = git.Repo.clone_from(str(bare_path), str(root / "clone"))
    configure_identity(clone)

    yield SimpleNamespace(bare=bare, seed=seed, clone=clone, root=root, bare_path=bare_path)

    clone.close()
    seed.close()
    bare.close()
