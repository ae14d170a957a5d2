"""Tests for RepositoryDiscoverer"""
import os
import sys
from pathlib import Path
from unittest.mock import patch

import git
import pytest

from repo_keeper.exceptions import ConfigurationError
from repo_keeper.services.discovery import RepositoryDiscoverer, identity_key
from tests.conftest import init_repo


def _paths(records):
    return [record.path for record in records]


class TestDiscovery:
    """Test repository discovery on real directory trees."""

    def test_finds_repositories_in_sorted_order(self, temp_dir):
        root = temp_dir / "fleet"
        init_repo(root / "b-repo")
        init_repo(root / "a-group" / "a-repo")
        (root / "empty").mkdir()

        records = RepositoryDiscoverer().discover(str(root))

        assert _paths(records) == [
            str(root / "a-group" / "a-repo"),
            str(root / "b-repo"),
        ]
        assert records[0].git_dir == str(root / "a-group" / "a-repo" / ".git")
        assert not records[0].is_submodule

    def test_root_that_is_a_repository(self, git_repo):
        records = RepositoryDiscoverer().discover(git_repo.working_dir)
        assert _paths(records) == [os.path.realpath(git_repo.working_dir)]

    def test_metadata_directory_is_never_a_record(self, temp_dir):
        root = temp_dir / "fleet"
        init_repo(root / "one")
        init_repo(root / "two")

        records = RepositoryDiscoverer().discover(str(root))

        assert len(records) == 2
        for record in records:
            assert ".git" not in Path(record.path).parts

    def test_remote_url_is_read_from_config(self, remote_setup):
        records = RepositoryDiscoverer().discover(str(remote_setup.root))
        assert len(records) == 1
        assert records[0].remote_url == str(remote_setup.bare_path)

    def test_repository_without_remote(self, git_repo):
        records = RepositoryDiscoverer().discover(git_repo.working_dir)
        assert records[0].remote_url is None

    def test_not_a_directory(self, temp_dir):
        with pytest.raises(ConfigurationError):
            RepositoryDiscoverer().discover(str(temp_dir / "missing"))


class TestSubmodulesAndPointers:
    """Test .gitmodules handling and gitdir indirection files."""

    def _superproject(self, root: Path) -> git.Repo:
        superproject = init_repo(root / "super")
        init_repo(root / "super" / "libs" / "common")
        (root / "super" / ".gitmodules").write_text(
            '[submodule "common"]\n'
            "\tpath = libs/common\n"
            "\turl = https://example.com/common.git\n"
            '[submodule "common-again"]\n'
            "\tpath = libs/../libs/common\n"
            "\turl = https://example.com/common.git\n"
        )
        return superproject

    def test_submodule_referenced_twice_yields_one_record(self, temp_dir):
        root = temp_dir / "fleet"
        self._superproject(root)

        records = RepositoryDiscoverer().discover(str(root))

        assert _paths(records) == [
            str(root / "super"),
            str(root / "super" / "libs" / "common"),
        ]
        assert records[1].is_submodule
        assert not records[0].is_submodule

    def test_submodules_can_be_skipped(self, temp_dir):
        root = temp_dir / "fleet"
        self._superproject(root)

        records = RepositoryDiscoverer(include_submodules=False).discover(str(root))

        assert _paths(records) == [str(root / "super")]

    def test_uninitialized_submodule_is_ignored(self, temp_dir):
        root = temp_dir / "fleet"
        init_repo(root / "super")
        (root / "super" / "missing").mkdir()
        (root / "super" / ".gitmodules").write_text("[submodule \"m\"]\n\tpath = missing\n")

        records = RepositoryDiscoverer().discover(str(root))

        assert _paths(records) == [str(root / "super")]

    def test_worktree_is_found_through_gitdir_file(self, temp_dir):
        root = temp_dir / "fleet"
        repo = init_repo(root / "main-checkout")
        repo.create_remote("origin", "https://example.com/app.git")
        worktree_path = root / "wt"
        repo.git.worktree("add", "-b", "wt-branch", str(worktree_path))

        records = RepositoryDiscoverer().discover(str(root))

        assert _paths(records) == [str(root / "main-checkout"), str(worktree_path)]
        worktree = records[1]
        assert not worktree.is_submodule
        assert worktree.git_dir.startswith(str(root / "main-checkout" / ".git" / "worktrees"))
        # Config lives in the main repository's metadata directory
        assert worktree.remote_url == "https://example.com/app.git"

    def test_gitdir_in_modules_marks_submodule(self, temp_dir):
        root = temp_dir / "fleet"
        (root / "vendor").mkdir(parents=True)
        metadata = temp_dir / "super-meta" / "modules" / "lib"
        metadata.parent.mkdir(parents=True)
        lib = git.Repo.init(root / "vendor" / "lib", separate_git_dir=str(metadata), allow_unsafe_options=True)
        lib.close()

        records = RepositoryDiscoverer().discover(str(root))

        assert len(records) == 1
        assert records[0].path == str(root / "vendor" / "lib")
        assert records[0].git_dir == os.path.realpath(str(metadata))
        assert records[0].is_submodule


class TestErrorsAndCycles:
    """Test that bad directories never stop the walk."""

    def test_broken_gitdir_file_is_reported(self, temp_dir):
        root = temp_dir / "fleet"
        (root / "broken").mkdir(parents=True)
        (root / "broken" / ".git").write_text("not a pointer\n")
        init_repo(root / "good")
        seen = []

        discoverer = RepositoryDiscoverer(on_error=seen.append)
        records = discoverer.discover(str(root))

        assert _paths(records) == [str(root / "good")]
        assert len(discoverer.errors) == 1
        assert discoverer.errors[0].path == str(root / "broken")
        assert seen == discoverer.errors

    def test_unreadable_directory_is_skipped(self, temp_dir):
        root = temp_dir / "fleet"
        blocked = root / "blocked"
        init_repo(blocked / "hidden")
        init_repo(root / "visible")
        real_scandir = os.scandir

        def fake_scandir(path):
            if os.path.realpath(path) == str(blocked):
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        discoverer = RepositoryDiscoverer()
        with patch("repo_keeper.services.discovery.os.scandir", side_effect=fake_scandir):
            records = discoverer.discover(str(root))

        assert _paths(records) == [str(root / "visible")]
        assert len(discoverer.errors) == 1
        assert "Permission denied" in str(discoverer.errors[0])

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_cycle_terminates_without_duplicates(self, temp_dir):
        root = temp_dir / "fleet"
        init_repo(root / "a" / "repo")
        os.symlink(str(root), str(root / "a" / "loop"))
        os.symlink(str(root / "a" / "repo"), str(root / "alias"))

        records = RepositoryDiscoverer().discover(str(root))

        paths = _paths(records)
        assert paths == [str(root / "a" / "repo")]
        assert len(set(identity_key(p) for p in paths)) == len(paths)


class TestFilters:
    def test_repository_filters_match_hierarchical_name(self, temp_dir):
        root = temp_dir / "fleet"
        init_repo(root / "group" / "app1")
        init_repo(root / "group" / "app2")
        init_repo(root / "other" / "app3")

        records = RepositoryDiscoverer(repository_filters=["GROUP/*"]).discover(str(root))

        assert [r.hierarchical_name(str(root)) for r in records] == ["group/app1", "group/app2"]
