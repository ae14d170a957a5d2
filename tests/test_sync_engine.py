"""Tests for SynchronizationEngine"""
from pathlib import Path
from unittest.mock import Mock

from repo_keeper.models import UpdateAction
from repo_keeper.services.git.executor import GitCommandExecutor
from repo_keeper.services.git.status_collector import BranchStatusCollector
from repo_keeper.services.interaction import AutomaticInteraction, NullInteraction
from repo_keeper.services.sync_engine import SynchronizationEngine
from tests.conftest import FakeExecutor, commit_file, make_branch, make_record, make_status


class TestFindAndSelect:
    """Test candidate selection."""

    def _statuses(self):
        return [
            make_status("/repos/behind", [make_branch(is_current=True, behind_count=2)]),
            make_status("/repos/synced", [make_branch(is_current=True)]),
            make_status("/repos/dirty", [make_branch(is_current=True, ahead_count=1)],
                        has_uncommitted_changes=True),
            make_status("/repos/broken", [make_branch(behind_count=1)], error_message="fetch failed"),
            make_status("/repos/empty", []),
        ]

    def test_find_out_of_sync_excludes_uncommitted_by_default(self):
        engine = SynchronizationEngine(FakeExecutor())
        found = engine.find_out_of_sync(self._statuses())
        assert [s.path for s in found] == ["/repos/behind"]

    def test_find_out_of_sync_with_uncommitted(self):
        engine = SynchronizationEngine(FakeExecutor())
        found = engine.find_out_of_sync(self._statuses(), with_uncommitted=True)
        assert [s.path for s in found] == ["/repos/behind", "/repos/dirty"]

    def test_select_automatic_returns_all(self):
        interaction = Mock()
        engine = SynchronizationEngine(FakeExecutor(), interaction)
        candidates = self._statuses()[:2]
        assert engine.select(candidates, automatic=True) == candidates
        interaction.select.assert_not_called()

    def test_select_uses_interaction(self):
        candidates = self._statuses()[:2]
        interaction = Mock()
        interaction.select.return_value = [candidates[1]]
        engine = SynchronizationEngine(FakeExecutor(), interaction)

        assert engine.select(candidates) == [candidates[1]]
        title, choices, describe = interaction.select.call_args[0]
        assert choices == candidates
        assert describe(candidates[0]).startswith("behind")

    def test_select_can_choose_nothing(self):
        engine = SynchronizationEngine(FakeExecutor(), NullInteraction())
        assert engine.select(self._statuses()[:2]) == []


class TestBranchRules:
    """Test the per-branch update rules with a recording executor."""

    def test_behind_current_branch_fast_forwards_with_merge(self):
        executor = FakeExecutor()
        status = make_status(branches=[make_branch(is_current=True, behind_count=2)])

        report = SynchronizationEngine(executor).synchronize([status])

        assert report.succeeded == 1
        assert executor.commands() == ["git merge --ff-only refs/remotes/origin/main"]
        assert report.outcomes[0].branch_results[0].action == UpdateAction.FAST_FORWARDED

    def test_behind_other_branch_updates_without_checkout(self):
        executor = FakeExecutor()
        status = make_status(branches=[
            make_branch(is_current=True),
            make_branch("feature", behind_count=1),
        ])

        SynchronizationEngine(executor).synchronize([status])

        assert executor.commands() == [
            "git fetch . refs/remotes/origin/feature:refs/heads/feature"
        ]

    def test_gone_and_untracked_branches_are_skipped(self):
        executor = FakeExecutor()
        status = make_status(branches=[
            make_branch("old", is_gone=True, behind_count=0),
            make_branch("local", upstream=None, upstream_ref=None, ahead_count=0),
        ])

        report = SynchronizationEngine(executor, push=True).synchronize([status])

        assert executor.commands() == []
        assert [r.action for r in report.outcomes[0].branch_results] == [
            UpdateAction.SKIPPED, UpdateAction.SKIPPED
        ]

    def test_new_branches_are_published_when_enabled(self):
        executor = FakeExecutor()
        status = make_status(branches=[
            make_branch("local", upstream=None, upstream_ref=None, remote_name=None, remote_ref=None),
        ])

        report = SynchronizationEngine(executor, push_new_branches=True).synchronize([status])

        assert executor.commands() == ["git push --set-upstream origin local"]
        assert report.outcomes[0].branch_results[0].action == UpdateAction.PUBLISHED

    def test_ahead_is_pushed_only_when_enabled(self):
        status = make_status(branches=[make_branch(is_current=True, ahead_count=2)])

        quiet = FakeExecutor()
        SynchronizationEngine(quiet).synchronize([status])
        assert quiet.commands() == []

        pushing = FakeExecutor()
        report = SynchronizationEngine(pushing, push=True).synchronize([status])
        assert pushing.commands() == ["git push origin main:refs/heads/main"]
        assert report.outcomes[0].branch_results[0].action == UpdateAction.PUSHED

    def test_diverged_branch_is_merged_and_original_restored(self):
        executor = FakeExecutor()
        status = make_status(branches=[
            make_branch(is_current=True),
            make_branch("feature", ahead_count=1, behind_count=1),
        ])

        report = SynchronizationEngine(executor).synchronize([status])

        assert report.succeeded == 1
        assert executor.commands() == [
            "git checkout --quiet feature",
            "git merge --no-edit refs/remotes/origin/feature",
            "git checkout --quiet main",
        ]

    def test_failed_merge_is_aborted(self):
        executor = FakeExecutor(
            run_results={"git merge --no-edit refs/remotes/origin/main": (1, "CONFLICT (content)")}
        )
        status = make_status(branches=[make_branch(is_current=True, ahead_count=1, behind_count=1)])

        report = SynchronizationEngine(executor).synchronize([status])

        outcome = report.outcomes[0]
        assert not outcome.succeeded
        assert outcome.failed_branch == "main"
        assert "CONFLICT" in outcome.error_message
        assert "git merge --abort" in executor.commands()

    def test_first_failing_branch_stops_the_repository(self):
        executor = FakeExecutor(
            fail_when=lambda d, c: "rejected" if "refs/heads/a" in c else None
        )
        status = make_status(branches=[
            make_branch(is_current=True),
            make_branch("a", behind_count=1),
            make_branch("b", behind_count=1),
        ])

        report = SynchronizationEngine(executor).synchronize([status])

        outcome = report.outcomes[0]
        assert outcome.failed_branch == "a"
        assert not any("refs/heads/b" in c for c in executor.commands())


class TestStash:
    """Test stashing around updates."""

    def test_changes_are_stashed_and_restored(self):
        executor = FakeExecutor()
        status = make_status(
            branches=[make_branch(is_current=True, behind_count=1)], has_uncommitted_changes=True
        )

        report = SynchronizationEngine(executor, with_uncommitted=True).synchronize([status])

        outcome = report.outcomes[0]
        assert outcome.succeeded and outcome.stashed
        commands = executor.commands()
        assert commands[0] == "git stash push --include-untracked -m repo-keeper autostash"
        assert commands[-1] == "git stash pop"

    def test_stash_is_popped_after_a_failure(self):
        executor = FakeExecutor(fail_when=lambda d, c: "boom" if c.startswith("git merge") else None)
        status = make_status(
            branches=[make_branch(is_current=True, behind_count=1)], has_uncommitted_changes=True
        )

        report = SynchronizationEngine(executor, with_uncommitted=True).synchronize([status])

        assert not report.outcomes[0].succeeded
        assert executor.commands()[-1] == "git stash pop"

    def test_failed_pop_fails_the_repository(self):
        executor = FakeExecutor(fail_when=lambda d, c: "conflict" if c == "git stash pop" else None)
        status = make_status(
            branches=[make_branch(is_current=True, behind_count=1)], has_uncommitted_changes=True
        )

        report = SynchronizationEngine(executor, with_uncommitted=True).synchronize([status])

        outcome = report.outcomes[0]
        assert not outcome.succeeded
        assert "Could not restore stashed changes" in outcome.error_message

    def test_uncommitted_without_stash_is_refused(self):
        executor = FakeExecutor()
        status = make_status(
            branches=[make_branch(is_current=True, behind_count=1)], has_uncommitted_changes=True
        )

        report = SynchronizationEngine(executor).synchronize([status])

        assert report.failed == 1
        assert executor.commands() == []


class TestFailureIsolation:
    """Test that failures stay with their repository."""

    def test_network_failure_in_one_repository(self):
        executor = FakeExecutor(
            fail_when=lambda d, c: "fatal: unable to access remote: Could not resolve host"
            if d == "/repos/a" else None
        )
        statuses = [
            make_status("/repos/a", [make_branch(path="/repos/a", is_current=True, ahead_count=1)]),
            make_status("/repos/b", [make_branch(path="/repos/b", is_current=True, ahead_count=1)]),
        ]

        report = SynchronizationEngine(executor, push=True).synchronize(statuses)

        assert (report.succeeded, report.failed) == (1, 1)
        failure = report.failures[0]
        assert failure.repository_path == "/repos/a"
        assert failure.failed_branch == "main"
        assert "Could not resolve host" in failure.error_message

    def test_zero_branches_fails(self):
        report = SynchronizationEngine(FakeExecutor()).synchronize([make_status(branches=[])])
        assert report.failed == 1
        assert "no local branches" in report.outcomes[0].error_message

    def test_cancellation_fails_remaining_repositories(self):
        executor = GitCommandExecutor()
        executor.cancel()
        statuses = [
            make_status("/repos/a", [make_branch(is_current=True, behind_count=1)]),
            make_status("/repos/b", [make_branch(is_current=True, behind_count=1)]),
        ]

        report = SynchronizationEngine(executor, AutomaticInteraction()).synchronize(statuses)

        assert report.failed == 2
        assert all(o.error_message == "Operation cancelled" for o in report.outcomes)

    def test_notifications(self):
        interaction = Mock()
        status = make_status(branches=[make_branch(is_current=True, behind_count=1)])

        SynchronizationEngine(FakeExecutor(), interaction).synchronize([status])

        interaction.notify.assert_any_call("Updating a...")


class TestWithRealRepositories:
    """End-to-end scenarios against a bare remote."""

    def _collect(self, executor, clone, fetch=True):
        return BranchStatusCollector(executor).collect(make_record(clone.working_dir), fetch_first=fetch)

    def test_behind_repository_is_selected_and_synced(self, remote_setup, executor):
        for i in range(3):
            commit_file(remote_setup.seed, f"file{i}.txt", f"{i}\n", f"Remote commit {i}")
        remote_setup.seed.git.push("origin", "main")
        engine = SynchronizationEngine(executor)

        status = self._collect(executor, remote_setup.clone)
        candidates = engine.find_out_of_sync([status])
        assert candidates == [status]

        report = engine.synchronize(engine.select(candidates, automatic=True))
        assert report.succeeded == 1

        main = self._collect(executor, remote_setup.clone).local_branches[0]
        assert (main.ahead_count, main.behind_count) == (0, 0)

    def test_uncommitted_repository_is_excluded(self, remote_setup, executor):
        commit_file(remote_setup.seed, "remote.txt", "r\n", "Remote commit")
        remote_setup.seed.git.push("origin", "main")
        (Path(remote_setup.clone.working_dir) / "draft.txt").write_text("draft\n")
        engine = SynchronizationEngine(executor)

        status = self._collect(executor, remote_setup.clone)

        assert status.has_uncommitted_changes
        assert engine.find_out_of_sync([status]) == []

    def test_stash_keeps_local_changes(self, remote_setup, executor):
        commit_file(remote_setup.seed, "remote.txt", "r\n", "Remote commit")
        remote_setup.seed.git.push("origin", "main")
        draft = Path(remote_setup.clone.working_dir) / "draft.txt"
        draft.write_text("draft\n")
        engine = SynchronizationEngine(executor, with_uncommitted=True)

        report = engine.synchronize(engine.find_out_of_sync([self._collect(executor, remote_setup.clone)]))

        assert report.succeeded == 1
        assert report.outcomes[0].stashed
        assert draft.read_text() == "draft\n"
        assert (Path(remote_setup.clone.working_dir) / "remote.txt").exists()
        assert remote_setup.clone.git.stash("list") == ""

    def test_other_branch_fast_forwarded_without_checkout(self, remote_setup, executor):
        seed, clone = remote_setup.seed, remote_setup.clone
        seed.git.checkout("-b", "feature")
        seed.git.push("-u", "origin", "feature")
        clone.git.fetch("origin")
        clone.git.branch("--track", "feature", "origin/feature")
        commit_file(seed, "feature.txt", "f\n", "Feature commit")
        seed.git.push("origin", "feature")

        report = SynchronizationEngine(executor).synchronize([self._collect(executor, clone)])

        assert report.succeeded == 1
        assert clone.active_branch.name == "main"
        assert clone.commit("feature").hexsha == seed.commit("feature").hexsha

    def test_diverged_branch_merged_and_pushed(self, remote_setup, executor):
        seed, clone = remote_setup.seed, remote_setup.clone
        commit_file(seed, "remote.txt", "r\n", "Remote commit")
        seed.git.push("origin", "main")
        commit_file(clone, "local.txt", "l\n", "Local commit")

        engine = SynchronizationEngine(executor, push=True)
        report = engine.synchronize([self._collect(executor, clone)])

        assert report.succeeded == 1
        assert report.outcomes[0].branch_results[0].action == UpdateAction.MERGED
        main = self._collect(executor, clone).local_branches[0]
        assert (main.ahead_count, main.behind_count) == (0, 0)
        assert remote_setup.bare.commit("main").hexsha == clone.head.commit.hexsha

    def test_new_branch_published(self, remote_setup, executor):
        clone = remote_setup.clone
        clone.git.branch("topic")

        engine = SynchronizationEngine(executor, push_new_branches=True)
        report = engine.synchronize([self._collect(executor, clone, fetch=False)])

        assert report.succeeded == 1
        assert "refs/heads/topic" in [ref.path for ref in remote_setup.bare.references]
        topic = next(b for b in self._collect(executor, clone).local_branches if b.name == "topic")
        assert topic.upstream == "origin/topic"
