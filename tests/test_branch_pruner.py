"""Tests for BranchPruner.prune"""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from git_branch_pruner.config import Config
from git_branch_pruner.exceptions import GitOperationError
from git_branch_pruner.models.branch import MergedBranch

from conftest import NOW, merged


class TestCandidateGathering:
    """Test which queries are issued and what they exclude."""

    @pytest.mark.asyncio
    async def test_documented_scenario(self, make_pruner, vcs):
        """Test a merged feature branch next to a reserved branch."""
        vcs.merged = [merged("feature-x", "def456"), MergedBranch("refs/heads/master", "aaa111")]
        vcs.head = "refs/heads/main"
        pruner = make_pruner()

        eligible = await pruner.get_branches_ready_for_pruning(None)

        assert [b.name for b in eligible] == ["feature-x"]

    @pytest.mark.asyncio
    async def test_no_default_branch_returns_empty(self, make_pruner, vcs, state_cache):
        """Test that a repository without a default branch yields no candidates."""
        state_cache.default_branch = None
        vcs.merged = [merged("feature-x")]
        pruner = make_pruner()

        assert await pruner.get_branches_ready_for_pruning(None) == []
        assert await pruner.prune(None) is False
        assert vcs.calls == []

    @pytest.mark.asyncio
    async def test_merge_query_failure_means_nothing_merged(self, make_pruner, vcs):
        """Test that a failing merge query is treated as nothing merged."""
        vcs.merged = [merged("feature-x")]
        vcs.merge_error = GitOperationError("list_merged", "main", "boom")
        pruner = make_pruner()

        assert await pruner.prune(NOW) is False
        assert vcs.deleted == []

    @pytest.mark.asyncio
    async def test_no_merged_branches_skips_other_queries(self, make_pruner, vcs):
        """Test that HEAD and checkouts are not queried when nothing is merged."""
        pruner = make_pruner()

        assert await pruner.get_branches_ready_for_pruning(NOW) == []
        assert not vcs.called("checkouts")
        assert not vcs.called("symbolic_ref")

    @pytest.mark.asyncio
    async def test_merge_query_uses_default_branch_name(self, make_pruner, vcs):
        """Test that the merge query targets the default branch."""
        vcs.merged = [merged("feature-x")]
        pruner = make_pruner()

        await pruner.get_branches_ready_for_pruning(None)

        assert ("merged", "main") in vcs.calls

    @pytest.mark.asyncio
    async def test_no_cutoff_never_queries_checkouts(self, make_pruner, vcs):
        """Test that a missing cutoff skips the checkout query."""
        vcs.merged = [merged("feature-x")]
        vcs.checkouts = {"feature-x": NOW}
        pruner = make_pruner()

        eligible = await pruner.get_branches_ready_for_pruning(None)

        assert [b.name for b in eligible] == ["feature-x"]
        assert not vcs.called("checkouts")

    @pytest.mark.asyncio
    async def test_cutoff_boundary_is_inclusive(self, make_pruner, vcs):
        """Test that a checkout exactly at the cutoff protects the branch."""
        cutoff = NOW - timedelta(days=14)
        vcs.merged = [merged("at-cutoff"), merged("before-cutoff"), merged("after-cutoff")]
        vcs.checkouts = {
            "at-cutoff": cutoff,
            "before-cutoff": cutoff - timedelta(seconds=1),
            "after-cutoff": cutoff + timedelta(hours=1),
        }
        pruner = make_pruner()

        eligible = await pruner.get_branches_ready_for_pruning(cutoff)

        assert [b.name for b in eligible] == ["before-cutoff"]
        assert ("checkouts", cutoff) in vcs.calls

    @pytest.mark.asyncio
    async def test_default_branch_is_never_a_candidate(self, make_pruner, vcs):
        """Test that the default branch is never pruned."""
        vcs.head = "refs/heads/feature-y"
        vcs.merged = [merged("main", "abc123"), merged("feature-x")]
        pruner = make_pruner()

        eligible = await pruner.get_branches_ready_for_pruning(None)

        assert [b.name for b in eligible] == ["feature-x"]

    @pytest.mark.asyncio
    async def test_checkout_query_failure_prunes_nothing(self, make_pruner, vcs):
        """Test that a failing checkout query aborts the run."""
        vcs.merged = [merged("feature-x")]
        vcs.get_branch_checkouts = AsyncMock(side_effect=OSError("reflog unreadable"))
        pruner = make_pruner()

        assert await pruner.prune(NOW) is False
        assert vcs.deleted == []

    @pytest.mark.asyncio
    async def test_require_remote_deleted(self, make_pruner, vcs):
        """Test that branches still on the remote are kept when required."""
        vcs.merged = [merged("gone"), merged("still-there")]
        vcs.remote_branches = {"still-there"}
        pruner = make_pruner(Config(require_remote_deleted=True))

        eligible = await pruner.get_branches_ready_for_pruning(None)

        assert [b.name for b in eligible] == ["gone"]

    @pytest.mark.asyncio
    async def test_remote_not_queried_by_default(self, make_pruner, vcs):
        """Test that the remote is not queried by default."""
        vcs.merged = [merged("feature-x")]
        pruner = make_pruner()

        await pruner.get_branches_ready_for_pruning(None)

        assert not vcs.called("remote_branches")


class TestPruneExecution:
    """Test deletion of the eligible branches."""

    @pytest.mark.asyncio
    async def test_prunes_eligible_branches(self, make_pruner, vcs):
        """Test deletion of every eligible branch."""
        vcs.merged = [merged("feature-x"), merged("feature/nested")]
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert vcs.deleted == ["feature-x", "feature/nested"]
        assert pruner.last_result.pruned == ["feature-x", "feature/nested"]

    @pytest.mark.asyncio
    async def test_second_prune_finds_nothing(self, make_pruner, vcs):
        """Test that pruning twice deletes nothing new."""
        vcs.merged = [merged("feature-x"), merged("feature-y")]
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert await pruner.prune(NOW) is False
        assert vcs.deleted == ["feature-x", "feature-y"]

    @pytest.mark.asyncio
    async def test_delete_failure_does_not_stop_the_run(self, make_pruner, vcs):
        """Test that one failed deletion does not stop the others."""
        vcs.merged = [merged("feature-x"), merged("feature-y")]
        vcs.delete_errors["feature-x"] = GitOperationError("delete_branch", "feature-x", "locked")
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert vcs.deleted == ["feature-y"]
        assert pruner.last_result.failed == ["feature-x"]

    @pytest.mark.asyncio
    async def test_single_failing_branch_still_reports_pruning(self, make_pruner, vcs):
        """Test that a failed deletion still counts as pruning."""
        vcs.merged = [merged("feature-x")]
        vcs.delete_errors["feature-x"] = RuntimeError("boom")
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert vcs.deleted == []

    @pytest.mark.asyncio
    async def test_false_delete_result_is_recorded_as_failure(self, make_pruner, vcs):
        """Test that a False delete result is recorded as a failure."""
        vcs.merged = [merged("feature-x")]
        vcs.delete_results["feature-x"] = False
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert pruner.last_result.failed == ["feature-x"]

    @pytest.mark.asyncio
    async def test_non_local_refs_are_skipped(self, make_pruner, vcs):
        """Test that refs outside refs/heads are not deleted."""
        vcs.merged = [MergedBranch("refs/remotes/origin/feature-x", "abc"), merged("feature-y")]
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert vcs.deleted == ["feature-y"]

    @pytest.mark.asyncio
    async def test_only_non_local_refs_still_counts_as_pruning(self, make_pruner, vcs):
        """Test that a run with only non-local candidates still reports pruning."""
        vcs.merged = [MergedBranch("refs/tags/v1.0", "abc")]
        pruner = make_pruner()

        assert await pruner.prune(NOW) is True
        assert not vcs.called("delete")


class TestDryRun:
    """Test the manual preview mode."""

    @pytest.mark.asyncio
    async def test_dry_run_without_cutoff_only_marks(self, make_pruner, vcs):
        """Test that dry run without a cutoff only marks branches."""
        vcs.merged = [merged("feature-x")]
        pruner = make_pruner(Config(dry_run=True))

        assert await pruner.prune(None) is True
        assert vcs.deleted == []
        assert pruner.last_result.marked == ["feature-x"]

    @pytest.mark.asyncio
    async def test_dry_run_with_cutoff_deletes(self, make_pruner, vcs):
        """Test that dry run is ignored when a cutoff is given."""
        vcs.merged = [merged("feature-x")]
        pruner = make_pruner(Config(dry_run=True))

        assert await pruner.prune(NOW) is True
        assert vcs.deleted == ["feature-x"]

    @pytest.mark.asyncio
    async def test_no_dry_run_without_cutoff_deletes(self, make_pruner, vcs):
        """Test deletion without a cutoff when dry run is off."""
        vcs.merged = [merged("feature-x")]
        pruner = make_pruner()

        assert await pruner.prune(None) is True
        assert vcs.deleted == ["feature-x"]


class TestMergeQueryEscalation:
    """Test the warning after repeated merge query failures."""

    @pytest.mark.asyncio
    async def test_warns_after_threshold(self, make_pruner, vcs, caplog):
        """Test the warning once the failure threshold is reached."""
        vcs.merge_error = GitOperationError("list_merged", "main", "broken")
        pruner = make_pruner(Config(warn_after_failed_queries=2))

        with caplog.at_level("DEBUG"):
            await pruner.prune(NOW)
            assert not [r for r in caplog.records if r.levelname == "WARNING"]
            await pruner.prune(NOW)

        warnings = [r for r in caplog.records if r.levelname == "WARNING"]
        assert len(warnings) == 1
        assert "2 times in a row" in warnings[0].getMessage()

    @pytest.mark.asyncio
    async def test_success_resets_the_count(self, make_pruner, vcs, caplog):
        """Test that a successful query resets the failure count."""
        pruner = make_pruner(Config(warn_after_failed_queries=2))

        vcs.merge_error = GitOperationError("list_merged", "main", "broken")
        await pruner.prune(NOW)
        vcs.merge_error = None
        await pruner.prune(NOW)
        vcs.merge_error = GitOperationError("list_merged", "main", "broken")

        with caplog.at_level("DEBUG"):
            await pruner.prune(NOW)

        assert not [r for r in caplog.records if r.levelname == "WARNING"]

    @pytest.mark.asyncio
    async def test_zero_disables_escalation(self, make_pruner, vcs, caplog):
        """Test that a zero threshold never escalates."""
        vcs.merge_error = GitOperationError("list_merged", "main", "broken")
        pruner = make_pruner(Config(warn_after_failed_queries=0))

        with caplog.at_level("DEBUG"):
            for _ in range(5):
                await pruner.prune(NOW)

        assert not [r for r in caplog.records if r.levelname == "WARNING"]
