"""Pytest fixtures for git-branch-pruner tests"""
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import git
import pytest

from git_branch_pruner.config import Config
from git_branch_pruner.core import BranchPruner
from git_branch_pruner.models.branch import Branch, MergedBranch
from git_branch_pruner.models.repository import GitHubRepository, Repository


NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeVcs:
    """In-memory stand-in for GitOperations that records every call."""

    def __init__(
        self,
        merged: Optional[List[MergedBranch]] = None,
        head: Optional[str] = "refs/heads/main",
        checkouts: Optional[Dict[str, datetime]] = None,
        remote_branches=None,
    ):
        self.merged = list(merged or [])
        self.head = head
        self.checkouts = dict(checkouts or {})
        self.remote_branches = set(remote_branches or ())
        self.merge_error: Optional[Exception] = None
        self.delete_errors: Dict[str, Exception] = {}
        self.delete_results: Dict[str, bool] = {}
        self.deleted: List[str] = []
        self.calls: List[tuple] = []

    async def get_merged_branches(self, repository, branch_name):
        self.calls.append(("merged", branch_name))
        if self.merge_error is not None:
            raise self.merge_error
        return list(self.merged)

    async def get_symbolic_ref(self, repository, ref):
        self.calls.append(("symbolic_ref", ref))
        return self.head

    async def get_branch_checkouts(self, repository, after):
        self.calls.append(("checkouts", after))
        return dict(self.checkouts)

    async def delete_local_branch(self, repository, branch_name):
        self.calls.append(("delete", branch_name))
        if branch_name in self.delete_errors:
            raise self.delete_errors[branch_name]
        result = self.delete_results.get(branch_name, True)
        if result:
            self.deleted.append(branch_name)
            self.merged = [b for b in self.merged if b.canonical_ref != f"refs/heads/{branch_name}"]
        return result

    async def get_remote_branch_names(self, repository):
        self.calls.append(("remote_branches",))
        return set(self.remote_branches)

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)


class InMemoryPruneStateStore:
    def __init__(self):
        self.dates: Dict[str, datetime] = {}
        self.updates: List[datetime] = []

    async def get_last_prune_date(self, repository):
        return self.dates.get(repository.path)

    async def update_last_prune_attempt_date(self, repository, date):
        self.updates.append(date)
        self.dates[repository.path] = date


class FakeRepositoryStateCache:
    def __init__(self, default_branch: Optional[Branch]):
        self.default_branch = default_branch

    async def get_default_branch(self, repository):
        return self.default_branch


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def merged(name: str, sha: str = "def456") -> MergedBranch:
    """MergedBranch for a local branch name."""
    return MergedBranch(canonical_ref=f"refs/heads/{name}", sha=sha)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def repository():
    """Repository linked to GitHub."""
    return Repository(
        name="test-repo",
        path="/fake/test-repo",
        github_repository=GitHubRepository(owner="test", name="test-repo"),
    )


@pytest.fixture
def vcs():
    return FakeVcs()


@pytest.fixture
def state_store():
    return InMemoryPruneStateStore()


@pytest.fixture
def state_cache():
    return FakeRepositoryStateCache(Branch(name="main", tip_sha="abc123"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def completed():
    """Repositories passed to the completion callback."""
    return []


@pytest.fixture
def make_pruner(repository, vcs, state_store, state_cache, clock, completed):
    """Factory building a BranchPruner around the fakes."""

    async def on_prune_completed(repo):
        completed.append(repo)

    def factory(config=None, repo=None, callback=None):
        return BranchPruner(
            repo or repository,
            vcs,
            state_store,
            state_cache,
            callback or on_prune_completed,
            config or Config(),
            clock=clock,
        )

    return factory


@pytest.fixture
def mock_config():
    """Create a mock configuration dictionary."""
    return {
        'verbose': False,
        'debug': False,
        'dry_run': False,
        'main_branch': 'main',
        'remote_name': 'origin',
        'checkout_lookback_days': 14,
        'minimum_prune_spacing_hours': 24,
        'background_interval_hours': 4,
    }


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    try:
        repo.git.branch('-M', 'main')
    except Exception:
        pass

    repo.create_remote('origin', 'git@github.com:test/test-repo.git')

    yield repo

    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Git repository with a merged branch, an unmerged branch and a reserved branch."""
    repo = git_repo
    repo_path = Path(repo.working_dir)

    # Merged branch
    repo.git.checkout('-b', 'feature/to-merge')
    (repo_path / "merge.txt").write_text("Merge content\n")
    repo.index.add(["merge.txt"])
    repo.index.commit("Feature to merge")
    repo.git.checkout('main')
    repo.git.merge('feature/to-merge', '--no-ff', '-m', 'Merge feature/to-merge')

    # Unmerged branch
    repo.git.checkout('-b', 'feature/unmerged')
    (repo_path / "feature.txt").write_text("Feature content\n")
    repo.index.add(["feature.txt"])
    repo.index.commit("Add feature")

    # Reserved branch pointing at main
    repo.git.checkout('main')
    repo.git.branch('develop')

    yield repo


@pytest.fixture
def git_repository(git_repo_with_branches):
    """Repository model for git_repo_with_branches."""
    return Repository.from_path(git_repo_with_branches.working_dir)
