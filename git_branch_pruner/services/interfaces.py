"""Capability interfaces consumed by the branch pruner."""

from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Set

from git_branch_pruner.models.branch import Branch, MergedBranch
from git_branch_pruner.models.repository import Repository


class VcsAdapter(Protocol):
    """Git queries and mutations needed to prune branches."""

    async def get_merged_branches(
        self, repository: Repository, branch_name: str
    ) -> List[MergedBranch]:
        """List refs merged into branch_name. May raise on failure."""

    async def get_symbolic_ref(self, repository: Repository, ref: str) -> Optional[str]:
        """Resolve a symbolic ref, or None when it is detached or missing."""

    async def get_branch_checkouts(
        self, repository: Repository, after: datetime
    ) -> Dict[str, datetime]:
        """Map of local branch name to its latest checkout on or after `after`."""

    async def delete_local_branch(self, repository: Repository, branch_name: str) -> bool:
        """Delete a local branch. May raise on failure."""

    async def get_remote_branch_names(self, repository: Repository) -> Set[str]:
        """Short names of the branches that still exist on the remote."""


class PruneStateStore(Protocol):
    """Per-repository persistence of the last prune attempt."""

    async def get_last_prune_date(self, repository: Repository) -> Optional[datetime]:
        ...

    async def update_last_prune_attempt_date(
        self, repository: Repository, date: datetime
    ) -> None:
        ...


class RepositoryStateCache(Protocol):
    """Read access to a repository's branch state."""

    async def get_default_branch(self, repository: Repository) -> Optional[Branch]:
        ...


PruneCompletedCallback = Callable[[Repository], Awaitable[None]]
