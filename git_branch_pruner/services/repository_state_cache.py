"""Cache of per-repository branch state."""

import time
from typing import Dict, Optional, Tuple

from git_branch_pruner.logging_config import get_logger
from git_branch_pruner.models.branch import Branch
from git_branch_pruner.models.repository import Repository
from git_branch_pruner.services.git import GitOperations

logger = get_logger(__name__)


class GitRepositoryStateCache:
    """Memoizes the default branch of each repository for a short time.

    The default branch tip moves as the user pulls, so entries expire after
    `ttl_seconds` and are resolved again through GitOperations.
    """

    def __init__(self, git_operations: GitOperations, ttl_seconds: float = 300.0):
        self.git_operations = git_operations
        self.ttl_seconds = ttl_seconds
        self._default_branches: Dict[str, Tuple[float, Optional[Branch]]] = {}

    async def get_default_branch(self, repository: Repository) -> Optional[Branch]:
        cached = self._default_branches.get(repository.path)
        if cached is not None:
            cached_at, branch = cached
            if time.monotonic() - cached_at < self.ttl_seconds:
                return branch

        try:
            branch = await self.git_operations.get_default_branch(repository)
        except Exception as e:
            logger.warning(f"Could not resolve default branch for {repository.name}: {e}")
            return None

        if branch is None:
            logger.debug(f"No default branch found for {repository.name}")
        self._default_branches[repository.path] = (time.monotonic(), branch)
        return branch

    def invalidate(self, repository: Repository) -> None:
        """Forget the cached state of a repository."""
        self._default_branches.pop(repository.path, None)
