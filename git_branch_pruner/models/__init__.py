"""Data models for git-branch-pruner."""

from .branch import Branch, MergedBranch, PruneResult
from .repository import GitHubRepository, Repository

__all__ = [
    "Branch",
    "MergedBranch",
    "PruneResult",
    "GitHubRepository",
    "Repository",
]
