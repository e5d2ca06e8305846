"""Git-related services for git-branch-pruner."""

from .operations import GitOperations

__all__ = [
    "GitOperations",
]
