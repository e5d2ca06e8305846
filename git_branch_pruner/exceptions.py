"""Custom exceptions for git-branch-pruner"""

from typing import Optional


class GitBranchPrunerError(Exception):
    """Base exception for all git-branch-pruner errors."""
    pass


class GitOperationError(GitBranchPrunerError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class PruneStateError(GitBranchPrunerError):
    """Exception raised when the prune state cannot be persisted."""

    def __init__(self, repository: str, message: Optional[str] = None):
        self.repository = repository
        self.message = message

        error_msg = f"Could not persist prune state for '{repository}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class PruneSchedulerAlreadyRunningError(GitBranchPrunerError):
    """Raised when a background prune is started twice for the same repository.

    This is a programming error in the host, not a runtime condition to recover from.
    """

    def __init__(self, repository: str):
        self.repository = repository
        super().__init__(
            f"A background prune task is already active and cannot begin pruning on {repository}"
        )
