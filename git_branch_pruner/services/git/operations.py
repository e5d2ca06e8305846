"""Git operations service"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Union, TYPE_CHECKING

import git

from git_branch_pruner.exceptions import GitOperationError
from git_branch_pruner.logging_config import get_logger
from git_branch_pruner.models.branch import Branch, MergedBranch
from git_branch_pruner.models.repository import Repository

if TYPE_CHECKING:
    from git_branch_pruner.config import Config

logger = get_logger(__name__)

# "checkout: moving from main to feature-x" and "Branch: renamed refs/heads/a to refs/heads/b"
CHECKOUT_PATTERN = re.compile(
    r"(?:checkout: moving from|renamed) (?:refs/heads/)?(?P<source>\S+) to (?:refs/heads/)?(?P<target>\S+)\s*$",
    re.IGNORECASE,
)


def _describe_command_error(e: git.exc.GitCommandError) -> str:
    """Build a readable message from a GitCommandError."""
    stderr = (e.stderr or "").strip()
    if stderr:
        return f"exit {e.status}: {stderr}"
    return f"exit code {e.status}"


class GitOperations:
    """GitPython implementation of the queries used by the branch pruner.

    Every public coroutine runs its GitPython work in a worker thread so that
    schedulers for other repositories keep running while git is busy.
    """

    def __init__(self, config: Union["Config", dict]):
        """Initialize the service.

        Args:
            config: Configuration dictionary or Config object
        """
        self.config = config
        self.remote_name = config.get("remote_name", "origin")
        self.main_branch = config.get("main_branch", "main")

        logger.debug("Git operations initialized")

    def _get_repo(self, repository: Repository) -> git.Repo:
        """Open a fresh git.Repo for the repository.

        GitPython repos are not thread safe, so each call gets its own instance.
        """
        return git.Repo(repository.path)

    # Merged branches

    def _merged_branches(self, repository: Repository, branch_name: str) -> List[MergedBranch]:
        repo = self._get_repo(repository)
        try:
            output = repo.git.branch("--format=%(objectname) %(refname)", "--merged", branch_name)
        except git.exc.GitCommandError as e:
            raise GitOperationError("list_merged", branch_name, _describe_command_error(e)) from e
        finally:
            repo.close()

        merged = []
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            parts = line.split(" ", 1)
            if len(parts) != 2:
                logger.debug(f"Ignoring unexpected merged branch line: {line!r}")
                continue
            sha, canonical_ref = parts
            merged.append(MergedBranch(canonical_ref=canonical_ref, sha=sha))
        return merged

    async def get_merged_branches(
        self, repository: Repository, branch_name: str
    ) -> List[MergedBranch]:
        """List refs whose history is contained in branch_name, in git's order."""
        return await asyncio.to_thread(self._merged_branches, repository, branch_name)

    # Symbolic refs

    def _symbolic_ref(self, repository: Repository, ref: str) -> Optional[str]:
        repo = self._get_repo(repository)
        try:
            return repo.git.symbolic_ref("-q", ref).strip() or None
        except git.exc.GitCommandError:
            # Detached HEAD or missing ref
            return None
        finally:
            repo.close()

    async def get_symbolic_ref(self, repository: Repository, ref: str) -> Optional[str]:
        """Resolve a symbolic ref such as HEAD to the ref it points at."""
        return await asyncio.to_thread(self._symbolic_ref, repository, ref)

    # Checkout history

    def _branch_checkouts(self, repository: Repository, after: datetime) -> Dict[str, datetime]:
        repo = self._get_repo(repository)
        try:
            entries = repo.head.log()
        except Exception as e:
            logger.debug(f"Could not read HEAD reflog for {repository.name}: {e}")
            return {}
        finally:
            repo.close()

        checkouts: Dict[str, datetime] = {}
        for entry in entries:
            checked_out_at = datetime.fromtimestamp(entry.time[0], tz=timezone.utc)
            if checked_out_at < after:
                continue

            match = CHECKOUT_PATTERN.search(entry.message)
            if not match:
                continue

            branch_name = match.group("target")
            previous = checkouts.get(branch_name)
            if previous is None or checked_out_at > previous:
                checkouts[branch_name] = checked_out_at

        return checkouts

    async def get_branch_checkouts(
        self, repository: Repository, after: datetime
    ) -> Dict[str, datetime]:
        """Branches checked out on or after `after`, with their latest checkout time."""
        return await asyncio.to_thread(self._branch_checkouts, repository, after)

    # Deletion

    def _delete_local_branch(self, repository: Repository, branch_name: str) -> bool:
        repo = self._get_repo(repository)
        try:
            repo.delete_head(branch_name, force=True)
            return True
        except git.exc.GitCommandError as e:
            raise GitOperationError("delete_branch", branch_name, _describe_command_error(e)) from e
        finally:
            repo.close()

    async def delete_local_branch(self, repository: Repository, branch_name: str) -> bool:
        """Delete a local branch, whether or not it is fully merged upstream."""
        return await asyncio.to_thread(self._delete_local_branch, repository, branch_name)

    # Remote branches

    def _remote_branch_names(self, repository: Repository) -> Set[str]:
        repo = self._get_repo(repository)
        try:
            remote = repo.remote(self.remote_name)
            return {ref.remote_head for ref in remote.refs if ref.remote_head != "HEAD"}
        except ValueError:
            logger.debug(f"Repository {repository.name} has no remote named {self.remote_name}")
            return set()
        finally:
            repo.close()

    async def get_remote_branch_names(self, repository: Repository) -> Set[str]:
        """Short names of the remote-tracking branches of the configured remote."""
        return await asyncio.to_thread(self._remote_branch_names, repository)

    # Default branch

    def _default_branch(self, repository: Repository) -> Optional[Branch]:
        remote_head = self._symbolic_ref(repository, f"refs/remotes/{self.remote_name}/HEAD")
        prefix = f"refs/remotes/{self.remote_name}/"
        candidates = []
        if remote_head and remote_head.startswith(prefix):
            candidates.append(remote_head[len(prefix):])
        candidates.append(self.main_branch)

        repo = self._get_repo(repository)
        try:
            for name in candidates:
                try:
                    head = repo.heads[name]
                except IndexError:
                    logger.debug(f"Default branch candidate {name} has no local branch")
                    continue
                return Branch(name=head.name, tip_sha=head.commit.hexsha)
            return None
        finally:
            repo.close()

    async def get_default_branch(self, repository: Repository) -> Optional[Branch]:
        """Resolve the default branch from the remote HEAD, falling back to main_branch."""
        return await asyncio.to_thread(self._default_branch, repository)
