"""Repository models"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import git

from git_branch_pruner.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GitHubRepository:
    """Link between a working copy and its repository on GitHub."""
    owner: str
    name: str
    endpoint: str = "https://api.github.com"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_remote_url(cls, remote_url: str) -> Optional["GitHubRepository"]:
        """Parse a GitHub remote URL (SSH or HTTPS), returning None for other hosts."""
        if not remote_url or "github.com" not in remote_url:
            return None

        if remote_url.startswith("git@"):
            # git@github.com:org/repo.git
            path = remote_url.split("github.com:", 1)[1]
        else:
            # https://github.com/org/repo.git or ssh://git@github.com/org/repo.git
            parsed_url = urlparse(remote_url)
            if parsed_url.hostname != "github.com":
                return None
            path = parsed_url.path

        path = path.strip("/")
        if path.endswith(".git"):
            path = path[:-4]

        parts = path.split("/")
        if len(parts) != 2 or not all(parts):
            logger.debug(f"Could not parse GitHub repository from {remote_url}")
            return None

        return cls(owner=parts[0], name=parts[1])


@dataclass(frozen=True)
class Repository:
    """A local working copy. Pruning is skipped when github_repository is None."""
    name: str
    path: str
    github_repository: Optional[GitHubRepository] = None

    @classmethod
    def from_path(cls, repo_path: str, remote_name: str = "origin") -> "Repository":
        """Build a Repository from a working copy, resolving its GitHub link from the remote."""
        resolved = Path(repo_path).resolve()
        repo = git.Repo(resolved)
        try:
            github_repository = None
            try:
                remote_url = repo.remote(remote_name).url
                github_repository = GitHubRepository.from_remote_url(remote_url)
            except ValueError:
                logger.debug(f"Repository {resolved} has no remote named {remote_name}")

            return cls(
                name=resolved.name,
                path=str(Path(repo.working_tree_dir or resolved)),
                github_repository=github_repository,
            )
        finally:
            repo.close()
