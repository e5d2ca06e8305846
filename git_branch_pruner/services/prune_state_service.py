"""Persistence of the last prune attempt for each repository."""
import asyncio
import hashlib
import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from git_branch_pruner.exceptions import PruneStateError
from git_branch_pruner.logging_config import get_logger
from git_branch_pruner.models.repository import Repository

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

logger = get_logger(__name__)


class PruneStateService:
    """Stores prune timestamps as one small JSON file per repository.

    Files are named after a hash of the repository path so that schedulers for
    different repositories never touch the same file.
    """

    def __init__(self, state_dir: Path):
        """Initialize the state service.

        Args:
            state_dir: Directory holding the per-repository state files
        """
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def state_file(self, repository: Repository) -> Path:
        """Path of the state file for a repository."""
        repo_path = str(Path(repository.path).resolve())
        repo_hash = hashlib.md5(repo_path.encode()).hexdigest()
        return self.state_dir / f"{repo_hash}.json"

    @contextmanager
    def _acquire_lock(self, file_handle, operation: str = "read"):
        """Acquire file lock for state operations.

        Args:
            file_handle: Open file handle to lock
            operation: Type of operation ("read" or "write")
        """
        if not HAS_FCNTL:
            logger.debug("File locking not available on this platform")
            yield
            return

        lock_type = fcntl.LOCK_EX if operation == "write" else fcntl.LOCK_SH
        fcntl.flock(file_handle.fileno(), lock_type)
        try:
            yield
        finally:
            try:
                fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
            except OSError as e:
                logger.debug(f"Error releasing lock: {e}")

    def _load_state(self, repository: Repository) -> Dict:
        state_file = self.state_file(repository)
        if not state_file.exists():
            return {}

        try:
            with open(state_file, 'r') as f:
                with self._acquire_lock(f, operation="read"):
                    state = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in prune state for {repository.name}: {e}")
            return {}
        except OSError as e:
            logger.warning(f"Failed to read prune state for {repository.name}: {e}")
            return {}

        if not isinstance(state, dict):
            logger.warning(f"Prune state for {repository.name} is not an object, ignoring it")
            return {}
        return state

    def read_last_prune_date(self, repository: Repository) -> Optional[datetime]:
        """Last prune attempt of the repository, or None when it was never pruned."""
        value = self._load_state(repository).get("last_prune_date")
        if value is None:
            return None

        try:
            last_prune_date = datetime.fromisoformat(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid last_prune_date {value!r} for {repository.name}")
            return None

        if last_prune_date.tzinfo is None:
            last_prune_date = last_prune_date.replace(tzinfo=timezone.utc)
        return last_prune_date

    def write_last_prune_attempt_date(self, repository: Repository, date: datetime) -> None:
        """Record a prune attempt using an atomic write."""
        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)

        state = self._load_state(repository)
        state.update({
            "repo_path": repository.path,
            "last_prune_date": date.astimezone(timezone.utc).isoformat(),
        })

        state_file = self.state_file(repository)
        temp_file = state_file.with_suffix('.tmp')
        try:
            with open(temp_file, 'w') as f:
                with self._acquire_lock(f, operation="write"):
                    json.dump(state, f, indent=2)
                    f.flush()

            # Atomic rename (POSIX systems guarantee atomicity)
            temp_file.replace(state_file)
            logger.debug(f"Saved prune state for {repository.name}")
        except OSError as e:
            raise PruneStateError(repository.name, str(e)) from e
        finally:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    pass

    def clear(self, repository: Repository) -> None:
        """Forget the prune state of a repository."""
        state_file = self.state_file(repository)
        if state_file.exists():
            state_file.unlink()
            logger.info(f"Prune state cleared for {repository.name}")

    async def get_last_prune_date(self, repository: Repository) -> Optional[datetime]:
        return await asyncio.to_thread(self.read_last_prune_date, repository)

    async def update_last_prune_attempt_date(self, repository: Repository, date: datetime) -> None:
        await asyncio.to_thread(self.write_last_prune_attempt_date, repository, date)
