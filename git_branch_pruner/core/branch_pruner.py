"""Background pruning of local branches that were merged into the default branch."""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Union

from git_branch_pruner.config import Config
from git_branch_pruner.constants import LOG_TAG, RESERVED_REFS
from git_branch_pruner.core.candidates import recently_checked_out_refs, select_prune_candidates
from git_branch_pruner.core.scheduler import RepeatingTask, schedule_repeating
from git_branch_pruner.exceptions import PruneSchedulerAlreadyRunningError
from git_branch_pruner.logging_config import get_logger
from git_branch_pruner.models.branch import Branch, MergedBranch, PruneResult, format_as_local_ref
from git_branch_pruner.models.repository import Repository
from git_branch_pruner.services.interfaces import (
    PruneCompletedCallback,
    PruneStateStore,
    RepositoryStateCache,
    VcsAdapter,
)

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _describe_age(then: datetime, now: datetime) -> str:
    """Rough human description of how long ago `then` was."""
    seconds = max(0, int((now - then).total_seconds()))
    if seconds < 60:
        return "a few seconds ago"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"


class BranchPruner:
    """Prunes local branches of one repository, on demand or on a schedule.

    Branches are deleted when they are
    1. merged into the repository's default branch,
    2. not reserved, not the default branch and not the current branch,
    3. not checked out locally since the recency cutoff, and
    4. gone from the remote, when `require_remote_deleted` is enabled.
    """

    def __init__(
        self,
        repository: Repository,
        vcs: VcsAdapter,
        prune_state_store: PruneStateStore,
        repository_state_cache: RepositoryStateCache,
        on_prune_completed: PruneCompletedCallback,
        config: Union[Config, dict, None] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the pruner.

        Args:
            repository: Repository to prune
            vcs: Git queries and branch deletion
            prune_state_store: Persistence of the last prune attempt
            repository_state_cache: Source of the default branch
            on_prune_completed: Awaited in the background after a pass that pruned
            config: Configuration dict or Config object
            clock: Returns the current time as an aware datetime
        """
        self.repository = repository
        self.vcs = vcs
        self.prune_state_store = prune_state_store
        self.repository_state_cache = repository_state_cache
        self.on_prune_completed = on_prune_completed
        if config is None:
            self.config = Config()
        elif isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config
        self.clock = clock

        self.last_result: Optional[PruneResult] = None
        self._timer: Optional[RepeatingTask] = None
        self._pass_in_flight = False
        self._failed_merge_queries = 0
        self._notifications: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    async def start(self) -> None:
        """Prune now, then every `background_interval_hours`.

        Raises:
            PruneSchedulerAlreadyRunningError: if the pruner was already started
        """
        if self._timer is not None:
            raise PruneSchedulerAlreadyRunningError(self.repository.name)

        self._timer = schedule_repeating(
            self._prune_local_branches,
            self.config.background_interval,
            name=f"branch-pruner:{self.repository.name}",
        )
        await self._prune_local_branches()

    def stop(self) -> None:
        """Stop scheduling passes. A pass already running is left to finish."""
        if self._timer is None:
            return

        self._timer.cancel()
        self._timer = None

    async def prune(self, time_since_last_checkout: Optional[datetime]) -> bool:
        """Prune merged branches of the repository.

        Args:
            time_since_last_checkout: Branches checked out at or after this time are
                kept. None disables the recency check, and in dry run mode only
                reports the branches that would be pruned.

        Returns:
            True when at least one branch was eligible for pruning
        """
        result = PruneResult()
        self.last_result = result

        default_branch = await self.repository_state_cache.get_default_branch(self.repository)
        if default_branch is None:
            logger.debug(f"{LOG_TAG} {self.repository.name} has no default branch - skipping")
            return False

        branches_ready_for_pruning = await self.get_branches_ready_for_pruning(
            time_since_last_checkout, default_branch
        )
        if not branches_ready_for_pruning:
            logger.info(f"{LOG_TAG} no branches to prune.")
            return False

        result.candidates = list(branches_ready_for_pruning)
        count = len(branches_ready_for_pruning)
        pluralized_branches = "branch" if count == 1 else "branches"
        pluralized_have = "has" if count == 1 else "have"
        logger.info(
            f"{LOG_TAG} pruning {count} {pluralized_branches} from {self.repository.name} "
            f"that {pluralized_have} been merged into the default branch, "
            f"{default_branch.name} ({default_branch.tip_sha})."
        )

        preview_only = self.config.dry_run and time_since_last_checkout is None

        for branch in branches_ready_for_pruning:
            if not branch.is_local:
                continue

            branch_name = branch.name

            if preview_only:
                logger.info(f"{LOG_TAG} {branch_name} (was {branch.sha}) has been marked for pruning.")
                result.marked.append(branch_name)
                continue

            try:
                is_deleted = await self.vcs.delete_local_branch(self.repository, branch_name)
            except Exception as e:
                logger.warning(f"{LOG_TAG} failed to prune {branch_name}: {e}")
                result.failed.append(branch_name)
                continue

            if is_deleted:
                logger.info(f"{LOG_TAG} pruned branch {branch_name} (was {branch.sha})")
                result.pruned.append(branch_name)
            else:
                logger.warning(f"{LOG_TAG} {branch_name} was not deleted")
                result.failed.append(branch_name)

        return True

    async def get_branches_ready_for_pruning(
        self,
        time_since_last_checkout: Optional[datetime],
        default_branch: Optional[Branch] = None,
    ) -> List[MergedBranch]:
        """Branches that `prune` would remove, without removing anything."""
        if default_branch is None:
            default_branch = await self.repository_state_cache.get_default_branch(self.repository)
            if default_branch is None:
                return []

        merged_branches = await self._find_branches_merged_into_default_branch(default_branch)
        if not merged_branches:
            return []

        try:
            current_branch_ref = await self.vcs.get_symbolic_ref(self.repository, "HEAD")

            recent_refs = frozenset()
            if time_since_last_checkout is not None:
                checkouts = await self.vcs.get_branch_checkouts(
                    self.repository, time_since_last_checkout
                )
                recent_refs = recently_checked_out_refs(checkouts, time_since_last_checkout)

            remote_refs = None
            if self.config.require_remote_deleted:
                remote_names = await self.vcs.get_remote_branch_names(self.repository)
                remote_refs = frozenset(format_as_local_ref(name) for name in remote_names)
        except Exception as e:
            # Without these signals a branch in use could be deleted
            logger.warning(f"{LOG_TAG} could not inspect {self.repository.name}, nothing will be pruned: {e}")
            return []

        return select_prune_candidates(
            merged_branches,
            current_branch_ref=current_branch_ref,
            recent_refs=recent_refs,
            reserved_refs=RESERVED_REFS,
            protected_refs=frozenset({default_branch.canonical_ref}),
            remote_refs=remote_refs,
        )

    async def _find_branches_merged_into_default_branch(
        self, default_branch: Branch
    ) -> List[MergedBranch]:
        try:
            merged_branches = await self.vcs.get_merged_branches(self.repository, default_branch.name)
        except Exception as e:
            self._failed_merge_queries += 1
            threshold = self.config.warn_after_failed_queries
            if threshold and self._failed_merge_queries >= threshold:
                logger.warning(
                    f"{LOG_TAG} listing merged branches of {self.repository.name} failed "
                    f"{self._failed_merge_queries} times in a row: {e}"
                )
            else:
                logger.debug(f"{LOG_TAG} could not list merged branches of {self.repository.name}: {e}")
            return []

        self._failed_merge_queries = 0
        return list(merged_branches)

    async def _prune_local_branches(self) -> None:
        """One scheduled pass. Never raises."""
        if self._pass_in_flight:
            logger.info(f"{LOG_TAG} previous pass on {self.repository.name} still running - skipping")
            return

        self._pass_in_flight = True
        try:
            await self._background_prune()
        except Exception:
            logger.exception(f"{LOG_TAG} background prune of {self.repository.name} failed")
        finally:
            self._pass_in_flight = False

    async def _background_prune(self) -> None:
        if self.repository.github_repository is None:
            logger.debug(f"{LOG_TAG} {self.repository.name} is not linked to GitHub - skipping")
            return

        last_prune_date = await self.prune_state_store.get_last_prune_date(self.repository)

        # Only prune if the minimum spacing has passed since the last attempt
        now = self.clock()
        threshold = now - self.config.minimum_prune_spacing
        if last_prune_date is not None and threshold < last_prune_date:
            logger.info(
                f"{LOG_TAG} last prune took place {_describe_age(last_prune_date, now)} - skipping"
            )
            return

        time_since_last_checkout = now - self.config.checkout_lookback
        did_prune_happen = False
        try:
            did_prune_happen = await self.prune(time_since_last_checkout)
        finally:
            await self._record_prune_attempt()

        if did_prune_happen:
            self._notify_prune_completed()

    async def _record_prune_attempt(self) -> None:
        try:
            await self.prune_state_store.update_last_prune_attempt_date(
                self.repository, self.clock()
            )
        except Exception:
            logger.exception(f"{LOG_TAG} could not record prune attempt for {self.repository.name}")

    def _notify_prune_completed(self) -> None:
        task = asyncio.ensure_future(self.on_prune_completed(self.repository))
        self._notifications.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Future) -> None:
        self._notifications.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"{LOG_TAG} prune completion handler for {self.repository.name} failed: {error!r}")

    async def wait_for_notifications(self) -> None:
        """Wait for pending completion callbacks to finish."""
        if self._notifications:
            await asyncio.gather(*self._notifications, return_exceptions=True)
