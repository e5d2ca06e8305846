"""Core pruning logic for git-branch-pruner."""

from .branch_pruner import BranchPruner
from .candidates import recently_checked_out_refs, select_prune_candidates
from .scheduler import RepeatingTask, schedule_repeating

__all__ = [
    "BranchPruner",
    "recently_checked_out_refs",
    "select_prune_candidates",
    "RepeatingTask",
    "schedule_repeating",
]
