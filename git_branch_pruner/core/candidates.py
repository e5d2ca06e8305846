"""Selection of the branches that are safe to prune."""

from datetime import datetime
from typing import AbstractSet, Dict, Iterable, List, Optional

from git_branch_pruner.constants import RESERVED_REFS
from git_branch_pruner.models.branch import MergedBranch, format_as_local_ref


def recently_checked_out_refs(checkouts: Dict[str, datetime], cutoff: datetime) -> AbstractSet[str]:
    """Canonical refs of the branches checked out at or after the cutoff.

    The cutoff itself counts as recent.
    """
    return frozenset(
        format_as_local_ref(name) for name, checked_out_at in checkouts.items()
        if checked_out_at >= cutoff
    )


def select_prune_candidates(
    merged_branches: Iterable[MergedBranch],
    current_branch_ref: Optional[str] = None,
    recent_refs: AbstractSet[str] = frozenset(),
    reserved_refs: AbstractSet[str] = RESERVED_REFS,
    protected_refs: AbstractSet[str] = frozenset(),
    remote_refs: Optional[AbstractSet[str]] = None,
) -> List[MergedBranch]:
    """Filter merged branches down to the ones that may be deleted.

    Args:
        merged_branches: Branches merged into the default branch, in query order
        current_branch_ref: Canonical ref HEAD points at, None when detached
        recent_refs: Canonical refs checked out since the recency cutoff
        reserved_refs: Refs that are never pruned
        protected_refs: Extra refs to keep for this run (e.g. the default branch)
        remote_refs: Canonical refs still present on the remote. When given, those
            branches are kept; None disables the remote deletion check.

    Returns:
        Eligible branches, preserving the order of merged_branches
    """
    eligible = []
    for branch in merged_branches:
        ref = branch.canonical_ref
        if ref in reserved_refs or ref in protected_refs:
            continue
        if current_branch_ref is not None and ref == current_branch_ref:
            continue
        if ref in recent_refs:
            continue
        if remote_refs is not None and ref in remote_refs:
            continue
        eligible.append(branch)
    return eligible
