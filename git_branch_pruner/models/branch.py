"""Branch models"""
from dataclasses import dataclass, field
from typing import List

from git_branch_pruner.constants import LOCAL_BRANCH_PREFIX


def format_as_local_ref(name: str) -> str:
    """Turn a short branch name into its canonical local ref."""
    if name.startswith(LOCAL_BRANCH_PREFIX):
        return name
    return f"{LOCAL_BRANCH_PREFIX}{name}"


@dataclass(frozen=True)
class Branch:
    """Snapshot of a local branch."""
    name: str
    tip_sha: str

    @property
    def canonical_ref(self) -> str:
        return format_as_local_ref(self.name)


@dataclass(frozen=True)
class MergedBranch:
    """A ref reported as merged, with the sha it pointed at when queried."""
    canonical_ref: str
    sha: str

    @property
    def is_local(self) -> bool:
        return self.canonical_ref.startswith(LOCAL_BRANCH_PREFIX)

    @property
    def name(self) -> str:
        """Short branch name, or the full ref when it is not a local branch."""
        if self.is_local:
            return self.canonical_ref[len(LOCAL_BRANCH_PREFIX):]
        return self.canonical_ref


@dataclass
class PruneResult:
    """Outcome of a single prune run."""
    candidates: List[MergedBranch] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    marked: List[str] = field(default_factory=list)  # dry run only

    @property
    def did_prune(self) -> bool:
        """True when the run evaluated a non-empty eligible set."""
        return bool(self.candidates)
