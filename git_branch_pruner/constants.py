"""Shared constants for git-branch-pruner."""

from typing import FrozenSet

# Prefix of every local branch canonical ref
LOCAL_BRANCH_PREFIX = "refs/heads/"

# Refs that are never pruned, whatever their merge or checkout status
RESERVED_REFS: FrozenSet[str] = frozenset(
    {
        "HEAD",
        "refs/heads/master",
        "refs/heads/gh-pages",
        "refs/heads/develop",
        "refs/heads/dev",
        "refs/heads/development",
        "refs/heads/trunk",
        "refs/heads/devel",
        "refs/heads/release",
    }
)

# Scheduling defaults
DEFAULT_BACKGROUND_INTERVAL_HOURS = 4
DEFAULT_MINIMUM_PRUNE_SPACING_HOURS = 24
DEFAULT_CHECKOUT_LOOKBACK_DAYS = 14

DEFAULT_REMOTE_NAME = "origin"
DEFAULT_MAIN_BRANCH = "main"

LOG_TAG = "[Branch Pruner]"
