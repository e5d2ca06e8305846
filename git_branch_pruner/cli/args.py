"""Command-line argument parsing for git-branch-pruner."""

import argparse
from git_branch_pruner.__version__ import __version__
from git_branch_pruner.constants import (
    DEFAULT_BACKGROUND_INTERVAL_HOURS,
    DEFAULT_CHECKOUT_LOOKBACK_DAYS,
    DEFAULT_MAIN_BRANCH,
    DEFAULT_MINIMUM_PRUNE_SPACING_HOURS,
    DEFAULT_REMOTE_NAME,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-branch-pruner",
        description="Periodically delete local branches that were merged into the default branch",
        epilog="Only repositories with a GitHub remote are pruned on schedule.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-branch-pruner {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--repo",
        dest="repos",
        action="append",
        metavar="PATH",
        help="Repository to prune (repeatable, default: current directory)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single manual prune and exit instead of staying in the background",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="With --once: ignore recent checkouts (no recency cutoff)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview mode - with --once --all, only list branches that would be pruned",
    )
    parser.add_argument(
        "--interval-hours",
        type=float,
        default=DEFAULT_BACKGROUND_INTERVAL_HOURS,
        help=f"Hours between background passes (default: {DEFAULT_BACKGROUND_INTERVAL_HOURS})",
    )
    parser.add_argument(
        "--spacing-hours",
        type=float,
        default=DEFAULT_MINIMUM_PRUNE_SPACING_HOURS,
        help=f"Minimum hours between two prunes of a repository (default: {DEFAULT_MINIMUM_PRUNE_SPACING_HOURS})",
    )
    parser.add_argument(
        "--lookback-days",
        type=int,
        default=DEFAULT_CHECKOUT_LOOKBACK_DAYS,
        help=f"Keep branches checked out within this many days (default: {DEFAULT_CHECKOUT_LOOKBACK_DAYS})",
    )
    parser.add_argument(
        "--require-remote-deleted",
        action="store_true",
        help="Only prune branches that no longer exist on the remote",
    )
    parser.add_argument("--remote", default=DEFAULT_REMOTE_NAME, help="Remote name")
    parser.add_argument(
        "--main-branch",
        default=DEFAULT_MAIN_BRANCH,
        help="Default branch used when the remote HEAD is unknown",
    )
    parser.add_argument("--state-dir", help="Directory for prune timestamps")
    parser.add_argument("--log-file", help="Also write debug logs to this file")
    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
