"""Configuration handling for git-branch-pruner"""

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from git_branch_pruner.constants import (
    DEFAULT_BACKGROUND_INTERVAL_HOURS,
    DEFAULT_CHECKOUT_LOOKBACK_DAYS,
    DEFAULT_MAIN_BRANCH,
    DEFAULT_MINIMUM_PRUNE_SPACING_HOURS,
    DEFAULT_REMOTE_NAME,
)


@dataclass
class Config:
    """Configuration for git-branch-pruner with validation."""

    # Scheduling
    background_interval_hours: float = DEFAULT_BACKGROUND_INTERVAL_HOURS
    minimum_prune_spacing_hours: float = DEFAULT_MINIMUM_PRUNE_SPACING_HOURS
    checkout_lookback_days: int = DEFAULT_CHECKOUT_LOOKBACK_DAYS

    # Execution modes
    dry_run: bool = False  # Only honored for manual runs without a checkout cutoff
    require_remote_deleted: bool = False
    verbose: bool = False
    debug: bool = False

    # Repository resolution
    remote_name: str = DEFAULT_REMOTE_NAME
    main_branch: str = DEFAULT_MAIN_BRANCH  # Fallback when the remote HEAD is unknown

    # Consecutive merge query failures before they are logged as warnings (0 = never)
    warn_after_failed_queries: int = 3

    # Where prune timestamps are persisted (None = ~/.git-branch-pruner/state)
    state_dir: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_background_interval()
        self._validate_prune_spacing()
        self._validate_checkout_lookback()
        self._validate_remote_name()
        self._validate_main_branch()
        self._validate_warn_after_failed_queries()

    def _validate_background_interval(self):
        """Validate background_interval_hours is positive."""
        if self.background_interval_hours <= 0:
            raise ValueError(
                f"background_interval_hours must be positive, got {self.background_interval_hours}"
            )

    def _validate_prune_spacing(self):
        """Validate minimum_prune_spacing_hours is not negative."""
        if self.minimum_prune_spacing_hours < 0:
            raise ValueError(
                f"minimum_prune_spacing_hours cannot be negative, got {self.minimum_prune_spacing_hours}"
            )

    def _validate_checkout_lookback(self):
        """Validate checkout_lookback_days is positive."""
        if self.checkout_lookback_days <= 0:
            raise ValueError(
                f"checkout_lookback_days must be positive, got {self.checkout_lookback_days}"
            )

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name cannot be empty")
        self.remote_name = self.remote_name.strip()

    def _validate_main_branch(self):
        """Validate main_branch is not empty."""
        if not self.main_branch or not self.main_branch.strip():
            raise ValueError("main_branch cannot be empty")
        self.main_branch = self.main_branch.strip()

    def _validate_warn_after_failed_queries(self):
        """Validate warn_after_failed_queries is not negative."""
        if self.warn_after_failed_queries < 0:
            raise ValueError(
                f"warn_after_failed_queries cannot be negative, got {self.warn_after_failed_queries}"
            )

    @property
    def background_interval(self) -> timedelta:
        return timedelta(hours=self.background_interval_hours)

    @property
    def minimum_prune_spacing(self) -> timedelta:
        return timedelta(hours=self.minimum_prune_spacing_hours)

    @property
    def checkout_lookback(self) -> timedelta:
        return timedelta(days=self.checkout_lookback_days)

    @property
    def state_path(self) -> Path:
        """Directory holding one prune state file per repository."""
        if self.state_dir:
            return Path(self.state_dir).expanduser()
        return Path.home() / ".git-branch-pruner" / "state"

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "background_interval_hours": self.background_interval_hours,
            "minimum_prune_spacing_hours": self.minimum_prune_spacing_hours,
            "checkout_lookback_days": self.checkout_lookback_days,
            "dry_run": self.dry_run,
            "require_remote_deleted": self.require_remote_deleted,
            "verbose": self.verbose,
            "debug": self.debug,
            "remote_name": self.remote_name,
            "main_branch": self.main_branch,
            "warn_after_failed_queries": self.warn_after_failed_queries,
            "state_dir": self.state_dir,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        known_fields = {
            "background_interval_hours",
            "minimum_prune_spacing_hours",
            "checkout_lookback_days",
            "dry_run",
            "require_remote_deleted",
            "verbose",
            "debug",
            "remote_name",
            "main_branch",
            "warn_after_failed_queries",
            "state_dir",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
