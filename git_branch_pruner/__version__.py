"""Version information for git-branch-pruner."""

__version__ = "0.1.0"
