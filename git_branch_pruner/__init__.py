"""
git-branch-pruner - Background pruning of merged local Git branches
"""

from .__version__ import __version__
from .core import BranchPruner
from .cli.main import main

__all__ = ["BranchPruner", "main", "__version__"]
