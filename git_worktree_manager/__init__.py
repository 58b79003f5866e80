"""
git-worktree-manager - Manage the worktrees of a git repository
"""

from .__version__ import __version__
from .core import WorktreeManager
from .commands import CommandDispatcher

__all__ = ["WorktreeManager", "CommandDispatcher", "__version__"]
