"""Data models for git-worktree-manager."""

from .worktree import Repository, Worktree
from .branch import BranchInfo
from .status import FileStatus, FileStatusKind, GitStatusResult

__all__ = [
    "Repository",
    "Worktree",
    "BranchInfo",
    "FileStatus",
    "FileStatusKind",
    "GitStatusResult",
]
