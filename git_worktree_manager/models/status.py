"""Working tree status models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class FileStatusKind(Enum):
    """Kind of change recorded for a file."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"
    CONFLICTED = "conflicted"


@dataclass
class FileStatus:
    """One change to one file, either staged (index) or unstaged (working tree)."""

    path: str  # Repository-relative, "/" separated
    status: FileStatusKind
    staged: bool
    original_path: Optional[str] = None  # Source path of a rename

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "status": self.status.value,
            "staged": self.staged,
            "original_path": self.original_path,
        }


@dataclass
class GitStatusResult:
    """Status of a worktree relative to HEAD and its upstream."""

    branch: Optional[str]
    files: List[FileStatus] = field(default_factory=list)
    ahead: int = 0
    behind: int = 0
    upstream: Optional[str] = None

    @property
    def is_clean(self) -> bool:
        return not self.files

    def to_dict(self) -> dict:
        return {
            "branch": self.branch,
            "files": [f.to_dict() for f in self.files],
            "ahead": self.ahead,
            "behind": self.behind,
            "upstream": self.upstream,
        }
