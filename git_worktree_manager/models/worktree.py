"""Repository and worktree data models."""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class Repository:
    """A validated git repository."""

    path: str  # Main worktree, or the git dir of a bare repository
    name: str
    is_bare: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Worktree:
    """Information about one working directory of a repository."""

    path: str
    branch: Optional[str]  # None means detached HEAD
    is_main: bool
    is_locked: bool = False
    lock_reason: Optional[str] = None
    head: Optional[str] = None
    is_bare: bool = False
    is_prunable: bool = False  # Directory missing?
    prunable_reason: Optional[str] = None

    @property
    def is_detached(self) -> bool:
        return self.branch is None and not self.is_bare

    def to_dict(self) -> dict:
        return asdict(self)

    def __str__(self) -> str:
        """String representation of worktree."""
        label = self.branch or "(detached)"
        main_marker = " (main)" if self.is_main else ""
        state = "locked" if self.is_locked else "prunable" if self.is_prunable else "active"
        return f"{label} @ {self.path}{main_marker} [{state}]"
