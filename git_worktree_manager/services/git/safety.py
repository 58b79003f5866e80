"""Pre-flight checks for destructive operations.

Every destructive operation obtains a ``Clearance`` from the gate before the
executor runs. A clearance starts UNCHECKED and only becomes CHECKED once all
checks for that operation passed; the manager refuses to execute with an
unchecked clearance.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from git_worktree_manager.exceptions import (
    BranchInUseError,
    InvalidPathError,
    UncommittedChangesError,
    WorktreeLockedError,
    WorktreeNotFoundError,
)
from git_worktree_manager.models.worktree import Repository, Worktree
from git_worktree_manager.services.git.executor import GitExecutor
from git_worktree_manager.services.git.reader import RepositoryReader
from git_worktree_manager.utils.logging import get_logger

logger = get_logger(__name__)


class GateState(Enum):
    """Check state of a destructive operation."""

    UNCHECKED = "unchecked"
    CHECKED = "checked"


@dataclass
class Clearance:
    """Permission to run one destructive operation on one target."""

    operation: str
    target: str
    forced: bool = False
    state: GateState = GateState.UNCHECKED
    worktree: Optional[Worktree] = None

    def mark_checked(self) -> "Clearance":
        self.state = GateState.CHECKED
        return self

    def require_checked(self) -> None:
        if self.state is not GateState.CHECKED:
            raise RuntimeError(f"{self.operation} on {self.target} has not passed the safety gate")


class SafetyGate:
    """Checks current repository state before destructive operations."""

    def __init__(self, reader: RepositoryReader, executor: GitExecutor):
        """Initialize the gate.

        Args:
            reader: Read adapter used for dirty checks and branch ownership
            executor: Executor whose worktree listing reflects what git will act on
        """
        self.reader = reader
        self.executor = executor

    def _find_worktree(self, repository: Repository, worktree_path: str) -> Worktree:
        """Locate a worktree in git's own listing."""
        for wt in self.executor.list_worktrees(repository.path):
            if wt.path == worktree_path:
                return wt
        raise WorktreeNotFoundError(worktree_path)

    def _require_linked(self, repository: Repository, worktree_path: str, operation: str) -> Worktree:
        worktree = self._find_worktree(repository, worktree_path)
        if worktree.is_main:
            raise InvalidPathError(
                f"The main worktree cannot be {operation}: {worktree_path}", path=worktree_path
            )
        return worktree

    def clear_remove(self, repository: Repository, worktree_path: str, force: bool) -> Clearance:
        """Check a worktree removal.

        Without ``force`` the worktree must be unlocked and free of
        uncommitted changes. With ``force`` only existence is checked.

        Raises:
            WorktreeNotFoundError: If the worktree is not registered
            InvalidPathError: If the target is the main worktree
            WorktreeLockedError: If the worktree is locked (non-forced)
            UncommittedChangesError: If the worktree has changes (non-forced)
        """
        clearance = Clearance("remove", worktree_path, forced=force)
        worktree = self._require_linked(repository, worktree_path, "removed")
        clearance.worktree = worktree

        if force:
            logger.debug(f"Forced removal of {worktree_path}: skipping change check")
            return clearance.mark_checked()

        if worktree.is_locked:
            raise WorktreeLockedError(worktree_path, reason=worktree.lock_reason)

        if os.path.isdir(worktree_path):
            if self.reader.has_uncommitted_changes(worktree_path):
                logger.info(f"Refusing to remove {worktree_path}: uncommitted changes")
                raise UncommittedChangesError(worktree_path)
        else:
            logger.debug(f"Worktree directory {worktree_path} is gone, nothing to lose")

        return clearance.mark_checked()

    def clear_lock_change(self, repository: Repository, worktree_path: str, operation: str) -> Clearance:
        """Check a lock or unlock. Only existence and "not main" are checked."""
        clearance = Clearance(operation, worktree_path)
        verb = "locked" if operation == "lock" else "unlocked"
        clearance.worktree = self._require_linked(repository, worktree_path, verb)
        return clearance.mark_checked()

    def clear_add(self, repository: Repository, worktree_path: str, branch: str) -> Clearance:
        """Check a worktree creation.

        Raises:
            InvalidPathError: If the target exists and is a file or a non-empty directory
            BranchInUseError: If the branch is checked out in any worktree
        """
        clearance = Clearance("add", worktree_path)

        if os.path.isfile(worktree_path):
            raise InvalidPathError(f"Worktree path is a file: {worktree_path}", path=worktree_path)
        if os.path.isdir(worktree_path) and os.listdir(worktree_path):
            raise InvalidPathError(f"Worktree path already exists: {worktree_path}", path=worktree_path)

        self._require_branch_free(self.reader.list_worktrees(repository), branch, exclude=None)
        return clearance.mark_checked()

    def clear_checkout(self, repository: Repository, worktree_path: str, branch: str) -> Clearance:
        """Check that ``branch`` is not checked out in another worktree."""
        clearance = Clearance("checkout", worktree_path)
        self._require_branch_free(self.reader.list_worktrees(repository), branch, exclude=worktree_path)
        return clearance.mark_checked()

    @staticmethod
    def _require_branch_free(worktrees: List[Worktree], branch: str, exclude: Optional[str]) -> None:
        for wt in worktrees:
            if wt.path == exclude:
                continue
            if wt.branch is not None and wt.branch == branch:
                raise BranchInUseError(branch, wt.path)
