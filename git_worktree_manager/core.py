"""Core functionality for git-worktree-manager"""

import os
import threading
from typing import List, Optional, Union

from git_worktree_manager.config import Config
from git_worktree_manager.exceptions import InvalidArgumentError
from git_worktree_manager.models.branch import BranchInfo
from git_worktree_manager.models.status import GitStatusResult
from git_worktree_manager.models.worktree import Repository, Worktree
from git_worktree_manager.services.git import GitExecutor, RepositoryReader, SafetyGate
from git_worktree_manager.services.git.validation import (
    canonical_path,
    is_valid_repository,
    validate_repository,
    validate_worktree_path,
)
from git_worktree_manager.utils.logging import get_logger

logger = get_logger(__name__)


def _require_name(value: Optional[str], what: str) -> str:
    """Reject empty values and values git would parse as an option."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{what} cannot be empty")
    if str(value).startswith("-"):
        raise InvalidArgumentError(f"{what} cannot start with '-': {value}")
    return str(value)


def _worktree_target(repository: Repository, worktree_path: str) -> str:
    """Canonicalize ``worktree_path``, resolving a relative path against the repository root."""
    path = os.path.expanduser(_require_name(worktree_path, "Worktree path"))
    return canonical_path(os.path.join(repository.path, path))


class WorktreeManager:
    """Public entry point for worktree and working tree operations.

    The manager keeps no state between calls apart from its configuration:
    every operation validates its repository or worktree again and rebuilds
    what it needs from disk, so one instance can serve several threads.
    """

    def __init__(self, config: Union[Config, dict, None] = None):
        """Initialize WorktreeManager.

        Args:
            config: Configuration dict or Config object
        """
        if config is None:
            config = Config()
        elif isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config

        self.reader = RepositoryReader(config)
        self.executor = GitExecutor(config)
        self.safety_gate = SafetyGate(self.reader, self.executor)

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    def open_repository(self, path: str) -> Repository:
        """Validate and describe the repository at ``path``."""
        return validate_repository(path)

    def validate_repository(self, path: str) -> bool:
        """Return True if ``path`` is in a git repository."""
        return is_valid_repository(path)

    # ------------------------------------------------------------------
    # Worktrees
    # ------------------------------------------------------------------

    def list_worktrees(self, repo_path: str) -> List[Worktree]:
        repository = validate_repository(repo_path)
        return self.reader.list_worktrees(repository)

    def add_worktree(self, repo_path: str, worktree_path: str, branch: str, create_branch: bool = False) -> None:
        """Create a linked worktree at ``worktree_path`` on ``branch``.

        Args:
            repo_path: Repository path
            worktree_path: Directory for the new worktree (must not hold files)
            branch: Branch to check out, or to create when create_branch is set
            create_branch: Create ``branch`` from the current HEAD first

        Raises:
            BranchInUseError: If the branch is checked out in another worktree
            CommandFailedError: If git refuses (e.g. the branch does not exist)
        """
        repository = validate_repository(repo_path)
        branch = _require_name(branch, "Branch name")
        target = _worktree_target(repository, worktree_path)

        logger.debug(f"Adding worktree {target} to {repository.name} on {branch} (create={create_branch})")
        clearance = self.safety_gate.clear_add(repository, target, branch)
        clearance.require_checked()
        self.executor.add_worktree(repository.path, target, branch, create_branch)

    def remove_worktree(self, repo_path: str, worktree_path: str, force: bool = False) -> None:
        """Remove a linked worktree.

        Raises:
            UncommittedChangesError: If not forced and the worktree has changes;
                retrying with force=True removes it anyway
            WorktreeLockedError: If the worktree is locked
            WorktreeNotFoundError: If the path is not a worktree of the repository
        """
        repository = validate_repository(repo_path)
        target = _worktree_target(repository, worktree_path)

        logger.debug(f"Removing worktree {target} from {repository.name} (force={force})")
        clearance = self.safety_gate.clear_remove(repository, target, force)
        clearance.require_checked()
        self.executor.remove_worktree(repository.path, target, force=force)

    def lock_worktree(self, repo_path: str, worktree_path: str, reason: Optional[str] = None) -> None:
        repository = validate_repository(repo_path)
        target = _worktree_target(repository, worktree_path)

        clearance = self.safety_gate.clear_lock_change(repository, target, "lock")
        clearance.require_checked()
        self.executor.lock_worktree(repository.path, target, reason=reason or None)

    def unlock_worktree(self, repo_path: str, worktree_path: str) -> None:
        repository = validate_repository(repo_path)
        target = _worktree_target(repository, worktree_path)

        clearance = self.safety_gate.clear_lock_change(repository, target, "unlock")
        clearance.require_checked()
        self.executor.unlock_worktree(repository.path, target)

    def prune_worktrees(self, repo_path: str) -> str:
        """Drop administrative records of worktrees whose directories are gone."""
        repository = validate_repository(repo_path)
        return self.executor.prune_worktrees(repository.path)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def list_branches(self, repo_path: str) -> List[BranchInfo]:
        validate_repository(repo_path)
        # is_current follows the HEAD of the path given, not of the main worktree
        return self.reader.list_branches(canonical_path(repo_path))

    def checkout_branch(self, worktree_path: str, branch: str) -> None:
        """Switch ``worktree_path`` to ``branch``.

        Raises:
            BranchInUseError: If another worktree has the branch checked out;
                the worktree stays on its current branch
        """
        worktree = validate_worktree_path(worktree_path)
        branch = _require_name(branch, "Branch name")
        repository = validate_repository(worktree)

        clearance = self.safety_gate.clear_checkout(repository, worktree, branch)
        clearance.require_checked()
        self.executor.checkout(worktree, branch)

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def status(self, worktree_path: str) -> GitStatusResult:
        return self.reader.status(validate_worktree_path(worktree_path))

    def has_uncommitted_changes(self, worktree_path: str) -> bool:
        return self.reader.has_uncommitted_changes(validate_worktree_path(worktree_path))

    def fetch(self, worktree_path: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.executor.fetch(validate_worktree_path(worktree_path), cancel_event)

    def pull(self, worktree_path: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.executor.pull(validate_worktree_path(worktree_path), cancel_event)

    def push(self, worktree_path: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.executor.push(validate_worktree_path(worktree_path), cancel_event)

    def commit(self, worktree_path: str, message: str) -> str:
        worktree = validate_worktree_path(worktree_path)
        if message is None or not message.strip():
            raise InvalidArgumentError("Commit message cannot be empty")
        return self.executor.commit(worktree, message)

    def stage(self, worktree_path: str, file_path: str) -> None:
        worktree = validate_worktree_path(worktree_path)
        self.executor.stage(worktree, _require_name(file_path, "File path"))

    def unstage(self, worktree_path: str, file_path: str) -> None:
        worktree = validate_worktree_path(worktree_path)
        self.executor.unstage(worktree, _require_name(file_path, "File path"))
