"""Runs every mutating git command as a subprocess.

Each call gets an explicit working directory and an argument vector; nothing
is ever passed through a shell. Failures are turned into typed errors by
``porcelain.classify_error`` so the mapping lives in a single place.
"""

import os
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union, TYPE_CHECKING

import git

from git_worktree_manager.exceptions import (
    CommandFailedError,
    FileSystemError,
    OperationCancelledError,
)
from git_worktree_manager.models.worktree import Worktree
from git_worktree_manager.services.git import porcelain
from git_worktree_manager.services.git.validation import canonical_path
from git_worktree_manager.utils.logging import get_logger

if TYPE_CHECKING:
    from git_worktree_manager.config import Config

logger = get_logger(__name__)

# How often a running command checks for cancellation, in seconds
POLL_INTERVAL = 0.1

# Never wait on an interactive credential prompt
COMMAND_ENV = {"GIT_TERMINAL_PROMPT": "0"}


@dataclass
class ExecutionResult:
    """Outcome of one git subprocess."""

    args: List[str]
    cwd: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class GitExecutor:
    """Service executing git write operations."""

    def __init__(self, config: Union["Config", dict]):
        """Initialize the executor.

        Args:
            config: Configuration dictionary or Config object
        """
        self.config = config
        self.git_executable = config.get("git_executable", "git")
        self.command_timeout = config.get("command_timeout", None)
        self.terminate_grace_period = config.get("terminate_grace_period", 5.0)

    # ------------------------------------------------------------------
    # Process handling
    # ------------------------------------------------------------------

    def run(
        self,
        args: Sequence[str],
        cwd: str,
        operation: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        """Run ``git <args>`` in ``cwd`` and capture its output.

        A non-zero exit status is returned, not raised.

        Args:
            args: Git arguments (without the executable)
            cwd: Working directory for the command
            operation: Name used in log messages and errors
            cancel_event: When set, the process is terminated and
                OperationCancelledError is raised

        Returns:
            ExecutionResult with decoded stdout/stderr

        Raises:
            OperationCancelledError: If cancel_event was set before completion
            CommandFailedError: If the configured timeout expired
            FileSystemError: If the process could not be started
        """
        operation = operation or (args[0] if args else "git")
        command = [self.git_executable, *args]

        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(operation)

        if not os.path.isdir(cwd):
            raise FileSystemError(f"Working directory does not exist: {cwd}")

        logger.debug(f"Executing Git command: {' '.join(command)} in {cwd}")
        try:
            proc = git.Git(cwd).execute(command, as_process=True, env=COMMAND_ENV)
        except git.exc.GitCommandNotFound as e:
            raise FileSystemError(f"Git executable not found: {self.git_executable}", e) from e
        except OSError as e:
            raise FileSystemError(f"Failed to start git in {cwd}: {e}", e) from e

        stdout, stderr = self._communicate(proc, command, operation, cancel_event)
        result = ExecutionResult(
            args=command,
            cwd=cwd,
            exit_code=proc.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

        if not result.success:
            logger.warning(
                f"Git command failed: {' '.join(command)}, "
                f"exit code: {result.exit_code}, error: {result.stderr.strip()}"
            )
        return result

    def _communicate(self, proc, command: List[str], operation: str, cancel_event):
        """Wait for the process, honoring cancellation and the timeout."""
        if cancel_event is None and self.command_timeout is None:
            return proc.communicate()

        deadline = None
        if self.command_timeout is not None:
            deadline = time.monotonic() + self.command_timeout

        while True:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Cancelling {operation}: terminating git process")
                self._stop(proc)
                raise OperationCancelledError(operation)

            wait = POLL_INTERVAL if cancel_event is not None else None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._stop(proc)
                    raise CommandFailedError(
                        "",
                        command=command,
                        message=f"Git command timed out after {self.command_timeout} seconds: {' '.join(command)}",
                    )
                wait = remaining if wait is None else min(wait, remaining)

            try:
                return proc.communicate(timeout=wait)
            except subprocess.TimeoutExpired:
                continue

    def _stop(self, proc) -> None:
        """Terminate a running process, killing it if it ignores the request.

        Output captured so far is discarded.
        """
        try:
            proc.terminate()
            proc.communicate(timeout=self.terminate_grace_period)
        except subprocess.TimeoutExpired:
            logger.warning("Git process did not exit after terminate, killing it")
            proc.kill()
            proc.communicate()
        except OSError as e:
            # Already gone
            logger.debug(f"Error stopping git process: {e}")

    def run_checked(
        self,
        args: Sequence[str],
        cwd: str,
        operation: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Run a command and return its trimmed stdout.

        Raises:
            WorktreeManagerError: The classified failure when the exit status is non-zero
        """
        result = self.run(args, cwd, operation, cancel_event)
        if not result.success:
            raise porcelain.classify_error(
                result.stderr, result.stdout, command=result.args, exit_code=result.exit_code
            )
        return result.stdout.strip()

    # ------------------------------------------------------------------
    # Worktree operations
    # ------------------------------------------------------------------

    def list_worktrees(self, repo_path: str) -> List[Worktree]:
        """Get the worktrees as git itself lists them.

        Args:
            repo_path: Path to the git repository

        Returns:
            Parsed worktrees with canonical paths
        """
        output = self.run_checked(["worktree", "list", "--porcelain"], repo_path, "worktree list")
        worktrees = porcelain.parse_worktree_list(output)
        for wt in worktrees:
            wt.path = canonical_path(wt.path)
        return worktrees

    def add_worktree(self, repo_path: str, worktree_path: str, branch: str, create_branch: bool) -> str:
        """Create a worktree checking out ``branch`` (created first if requested)."""
        if create_branch:
            args = ["worktree", "add", "-b", branch, "--", worktree_path]
        else:
            args = ["worktree", "add", "--", worktree_path, branch]
        output = self.run_checked(args, repo_path, "worktree add")
        logger.info(f"Added worktree at {worktree_path} on branch {branch}")
        return output

    def remove_worktree(self, repo_path: str, worktree_path: str, force: bool = False) -> str:
        """Remove a worktree; ``force`` discards uncommitted changes."""
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.extend(["--", worktree_path])
        output = self.run_checked(args, repo_path, "worktree remove")
        logger.info(f"Removed worktree at {worktree_path}")
        return output

    def lock_worktree(self, repo_path: str, worktree_path: str, reason: Optional[str] = None) -> str:
        args = ["worktree", "lock"]
        if reason:
            args.extend(["--reason", reason])
        args.extend(["--", worktree_path])
        output = self.run_checked(args, repo_path, "worktree lock")
        logger.info(f"Locked worktree at {worktree_path}")
        return output

    def unlock_worktree(self, repo_path: str, worktree_path: str) -> str:
        output = self.run_checked(["worktree", "unlock", "--", worktree_path], repo_path, "worktree unlock")
        logger.info(f"Unlocked worktree at {worktree_path}")
        return output

    def prune_worktrees(self, repo_path: str) -> str:
        """Prune administrative records of worktrees whose directories are gone."""
        output = self.run_checked(["worktree", "prune", "--verbose"], repo_path, "worktree prune")
        logger.info("Pruned orphaned worktree metadata")
        return output

    # ------------------------------------------------------------------
    # Working tree operations
    # ------------------------------------------------------------------

    def fetch(self, worktree_path: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.run_checked(["fetch", "--all"], worktree_path, "fetch", cancel_event)

    def pull(self, worktree_path: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.run_checked(["pull"], worktree_path, "pull", cancel_event)

    def push(self, worktree_path: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.run_checked(["push"], worktree_path, "push", cancel_event)

    def commit(self, worktree_path: str, message: str) -> str:
        output = self.run_checked(["commit", "-m", message], worktree_path, "commit")
        logger.info(f"Committed in {worktree_path}")
        return output

    def stage(self, worktree_path: str, file_path: str) -> str:
        return self.run_checked(["add", "--", file_path], worktree_path, "stage")

    def unstage(self, worktree_path: str, file_path: str) -> str:
        return self.run_checked(["restore", "--staged", "--", file_path], worktree_path, "unstage")

    def checkout(self, worktree_path: str, branch: str) -> str:
        output = self.run_checked(["checkout", branch, "--"], worktree_path, "checkout")
        logger.info(f"Checked out {branch} in {worktree_path}")
        return output
