"""Custom exceptions for git-worktree-manager"""

from typing import Any, Dict, Optional


class WorktreeManagerError(Exception):
    """Base exception for all git-worktree-manager errors.

    Every subclass carries a ``kind`` tag so errors can cross the command
    dispatch boundary as plain, serializable values.
    """

    kind = "Error"
    retry_with_force = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert the error to a JSON-safe payload."""
        return {
            "kind": self.kind,
            "message": self.message,
            "details": dict(self.details),
            "retry_with_force": self.retry_with_force,
        }


class RepositoryNotFoundError(WorktreeManagerError):
    """Raised when a path does not resolve to a git repository."""

    kind = "RepositoryNotFound"

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Not a git repository: {path}", {"path": path})


class InvalidPathError(WorktreeManagerError):
    """Raised for paths that cannot be used for the requested operation."""

    kind = "InvalidPath"

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message, {"path": path} if path is not None else None)


class InvalidArgumentError(WorktreeManagerError):
    """Raised for malformed branch names, file paths, messages or parameters."""

    kind = "InvalidArgument"


class WorktreeNotFoundError(WorktreeManagerError):
    """Raised when a worktree is not registered with the repository."""

    kind = "WorktreeNotFound"

    def __init__(self, path: str, message: Optional[str] = None, details: Optional[dict] = None):
        self.path = path
        merged = {"path": path}
        merged.update(details or {})
        super().__init__(message or f"Worktree not found: {path}", merged)


class BranchInUseError(WorktreeManagerError):
    """Raised when a branch is already checked out in another worktree."""

    kind = "BranchInUse"

    def __init__(
        self,
        branch: Optional[str],
        worktree_path: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.branch = branch
        self.worktree_path = worktree_path
        if message is None:
            message = f"Branch already checked out in another worktree: {branch}"
            if worktree_path:
                message += f" ({worktree_path})"
        merged = {"branch": branch, "worktree_path": worktree_path}
        merged.update(details or {})
        super().__init__(message, merged)


class UncommittedChangesError(WorktreeManagerError):
    """Raised when uncommitted changes block a non-forced destructive operation."""

    kind = "UncommittedChanges"
    retry_with_force = True

    def __init__(self, path: Optional[str] = None, message: Optional[str] = None, details: Optional[dict] = None):
        self.path = path
        merged = {"path": path}
        merged.update(details or {})
        super().__init__(message or "Worktree has uncommitted changes", merged)


class WorktreeLockedError(WorktreeManagerError):
    """Raised when a worktree is locked (or already locked)."""

    kind = "WorktreeLocked"

    def __init__(
        self,
        path: Optional[str] = None,
        reason: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.path = path
        self.reason = reason
        if message is None:
            message = f"Worktree is locked: {reason or path or 'no reason given'}"
        merged = {"path": path, "reason": reason}
        merged.update(details or {})
        super().__init__(message, merged)


class WorktreeNotLockedError(WorktreeManagerError):
    """Raised when unlocking a worktree that is not locked."""

    kind = "WorktreeNotLocked"

    def __init__(self, path: Optional[str] = None, message: Optional[str] = None, details: Optional[dict] = None):
        self.path = path
        merged = {"path": path}
        merged.update(details or {})
        super().__init__(message or f"Worktree is not locked: {path}", merged)


class NothingToCommitError(WorktreeManagerError):
    """Raised when a commit is requested with nothing staged."""

    kind = "NothingToCommit"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message or "Nothing to commit", details)


class CommandFailedError(WorktreeManagerError):
    """Raised when a git subprocess fails and no specific rule matched."""

    kind = "CommandFailed"

    def __init__(
        self,
        stderr: str,
        command: Optional[list] = None,
        exit_code: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.stderr = stderr
        self.command = list(command) if command else []
        self.exit_code = exit_code
        super().__init__(
            message or f"Command failed: {stderr.strip() or f'exit code {exit_code}'}",
            {"stderr": stderr, "command": self.command, "exit_code": exit_code},
        )


class OperationCancelledError(WorktreeManagerError):
    """Raised when a running operation was cancelled by the caller."""

    kind = "Cancelled"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Operation '{operation}' was cancelled", {"operation": operation})


class FileSystemError(WorktreeManagerError):
    """Raised for filesystem or process-spawn failures distinct from git failures."""

    kind = "IoError"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        details = {"cause": f"{type(cause).__name__}: {cause}"} if cause is not None else None
        super().__init__(message, details)


class IntrospectionError(WorktreeManagerError):
    """Raised when the in-process repository read path fails."""

    kind = "IntrospectionError"

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation

        error_msg = f"Repository read '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg, {"operation": operation})
