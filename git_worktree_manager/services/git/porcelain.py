"""Parsers for git's porcelain output and error text.

Everything that interprets git's text output lives here: the worktree
listing, the status listing and the mapping of failed-command stderr onto the
error hierarchy. Unknown lines are skipped so newer git versions that add
fields keep working.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from git_worktree_manager.exceptions import (
    BranchInUseError,
    CommandFailedError,
    InvalidPathError,
    NothingToCommitError,
    RepositoryNotFoundError,
    UncommittedChangesError,
    WorktreeLockedError,
    WorktreeManagerError,
    WorktreeNotFoundError,
    WorktreeNotLockedError,
)
from git_worktree_manager.models.status import FileStatus, FileStatusKind, GitStatusResult
from git_worktree_manager.models.worktree import Worktree
from git_worktree_manager.utils.logging import get_logger

logger = get_logger(__name__)

HEADS_PREFIX = "refs/heads/"


def short_branch_name(ref: str) -> str:
    """Strip ``refs/heads/`` from a full ref name; other refs are kept verbatim."""
    if ref.startswith(HEADS_PREFIX):
        return ref[len(HEADS_PREFIX):]
    return ref


# ---------------------------------------------------------------------------
# git worktree list --porcelain
# ---------------------------------------------------------------------------

def _build_worktree(record: Dict[str, Any], is_main: bool) -> Worktree:
    return Worktree(
        path=record["path"],
        branch=record.get("branch"),
        is_main=is_main,
        is_locked=record.get("locked", False),
        lock_reason=record.get("lock_reason"),
        head=record.get("HEAD"),
        is_bare=record.get("bare", False),
        is_prunable=record.get("prunable", False),
        prunable_reason=record.get("prunable_reason"),
    )


def parse_worktree_list(output: str) -> List[Worktree]:
    """Parse the output of ``git worktree list --porcelain``.

    Format (records separated by blank lines, attribute lines in any order)::

        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>  |  detached  |  bare
        locked [<reason>]
        prunable [<reason>]

    The first record is always the main worktree.

    Args:
        output: Raw stdout of the listing command

    Returns:
        One Worktree per record, in listing order
    """
    worktrees: List[Worktree] = []
    current: Dict[str, Any] = {}

    def flush():
        if current.get("path"):
            worktrees.append(_build_worktree(current, is_main=not worktrees))

    for raw_line in output.splitlines():
        line = raw_line.rstrip("\r")

        if not line.strip():
            # Empty line marks end of worktree entry
            flush()
            current = {}
            continue

        keyword, _, value = line.partition(" ")

        if keyword == "worktree":
            flush()
            current = {"path": value}
        elif not current:
            # Attribute line before any "worktree" line
            logger.debug(f"Ignoring orphan porcelain line: {line!r}")
        elif keyword == "HEAD":
            current["HEAD"] = value
        elif keyword == "branch":
            current["branch"] = short_branch_name(value)
        elif keyword == "detached":
            current["branch"] = None
        elif keyword == "bare":
            current["bare"] = True
        elif keyword == "locked":
            current["locked"] = True
            current["lock_reason"] = value or None
        elif keyword == "prunable":
            current["prunable"] = True
            current["prunable_reason"] = value or None
        else:
            logger.debug(f"Ignoring unknown porcelain line: {line!r}")

    # Handle last entry if no trailing blank line
    flush()

    logger.debug(f"Parsed {len(worktrees)} worktrees from porcelain listing")
    return worktrees


# ---------------------------------------------------------------------------
# git status --porcelain=v2 --branch -z
# ---------------------------------------------------------------------------

# Index (X) or working tree (Y) status letter -> kind. "." means unchanged.
_CHANGE_KINDS = {
    "M": FileStatusKind.MODIFIED,
    "T": FileStatusKind.MODIFIED,  # Type change
    "A": FileStatusKind.ADDED,
    "D": FileStatusKind.DELETED,
    "R": FileStatusKind.RENAMED,
    "C": FileStatusKind.ADDED,  # Copy creates a new file
}

_AHEAD_BEHIND = re.compile(r"^\+(\d+) -(\d+)$")


def _append_changes(files: List[FileStatus], xy: str, path: str, original_path: Optional[str] = None):
    """Add one staged and/or one unstaged entry for an XY status pair."""
    if len(xy) != 2:
        return
    index_status, worktree_status = xy[0], xy[1]

    staged_kind = _CHANGE_KINDS.get(index_status)
    if staged_kind is not None:
        files.append(FileStatus(
            path=path,
            status=staged_kind,
            staged=True,
            original_path=original_path if staged_kind is FileStatusKind.RENAMED else None,
        ))

    unstaged_kind = _CHANGE_KINDS.get(worktree_status)
    if unstaged_kind is not None:
        files.append(FileStatus(
            path=path,
            status=unstaged_kind,
            staged=False,
            original_path=original_path if unstaged_kind is FileStatusKind.RENAMED else None,
        ))


def parse_status(output: str) -> GitStatusResult:
    """Parse ``git status --porcelain=v2 --branch -z`` output.

    Records are NUL separated. A rename/copy record (``2``) is followed by an
    extra field holding the original path. Ignored files (``!``) and unknown
    record types are skipped.

    Args:
        output: Raw stdout of the status command

    Returns:
        GitStatusResult with entries in the order git reported them
    """
    result = GitStatusResult(branch=None)
    fields = output.split("\0")
    i = 0

    while i < len(fields):
        entry = fields[i]
        i += 1
        if not entry:
            continue

        if entry.startswith("# "):
            _parse_branch_header(entry[2:], result)
        elif entry.startswith("1 "):
            parts = entry.split(" ", 8)
            if len(parts) == 9:
                _append_changes(result.files, parts[1], parts[8])
        elif entry.startswith("2 "):
            parts = entry.split(" ", 9)
            original_path = fields[i] if i < len(fields) else None
            i += 1
            if len(parts) == 10:
                _append_changes(result.files, parts[1], parts[9], original_path)
        elif entry.startswith("u "):
            parts = entry.split(" ", 10)
            if len(parts) == 11:
                result.files.append(FileStatus(
                    path=parts[10], status=FileStatusKind.CONFLICTED, staged=False
                ))
        elif entry.startswith("? "):
            result.files.append(FileStatus(
                path=entry[2:], status=FileStatusKind.UNTRACKED, staged=False
            ))
        elif entry.startswith("! "):
            continue
        else:
            logger.debug(f"Ignoring unknown status record: {entry!r}")

    return result


def _parse_branch_header(header: str, result: GitStatusResult) -> None:
    key, _, value = header.partition(" ")
    if key == "branch.head":
        result.branch = None if value == "(detached)" else value
    elif key == "branch.upstream":
        result.upstream = value or None
    elif key == "branch.ab":
        match = _AHEAD_BEHIND.match(value)
        if match:
            result.ahead = int(match.group(1))
            result.behind = int(match.group(2))


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

_QUOTED = r"'([^']*)'"

# Ordered: the first matching rule wins.
_BRANCH_IN_USE = re.compile(
    rf"{_QUOTED} is already (?:checked out|used by worktree) at {_QUOTED}|already checked out",
    re.IGNORECASE,
)
_ALREADY_LOCKED = re.compile(rf"{_QUOTED} is already locked(?:, reason: (.*))?", re.IGNORECASE)
_LOCKED = re.compile(
    r"cannot (?:remove|move) a locked working tree(?:, lock reason: (.*))?|is locked",
    re.IGNORECASE,
)
_NOT_LOCKED = re.compile(rf"(?:{_QUOTED} )?is not locked", re.IGNORECASE)
_UNCOMMITTED = re.compile(
    r"contains modified or untracked files"
    r"|uncommitted changes"
    r"|local changes to the following files would be overwritten"
    r"|untracked working tree files would be overwritten",
    re.IGNORECASE,
)
_NOTHING_TO_COMMIT = re.compile(
    r"nothing to commit|nothing added to commit|no changes added to commit", re.IGNORECASE
)
_NOT_A_WORKTREE = re.compile(
    rf"(?:{_QUOTED} )?is not a working tree|not a working tree|worktree .*not found",
    re.IGNORECASE,
)
_NOT_A_REPOSITORY = re.compile(r"not a git repository", re.IGNORECASE)
_PATH_EXISTS = re.compile(rf"^fatal: {_QUOTED} already exists$", re.IGNORECASE | re.MULTILINE)


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return text.strip()


def classify_error(
    stderr: str,
    stdout: str = "",
    command: Optional[Sequence[str]] = None,
    exit_code: Optional[int] = None,
) -> WorktreeManagerError:
    """Map the output of a failed git command onto a typed error.

    Args:
        stderr: Captured stderr of the failed command
        stdout: Captured stdout; used when stderr is empty (``git commit``
            reports "nothing to commit" on stdout)
        command: The argv that was run, kept for display
        exit_code: Exit status of the process

    Returns:
        The most specific WorktreeManagerError for the text, falling back to
        CommandFailedError carrying the raw text
    """
    text = stderr if stderr.strip() else stdout
    details = {"stderr": text, "exit_code": exit_code}
    summary = _first_line(text)

    match = _BRANCH_IN_USE.search(text)
    if match:
        return BranchInUseError(match.group(1), match.group(2), message=summary, details=details)

    match = _ALREADY_LOCKED.search(text)
    if match:
        return WorktreeLockedError(
            match.group(1), reason=match.group(2), message=summary, details=details
        )

    match = _LOCKED.search(text)
    if match:
        return WorktreeLockedError(reason=match.group(1), message=summary, details=details)

    match = _NOT_LOCKED.search(text)
    if match:
        return WorktreeNotLockedError(match.group(1), message=summary, details=details)

    if _UNCOMMITTED.search(text):
        return UncommittedChangesError(message=summary, details=details)

    if _NOTHING_TO_COMMIT.search(text):
        return NothingToCommitError(details=details)

    match = _NOT_A_WORKTREE.search(text)
    if match:
        return WorktreeNotFoundError(match.group(1) or "", message=summary, details=details)

    if _NOT_A_REPOSITORY.search(text):
        return RepositoryNotFoundError("", message=summary)

    match = _PATH_EXISTS.search(text)
    if match:
        return InvalidPathError(summary, path=match.group(1))

    return CommandFailedError(text, command=command, exit_code=exit_code)
