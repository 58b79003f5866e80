"""Read-side repository queries built on GitPython.

Reads never go through the write executor. Worktree and branch listings come
from GitPython's view of refs, HEAD and the worktree administrative records
in ``<common-dir>/worktrees/``; status goes through GitPython's command
wrapper and the porcelain parser.
"""

import os
from typing import List, Optional, Union, TYPE_CHECKING

import git

from git_worktree_manager.exceptions import IntrospectionError, WorktreeManagerError
from git_worktree_manager.models.branch import BranchInfo
from git_worktree_manager.models.status import GitStatusResult
from git_worktree_manager.models.worktree import Repository, Worktree
from git_worktree_manager.services.git import porcelain
from git_worktree_manager.services.git.validation import canonical_path, open_repo
from git_worktree_manager.utils.logging import get_logger

if TYPE_CHECKING:
    from git_worktree_manager.config import Config

logger = get_logger(__name__)

HEAD_REF_PREFIX = "ref: "


def current_branch(repo: git.Repo) -> Optional[str]:
    """Short name of the branch HEAD points at, or None when detached.

    An unborn branch (no commits yet) still reports its name.
    """
    try:
        if repo.head.is_detached:
            return None
        return porcelain.short_branch_name(repo.head.reference.path)
    except (TypeError, ValueError) as e:
        logger.debug(f"Could not resolve HEAD of {repo.git_dir}: {e}")
        return None


def _head_commit(repo: git.Repo) -> Optional[str]:
    try:
        return repo.head.commit.hexsha
    except ValueError:
        # Unborn branch
        return None


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError:
        return None


class RepositoryReader:
    """Service answering read-only questions about a repository."""

    def __init__(self, config: Union["Config", dict]):
        """Initialize the reader.

        Args:
            config: Configuration dictionary or Config object
        """
        self.config = config
        self.status_untracked_files = config.get("status_untracked_files", "all")
        self.dirty_check_untracked_files = config.get("dirty_check_untracked_files", "normal")

    def list_worktrees(self, repository: Repository) -> List[Worktree]:
        """Get every worktree of a repository, main worktree first.

        Args:
            repository: A validated repository

        Returns:
            List of Worktree objects; exactly one has is_main set

        Raises:
            IntrospectionError: If the repository metadata cannot be read
        """
        try:
            with open_repo(repository.path) as repo:
                worktrees = [self._main_worktree(repo, repository)]

                admin_root = os.path.join(repo.common_dir, "worktrees")
                if os.path.isdir(admin_root):
                    for name in sorted(os.listdir(admin_root)):
                        admin_dir = os.path.join(admin_root, name)
                        if not os.path.isdir(admin_dir):
                            continue
                        linked = self._linked_worktree(admin_dir)
                        if linked is not None:
                            worktrees.append(linked)
        except WorktreeManagerError:
            raise
        except (git.exc.GitError, OSError, ValueError) as e:
            raise IntrospectionError("list_worktrees", str(e)) from e

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def _main_worktree(self, repo: git.Repo, repository: Repository) -> Worktree:
        """The main worktree is the repository itself, not an admin record."""
        if repo.common_dir and canonical_path(repo.common_dir) != canonical_path(repo.git_dir):
            with git.Repo(canonical_path(repo.common_dir)) as main_repo:
                return self._main_worktree(main_repo, repository)

        return Worktree(
            path=repository.path,
            branch=current_branch(repo),
            is_main=True,
            head=_head_commit(repo),
            is_bare=repository.is_bare,
        )

    def _linked_worktree(self, admin_dir: str) -> Optional[Worktree]:
        """Build a Worktree from ``<common-dir>/worktrees/<id>``."""
        gitdir = _read_text(os.path.join(admin_dir, "gitdir"))
        if not gitdir or not gitdir.strip():
            logger.debug(f"Skipping worktree record without gitdir: {admin_dir}")
            return None

        # gitdir holds the path of the worktree's ".git" file
        dotgit = gitdir.strip()
        if not os.path.isabs(dotgit):
            dotgit = os.path.join(admin_dir, dotgit)
        path = canonical_path(os.path.dirname(dotgit))

        lock_text = _read_text(os.path.join(admin_dir, "locked"))
        is_prunable = not os.path.exists(dotgit)

        branch, head = self._linked_head(path, admin_dir, is_prunable)

        return Worktree(
            path=path,
            branch=branch,
            is_main=False,
            is_locked=lock_text is not None,
            lock_reason=(lock_text.strip() or None) if lock_text is not None else None,
            head=head,
            is_prunable=is_prunable,
            prunable_reason="gitdir file points to non-existent location" if is_prunable else None,
        )

    def _linked_head(self, path: str, admin_dir: str, is_prunable: bool):
        """Branch and commit of a linked worktree.

        Uses GitPython when the worktree is present, otherwise falls back to
        the HEAD file kept in its administrative record.
        """
        if not is_prunable:
            try:
                with git.Repo(path) as wt_repo:
                    return current_branch(wt_repo), _head_commit(wt_repo)
            except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
                logger.debug(f"Could not open worktree {path}: {e}")

        head_text = (_read_text(os.path.join(admin_dir, "HEAD")) or "").strip()
        if head_text.startswith(HEAD_REF_PREFIX):
            return porcelain.short_branch_name(head_text[len(HEAD_REF_PREFIX):]), None
        return None, head_text or None

    def list_branches(self, path: str) -> List[BranchInfo]:
        """Get local and remote-tracking branches.

        Args:
            path: Repository or worktree path; is_current is relative to its HEAD

        Returns:
            Local branches first, then remote-tracking branches

        Raises:
            IntrospectionError: If refs cannot be read
        """
        try:
            with open_repo(path) as repo:
                current = current_branch(repo)
                branches = [
                    BranchInfo(name=head.name, is_remote=False, is_current=head.name == current)
                    for head in repo.branches
                ]
                for remote in repo.remotes:
                    for ref in self._remote_refs(remote):
                        if ref.remote_head == "HEAD":
                            continue
                        branches.append(BranchInfo(name=ref.name, is_remote=True, is_current=False))
        except WorktreeManagerError:
            raise
        except (git.exc.GitError, OSError, ValueError) as e:
            raise IntrospectionError("list_branches", str(e)) from e

        logger.debug(f"Found {len(branches)} branches (current: {current})")
        return branches

    @staticmethod
    def _remote_refs(remote: git.Remote) -> list:
        try:
            return list(remote.refs)
        except AssertionError:
            # Older GitPython asserts when a remote has never been fetched
            logger.debug(f"Remote {remote.name} has no references")
            return []

    def _run_status(self, worktree_path: str, untracked_files: str, with_branch: bool) -> str:
        args = ["--porcelain=v2", "-z", f"--untracked-files={untracked_files}"]
        if with_branch:
            args.insert(1, "--branch")
        try:
            with open_repo(worktree_path) as repo:
                return repo.git.status(*args)
        except WorktreeManagerError:
            raise
        except git.exc.GitCommandError as e:
            stderr = (e.stderr if hasattr(e, "stderr") else str(e)).strip()
            raise IntrospectionError("status", f"git status failed (exit {e.status}): {stderr}") from e
        except (git.exc.GitError, OSError) as e:
            raise IntrospectionError("status", str(e)) from e

    def status(self, worktree_path: str) -> GitStatusResult:
        """Get branch, changed files and ahead/behind counts of a worktree.

        Args:
            worktree_path: Validated worktree path

        Returns:
            GitStatusResult; ahead/behind are 0 without an upstream
        """
        output = self._run_status(worktree_path, self.status_untracked_files, with_branch=True)
        result = porcelain.parse_status(output)
        logger.debug(
            f"Status of {worktree_path}: {len(result.files)} changes, "
            f"ahead {result.ahead}, behind {result.behind}"
        )
        return result

    def has_uncommitted_changes(self, worktree_path: str) -> bool:
        """Check for staged, unstaged or untracked (not ignored) changes.

        Untracked directories are not descended into unless configured, which
        keeps the check cheap on large trees.

        Args:
            worktree_path: Validated worktree path

        Returns:
            True if anything would be lost by deleting the worktree
        """
        output = self._run_status(worktree_path, self.dirty_check_untracked_files, with_branch=False)
        dirty = bool(porcelain.parse_status(output).files)
        logger.debug(f"Worktree {worktree_path} dirty: {dirty}")
        return dirty
