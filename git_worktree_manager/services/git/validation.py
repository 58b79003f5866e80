"""Path and repository validation.

Nothing here writes to disk. Every path handed back is canonical (user home
expanded, symlinks and ``..`` resolved, native separators) so that callers can
compare paths as plain strings.
"""

import os
from pathlib import Path

import git

from git_worktree_manager.exceptions import InvalidPathError, RepositoryNotFoundError
from git_worktree_manager.models.worktree import Repository
from git_worktree_manager.utils.logging import get_logger

logger = get_logger(__name__)


def canonical_path(path) -> str:
    """Return the canonical absolute form of ``path``.

    Works for paths that no longer exist (the existing prefix is resolved).
    """
    return str(Path(os.path.expanduser(str(path))).resolve())


def _require_path(path) -> str:
    if path is None or not str(path).strip():
        raise InvalidPathError("Path cannot be empty", path="")
    return canonical_path(str(path).strip())


def open_repo(path: str) -> git.Repo:
    """Open the repository containing ``path``.

    Args:
        path: A repository root, a directory inside a working tree, a linked
            worktree or a bare repository

    Returns:
        git.Repo: A fresh repository instance; the caller closes it

    Raises:
        RepositoryNotFoundError: If the path is not inside a repository
    """
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
        logger.debug(f"Not a git repository: {path} ({type(e).__name__})")
        raise RepositoryNotFoundError(path) from e


def main_worktree_root(repo: git.Repo) -> str:
    """Canonical path identifying the repository ``repo`` belongs to.

    For a linked worktree this is the main worktree; for a bare repository it
    is the git directory itself.
    """
    common_dir = canonical_path(repo.common_dir)
    if common_dir != canonical_path(repo.git_dir):
        # Opened through a linked worktree: the common dir is the main repository
        with git.Repo(common_dir) as main_repo:
            return _root_of(main_repo)
    return _root_of(repo)


def _root_of(repo: git.Repo) -> str:
    if repo.bare or repo.working_tree_dir is None:
        return canonical_path(repo.git_dir)
    return canonical_path(repo.working_tree_dir)


def validate_repository(path: str) -> Repository:
    """Confirm ``path`` is, or lies inside, a git repository.

    Args:
        path: Path supplied by the caller

    Returns:
        Repository describing the main worktree (or bare git dir)

    Raises:
        InvalidPathError: If the path is empty
        RepositoryNotFoundError: If the path does not exist or is not in a repository
    """
    resolved = _require_path(path)
    if not os.path.exists(resolved):
        raise RepositoryNotFoundError(resolved, f"Path does not exist: {resolved}")

    with open_repo(resolved) as repo:
        root = main_worktree_root(repo)
        common_dir = canonical_path(repo.common_dir)
        is_bare = root == common_dir

    name = os.path.basename(root) or root
    logger.debug(f"Validated repository {name} at {root} (bare={is_bare})")
    return Repository(path=root, name=name, is_bare=is_bare)


def is_valid_repository(path: str) -> bool:
    """Boolean form of validate_repository for "is this a repo?" checks."""
    try:
        validate_repository(path)
        return True
    except (RepositoryNotFoundError, InvalidPathError):
        return False


def validate_worktree_path(path: str) -> str:
    """Confirm ``path`` is an existing directory inside a working tree.

    Args:
        path: Path to a worktree or a directory inside one

    Returns:
        Canonical top-level directory of the working tree

    Raises:
        InvalidPathError: If the path is empty, missing, not a directory, or
            belongs to a bare repository
        RepositoryNotFoundError: If the path is not in a repository
    """
    resolved = _require_path(path)
    if not os.path.exists(resolved):
        raise InvalidPathError(f"Worktree path does not exist: {resolved}", path=resolved)
    if not os.path.isdir(resolved):
        raise InvalidPathError(f"Worktree path is not a directory: {resolved}", path=resolved)

    with open_repo(resolved) as repo:
        if repo.bare or repo.working_tree_dir is None:
            raise InvalidPathError(f"Bare repository has no working tree: {resolved}", path=resolved)
        return canonical_path(repo.working_tree_dir)
