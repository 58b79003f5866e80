"""Pytest fixtures for git-worktree-manager tests"""
import tempfile
from pathlib import Path
import pytest
import git

from git_worktree_manager.config import Config
from git_worktree_manager.core import WorktreeManager


def _commit_file(repo, name, content, message):
    """Write a file in the repository's working tree and commit it."""
    path = Path(repo.working_tree_dir) / name
    path.write_text(content)
    repo.index.add([name])
    repo.index.commit(message)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # Resolved so paths compare equal to the canonical paths we return
        yield Path(tmpdir).resolve()


@pytest.fixture
def config():
    """Create a configuration with a short grace period for cancellation tests."""
    return Config(git_executable="git", terminate_grace_period=1.0)


@pytest.fixture
def manager(config):
    """Create a WorktreeManager."""
    return WorktreeManager(config)


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository on branch main with one commit."""
    repo_path = temp_dir / "repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    # Configure git user for commits made by the git CLI as well
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    _commit_file(repo, "README.md", "# Test Repository\n", "Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')

    yield repo

    repo.close()


@pytest.fixture
def feature_worktree(git_repo, temp_dir):
    """Add a linked worktree at <tmp>/repo-feature on a new branch 'feature'."""
    worktree_path = temp_dir / "repo-feature"
    git_repo.git.worktree('add', '-b', 'feature', str(worktree_path))
    return worktree_path


@pytest.fixture
def repo_with_remote(git_repo, temp_dir):
    """Give the repository an 'origin' bare remote tracking main."""
    remote_path = temp_dir / "origin.git"
    git.Repo.init(remote_path, bare=True).close()
    git_repo.create_remote('origin', str(remote_path))
    git_repo.git.push('-u', 'origin', 'main')
    return git_repo


@pytest.fixture
def commit_file():
    """Expose the commit helper to tests."""
    return _commit_file
