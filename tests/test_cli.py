"""Tests for the command-line interface"""
import json
from unittest.mock import patch

import pytest

from git_worktree_manager.cli.args import parse_args
from git_worktree_manager.cli.main import EXIT_ERROR, EXIT_INTERRUPTED, EXIT_OK, build_config, main
from git_worktree_manager.commands import CommandDispatcher


def run_json(capsys, *argv):
    """Run the CLI with --json and return (exit code, payload)."""
    code = main(["--json", *argv])
    return code, json.loads(capsys.readouterr().out)


class TestArgs:
    """Test argument parsing."""

    def test_operation_defaults(self):
        """Test that subcommands map onto operations with path defaults."""
        args = parse_args(["status"])
        assert args.operation == "git_status"
        assert args.worktree_path == "."

    def test_add_flags(self):
        """Test the add subcommand."""
        args = parse_args(["add", "../wt", "topic", "-b", "--repo", "/repo"])
        assert args.operation == "add_worktree"
        assert args.create_branch is True
        assert args.repo_path == "/repo"

    def test_invalid_timeout(self):
        """Test that non-positive timeouts are rejected by the parser."""
        with pytest.raises(SystemExit):
            parse_args(["--timeout", "0", "list"])

    def test_command_required(self):
        """Test that a subcommand is required."""
        with pytest.raises(SystemExit):
            parse_args([])

    def test_build_config(self):
        """Test that flags reach the configuration."""
        config = build_config(parse_args(["--git", "/usr/bin/git", "--timeout", "30", "-v", "list"]))
        assert config.git_executable == "/usr/bin/git"
        assert config.command_timeout == 30
        assert config.verbose is True


class TestJsonOutput:
    """Test --json output."""

    def test_list(self, capsys, git_repo, feature_worktree):
        """Test listing worktrees as JSON."""
        code, payload = run_json(capsys, "list", git_repo.working_tree_dir)
        assert code == EXIT_OK
        assert [wt["path"] for wt in payload["data"]] == [git_repo.working_tree_dir, str(feature_worktree)]

    def test_error_exit_code(self, capsys, temp_dir):
        """Test that errors print a payload and exit 1."""
        code, payload = run_json(capsys, "list", str(temp_dir / "missing"))
        assert code == EXIT_ERROR
        assert payload["error"]["kind"] == "RepositoryNotFound"

    def test_status(self, capsys, feature_worktree):
        """Test status of a worktree as JSON."""
        (feature_worktree / "README.md").write_text("edited\n")
        code, payload = run_json(capsys, "status", str(feature_worktree))
        assert code == EXIT_OK
        assert payload["data"]["files"] == [
            {"path": "README.md", "status": "modified", "staged": False, "original_path": None}
        ]


class TestHumanOutput:
    """Test rich output and exit codes."""

    def test_add_and_remove(self, capsys, git_repo, temp_dir):
        """Test creating and removing a worktree."""
        target = str(temp_dir / "wt")
        assert main(["add", target, "topic", "-b", "--repo", git_repo.working_tree_dir]) == EXIT_OK
        assert "Created worktree" in capsys.readouterr().out

        assert main(["remove", target, "--repo", git_repo.working_tree_dir]) == EXIT_OK
        assert "Removed worktree" in capsys.readouterr().out

    def test_add_relative_to_shell_directory(self, capsys, git_repo, temp_dir, monkeypatch):
        """Test that a typed relative path is taken from the current directory."""
        elsewhere = temp_dir / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)
        assert main(["add", "wt", "topic", "-b", "--repo", git_repo.working_tree_dir]) == EXIT_OK
        assert (elsewhere / "wt").is_dir()

    def test_remove_dirty_suggests_force(self, capsys, git_repo, feature_worktree):
        """Test the forced-retry hint for uncommitted changes."""
        (feature_worktree / "wip.txt").write_text("x\n")
        code = main(["remove", str(feature_worktree), "--repo", git_repo.working_tree_dir])
        assert code == EXIT_ERROR
        err = capsys.readouterr().err
        assert "UncommittedChanges" in err
        assert "--force" in err
        assert feature_worktree.exists()

    def test_clean_status(self, capsys, git_repo):
        """Test status of a clean worktree."""
        assert main(["status", git_repo.working_tree_dir]) == EXIT_OK
        assert "Working tree clean" in capsys.readouterr().out

    def test_stage_and_commit(self, capsys, feature_worktree):
        """Test staging and committing from the command line."""
        (feature_worktree / "new.txt").write_text("new\n")
        assert main(["stage", "new.txt", "-w", str(feature_worktree)]) == EXIT_OK
        assert main(["commit", "-m", "Add new", "-w", str(feature_worktree)]) == EXIT_OK
        assert "Add new" in capsys.readouterr().out

    def test_validate_not_a_repository(self, capsys, temp_dir):
        """Test that validate exits 1 outside a repository."""
        assert main(["validate", str(temp_dir)]) == EXIT_ERROR
        assert "Not a git repository" in capsys.readouterr().err

    def test_keyboard_interrupt(self, capsys, git_repo):
        """Test that Ctrl-C exits with 130."""
        with patch.object(CommandDispatcher, "dispatch", side_effect=KeyboardInterrupt):
            assert main(["list", git_repo.working_tree_dir]) == EXIT_INTERRUPTED
        assert "cancelled" in capsys.readouterr().err
