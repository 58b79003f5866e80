"""Tests for the porcelain parsers and error classification"""
import pytest

from git_worktree_manager.exceptions import (
    BranchInUseError,
    CommandFailedError,
    InvalidPathError,
    NothingToCommitError,
    RepositoryNotFoundError,
    UncommittedChangesError,
    WorktreeLockedError,
    WorktreeNotFoundError,
    WorktreeNotLockedError,
)
from git_worktree_manager.models.status import FileStatusKind
from git_worktree_manager.services.git.porcelain import (
    classify_error,
    parse_status,
    parse_worktree_list,
    short_branch_name,
)


class TestWorktreeListParsing:
    """Test parsing of `git worktree list --porcelain`."""

    def test_two_records_with_unknown_line(self):
        """Test that a main and a linked record parse and unknown lines are ignored."""
        output = (
            "worktree /repo\n"
            "HEAD 1111111111111111111111111111111111111111\n"
            "branch refs/heads/main\n"
            "\n"
            "worktree /repo-feature\n"
            "HEAD 2222222222222222222222222222222222222222\n"
            "branch refs/heads/feature\n"
            "frobnicated yes\n"
        )
        worktrees = parse_worktree_list(output)

        assert len(worktrees) == 2
        main, feature = worktrees
        assert main.path == "/repo"
        assert main.branch == "main"
        assert main.is_main is True
        assert feature.path == "/repo-feature"
        assert feature.branch == "feature"
        assert feature.is_main is False
        assert feature.head == "2222222222222222222222222222222222222222"

    def test_detached_head(self):
        """Test that a detached record has no branch."""
        output = "worktree /repo\nHEAD abc\nbranch refs/heads/main\n\nworktree /wt\nHEAD def\ndetached\n"
        worktrees = parse_worktree_list(output)
        assert worktrees[1].branch is None
        assert worktrees[1].is_detached

    def test_locked_with_and_without_reason(self):
        """Test lock flag and optional reason."""
        output = (
            "worktree /repo\nbranch refs/heads/main\n\n"
            "worktree /a\nbranch refs/heads/a\nlocked on usb drive\n\n"
            "worktree /b\nbranch refs/heads/b\nlocked\n"
        )
        _, a, b = parse_worktree_list(output)
        assert a.is_locked and a.lock_reason == "on usb drive"
        assert b.is_locked and b.lock_reason is None

    def test_bare_and_prunable(self):
        """Test bare main record and a prunable linked record."""
        output = (
            "worktree /srv/repo.git\nbare\n\n"
            "worktree /gone\nHEAD abc\nbranch refs/heads/x\nprunable gitdir file points to non-existent location\n"
        )
        main, gone = parse_worktree_list(output)
        assert main.is_bare is True
        assert main.is_main is True
        assert gone.is_prunable is True
        assert gone.prunable_reason == "gitdir file points to non-existent location"

    def test_last_record_without_trailing_blank_line(self):
        """Test that the final record is flushed at end of input."""
        worktrees = parse_worktree_list("worktree /repo\nbranch refs/heads/main")
        assert len(worktrees) == 1

    def test_empty_output(self):
        """Test that empty output yields no worktrees."""
        assert parse_worktree_list("") == []

    def test_orphan_attribute_lines_ignored(self):
        """Test that attribute lines before any worktree line are skipped."""
        worktrees = parse_worktree_list("HEAD abc\n\nworktree /repo\nbranch refs/heads/main\n")
        assert len(worktrees) == 1
        assert worktrees[0].head is None

    def test_path_with_spaces(self):
        """Test that paths keep embedded spaces."""
        worktrees = parse_worktree_list("worktree /home/me/my repo\nbranch refs/heads/main\n")
        assert worktrees[0].path == "/home/me/my repo"

    def test_non_branch_ref_kept_verbatim(self):
        """Test that refs outside refs/heads/ are not shortened."""
        assert short_branch_name("refs/heads/feature/x") == "feature/x"
        assert short_branch_name("refs/remotes/origin/x") == "refs/remotes/origin/x"


class TestStatusParsing:
    """Test parsing of `git status --porcelain=v2 --branch -z`."""

    def test_branch_headers(self):
        """Test branch, upstream and ahead/behind headers."""
        output = "\0".join([
            "# branch.oid 1111111111111111111111111111111111111111",
            "# branch.head feature",
            "# branch.upstream origin/feature",
            "# branch.ab +2 -3",
            "",
        ])
        result = parse_status(output)
        assert result.branch == "feature"
        assert result.upstream == "origin/feature"
        assert result.ahead == 2
        assert result.behind == 3
        assert result.is_clean

    def test_no_upstream_means_zero_counts(self):
        """Test that ahead/behind default to zero without an upstream."""
        result = parse_status("# branch.head main\0")
        assert result.upstream is None
        assert (result.ahead, result.behind) == (0, 0)

    def test_detached_head(self):
        """Test that a detached head reports no branch."""
        assert parse_status("# branch.head (detached)\0").branch is None

    def test_ordinary_changes_split_into_staged_and_unstaged(self):
        """Test that MM yields one staged and one unstaged entry."""
        output = "1 MM N... 100644 100644 100644 aaa bbb src/app.py\0"
        files = parse_status(output).files
        assert [(f.path, f.status, f.staged) for f in files] == [
            ("src/app.py", FileStatusKind.MODIFIED, True),
            ("src/app.py", FileStatusKind.MODIFIED, False),
        ]

    def test_added_deleted_and_type_change(self):
        """Test A, D and T status letters."""
        output = (
            "1 A. N... 000000 100644 100644 000 aaa new.txt\0"
            "1 .D N... 100644 100644 000000 aaa aaa gone.txt\0"
            "1 .T N... 100644 100644 120000 aaa aaa link\0"
        )
        files = parse_status(output).files
        assert [(f.path, f.status, f.staged) for f in files] == [
            ("new.txt", FileStatusKind.ADDED, True),
            ("gone.txt", FileStatusKind.DELETED, False),
            ("link", FileStatusKind.MODIFIED, False),
        ]

    def test_rename_consumes_original_path_field(self):
        """Test that a rename record reads the following field as its source."""
        output = (
            "2 R. N... 100644 100644 100644 aaa aaa R100 new name.txt\0old name.txt\0"
            "? untracked.txt\0"
        )
        files = parse_status(output).files
        assert len(files) == 2
        assert files[0].status == FileStatusKind.RENAMED
        assert files[0].path == "new name.txt"
        assert files[0].original_path == "old name.txt"
        assert files[0].staged is True
        assert files[1].status == FileStatusKind.UNTRACKED

    def test_unmerged_and_ignored(self):
        """Test that conflicts are reported and ignored files skipped."""
        output = (
            "u UU N... 100644 100644 100644 100644 aaa bbb ccc both.txt\0"
            "! build/\0"
        )
        files = parse_status(output).files
        assert len(files) == 1
        assert files[0].status == FileStatusKind.CONFLICTED
        assert files[0].path == "both.txt"

    def test_unknown_records_ignored(self):
        """Test that unknown record types are skipped."""
        result = parse_status("# branch.head main\0z something new\0? a.txt\0")
        assert [f.path for f in result.files] == ["a.txt"]

    def test_to_dict_renders_enum_values(self):
        """Test that status payloads are JSON friendly."""
        data = parse_status("# branch.head main\0? a.txt\0").to_dict()
        assert data["files"] == [
            {"path": "a.txt", "status": "untracked", "staged": False, "original_path": None}
        ]


class TestErrorClassification:
    """Test mapping of git error text onto error kinds."""

    def test_branch_checked_out(self):
        """Test the classic 'already checked out' message."""
        error = classify_error("fatal: 'feature' is already checked out at '/repo-feature'\n")
        assert isinstance(error, BranchInUseError)
        assert error.branch == "feature"
        assert error.worktree_path == "/repo-feature"

    def test_branch_used_by_worktree(self):
        """Test the newer 'already used by worktree' message."""
        error = classify_error("fatal: 'feature' is already used by worktree at '/wt'")
        assert isinstance(error, BranchInUseError)
        assert error.worktree_path == "/wt"

    def test_already_locked(self):
        """Test double lock."""
        error = classify_error("fatal: '/wt' is already locked, reason: usb\n")
        assert isinstance(error, WorktreeLockedError)
        assert error.path == "/wt"
        assert error.reason == "usb"

    def test_remove_locked(self):
        """Test removing a locked working tree."""
        error = classify_error(
            "fatal: cannot remove a locked working tree, lock reason: usb\n"
            "use 'remove -f -f' to override or unlock first"
        )
        assert isinstance(error, WorktreeLockedError)
        assert error.reason == "usb"

    def test_not_locked(self):
        """Test unlocking an unlocked worktree."""
        error = classify_error("fatal: '/wt' is not locked\n")
        assert isinstance(error, WorktreeNotLockedError)
        assert error.path == "/wt"

    def test_dirty_worktree_offers_force(self):
        """Test that dirty worktree errors offer a forced retry."""
        error = classify_error(
            "fatal: '/wt' contains modified or untracked files, use --force to delete it"
        )
        assert isinstance(error, UncommittedChangesError)
        assert error.to_dict()["retry_with_force"] is True

    def test_checkout_would_overwrite(self):
        """Test checkout refused because of local changes."""
        error = classify_error(
            "error: Your local changes to the following files would be overwritten by checkout:\n"
            "\tREADME.md\nPlease commit your changes or stash them before you switch branches.\nAborting"
        )
        assert isinstance(error, UncommittedChangesError)

    def test_untracked_alone_does_not_mean_uncommitted(self):
        """Test that mentioning untracked files is not enough to classify as dirty."""
        error = classify_error("error: pathspec 'untracked.txt' did not match any file(s) known to git")
        assert isinstance(error, CommandFailedError)

    def test_nothing_to_commit_on_stdout(self):
        """Test that stdout is used when stderr is empty."""
        error = classify_error("", "On branch main\nnothing to commit, working tree clean\n")
        assert isinstance(error, NothingToCommitError)

    def test_nothing_added_with_untracked_files(self):
        """Test commit with only untracked files present."""
        error = classify_error("", "nothing added to commit but untracked files present")
        assert isinstance(error, NothingToCommitError)

    def test_not_a_working_tree(self):
        """Test unknown worktree path."""
        error = classify_error("fatal: '/nope' is not a working tree")
        assert isinstance(error, WorktreeNotFoundError)
        assert error.path == "/nope"

    def test_not_a_repository(self):
        """Test running outside a repository."""
        error = classify_error("fatal: not a git repository (or any of the parent directories): .git")
        assert isinstance(error, RepositoryNotFoundError)

    def test_path_already_exists(self):
        """Test adding a worktree over an existing path."""
        error = classify_error("fatal: '/repo-feature' already exists\n")
        assert isinstance(error, InvalidPathError)
        assert error.path == "/repo-feature"

    def test_fallback_keeps_raw_text(self):
        """Test that unmatched errors keep stderr, command and exit code."""
        error = classify_error(
            "fatal: invalid reference: nope\n", command=["git", "worktree", "add"], exit_code=128
        )
        assert isinstance(error, CommandFailedError)
        assert error.stderr == "fatal: invalid reference: nope\n"
        assert error.exit_code == 128
        assert error.command == ["git", "worktree", "add"]
        assert error.to_dict()["kind"] == "CommandFailed"

    @pytest.mark.parametrize("text", [
        "FATAL: 'x' IS ALREADY CHECKED OUT AT '/y'",
        "fatal: 'x' is already checked out at '/y'",
    ])
    def test_case_insensitive(self, text):
        """Test that rules match regardless of case."""
        assert isinstance(classify_error(text), BranchInUseError)
