"""Command-line argument parsing for git-worktree-manager."""

import argparse

from git_worktree_manager.__version__ import __version__


def _positive_float(value):
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number of seconds: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="git-worktree-manager",
        description="Manage the worktrees of a git repository",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-worktree-manager {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--json", action="store_true", help="Print the raw JSON result payload")
    parser.add_argument("--git", metavar="PATH", help="Git executable to run (default: git)")
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        metavar="SECONDS",
        help="Terminate git commands that run longer than this",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # Repository
    cmd = subparsers.add_parser("open", help="Show the repository containing a path")
    cmd.add_argument("path", nargs="?", default=".")
    cmd.set_defaults(operation="open_repository")

    cmd = subparsers.add_parser("validate", help="Check whether a path is in a git repository")
    cmd.add_argument("path", nargs="?", default=".")
    cmd.set_defaults(operation="validate_repo")

    # Worktrees
    cmd = subparsers.add_parser("list", help="List worktrees")
    cmd.add_argument("repo_path", nargs="?", default=".", metavar="REPO")
    cmd.set_defaults(operation="list_worktrees")

    cmd = subparsers.add_parser("add", help="Create a worktree")
    cmd.add_argument("worktree_path", metavar="PATH")
    cmd.add_argument("branch")
    cmd.add_argument(
        "-b", "--create-branch", action="store_true", help="Create the branch from the current HEAD"
    )
    cmd.add_argument("--repo", dest="repo_path", default=".", help="Repository path (default: .)")
    cmd.set_defaults(operation="add_worktree")

    cmd = subparsers.add_parser("remove", help="Remove a worktree")
    cmd.add_argument("worktree_path", metavar="PATH")
    cmd.add_argument(
        "--force", action="store_true", help="Remove even with uncommitted changes (they are lost)"
    )
    cmd.add_argument("--repo", dest="repo_path", default=".", help="Repository path (default: .)")
    cmd.set_defaults(operation="remove_worktree")

    cmd = subparsers.add_parser("lock", help="Lock a worktree")
    cmd.add_argument("worktree_path", metavar="PATH")
    cmd.add_argument("--reason", help="Why the worktree is locked")
    cmd.add_argument("--repo", dest="repo_path", default=".", help="Repository path (default: .)")
    cmd.set_defaults(operation="lock_worktree")

    cmd = subparsers.add_parser("unlock", help="Unlock a worktree")
    cmd.add_argument("worktree_path", metavar="PATH")
    cmd.add_argument("--repo", dest="repo_path", default=".", help="Repository path (default: .)")
    cmd.set_defaults(operation="unlock_worktree")

    cmd = subparsers.add_parser("prune", help="Forget worktrees whose directories are gone")
    cmd.add_argument("repo_path", nargs="?", default=".", metavar="REPO")
    cmd.set_defaults(operation="prune_worktrees")

    # Branches
    cmd = subparsers.add_parser("branches", help="List local and remote branches")
    cmd.add_argument("repo_path", nargs="?", default=".", metavar="REPO")
    cmd.set_defaults(operation="list_branches")

    cmd = subparsers.add_parser("checkout", help="Switch a worktree to another branch")
    cmd.add_argument("branch")
    cmd.add_argument("-w", "--worktree", dest="worktree_path", default=".", help="Worktree (default: .)")
    cmd.set_defaults(operation="checkout_branch")

    # Working tree
    cmd = subparsers.add_parser("status", help="Show changed files and ahead/behind counts")
    cmd.add_argument("worktree_path", nargs="?", default=".", metavar="WORKTREE")
    cmd.set_defaults(operation="git_status")

    for name, operation, help_text in (
        ("fetch", "git_fetch", "Fetch all remotes"),
        ("pull", "git_pull", "Pull the current branch"),
        ("push", "git_push", "Push the current branch"),
    ):
        cmd = subparsers.add_parser(name, help=help_text)
        cmd.add_argument("worktree_path", nargs="?", default=".", metavar="WORKTREE")
        cmd.set_defaults(operation=operation)

    cmd = subparsers.add_parser("commit", help="Commit staged changes")
    cmd.add_argument("-m", "--message", required=True)
    cmd.add_argument("-w", "--worktree", dest="worktree_path", default=".", help="Worktree (default: .)")
    cmd.set_defaults(operation="git_commit")

    for name, operation, help_text in (
        ("stage", "git_stage", "Stage a file"),
        ("unstage", "git_unstage", "Unstage a file"),
    ):
        cmd = subparsers.add_parser(name, help=help_text)
        cmd.add_argument("file_path", metavar="FILE")
        cmd.add_argument("-w", "--worktree", dest="worktree_path", default=".", help="Worktree (default: .)")
        cmd.set_defaults(operation=operation)

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
