"""Command-line interface for git-worktree-manager"""

import json
import os
import sys

from rich.console import Console
from rich.markup import escape

from git_worktree_manager.cli import output
from git_worktree_manager.cli.args import parse_args
from git_worktree_manager.commands import CANCELLABLE_OPERATIONS, CommandDispatcher
from git_worktree_manager.config import Config
from git_worktree_manager.utils.logging import get_logger, setup_logging
from git_worktree_manager.utils.threading import get_threading_info

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

# Parameters each operation takes from the parsed arguments
OPERATION_PARAMS = {
    "open_repository": ("path",),
    "validate_repo": ("path",),
    "list_worktrees": ("repo_path",),
    "add_worktree": ("repo_path", "worktree_path", "branch", "create_branch"),
    "remove_worktree": ("repo_path", "worktree_path", "force"),
    "lock_worktree": ("repo_path", "worktree_path", "reason"),
    "unlock_worktree": ("repo_path", "worktree_path"),
    "prune_worktrees": ("repo_path",),
    "list_branches": ("repo_path",),
    "checkout_branch": ("worktree_path", "branch"),
    "git_status": ("worktree_path",),
    "git_fetch": ("worktree_path",),
    "git_pull": ("worktree_path",),
    "git_push": ("worktree_path",),
    "git_commit": ("worktree_path", "message"),
    "git_stage": ("worktree_path", "file_path"),
    "git_unstage": ("worktree_path", "file_path"),
}

SUCCESS_MESSAGES = {
    "add_worktree": "Created worktree {worktree_path} on branch {branch}",
    "remove_worktree": "Removed worktree {worktree_path}",
    "lock_worktree": "Locked worktree {worktree_path}",
    "unlock_worktree": "Unlocked worktree {worktree_path}",
    "prune_worktrees": "Pruned stale worktree records",
    "checkout_branch": "Switched {worktree_path} to {branch}",
    "git_stage": "Staged {file_path}",
    "git_unstage": "Unstaged {file_path}",
}


def build_config(parsed_args) -> Config:
    """Build a Config from parsed command-line flags."""
    overrides = {
        "verbose": parsed_args.verbose,
        "debug": parsed_args.debug,
        "command_timeout": parsed_args.timeout,
    }
    if parsed_args.git:
        overrides["git_executable"] = parsed_args.git
    return Config.from_dict(overrides)


def run_operation(dispatcher: CommandDispatcher, operation: str, params: dict) -> dict:
    """Run one operation; network operations run in the background so Ctrl-C cancels them."""
    if operation not in CANCELLABLE_OPERATIONS:
        return dispatcher.dispatch(operation, **params)

    handle = dispatcher.submit(operation, **params)
    try:
        with err_console.status(f"Running {operation.replace('git_', 'git ')}..."):
            return handle.result()
    except KeyboardInterrupt:
        dispatcher.cancel(handle.operation_id)
        handle.result()
        raise


def render(operation: str, params: dict, payload: dict) -> int:
    if not payload["ok"]:
        output.render_error(err_console, payload["error"])
        return EXIT_ERROR

    data = payload["data"]
    if operation == "open_repository":
        output.render_repository(console, data)
    elif operation == "validate_repo":
        if not data:
            err_console.print(f"[red]Not a git repository: {params['path']}[/red]")
            return EXIT_ERROR
        console.print("[green]Valid git repository[/green]")
    elif operation == "list_worktrees":
        output.render_worktrees(console, data)
    elif operation == "list_branches":
        output.render_branches(console, data)
    elif operation == "git_status":
        output.render_status(console, data)
    elif operation in SUCCESS_MESSAGES:
        message = SUCCESS_MESSAGES[operation].format(**{k: escape(str(v)) for k, v in params.items()})
        console.print(f"[green]{message}[/green]", highlight=False)
    elif data:
        console.print(data, markup=False, highlight=False)
    return EXIT_OK


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    try:
        config = build_config(parsed_args)
    except ValueError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        return EXIT_ERROR

    if parsed_args.debug:
        threading_info = get_threading_info()
        err_console.print("[yellow]Debug mode enabled[/yellow]")
        err_console.print(f"  Free-threading enabled: {threading_info['free_threading']}")
        err_console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
        for key, value in config.to_dict().items():
            err_console.print(f"  {key}: {value}")

    operation = parsed_args.operation
    params = {key: getattr(parsed_args, key) for key in OPERATION_PARAMS[operation]}
    if params.get("worktree_path") and "repo_path" in params:
        # Typed paths are relative to the shell, not to the repository
        params["worktree_path"] = os.path.abspath(os.path.expanduser(params["worktree_path"]))

    dispatcher = CommandDispatcher(config=config)
    try:
        payload = run_operation(dispatcher, operation, params)
        if parsed_args.json:
            console.print(json.dumps(payload, indent=2), markup=False, highlight=False, soft_wrap=True)
            return EXIT_OK if payload["ok"] else EXIT_ERROR
        return render(operation, params, payload)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        err_console.print(f"[red]Error: {e}[/red]")
        if parsed_args.debug:
            err_console.print_exception()
        return EXIT_ERROR
    finally:
        dispatcher.shutdown()


if __name__ == "__main__":
    sys.exit(main())
