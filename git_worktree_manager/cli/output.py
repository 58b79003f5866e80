"""Rich rendering of command results for the terminal."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

SHORT_SHA = 8

STATUS_STYLES = {
    "modified": "yellow",
    "added": "green",
    "deleted": "red",
    "renamed": "blue",
    "untracked": "magenta",
    "conflicted": "bold red",
}


def render_repository(console: Console, data: dict) -> None:
    kind = "bare repository" if data["is_bare"] else "repository"
    console.print(f"[bold]{escape(data['name'])}[/bold] ({kind}) at {escape(data['path'])}")


def render_worktrees(console: Console, worktrees: list) -> None:
    table = Table()
    table.add_column("Path")
    table.add_column("Branch")
    table.add_column("HEAD")
    table.add_column("State")

    for wt in worktrees:
        flags = []
        if wt["is_main"]:
            flags.append("[cyan]main[/cyan]")
        if wt["is_bare"]:
            flags.append("bare")
        if wt["is_locked"]:
            flags.append(f"[yellow]locked[/yellow] ({wt['lock_reason']})" if wt["lock_reason"] else "[yellow]locked[/yellow]")
        if wt["is_prunable"]:
            flags.append("[red]prunable[/red]")
        table.add_row(
            escape(wt["path"]),
            wt["branch"] or "[dim](detached)[/dim]",
            (wt["head"] or "")[:SHORT_SHA],
            ", ".join(flags),
        )

    console.print(table)


def render_branches(console: Console, branches: list) -> None:
    table = Table()
    table.add_column("")
    table.add_column("Branch")
    table.add_column("Type")

    for branch in branches:
        table.add_row(
            "*" if branch["is_current"] else "",
            f"[green]{branch['name']}[/green]" if branch["is_current"] else branch["name"],
            "remote" if branch["is_remote"] else "local",
        )

    console.print(table)


def render_status(console: Console, status: dict) -> None:
    console.print(f"On branch [bold]{status['branch'] or '(detached)'}[/bold]")
    if status["upstream"]:
        console.print(f"Upstream {status['upstream']}: ↑{status['ahead']} ↓{status['behind']}")

    if not status["files"]:
        console.print("[green]Working tree clean[/green]")
        return

    table = Table()
    table.add_column("Status")
    table.add_column("Staged")
    table.add_column("Path")
    for entry in status["files"]:
        style = STATUS_STYLES.get(entry["status"], "")
        path = entry["path"]
        if entry.get("original_path"):
            path = f"{entry['original_path']} → {path}"
        table.add_row(
            f"[{style}]{entry['status']}[/{style}]" if style else entry["status"],
            "✓" if entry["staged"] else "",
            escape(path),
        )
    console.print(table)


def render_error(console: Console, error: dict) -> None:
    console.print(f"[red]Error ({error['kind']}): {escape(error['message'])}[/red]")
    stderr = error.get("details", {}).get("stderr")
    if stderr and stderr not in error["message"]:
        console.print(stderr, style="dim", markup=False, highlight=False)
    if error.get("retry_with_force"):
        console.print("[yellow]Re-run with --force to remove it anyway (changes will be lost)[/yellow]")
