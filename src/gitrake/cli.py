"""Command line interface for git-rake."""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gitrake import __version__
from gitrake.classifier import utcnow
from gitrake.engine import BranchEngine
from gitrake.errors import RakeError
from gitrake.log import setup_logging
from gitrake.models import (
    DEFAULT_EXCLUDED_BRANCHES,
    BranchOperation,
    BranchRecord,
    GitConfig,
    OperationResult,
    OperationType,
    UpstreamTrack,
)
from gitrake.query import (
    BranchFilter,
    branch_status,
    compact_age,
    compute_visible_branches,
    filter_branches,
    filter_options_for,
    search_branches,
    sort_branches,
)

app = typer.Typer(help="Safely trash, restore and prune git branches")
console = Console()

STATUS_STYLES = {
    "merged": "[green]merged[/green]",
    "stale": "[bright_yellow]stale[/bright_yellow]",
    "unmerged": "unmerged",
}

UPSTREAM_STYLES = {
    UpstreamTrack.AHEAD: "[green]ahead[/green]",
    UpstreamTrack.BEHIND: "[yellow]behind[/yellow]",
    UpstreamTrack.DIVERGED: "[red]diverged[/red]",
    UpstreamTrack.IN_SYNC: "[green]in sync[/green]",
    UpstreamTrack.GONE: "[red]gone[/red]",
    UpstreamTrack.NONE: "[dim]-[/dim]",
}


@dataclass
class AppState:
    path: Path
    config: GitConfig


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"git-rake {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    path: Annotated[Path, typer.Option(help="Path to git repository")] = Path("."),
    stale_days: Annotated[int, typer.Option("--stale-days", help="Days without commits before a branch is stale")] = 30,
    trash_ttl: Annotated[int, typer.Option("--trash-ttl", help="Days to keep branches in trash")] = 90,
    compare: Annotated[
        Optional[str], typer.Option("--compare", help="Branch to compare against (defaults to main or master)")
    ] = None,
    exclude: Annotated[
        str, typer.Option("--exclude", "-e", help="Comma-separated list of branch patterns to protect")
    ] = ",".join(DEFAULT_EXCLUDED_BRANCHES),
    no_auto_cleanup: Annotated[
        bool, typer.Option("--no-auto-cleanup", help="Do not sweep expired trash entries before listing")
    ] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False,
    log_file: Annotated[Optional[Path], typer.Option("--log-file", help="Also write logs to this file")] = None,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit")
    ] = False,
) -> None:
    """Safely trash, restore and prune git branches."""
    _ = version  # handled via callback
    setup_logging("DEBUG" if debug else "WARNING", log_file)
    config = GitConfig(
        stale_days_threshold=stale_days,
        trash_ttl_days=trash_ttl,
        merge_compare_branch=compare,
        excluded_branches=tuple(p.strip() for p in exclude.split(",") if p.strip()),
        auto_cleanup_trash=not no_auto_cleanup,
    )
    ctx.obj = AppState(path=path, config=config)


def get_engine(ctx: typer.Context) -> BranchEngine:
    """Open the engine for the repository selected on the command line."""
    state: AppState = ctx.obj
    try:
        return BranchEngine.open(state.path, state.config)
    except RakeError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err


def create_branch_table(title: str) -> Table:
    """Create a table with standard branch columns."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold",
        title_style="bold blue",
        show_edge=True,
    )
    table.add_column("Branch", style="cyan", no_wrap=True)
    table.add_column("Status", style="magenta", justify="center", no_wrap=True)
    table.add_column("Ahead/Behind", justify="center", no_wrap=True)
    table.add_column("Upstream", justify="center", no_wrap=True)
    table.add_column("Last Commit", style="yellow", no_wrap=True)
    table.add_column("Trashable?", style="green", justify="center", no_wrap=True)
    return table


def format_ahead_behind(record: BranchRecord) -> str:
    if record.ahead_by is None or record.behind_by is None:
        return "[dim]-[/dim]"
    return f"+{record.ahead_by}/-{record.behind_by}"


def is_trashable(record: BranchRecord) -> bool:
    return record.is_local and not record.is_current and not record.is_excluded


def print_results(results: list[OperationResult], verb: str) -> bool:
    """Print a batch summary. Returns True if every operation succeeded."""
    succeeded = [r for r in results if r.ok]
    failed = [r for r in results if not r.ok]

    if succeeded:
        result_table = Table(
            title=f"{verb} {len(succeeded)} branch(es)",
            show_header=True,
            header_style="bold",
            title_style="bold green",
            show_edge=True,
        )
        result_table.add_column("Branch", style="cyan")
        for result in succeeded:
            result_table.add_row(result.operation.branch.name)
        console.print(result_table)

    for result in failed:
        print(f"[red]Error:[/red] {result.operation.branch.name}: {result.error}")

    console.print(f"{len(succeeded)} succeeded, {len(failed)} failed")
    return not failed


def _placeholder(name: str, remote_name: Optional[str] = None) -> BranchRecord:
    """A record for a name the caller typed rather than picked from a snapshot."""
    return BranchRecord(
        name=name,
        ref=name,
        is_current=False,
        is_local=remote_name is None,
        last_commit_hash="",
        last_commit_date=utcnow(),
        last_commit_message="",
        remote_name=remote_name,
    )


@app.command("list")
def list_branches(
    ctx: typer.Context,
    remote: Annotated[bool, typer.Option("--remote", "-r", help="Include remote tracking branches")] = False,
    filter_type: Annotated[
        BranchFilter, typer.Option("--filter", "-f", help="Filter preset", case_sensitive=False)
    ] = BranchFilter.ALL,
    search: Annotated[str, typer.Option("--search", "-s", help="Only show branches whose name contains this")] = "",
    select: Annotated[
        Optional[list[str]], typer.Option("--select", help="Only show these branches (implies --filter selected)")
    ] = None,
) -> None:
    """List branches with their cleanup status."""
    if select and filter_type is BranchFilter.ALL:
        filter_type = BranchFilter.SELECTED
    engine = get_engine(ctx)
    try:
        if engine.config.auto_cleanup_trash:
            engine.cleanup_expired()
        records = engine.snapshot(include_remote=remote)
    except RakeError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    if filter_type is BranchFilter.SELECTED:
        visible = compute_visible_branches(records, search, filter_type, set(select or []))
    else:
        visible = compute_visible_branches(records, search, filter_type)
    if remote and filter_type is not BranchFilter.SELECTED:
        # Presets hide remotes; --remote asks for them explicitly
        options = replace(filter_options_for(filter_type), show_local=False, show_remote=True)
        visible += sort_branches(search_branches(filter_branches(records, options), search))

    now = utcnow()
    table = create_branch_table("Branches")
    for record in visible:
        display_name = record.name
        if record.is_current:
            display_name = f"{record.name} [turquoise2](current)[/turquoise2]"
        table.add_row(
            display_name,
            STATUS_STYLES[branch_status(record)],
            format_ahead_behind(record),
            UPSTREAM_STYLES[record.upstream_track],
            compact_age(record.last_commit_date, now),
            "[green]yes[/green]" if is_trashable(record) else "[yellow]no[/yellow]",
        )
    console.print(table)


@app.command()
def trash(
    ctx: typer.Context,
    names: Annotated[Optional[list[str]], typer.Argument(help="Branches to move to trash")] = None,
    list_entries: Annotated[bool, typer.Option("--list", "-l", help="List branches in trash")] = False,
    prune: Annotated[bool, typer.Option("--prune", help="Remove trash entries older than the TTL")] = False,
) -> None:
    """Move branches to trash, or inspect the trash."""
    if prune:
        cleanup(ctx)
        return

    engine = get_engine(ctx)

    if list_entries or not names:
        try:
            entries = engine.list_trash()
        except RakeError as err:
            print(f"[red]Error:[/red] {err}")
            raise typer.Exit(code=1) from err
        if not entries:
            console.print("No branches in trash")
            return
        table = Table(title="Trash", show_header=True, header_style="bold", title_style="bold blue")
        table.add_column("Branch", style="cyan")
        table.add_column("Deleted", style="yellow")
        table.add_column("Commit", style="magenta")
        for entry in sorted(entries, key=lambda e: e.name):
            table.add_row(entry.name, entry.deletion_date.strftime("%Y-%m-%d"), entry.branch.last_commit_hash[:7])
        console.print(table)
        return

    try:
        by_name = {record.name: record for record in engine.snapshot() if record.is_local}
    except RakeError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    operations = []
    for raw in names:
        name = engine.normalize_name(raw, "heads")
        operations.append(BranchOperation(OperationType.TRASH, by_name.get(name) or _placeholder(name)))

    if not print_results(engine.execute_batch(operations), "Moved to trash"):
        raise typer.Exit(code=1)


@app.command("log")
def branch_log(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Live or trashed branch to show")],
    max_count: Annotated[int, typer.Option("--max-count", "-n", help="Number of commits to show")] = 10,
) -> None:
    """Show the recent history of a branch, including trashed ones."""
    engine = get_engine(ctx)
    try:
        log = engine.branch_log(name, max_count)
    except RakeError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err
    console.print(Panel(Text(log or "No commits found"), title=name, title_align="left", expand=False))


@app.command()
def restore(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Branches to restore from trash")],
) -> None:
    """Restore branches from trash."""
    engine = get_engine(ctx)
    operations = [
        BranchOperation(OperationType.RESTORE, _placeholder(engine.normalize_name(raw, "trash"))) for raw in names
    ]
    if not print_results(engine.execute_batch(operations), "Restored"):
        raise typer.Exit(code=1)


@app.command()
def cleanup(ctx: typer.Context) -> None:
    """Remove trash entries older than the TTL."""
    engine = get_engine(ctx)
    try:
        removed = engine.cleanup_expired()
    except RakeError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err
    if removed:
        console.print(f"Removed {len(removed)} expired trash entries: " + ", ".join(sorted(removed)))
    else:
        console.print(Panel("[green]Nothing to clean up ✨[/green]", style="green", padding=(0, 2), expand=False))


@app.command("prune")
def prune_remote(
    ctx: typer.Context,
    remote: Annotated[str, typer.Option("--remote", help="Remote to prune")] = "origin",
    no_interactive: Annotated[bool, typer.Option("--no-interactive", "-y", help="Skip confirmation prompts")] = False,
) -> None:
    """Remove remote-tracking branches that no longer exist on the remote."""
    engine = get_engine(ctx)
    try:
        prunable = engine.list_prunable(remote)
    except RakeError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    if not prunable:
        console.print(Panel("[green]Nothing to prune ✨[/green]", style="green", padding=(0, 2), expand=False))
        return

    console.print("Remote-tracking branches to prune:\n" + "\n".join(f"  [blue]{ref}[/blue]" for ref in prunable))
    if not no_interactive:
        confirm = input("Proceed with pruning? [y/N] ")
        if confirm.lower() != "y":
            console.print("\n[yellow]Operation cancelled[/yellow]")
            return

    operation = BranchOperation(OperationType.PRUNE, _placeholder(remote, remote_name=remote))
    (result,) = engine.execute_batch([operation])
    if not result.ok:
        print(f"[red]Error:[/red] {result.error}")
        raise typer.Exit(code=1)
    console.print(f"Pruned {len(prunable)} remote-tracking branch(es) from {remote}")


if __name__ == "__main__":
    app()
