"""
CLI commands for the query cache.

Usage:
    cyx cache stats              # Hit/miss counters and size
    cyx cache list --limit 20    # Recently used entries
    cyx cache lookup "nmap syn scan"
    cyx cache remove 3f2a9c41d07be815
    cyx cache cleanup --days 7
    cyx cache clear --force
"""

from __future__ import annotations

import json
from typing import Annotated

import typer

from cyx.cache import CacheHit, StorageError
from cyx.cli.output import (
    console,
    format_bytes,
    print_cli_error,
    print_entries,
    print_hit,
    print_stats,
)
from cyx.cli.state import get_state

app = typer.Typer(help="Inspect and maintain the query cache", no_args_is_help=True)


@app.command("stats")
def stats_cmd(
    ctx: typer.Context,
    output_json: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON"),
    ] = False,
):
    """Show cache statistics."""
    state = get_state(ctx)

    with state.open_storage() as storage:
        try:
            stats = storage.stats()
        except StorageError as e:
            print_cli_error(str(e))
            raise typer.Exit(1)

    if output_json:
        typer.echo(
            json.dumps(
                {
                    "total_entries": stats.total_entries,
                    "total_size_bytes": stats.total_size_bytes,
                    "hit_count": stats.hit_count,
                    "miss_count": stats.miss_count,
                    "hit_rate": stats.hit_rate,
                    "oldest_entry": stats.oldest_entry.isoformat() if stats.oldest_entry else None,
                    "newest_entry": stats.newest_entry.isoformat() if stats.newest_entry else None,
                    "location": str(state.cache_dir),
                },
                indent=2,
            )
        )
        return

    print_stats(stats, state.cache_dir)


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", min=1, help="Maximum number of entries to show"),
    ] = 10,
    output_json: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON"),
    ] = False,
):
    """List cached queries, most recently used first."""
    state = get_state(ctx)

    with state.open_storage() as storage:
        try:
            entries = storage.list_all(limit)
        except StorageError as e:
            print_cli_error(str(e))
            raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        console.print("[yellow]No cached queries yet.[/yellow]")
        console.print("Run some queries to populate the cache!")
        return

    print_entries(entries)


@app.command("lookup")
def lookup_cmd(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Query to look up")],
):
    """Look up a query the way an interactive session would."""
    state = get_state(ctx)

    if not state.config.cache.enabled:
        console.print("[dim]Cache is disabled in the configuration.[/dim]")
        raise typer.Exit(2)

    with state.open_cache() as cache:
        result = cache.lookup(query)

    if isinstance(result, CacheHit):
        print_hit(result, quiet=state.quiet)
        return

    if result.reason == "error":
        print_cli_error("Cache lookup failed", hint="Run with --verbose for details")
        raise typer.Exit(1)
    else:
        console.print("[yellow]Cache miss[/yellow] [dim]- a provider call would be made[/dim]")
    raise typer.Exit(2)


@app.command("clear")
def clear_cmd(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
):
    """Delete all cached queries and reset counters."""
    state = get_state(ctx)

    if not force:
        console.print("[yellow]This will delete all cached queries.[/yellow]")
        if not typer.confirm("Are you sure?", default=False):
            console.print("[dim]Cancelled.[/dim]")
            raise typer.Exit(0)

    with state.open_storage() as storage:
        try:
            count = storage.clear()
        except StorageError as e:
            print_cli_error(str(e))
            raise typer.Exit(1)

    console.print(f"[green]✓ Cleared {count} cached queries[/green]")


@app.command("remove")
def remove_cmd(
    ctx: typer.Context,
    query_hash: Annotated[str, typer.Argument(metavar="HASH", help="Query hash to remove")],
):
    """Remove a specific cached query by hash."""
    state = get_state(ctx)

    with state.open_storage() as storage:
        try:
            removed = storage.remove_by_hash(query_hash)
        except StorageError as e:
            print_cli_error(str(e))
            raise typer.Exit(1)

    if removed:
        console.print(f"[green]✓ Removed cached query with hash {query_hash}[/green]")
    else:
        console.print(f"[yellow]Query with hash {query_hash} not found in cache[/yellow]")
        raise typer.Exit(1)


@app.command("cleanup")
def cleanup_cmd(
    ctx: typer.Context,
    days: Annotated[
        int | None,
        typer.Option("--days", "-d", min=0, help="Remove entries older than N days"),
    ] = None,
):
    """Remove cache entries older than the TTL."""
    state = get_state(ctx)
    max_age = state.config.cache.ttl_days if days is None else days

    console.print(f"[cyan]Cleaning up entries older than {max_age} days...[/cyan]")

    with state.open_storage() as storage:
        try:
            count = storage.cleanup_old_entries(max_age)
            stats = storage.stats()
        except StorageError as e:
            print_cli_error(str(e))
            raise typer.Exit(1)

    if count > 0:
        console.print(f"[green]✓ Removed {count} old cache entries[/green]")
    else:
        console.print("[dim]No old entries to remove.[/dim]")

    console.print(
        f"\nRemaining: {stats.total_entries} entries, {format_bytes(stats.total_size_bytes)}"
    )


def register(parent: typer.Typer):
    """Register cache commands with the parent CLI app."""
    parent.add_typer(app, name="cache", help="Inspect and maintain the query cache")
