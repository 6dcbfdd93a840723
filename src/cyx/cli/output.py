"""Rich output helpers shared by CLI commands."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cyx.cache.base import CachedQuery, CacheHit, CacheStats

console = Console()
err_console = Console(stderr=True)


def print_cli_error(message: str, hint: str | None = None) -> None:
    """Print an error (and optional hint) to stderr."""
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    if hint:
        err_console.print(f"  [dim]{escape(hint)}[/dim]")


def format_bytes(size: int) -> str:
    """Format a byte count as B, KB or MB."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_duration_ago(when: datetime, now: datetime | None = None) -> str:
    """Format how long ago a timestamp was, e.g. ``3h`` or ``2d``."""
    now = now or datetime.now(timezone.utc)
    seconds = max(int((now - when).total_seconds()), 0)

    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def _format_time(when: datetime | None) -> str:
    if when is None:
        return "-"
    return when.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _preview(text: str, width: int = 100) -> str:
    text = " ".join(text.split())
    return text[: width - 3] + "..." if len(text) > width else text


def print_stats(stats: CacheStats, location: Path) -> None:
    """Print cache statistics."""
    console.print("[bold cyan]Cache Statistics[/bold cyan]")
    console.print("─" * 60)
    console.print(f"  Total entries: [green]{stats.total_entries}[/green]")
    console.print(f"  Cache size: [green]{format_bytes(stats.total_size_bytes)}[/green]")
    console.print(f"  Hit count: [green]{stats.hit_count}[/green]")
    console.print(f"  Miss count: [yellow]{stats.miss_count}[/yellow]")

    if stats.total_requests > 0:
        console.print(f"  Hit rate: {stats.hit_rate:.1%}")

    if stats.oldest_entry is not None:
        console.print(f"  Oldest entry: [dim]{_format_time(stats.oldest_entry)}[/dim]")
    if stats.newest_entry is not None:
        console.print(f"  Newest entry: [dim]{_format_time(stats.newest_entry)}[/dim]")

    console.print(f"  Cache location: [dim]{escape(str(location))}[/dim]")


def print_entries(entries: list[CachedQuery]) -> None:
    """Print cached entries as a table, most recent first."""
    table = Table(
        title=f"Recent Cached Queries (showing {len(entries)})",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Query", style="cyan")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Response")
    table.add_column("Hits", justify="right")
    table.add_column("Last access", no_wrap=True)

    for entry in entries:
        table.add_row(
            entry.query_hash,
            escape(_preview(entry.query_original, 60)),
            escape(entry.provider),
            escape(entry.model),
            escape(_preview(entry.response)),
            str(entry.access_count),
            _format_time(entry.last_accessed),
        )

    console.print(table)


def print_hit(hit: CacheHit, quiet: bool = False) -> None:
    """Print a cache hit with its response. ``quiet`` prints the response only."""
    entry = hit.entry
    if quiet:
        console.print(entry.response, markup=False)
        return

    if hit.match == "exact":
        console.print("[green][*] Cache hit! (exact match)[/green]")
    else:
        console.print(f"[green][*] Cache hit! (similar match: {hit.similarity:.0%})[/green]")
        console.print(f'[dim]Similar to: "{escape(entry.query_original)}"[/dim]')

    console.print()
    console.print(entry.response, markup=False)
    console.print()
    console.print(f"[dim]{escape(entry.provider)} • {escape(entry.model)}[/dim]")
    console.print(
        f"[dim]Cached {format_duration_ago(entry.created_at)} ago • "
        f"Accessed {entry.access_count} times • {hit.latency_ms:.1f}ms[/dim]"
    )
