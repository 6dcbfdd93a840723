"""
CLI command for previewing query normalization.

Usage:
    cyx normalize "Show me nmap SYN scan!!!" "NMAP SYN SCAN"
    cyx normalize --json "how to do sqli"
"""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from cyx.cli.output import console
from cyx.cli.state import get_state


def normalize_cmd(
    ctx: typer.Context,
    queries: Annotated[list[str], typer.Argument(help="Queries to normalize")],
    output_json: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON"),
    ] = False,
):
    """Show the normalized form and cache hash of each query.

    Queries sharing a hash are answered from the same cache entry.
    """
    normalizer = get_state(ctx).open_normalizer()

    rows = []
    for query in queries:
        normalized, query_hash = normalizer.normalize_and_hash(query)
        rows.append({"query": query, "normalized": normalized, "hash": query_hash})

    if output_json:
        typer.echo(json.dumps(rows, indent=2))
        return

    table = Table(title="Query Normalization", show_header=True, header_style="bold")
    table.add_column("Original", style="cyan")
    table.add_column("Normalized")
    table.add_column("Hash", style="dim", no_wrap=True)
    for row in rows:
        table.add_row(escape(row["query"]), escape(row["normalized"]), row["hash"])
    console.print(table)

    distinct = len({row["hash"] for row in rows})
    if len(rows) > 1 and distinct == 1:
        console.print("[green]✓ All queries share one cache entry[/green]")


def register(parent: typer.Typer):
    """Register the normalize command with the parent CLI app."""
    parent.command("normalize", rich_help_panel="Cache")(normalize_cmd)
