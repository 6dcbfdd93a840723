from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.text import Text

from cyx import __version__
from cyx.cli.cmds import register_cache, register_normalize
from cyx.cli.output import console
from cyx.cli.state import CliState
from cyx.logging import configure_logging


def _show_banner():
    """Display the cyx banner."""
    console.print()
    console.print(Text("  cyx", style="bold #22d3ee"), Text(f"v{__version__}", style="dim"))
    console.print(Text("  Security tooling answers, cached locally", style="dim italic"))
    console.print()


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        _show_banner()
        raise typer.Exit()


_TYPER_HELP = """Security tooling assistant with a local semantic query cache.

**Quick start:**

* `cyx normalize "Show me an nmap SYN scan"` - Preview cache keys
* `cyx cache stats` - Hit rate and cache size
* `cyx cache list` - Recently used entries
"""

app = typer.Typer(
    invoke_without_command=True,
    no_args_is_help=False,
    add_completion=False,
    help=_TYPER_HELP,
    rich_markup_mode="markdown",
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config.toml"),
    ] = None,
    cache_dir: Annotated[
        Path | None,
        typer.Option("--cache-dir", help="Override the cache directory"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only show errors"),
    ] = False,
):
    """cyx - security tooling assistant with a semantic query cache."""
    if verbose:
        configure_logging(level=logging.DEBUG)
    elif quiet:
        configure_logging(level=logging.ERROR)
    else:
        configure_logging(level=logging.WARNING)

    ctx.obj = CliState(
        config_path=config_path,
        cache_dir_override=cache_dir,
        quiet=quiet,
    )

    if ctx.invoked_subcommand is None:
        _show_banner()
        console.print(ctx.get_help())
        raise typer.Exit()


register_cache(app)
register_normalize(app)


def main():
    app()


if __name__ == "__main__":
    main()
