"""Per-invocation CLI state shared by commands through ``ctx.obj``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import typer

from cyx.cache import CacheError, CacheStorage, Embedder, QueryCache, QueryNormalizer
from cyx.cache.lexicons import default_search_dirs
from cyx.cli.output import print_cli_error
from cyx.config import ConfigError, CyxConfig, load_config


@dataclass
class CliState:
    """Global options from the root callback."""

    config_path: Path | None = None
    cache_dir_override: Path | None = None
    quiet: bool = False
    _config: CyxConfig | None = field(default=None, repr=False)

    @property
    def config(self) -> CyxConfig:
        if self._config is None:
            try:
                self._config = load_config(self.config_path)
            except ConfigError as e:
                print_cli_error(e.message, hint="Fix or remove the config file")
                raise typer.Exit(1)
        return self._config

    @property
    def cache_dir(self) -> Path:
        if self.cache_dir_override is not None:
            return self.cache_dir_override.expanduser()
        return self.config.resolved_cache_dir()

    def open_storage(self) -> CacheStorage:
        try:
            return CacheStorage(
                self.cache_dir,
                embedder=Embedder(self.config.cache.embedding_dimensions),
            )
        except CacheError as e:
            print_cli_error(str(e))
            raise typer.Exit(1)

    def open_normalizer(self) -> QueryNormalizer:
        try:
            return QueryNormalizer(
                self.config.normalization.to_config(),
                search_dirs=default_search_dirs(self.config.data_dir),
            )
        except CacheError as e:
            print_cli_error(str(e), hint="Set CYX_DATA_DIR to a directory with normalization/")
            raise typer.Exit(1)

    def open_cache(self) -> QueryCache:
        cache = self.config.cache
        normalizer = self.open_normalizer()
        return QueryCache(
            self.open_storage(),
            normalizer,
            similarity_threshold=cache.similarity_threshold,
            ttl_days=cache.ttl_days,
            enabled=cache.enabled,
        )


def get_state(ctx: typer.Context) -> CliState:
    """Return the state set up by the root callback (or defaults)."""
    root = ctx.find_root()
    if not isinstance(root.obj, CliState):
        root.obj = CliState()
    return root.obj
