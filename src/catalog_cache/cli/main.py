"""
Command-line interface for catalog_cache.

Inspects and maintains a persisted cache (a SQLite file written by an
application using ``CacheConfig(storage_path=...)``).

Main Commands:
    stats: Entry counts, health and size
    clear: Remove every entry, or every entry of one type
    sweep: Remove expired and unparseable entries
    show: Print the live payload stored for a type and parameters
    invalidate: Run an invalidation recipe

Example Usage:
    $ catalog-cache --db cache.sqlite3 stats
    $ catalog-cache --db cache.sqlite3 show productDetail -p id=42
    $ catalog-cache --db cache.sqlite3 invalidate category_option_mutation --category Footwear
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import orjson
from rich.console import Console
from rich.table import Table

from ..cache.manager import CacheManager
from ..cache.recipes import RecipeName
from ..core.config import load_config_from_env
from ..core.types import DataType
from ..utils.error_handling import CatalogCacheError
from ..utils.logging_config import LogFormat, LogLevel, configure_logging

DATA_TYPE_CHOICE = click.Choice([t.value for t in DataType])


def _parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="-p")
        params[name] = value
    return params


@click.group()
@click.option("--db", "db_path", type=click.Path(dir_okay=False, path_type=Path), help="SQLite cache file")
@click.option("--namespace", help="Key namespace (default: catalog_cache_)")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
@click.option(
    "--log-format",
    type=click.Choice([f.value for f in LogFormat]),
    default=LogFormat.SIMPLE.value,
    help="Log output format",
)
@click.pass_context
def cli(ctx: click.Context, db_path: Path | None, namespace: str | None, debug: bool, log_format: str) -> None:
    """catalog-cache - Inspect and maintain the catalog response cache"""
    configure_logging(
        level=LogLevel.DEBUG if debug else LogLevel.WARNING,
        format_type=LogFormat(log_format),
    )
    try:
        cache_config, _, _ = load_config_from_env()
        if db_path is not None:
            cache_config.storage_path = db_path
        if namespace:
            cache_config.namespace = namespace
        cache = CacheManager(config=cache_config)
    except CatalogCacheError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    ctx.obj = cache
    ctx.call_on_close(cache.store.backend.close)


@cli.command("stats")
@click.pass_obj
def stats_cmd(cache: CacheManager) -> None:
    """Show entry counts and health."""
    snapshot = cache.stats()

    table = Table(title="Catalog cache")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total entries", str(snapshot.total_entries))
    table.add_row("Live entries", str(snapshot.live_entries))
    table.add_row("Expired entries", str(snapshot.expired_entries))
    table.add_row("Health", f"{snapshot.health:.0%}")
    table.add_row("Approx. size", f"{snapshot.to_dict()['total_size_kb']} KB")

    Console().print(table)


@cli.command("clear")
@click.option("--type", "data_type", type=DATA_TYPE_CHOICE, help="Only clear this data type")
@click.pass_obj
def clear_cmd(cache: CacheManager, data_type: str | None) -> None:
    """Remove cached entries."""
    if data_type:
        removed = cache.clear_type(data_type)
    else:
        removed = cache.clear_all()
    click.echo(f"Removed {removed} entries")


@cli.command("sweep")
@click.pass_obj
def sweep_cmd(cache: CacheManager) -> None:
    """Remove expired and unparseable entries."""
    click.echo(f"Removed {cache.sweep()} expired entries")


@cli.command("show")
@click.argument("data_type", type=DATA_TYPE_CHOICE)
@click.option("-p", "--param", "params", multiple=True, help="Cache parameter as key=value; repeatable")
@click.pass_obj
def show_cmd(cache: CacheManager, data_type: str, params: tuple[str, ...]) -> None:
    """Print the live payload cached for DATA_TYPE and the given parameters."""
    payload = cache.get(data_type, _parse_params(params))
    if payload is None:
        click.echo("No live entry", err=True)
        sys.exit(1)
    click.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8"))


@cli.command("invalidate")
@click.argument("recipe", type=click.Choice([r.value for r in RecipeName]))
@click.option("--product-id", help="Narrow product-detail purges to this id")
@click.option("--category", help="Narrow category purges to this category")
@click.pass_obj
def invalidate_cmd(cache: CacheManager, recipe: str, product_id: str | None, category: str | None) -> None:
    """Run an invalidation RECIPE."""
    removed = cache.run_recipe(recipe, {"product_id": product_id, "category": category})
    click.echo(f"Removed {removed} entries")


def main() -> None:
    cli(prog_name="catalog-cache")


if __name__ == "__main__":
    main()
