#!/usr/bin/env python3
"""
Command line front end for the launcher search engine.

Usage:
    lsearch import catalog.yaml     - Load apps, shortcuts, tags and favorites
    lsearch search "query"          - Show ranked results for a query
    lsearch go "query"              - Launch the best match for a query
    lsearch launch KEY              - Launch an item and reinforce its weight
    lsearch hide KEY                - Hide an item from results
    lsearch weights                 - Show usage weights
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from loguru import logger
from rich.console import Console
from rich.table import Table

from launchsearch.engine.aggregator import SearchSession
from launchsearch.engine.best_match import BEST_MATCH_PRIORITY
from launchsearch.engine.config import Config
from launchsearch.engine.errors import LaunchSearchError
from launchsearch.engine.executor import ActionExecutor, UriActionGateway
from launchsearch.engine.filters import CATEGORIES
from launchsearch.engine.interfaces import LaunchGateway
from launchsearch.engine.models import BUCKETS, result_to_dict
from launchsearch.engine.scoring import clamp_weight
from launchsearch.engine.store import SQLiteItemIndex
from launchsearch.engine.weights import WeightStore

console = Console()


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Send engine logs to stderr, and optionally to a rotating file."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "WARNING"
    )
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )


class ConsoleLaunchGateway(LaunchGateway):
    """Reports launches on the console; the desktop has no app registry to start from."""

    async def launch_item(self, key: str) -> None:
        console.print(f"[green]✓[/green] Launching [cyan]{key}[/cyan]")

    async def launch_shortcut(self, owner_key: str, shortcut_id: str) -> None:
        console.print(f"[green]✓[/green] Launching shortcut [cyan]{shortcut_id}[/cyan] of {owner_key}")


class Runtime:
    """Store, weights and executor opened for one command."""

    def __init__(self, config: Config):
        self.config = config
        self.index = SQLiteItemIndex(config.database_path)
        self.weights = WeightStore(self.index)
        self.launcher = ConsoleLaunchGateway()
        self.executor = ActionExecutor(
            UriActionGateway(
                opener=click.launch,
                clipboard=lambda text: console.print(text),
                launch_gateway=self.launcher,
                apps=self.index.list_apps()
            ),
            self.launcher,
            self.weights
        )

    def session(self) -> SearchSession:
        return SearchSession(
            self.config,
            self.index,
            shortcut_provider=self.index,
            weights=self.weights,
            tag_index=self.index,
            executor=self.executor
        )

    def close(self) -> None:
        self.index.close()


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Config file path")
@click.option("--db", "db_path", type=click.Path(path_type=Path), help="Item database path")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
@click.pass_context
def cli(ctx, config_path: Optional[Path], db_path: Optional[Path], verbose: bool):
    """Launcher search from the command line."""
    setup_logging(verbose)
    config = Config.load_or_default(config_path)
    if db_path is not None:
        config = config.model_copy(update={'database_path': db_path})
    ctx.obj = config


def _open_runtime(ctx) -> Runtime:
    try:
        return Runtime(ctx.obj)
    except LaunchSearchError as e:
        console.print(f"[red]Cannot open item database:[/red] {e}")
        ctx.exit(1)


@cli.command(name="import")
@click.argument("catalog", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def import_catalog(ctx, catalog: Path):
    """Load a YAML catalog of apps, shortcuts, tags and favorites."""
    with open(catalog, 'r') as f:
        data = yaml.safe_load(f) or {}

    runtime = _open_runtime(ctx)
    try:
        counts = runtime.index.import_catalog(data)
    except LaunchSearchError as e:
        console.print(f"[red]Import failed:[/red] {e}")
        ctx.exit(1)
    finally:
        runtime.close()

    console.print(
        f"[green]✓[/green] Imported {counts['apps']} apps, {counts['shortcuts']} shortcuts, "
        f"{counts['tags']} tags, {counts['favorites']} favorites"
    )


async def run_search(
    runtime: Runtime,
    query: str,
    network: bool = False,
    hidden: bool = False,
    only: Optional[str] = None
) -> SearchSession:
    session = runtime.session()
    if network and not session.filters.allow_network:
        session.toggle_filter('allow_network')
    if hidden and not session.filters.hidden_items:
        session.toggle_filter('hidden_items')
    if only:
        session.toggle_filter(only)
    session.set_query(query)
    await session.settle()
    return session


def display_results(session: SearchSession) -> None:
    """Display every non-empty bucket in one table."""
    results = session.results
    if results.is_empty():
        console.print("[yellow]No results found[/yellow]")
        return

    table = Table(title=f"Results for “{session.query}” ({results.total})")
    table.add_column("Bucket", style="magenta")
    table.add_column("Title", style="cyan", no_wrap=False)
    table.add_column("Key / Value", no_wrap=False)
    table.add_column("Score", justify="right")

    for bucket in BUCKETS:
        for result in results.bucket(bucket):
            row = result_to_dict(result)
            table.add_row(
                bucket,
                row['title'],
                row.get('value') or row['key'],
                f"{row['score']:.3f}"
            )

    console.print(table)

    best = session.best_match
    if best is not None:
        console.print(f"\n[bold]Best match:[/bold] {result_to_dict(best)['title']}")


@cli.command()
@click.argument("query")
@click.option("--network", is_flag=True, help="Allow network-backed sources")
@click.option("--hidden", is_flag=True, help="Include hidden items")
@click.option("--only", type=click.Choice(CATEGORIES), help="Restrict to one category")
@click.pass_context
def search(ctx, query: str, network: bool, hidden: bool, only: Optional[str]):
    """Show ranked results for QUERY."""
    runtime = _open_runtime(ctx)
    try:
        session = asyncio.run(run_search(runtime, query, network, hidden, only))
        display_results(session)
    finally:
        runtime.close()


@cli.command()
@click.argument("query")
@click.option("--network", is_flag=True, help="Allow network-backed sources")
@click.pass_context
def go(ctx, query: str, network: bool):
    """Launch the best match for QUERY."""
    runtime = _open_runtime(ctx)

    async def run():
        session = await run_search(runtime, query, network)
        return await session.launch_best_match()

    try:
        match = asyncio.run(run())
    finally:
        runtime.close()

    if match is None:
        console.print(f"[yellow]Nothing to launch for “{query}”[/yellow]")
        console.print(f"[dim]Checked: {', '.join(BEST_MATCH_PRIORITY)}[/dim]")
        ctx.exit(1)


@cli.command()
@click.argument("key")
@click.pass_context
def launch(ctx, key: str):
    """Launch an installed app by KEY and reinforce its usage weight."""
    runtime = _open_runtime(ctx)
    try:
        app = next((app for app in runtime.index.list_apps() if app.key == key), None)
        if app is None:
            console.print(f"[red]Unknown app:[/red] {key}")
            ctx.exit(1)
        weight = asyncio.run(runtime.executor.launch_app(app))
    finally:
        runtime.close()

    if weight is not None:
        console.print(f"[dim]Weight for {key}: {weight:.4f}[/dim]")


@cli.command()
@click.argument("key")
@click.option("--unhide", is_flag=True, help="Make the item visible again")
@click.pass_context
def hide(ctx, key: str, unhide: bool):
    """Hide the item KEY from search results."""
    runtime = _open_runtime(ctx)
    try:
        found = runtime.index.set_hidden(key, not unhide)
    finally:
        runtime.close()

    if not found:
        console.print(f"[red]Unknown item:[/red] {key}")
        ctx.exit(1)
    console.print(f"[green]✓[/green] {'Unhid' if unhide else 'Hid'} {key}")


@cli.command()
@click.pass_context
def weights(ctx):
    """Show launch counts and usage weights."""
    runtime = _open_runtime(ctx)
    try:
        rows = runtime.index.launch_counts()
    finally:
        runtime.close()

    if not rows:
        console.print("[yellow]No launches recorded[/yellow]")
        return

    table = Table(title="Usage weights")
    table.add_column("Key", style="cyan")
    table.add_column("Launches", justify="right")
    table.add_column("Weight", justify="right")
    for key, launch_count, weight in rows:
        table.add_row(key, str(launch_count), f"{clamp_weight(weight):.4f}")
    console.print(table)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
