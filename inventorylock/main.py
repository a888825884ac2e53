#!/usr/bin/env python3
"""
Command line interface for inventorylock.

    invlock create --name Widget --stock 100
    invlock show <id>
    invlock update <id> --stock 10 [--expected-version 0] [--retries 1]
    invlock race --stock 10 --stock 20 --think-time 0.5 [--unversioned]
"""
import json
from pathlib import Path
from typing import Iterable, List, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from inventorylock.config import InventoryLockConfig, StorageBackend, load_config, overrides_to_config_dict
from inventorylock.errors import VersionConflictError, apply_error_handling
from inventorylock.logging import LoggingMode, configure_logging, logger
from inventorylock.models.product import Product
from inventorylock.store import ProductStore, store_from_config
from inventorylock.writer import RaceResult, run_race, update_with_retry

app = typer.Typer(
    name="invlock",
    help="inventorylock - optimistic concurrency control for product stock.",
    no_args_is_help=True,
)
console = Console()

VERSIONED_OPTION = typer.Option(
    True, "--versioned/--unversioned",
    help="Use the version-checked store or the unversioned baseline",
)


@app.callback()
def main(
    ctx: typer.Context,
    backend: Optional[StorageBackend] = typer.Option(None, "--backend", "-b", help="Storage backend"),
    db_path: Optional[Path] = typer.Option(None, "--db-path", help="SQLite database file"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file (default: ~/.invlock/config.toml)"
    ),
    settings: List[str] = typer.Option([], "--set", help="Override a setting, e.g. race.writers=4"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Log to specified file"),
):
    """inventorylock - optimistic concurrency control for product stock."""
    overrides = overrides_to_config_dict(settings)
    overrides.update({"backend": backend, "db_path": db_path, "log_file": log_file})
    config = load_config(config_file=config_file, overrides=overrides)

    configure_logging(
        config=config,
        mode=LoggingMode.DEVELOPMENT if debug else LoggingMode.PRODUCTION,
        log_level="DEBUG" if debug else None,
    )
    ctx.obj = config


def _open_store(ctx: typer.Context, versioned: bool) -> ProductStore:
    config: InventoryLockConfig = ctx.obj
    if config.backend == StorageBackend.MEMORY:
        logger.debug("Memory backend selected; records live for this invocation only")
    return store_from_config(config, versioned=versioned)


def _product_table(products: Iterable[Product], title: str = "Products") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Stock", justify="right")
    table.add_column("Version", justify="right")
    for product in products:
        table.add_row(
            str(product.id),
            product.name,
            product.description,
            str(product.stock),
            "-" if product.version is None else str(product.version),
        )
    return table


def _print_products(products: List[Product], as_json: bool, title: str = "Products") -> None:
    if as_json:
        typer.echo(json.dumps([p.model_dump(mode="json") for p in products], indent=2))
    else:
        console.print(_product_table(products, title))


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Product name"),
    description: str = typer.Option("", "--description", "-d", help="Product description"),
    stock: int = typer.Option(0, "--stock", "-s", min=0, help="Initial stock"),
    versioned: bool = VERSIONED_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the record as JSON"),
):
    """Create a product."""
    with _open_store(ctx, versioned) as store:
        product = store.create(Product(name=name, description=description, stock=stock))
    _print_products([product], as_json, title="Created")


@app.command()
def show(
    ctx: typer.Context,
    product_id: Optional[UUID] = typer.Argument(None, help="Product to show (all if omitted)"),
    versioned: bool = VERSIONED_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON"),
):
    """Show one product or all of them."""
    with _open_store(ctx, versioned) as store:
        products = [store.get(product_id)] if product_id else store.list_all()
    _print_products(products, as_json)


@app.command()
def update(
    ctx: typer.Context,
    product_id: UUID = typer.Argument(..., help="Product to update"),
    stock: int = typer.Option(..., "--stock", "-s", min=0, help="New stock level"),
    expected_version: Optional[int] = typer.Option(
        None, "--expected-version", "-e", help="Version the change was computed from (defaults to the current one)"
    ),
    retries: int = typer.Option(
        0, "--retries", min=0, help="Re-read and retry this many times on conflict (not with --expected-version)"
    ),
    versioned: bool = VERSIONED_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the record as JSON"),
):
    """Set a product's stock."""
    if expected_version is not None and retries:
        raise typer.BadParameter(
            "a retry re-reads the current version, so it cannot be combined with --expected-version",
            param_hint="--retries",
        )
    with _open_store(ctx, versioned) as store:
        if expected_version is not None and store.versioned:
            current = store.get(product_id)
            product = store.compare_and_save(product_id, current.with_stock(stock), expected_version)
        else:
            product = update_with_retry(store, product_id, lambda p: p.with_stock(stock), retries=retries)
    _print_products([product], as_json, title="Updated")


def _race_table(result: RaceResult) -> Table:
    table = Table(title="Writers")
    table.add_column("Writer")
    table.add_column("Read version", justify="right")
    table.add_column("Stock", justify="right")
    table.add_column("Result")
    for outcome in result.outcomes:
        read_version = outcome.read.version if outcome.read is not None else None
        if outcome.succeeded:
            status = "[green]saved[/green]"
        elif isinstance(outcome.error, VersionConflictError):
            status = "[yellow]version conflict[/yellow]"
        else:
            status = f"[red]{outcome.error}[/red]"
        table.add_row(
            outcome.name,
            "-" if read_version is None else str(read_version),
            str(outcome.stock),
            status,
        )
    return table


@app.command()
def race(
    ctx: typer.Context,
    stocks: List[int] = typer.Option(
        [], "--stock", "-s", help="Stock each writer saves (repeat per writer)"
    ),
    writers: Optional[int] = typer.Option(None, "--writers", "-w", min=1, help="Number of writers if --stock is not given"),
    initial_stock: int = typer.Option(100, "--initial-stock", min=0, help="Stock of the seeded product"),
    think_time: Optional[float] = typer.Option(None, "--think-time", "-t", min=0.0, help="Seconds between read and save"),
    versioned: bool = VERSIONED_OPTION,
):
    """Race concurrent writers on one freshly created product."""
    config: InventoryLockConfig = ctx.obj
    count = writers or config.race.writers
    stocks = stocks or [10 * (i + 1) for i in range(count)]
    delay = config.race.think_time if think_time is None else think_time

    with _open_store(ctx, versioned) as store:
        product = store.create(Product(name="Race product", description="Seeded by invlock race", stock=initial_stock))
        result = run_race(
            store, product.id, stocks, think_time=(0.0, delay) if delay else 0.0, align_reads=True
        )

    console.print(_race_table(result))
    console.print(_product_table([result.final], title="Final state"))
    kind = "versioned" if versioned else "unversioned"
    console.print(
        f"{kind} store: {len(result.successes)} saved, {len(result.conflicts)} conflicted, "
        f"final stock {result.final.stock}"
    )


apply_error_handling(app)


if __name__ == "__main__":
    app()
