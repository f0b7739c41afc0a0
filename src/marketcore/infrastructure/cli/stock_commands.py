"""CLI commands for stock levels."""

from __future__ import annotations

import click

from marketcore.application.set_stock import SetStockHandler
from marketcore.application.show_stock import ShowStockHandler
from marketcore.domain.exceptions import DomainException
from marketcore.infrastructure.bootstrap import product_repository, stock_ledger
from marketcore.infrastructure.config import Settings


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="Units on hand.")
@click.pass_obj
def stock_set(settings: Settings, product_id: str, quantity: int) -> None:
    """Set the stock level for a product."""
    handler = SetStockHandler(
        ledger=stock_ledger(settings),
        product_repo=product_repository(settings),
        lock_timeout=settings.lock_timeout,
    )

    try:
        row = handler.handle(product_id=product_id, quantity=quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Stock for product #{product_id} set to {row.stock_quantity} "
        f"({row.available_quantity} available)"
    )


@click.command("show")
@click.pass_obj
def stock_show(settings: Settings) -> None:
    """Show current stock levels."""
    handler = ShowStockHandler(
        ledger=stock_ledger(settings),
        product_repo=product_repository(settings),
    )
    lines = handler.handle()

    if not lines:
        click.echo("No stock records found.")
        return

    click.echo(f"{'ID':<6} {'Product':<20} {'Stock':>8} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 57)
    for line in lines:
        click.echo(
            f"{line.product_id:<6} {line.product_name:<20} {line.stock:>8} "
            f"{line.reserved:>10} {line.available:>10}"
        )
