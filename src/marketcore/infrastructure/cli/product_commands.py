"""CLI commands for the product catalog."""

from __future__ import annotations

import click

from marketcore.application.add_product import AddProductHandler
from marketcore.domain.exceptions import DomainException
from marketcore.infrastructure.bootstrap import product_repository
from marketcore.infrastructure.config import Settings


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--sale-price", default=None, help="Optional sale price.")
@click.pass_obj
def product_add(settings: Settings, name: str, price: str, sale_price: str | None) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(
        product_repo=product_repository(settings), currency=settings.currency
    )

    try:
        product = handler.handle(name=name, price=price, sale_price=sale_price)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product.id} '{product.name}' added at {product.current_price}")


@click.command("list")
@click.pass_obj
def product_list(settings: Settings) -> None:
    """List all products in the catalog."""
    products = product_repository(settings).list_all()

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Price':>10} {'Sale':>10}")
    click.echo("-" * 49)
    for p in products:
        sale = str(p.sale_price) if p.sale_price else "-"
        click.echo(f"{p.id:<6} {p.name:<20} {str(p.price):>10} {sale:>10}")
