"""CLI commands for checkout and orders."""

from __future__ import annotations

import click

from marketcore.application.dto import CartItemSpec, OrderDTO
from marketcore.application.show_order import ShowOrderHandler
from marketcore.domain.exceptions import DomainException
from marketcore.domain.model.order import ShippingInfo
from marketcore.infrastructure.bootstrap import (
    checkout_handler,
    order_repository,
    reservation_manager,
)
from marketcore.infrastructure.config import Settings


def _parse_items(raw: str) -> list[CartItemSpec]:
    """Parse '1:3,2:5' into a CartItemSpec list."""
    specs: list[CartItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(CartItemSpec(product_id=product_id.strip(), quantity=qty))
    return specs


def _display_order(dto: OrderDTO) -> None:
    click.echo(f"Order #{dto.id} {dto.order_number}  (status={dto.status}, payment={dto.payment_status})")
    click.echo(f"User:     {dto.user_id}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.payment_ref:
        click.echo(f"Payment:  {dto.payment_ref}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*47}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.quantity:>5} {item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Subtotal':<27} {dto.subtotal:>20}")
    click.echo(f"  {'Discount':<27} {dto.discount:>20}")
    click.echo(f"  {'Tax':<27} {dto.tax:>20}")
    click.echo(f"  {'Shipping':<27} {dto.shipping:>20}")
    click.echo(f"  {'Order Total':<27} {dto.total:>20}")


@click.command("checkout")
@click.option("--user", "user_id", required=True, help="Buyer's user ID.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty,ProductId:Qty'.")
@click.option("--name", required=True, help="Shipping name.")
@click.option("--email", required=True, help="Shipping email.")
@click.option("--address", required=True, help="Shipping street address.")
@click.option("--city", required=True, help="Shipping city.")
@click.option("--postal-code", required=True, help="Shipping postal code.")
@click.option("--country", required=True, help="Shipping country.")
@click.option("--phone", default=None, help="Shipping phone.")
@click.option("--coupon", default=None, help="Coupon code.")
@click.pass_obj
def checkout(
    settings: Settings,
    user_id: str,
    items: str,
    name: str,
    email: str,
    address: str,
    city: str,
    postal_code: str,
    country: str,
    phone: str | None,
    coupon: str | None,
) -> None:
    """Reserve the cart and open a payment for it."""
    specs = _parse_items(items)
    handler = checkout_handler(settings)

    try:
        shipping = ShippingInfo(
            name=name,
            email=email,
            address=address,
            city=city,
            postal_code=postal_code,
            country=country,
            phone=phone,
        )
        result = handler.handle(
            user_id=user_id,
            cart_items=specs,
            shipping_info=shipping,
            coupon_code=coupon,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(result.order)
    click.echo()
    click.echo(f"Client secret: {result.client_secret}")


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(settings: Settings, order_id: int) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=order_repository(settings))

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("reservations")
@click.option("--order", "order_number", required=True, help="Order number (ORD-...).")
@click.pass_obj
def reservations(settings: Settings, order_number: str) -> None:
    """List the stock reservations held for an order."""
    records = reservation_manager(settings).reservations_for(order_number)

    if not records:
        click.echo(f"No reservations for {order_number}.")
        return

    click.echo(f"{'Reservation':<22} {'Product':<8} {'Qty':>5} {'State':<10}")
    click.echo("-" * 48)
    for r in records:
        click.echo(f"{r.id:<22} {r.product_id:<8} {r.quantity:>5} {r.state.value:<10}")
