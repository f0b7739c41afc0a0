import click

from marketcore.infrastructure.cli.order_commands import checkout, order_show, reservations
from marketcore.infrastructure.cli.product_commands import product_add, product_list
from marketcore.infrastructure.cli.stock_commands import stock_set, stock_show
from marketcore.infrastructure.cli.webhook_commands import webhook_replay
from marketcore.infrastructure.config import ConfigurationError, load_settings
from marketcore.infrastructure.logging import configure_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """marketcore: marketplace checkout, stock and payments."""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    configure_logging(settings.environment)
    ctx.obj = settings


@cli.group()
def order() -> None:
    """Inspect orders."""


@cli.group()
def product() -> None:
    """Manage the product catalog."""


@cli.group()
def stock() -> None:
    """Manage stock levels."""


@cli.group()
def webhook() -> None:
    """Feed payment provider events."""


# Register subcommands
cli.add_command(checkout)
cli.add_command(reservations)
order.add_command(order_show)
product.add_command(product_add)
product.add_command(product_list)
stock.add_command(stock_set)
stock.add_command(stock_show)
webhook.add_command(webhook_replay)
