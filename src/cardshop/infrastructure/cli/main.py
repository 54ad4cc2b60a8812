import logging

import click

from cardshop.domain.exceptions import ConfigurationError
from cardshop.infrastructure.bootstrap import settings
from cardshop.infrastructure.cli.inventory_commands import inventory_add, inventory_show
from cardshop.infrastructure.cli.order_commands import (
    order_fulfill,
    order_resync,
    order_show,
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    """cardshop — card-key order fulfillment"""
    try:
        level = "DEBUG" if verbose else settings().log_level
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.group()
def order() -> None:
    """Fulfill and inspect orders."""


@cli.group()
def inventory() -> None:
    """Load and inspect card stock."""


# Register subcommands
order.add_command(order_fulfill)
order.add_command(order_resync)
order.add_command(order_show)
inventory.add_command(inventory_add)
inventory.add_command(inventory_show)
