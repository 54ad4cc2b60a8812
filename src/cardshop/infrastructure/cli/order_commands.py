"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from cardshop.application.show_order import ShowOrderHandler
from cardshop.domain.exceptions import DomainException
from cardshop.infrastructure.bootstrap import (
    fulfill_order_handler,
    order_repository,
    resync_order_handler,
)


@click.command("fulfill")
@click.option("--id", "order_id", required=True, help="Order ID to fulfill.")
@click.option("--amount", required=True, help="Amount actually paid (e.g. 9.99).")
@click.option("--trade-no", required=True, help="Payment provider transaction reference.")
def order_fulfill(order_id: str, amount: str, trade_no: str) -> None:
    """Record a payment and deliver cards for an order."""
    try:
        result = fulfill_order_handler().handle(order_id, amount, trade_no)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id}: {result.status}")


@click.command("resync")
@click.option("--id", "order_id", required=True, help="Order ID to retry delivery for.")
def order_resync(order_id: str) -> None:
    """Retry delivery for an order paid while out of stock."""
    try:
        result = resync_order_handler().handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id}: {result.status}")


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order ID to display.")
@click.option("--reveal", is_flag=True, default=False, help="Print delivered card keys.")
def order_show(order_id: str, reveal: bool) -> None:
    """Show details of an existing order."""
    try:
        dto = ShowOrderHandler(order_repo=order_repository()).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {dto.order_id}  (status={dto.status})")
    click.echo(f"Product:   {dto.product_id}")
    click.echo(f"Amount:    {dto.amount}  x{dto.quantity}")
    click.echo(f"Created:   {dto.created_at}")
    if dto.paid_at:
        click.echo(f"Paid:      {dto.paid_at}  (trade {dto.trade_no})")
    if dto.delivered_at:
        click.echo(f"Delivered: {dto.delivered_at}  ({len(dto.card_keys)} key(s))")
    if reveal:
        for key in dto.card_keys:
            click.echo(f"  {key}")
