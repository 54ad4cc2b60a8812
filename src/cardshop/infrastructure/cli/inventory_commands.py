"""CLI commands for card stock."""

from __future__ import annotations

import click

from cardshop.application.add_cards import AddCardsHandler
from cardshop.application.show_inventory import ShowInventoryHandler
from cardshop.domain.exceptions import DomainException
from cardshop.infrastructure.bootstrap import card_repository, product_repository


@click.command("add")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--key", "keys", multiple=True, help="Card key (repeatable).")
@click.option(
    "--keys-file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="File with one card key per line.",
)
def inventory_add(product_id: str, keys: tuple[str, ...], keys_file) -> None:
    """Load card keys for a product."""
    all_keys = list(keys)
    if keys_file is not None:
        all_keys.extend(keys_file.read().splitlines())

    try:
        handler = AddCardsHandler(
            card_repo=card_repository(),
            product_repo=product_repository(),
        )
        added = handler.handle(product_id=product_id, keys=all_keys)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Added {len(added)} card(s) to '{product_id}'")


@click.command("show")
def inventory_show() -> None:
    """Show current card stock per product."""
    try:
        handler = ShowInventoryHandler(
            card_repo=card_repository(),
            product_repo=product_repository(),
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))
    lines = handler.handle()

    if not lines:
        click.echo("No products found.")
        return

    click.echo(
        f"{'Product':<20} {'Shared':>6} {'Total':>7} {'Used':>6} {'Available':>10} {'Reserved':>9}"
    )
    click.echo("-" * 63)
    for line in lines:
        shared = "yes" if line.shared else "no"
        click.echo(
            f"{line.product_name:<20} {shared:>6} {line.total:>7} {line.used:>6} "
            f"{line.available:>10} {line.reserved:>9}"
        )
