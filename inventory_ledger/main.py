from __future__ import annotations

import asyncio
import sys
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from inventory_ledger.config import get_settings
from inventory_ledger.domain.models import (
    AnnotatedItem,
    HistoryEntry,
    ItemDetail,
    ItemInput,
    ItemUpdate,
    RankedItem,
    StockAnnotatedItem,
)
from inventory_ledger.errors import ErrorKind, InventoryError, capture, describe_error
from inventory_ledger.infrastructure.connection import (
    ConnectionManager,
    acquire_with_retry,
    redact_conninfo,
)
from inventory_ledger.infrastructure.schema import apply_schema
from inventory_ledger.service import InventoryService
from inventory_ledger.utils.logging import configure_logging

T = TypeVar("T")

app = typer.Typer(help="Inventory Ledger CLI.")

EXIT_CODES = {
    ErrorKind.VALIDATION: 2,
    ErrorKind.NOT_FOUND: 3,
    ErrorKind.CONNECTION: 4,
    ErrorKind.TRANSACTION: 5,
}

MENU = """
Inventory Ledger
----------------
1. List all items
2. Get item by ID
3. Create new item
4. Update item
5. Delete item
6. Update item stock
7. Items in price range
8. Low stock items
9. Catalog statistics
Q. Quit
"""


def _parse_decimal(value: str, label: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise typer.BadParameter(f"{label} must be a number, got {value!r}") from exc


def _echo_error(error: BaseException) -> None:
    for line in describe_error(error):
        typer.echo(line, err=True)


async def _with_service(operation: Callable[[InventoryService], Awaitable[T]]) -> T:
    settings = get_settings()
    async with InventoryService.from_connections(ConnectionManager()) as service:
        await acquire_with_retry(service.store.connections, settings.connect_retries)
        return await operation(service)


def _run(operation: Callable[[InventoryService], Awaitable[T]]) -> T:
    """Run one service call; render a failure and exit with a code for its kind."""
    result = asyncio.run(capture(_with_service(operation)))
    if not result.ok:
        _echo_error(result.error)
        raise typer.Exit(code=EXIT_CODES[result.kind])
    return result.value


def render_item(item) -> str:
    lines = [item.describe()]
    if isinstance(item, ItemDetail) and item.previous_price is not None:
        change = (
            f" ({item.price_change_percentage:+}%)"
            if item.price_change_percentage is not None
            else ""
        )
        lines.append(f"Previous price: ${item.previous_price:.2f}{change}")
    if isinstance(item, AnnotatedItem):
        share = item.price_percentage_of_average
        lines.append(
            f"Price category: {item.price_category.value}"
            + (f" ({share}% of average)" if share is not None else "")
        )
    if isinstance(item, RankedItem):
        lines.append(
            f"Price rank: {item.price_rank} | percentile {item.price_percentile:.2f} "
            f"| {item.price_segment.value}"
        )
    if isinstance(item, StockAnnotatedItem):
        share = item.stock_percentage_of_average
        lines.append(
            f"Stock status: {item.stock_status.value}"
            + (f" ({share}% of average {item.average_stock:.2f})" if share is not None else "")
        )
    return "\n".join(lines)


def render_history(entry: HistoryEntry) -> str:
    price = f"{entry.old_price if entry.old_price is not None else '-'} -> " + (
        f"{entry.new_price if entry.new_price is not None else '-'}"
    )
    stock = f"{entry.old_stock if entry.old_stock is not None else '-'} -> " + (
        f"{entry.new_stock if entry.new_stock is not None else '-'}"
    )
    stamp = f"{entry.action_at:%Y-%m-%d %H:%M:%S}" if entry.action_at else "-"
    return f"{stamp} | {entry.action.value:<6} | price {price} | stock {stock}"


def _echo_items(items) -> None:
    if not items:
        typer.echo("No items found.")
        return
    for item in items:
        typer.echo("\n" + render_item(item))


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    """
    Manage the item catalog, its audit trail and aggregate statistics.

    Without a command, starts the interactive menu.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    if ctx.invoked_subcommand is None:
        _run(run_menu)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    target = settings.connection_string()
    shown = redact_conninfo(target) if target else "<not configured>"
    typer.echo(
        f"env={settings.app_env} | db={shown} | "
        f"connect_timeout={settings.db_connect_timeout}s retries={settings.connect_retries}"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the tables and the aggregate row if they do not exist.
    """

    async def _init(service: InventoryService) -> None:
        await apply_schema(await service.store.connections.acquire())

    _run(_init)
    typer.echo("Schema ready.")


@app.command("list")
def list_items() -> None:
    """
    List all items, above-average prices first.
    """
    _echo_items(_run(lambda service: service.list_items()))


@app.command()
def get(item_id: int = typer.Argument(..., help="Item ID.")) -> None:
    """
    Show one item and its previous price.
    """
    item = _run(lambda service: service.get_item(item_id))
    if item is None:
        typer.echo(f"Item with ID {item_id} not found.")
        raise typer.Exit(code=EXIT_CODES[ErrorKind.NOT_FOUND])
    typer.echo(render_item(item))


@app.command()
def add(
    name: str = typer.Argument(..., help="Item name."),
    price: str = typer.Argument(..., help="Unit price."),
    quantity: int = typer.Argument(..., help="Units in stock."),
    description: Optional[str] = typer.Argument(None, help="Optional description."),
) -> None:
    """
    Add a new item.
    """
    item = ItemInput(
        name=name,
        description=description,
        price=_parse_decimal(price, "price"),
        stock_quantity=quantity,
    )
    new_id = _run(lambda service: service.create_item(item))
    typer.echo(f"Item created successfully with ID: {new_id}")


@app.command()
def update(
    item_id: int = typer.Argument(..., help="Item ID."),
    name: str = typer.Argument(..., help="Item name."),
    price: str = typer.Argument(..., help="Unit price."),
    quantity: int = typer.Argument(..., help="Units in stock."),
    description: Optional[str] = typer.Argument(None, help="Optional description."),
) -> None:
    """
    Replace the fields of an existing item.
    """
    item = ItemUpdate(
        id=item_id,
        name=name,
        description=description,
        price=_parse_decimal(price, "price"),
        stock_quantity=quantity,
    )
    _run(lambda service: service.update_item(item))
    typer.echo("Item updated successfully.")


@app.command()
def delete(item_id: int = typer.Argument(..., help="Item ID.")) -> None:
    """
    Delete an item; its history is kept.
    """
    _run(lambda service: service.delete_item(item_id))
    typer.echo("Item deleted successfully.")


@app.command()
def stock(
    item_id: int = typer.Argument(..., help="Item ID."),
    quantity: int = typer.Argument(..., help="New stock quantity."),
) -> None:
    """
    Set the stock quantity of an item.
    """
    _run(lambda service: service.update_stock(item_id, quantity))
    typer.echo("Stock updated successfully.")


@app.command("price-range")
def price_range(
    min_price: str = typer.Argument(..., help="Lower bound (inclusive)."),
    max_price: str = typer.Argument(..., help="Upper bound (inclusive)."),
) -> None:
    """
    Rank items within a price range into Budget, Mid-Range and Premium.
    """
    low = _parse_decimal(min_price, "min_price")
    high = _parse_decimal(max_price, "max_price")
    _echo_items(_run(lambda service: service.items_in_price_range(low, high)))


@app.command("low-stock")
def low_stock(threshold: int = typer.Argument(..., help="Stock threshold (inclusive).")) -> None:
    """
    List items at or below a stock threshold.
    """
    _echo_items(_run(lambda service: service.low_stock_items(threshold)))


@app.command()
def stats() -> None:
    """
    Show the aggregate item count and average price.
    """
    current = _run(lambda service: service.stats())
    updated = f"{current.last_updated:%Y-%m-%d %H:%M:%S}" if current.last_updated else "N/A"
    typer.echo(
        f"Items: {current.total_items} | Average price: ${current.average_price:.2f} | "
        f"Updated: {updated}"
    )


@app.command()
def history(item_id: int = typer.Argument(..., help="Item ID.")) -> None:
    """
    Show the audit trail of an item, including deleted items.
    """
    entries = _run(lambda service: service.history(item_id))
    if not entries:
        typer.echo(f"No history for item {item_id}.")
        return
    for entry in entries:
        typer.echo(render_history(entry))


async def _menu_step(service: InventoryService, choice: str) -> bool:
    """Run one menu choice. Returns False when the user quits."""
    if choice == "1":
        _echo_items(await service.list_items())
    elif choice == "2":
        item_id = typer.prompt("Item ID", type=int)
        item = await service.get_item(item_id)
        typer.echo(render_item(item) if item else f"Item with ID {item_id} not found.")
    elif choice == "3":
        item = ItemInput(
            name=typer.prompt("Name"),
            description=typer.prompt("Description", default="", show_default=False) or None,
            price=_parse_decimal(typer.prompt("Price"), "price"),
            stock_quantity=typer.prompt("Stock quantity", type=int),
        )
        typer.echo(f"Item created successfully with ID: {await service.create_item(item)}")
    elif choice == "4":
        item = ItemUpdate(
            id=typer.prompt("Item ID", type=int),
            name=typer.prompt("Name"),
            description=typer.prompt("Description", default="", show_default=False) or None,
            price=_parse_decimal(typer.prompt("Price"), "price"),
            stock_quantity=typer.prompt("Stock quantity", type=int),
        )
        await service.update_item(item)
        typer.echo("Item updated successfully.")
    elif choice == "5":
        await service.delete_item(typer.prompt("Item ID", type=int))
        typer.echo("Item deleted successfully.")
    elif choice == "6":
        item_id = typer.prompt("Item ID", type=int)
        await service.update_stock(item_id, typer.prompt("New quantity", type=int))
        typer.echo("Stock updated successfully.")
    elif choice == "7":
        low = _parse_decimal(typer.prompt("Minimum price"), "min_price")
        high = _parse_decimal(typer.prompt("Maximum price"), "max_price")
        _echo_items(await service.items_in_price_range(low, high))
    elif choice == "8":
        _echo_items(await service.low_stock_items(typer.prompt("Threshold", type=int)))
    elif choice == "9":
        current = await service.stats()
        typer.echo(f"Items: {current.total_items} | Average price: ${current.average_price:.2f}")
    elif choice == "q":
        return False
    else:
        typer.echo("\nInvalid choice. Please try again.")
    return True


async def run_menu(service: InventoryService) -> None:
    """
    Interactive loop; a failed operation is reported and the loop continues.
    """
    while True:
        typer.echo(MENU)
        choice = typer.prompt("Enter your choice").strip().lower()
        try:
            if not await _menu_step(service, choice):
                return
        except (InventoryError, typer.BadParameter) as exc:
            typer.echo("")
            _echo_error(exc)


@app.command()
def menu() -> None:
    """
    Start the interactive menu.
    """
    _run(run_menu)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
