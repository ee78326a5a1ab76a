"""Display helpers and rich console rendering for previews and dry runs."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .constants import SHARE_CLASSES, USDC_METADATA
from .domain import ConversionDirection, TransactionRequest
from .units import shares_from_investment, value_from_shares

_ADDRESS_TO_NAME: dict[str, str] = {
    entry["address"].lower(): entry["name"] for entry in SHARE_CLASSES
}


def format_address(
    address: str, prefix_length: int = 6, suffix_length: int = 4
) -> str:
    """Truncate an address for display, e.g. ``0xc09d...b092``."""
    if not address:
        return ""
    if len(address) <= prefix_length + suffix_length:
        return address
    return f"{address[:prefix_length]}...{address[-suffix_length:]}"


def share_class_name(address: str, usdc_metadata: str = USDC_METADATA) -> str:
    """Registered name for an asset, or its truncated address if unknown."""
    if address.lower() == usdc_metadata.lower():
        return "USDC"
    return _ADDRESS_TO_NAME.get(address.lower(), format_address(address))


def format_balance(
    balance: str, asset_address: str, usdc_metadata: str = USDC_METADATA
) -> str:
    currency = "USDC" if asset_address.lower() == usdc_metadata.lower() else "Tokens"
    return f"{balance} {currency}"


def inline_estimate(
    amount: str, scaled_price: int | str | None, direction: ConversionDirection
) -> str:
    """Live conversion shown beside an amount field."""
    if not amount or scaled_price is None:
        return "0"
    if direction == ConversionDirection.TO_SHARES:
        return shares_from_investment(amount, scaled_price)
    return value_from_shares(amount, scaled_price)


def _format_argument(value: object) -> str:
    if isinstance(value, list):
        try:
            decoded = bytes(value).decode("utf-8")
        except (ValueError, TypeError):
            return str(value)
        return f"{value} ({decoded!r})"
    return str(value)


def format_request_table(
    request: TransactionRequest, console: Console | None = None
) -> None:
    """Print a transaction request as a rich panel."""
    console = console or Console()

    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Argument", overflow="fold")
    for index, argument in enumerate(request.arguments):
        table.add_row(str(index), escape(_format_argument(argument)))

    address, module, function = request.function_id.split("::")
    title = (
        f"[bold]{module}::{function}[/bold] "
        f"[dim]{format_address(address, 10, 8)}[/dim]"
    )
    console.print(Panel(table, title=title, border_style="green"))
