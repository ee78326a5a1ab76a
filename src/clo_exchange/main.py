"""CLI entrypoint for the CLO exchange client."""

from __future__ import annotations

import asyncio
import json
import os
from enum import Enum
from pathlib import Path
from typing import Annotated, Callable, TypeVar

import typer

from .checks.guards import ValidationGuard
from .clients.aptos import AptosClient
from .domain import (
    ConversionDirection,
    CreateShareClass,
    Invest,
    TransactionRequest,
    UpdatePrice,
    Withdraw,
)
from .errors import OperationError
from .formatter import (
    format_balance,
    format_request_table,
    inline_estimate,
    share_class_name,
)
from .logger import get_logger, setup_logging
from .services.exchange import ExchangeService
from .settings import ExchangeSettings, Network
from .state import AppState
from .transactions.builder import TransactionBuilder
from .units import (
    display_price,
    floor_integer,
    to_on_chain_units,
)


T = TypeVar("T")


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Share-class exchange client: queries, previews and dry-run payloads.",
)
quote_app = typer.Typer(help="Preview conversions at a given on-chain price.")
build_app = typer.Typer(help="Build entry-function payloads without submitting them.")
app.add_typer(quote_app, name="quote")
app.add_typer(build_app, name="build")


def _state(ctx: typer.Context) -> AppState:
    return ctx.obj


def _service(state: AppState) -> ExchangeService:
    return ExchangeService(state.settings, AptosClient.from_settings(state.settings))


def _emit(request: TransactionRequest, output: OutputFormat) -> None:
    if output == OutputFormat.JSON:
        typer.echo(json.dumps(request.to_payload(), indent=2))
    else:
        format_request_table(request)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [clo_exchange] table).",
        ),
    ] = None,
    network: Annotated[
        Network | None,
        typer.Option(
            "--network",
            "-n",
            help="Expected network (mainnet, testnet, or devnet).",
        ),
    ] = None,
    node_url: Annotated[
        str | None,
        typer.Option("--node-url", help="Full-node REST endpoint override."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config and exit.",
        ),
    ] = False,
):
    """Load configuration and set up logging for all commands."""
    if config_path:
        os.environ["CLO_EXCHANGE_CONFIG"] = str(config_path)

    init_kwargs: dict[str, Network | str] = {}
    if network is not None:
        init_kwargs["network"] = network
    if node_url is not None:
        init_kwargs["node_url"] = node_url
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = ExchangeSettings(**init_kwargs)
    setup_logging(settings.log_level)
    ctx.obj = AppState(settings=settings, logger=get_logger("clo_exchange"))

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)


@app.command()
def price(
    ctx: typer.Context,
    asset: Annotated[str, typer.Argument(help="Share class metadata address.")],
):
    """Show the current price per share."""
    state = _state(ctx)
    scaled = asyncio.run(_service(state).fetch_exchange_price(asset))
    if scaled is None:
        typer.echo("Price unavailable", err=True)
        raise typer.Exit(code=1)
    name = share_class_name(asset, state.settings.usdc_metadata)
    typer.echo(f"{name}: {display_price(scaled)} USDC")


@app.command()
def balance(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Account address.")],
    asset: Annotated[str, typer.Argument(help="Asset metadata address.")],
):
    """Show an account's balance of an asset."""
    state = _state(ctx)
    amount = asyncio.run(_service(state).fetch_balance_display(owner, asset))
    typer.echo(format_balance(amount, asset, state.settings.usdc_metadata))


@quote_app.command("invest")
def quote_invest(
    amount: Annotated[str, typer.Argument(help="USDC amount to invest.")],
    scaled_price: Annotated[
        int, typer.Option("--price", "-p", help="On-chain price (1000x display).")
    ],
):
    """Estimate shares received for a USDC investment."""
    typer.echo(inline_estimate(amount, scaled_price, ConversionDirection.TO_SHARES))


@quote_app.command("withdraw")
def quote_withdraw(
    amount: Annotated[str, typer.Argument(help="Share tokens to redeem.")],
    scaled_price: Annotated[
        int, typer.Option("--price", "-p", help="On-chain price (1000x display).")
    ],
):
    """Estimate USDC received for redeeming shares."""
    typer.echo(inline_estimate(amount, scaled_price, ConversionDirection.TO_USDC))


OutputOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Output format (table or json)."),
]


def _guard(ctx: typer.Context) -> ValidationGuard:
    return ValidationGuard(_state(ctx).settings, None)


def _build_or_fail(build: Callable[[], T]) -> T:
    try:
        return build()
    except OperationError as e:
        raise typer.BadParameter(e.message) from e


@build_app.command("create-share-class")
def build_create_share_class(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Share class name.")],
    symbol: Annotated[str, typer.Argument(help="Share class symbol.")],
    price_per_share: Annotated[
        str, typer.Argument(help="Price per share in contract units.")
    ],
    max_supply: Annotated[
        str, typer.Option("--max-supply", help="Maximum supply, 0 for unlimited.")
    ] = "0",
    underlying: Annotated[
        str | None,
        typer.Option("--underlying", help="Underlying asset (defaults to USDC)."),
    ] = None,
    output: OutputOption = OutputFormat.TABLE,
):
    """Payload for create_share_class."""
    settings = _state(ctx).settings
    guard = _guard(ctx)
    builder = TransactionBuilder(settings)
    request = _build_or_fail(
        lambda: builder.create_share_class(
            CreateShareClass(
                name=guard.require_text(name, "Please enter a share class name"),
                symbol=guard.require_text(symbol, "Please enter a symbol"),
                decimals=guard.require_decimals(settings.share_class_decimals),
                underlying_asset=guard.require_address(
                    underlying or settings.usdc_metadata, "underlying token"
                ),
                price=guard.require_contract_price(
                    price_per_share,
                    "Please enter a valid price per share greater than 0",
                ),
                max_supply=floor_integer(max_supply),
            )
        )
    )
    _emit(request, output)


@build_app.command("invest")
def build_invest(
    ctx: typer.Context,
    asset: Annotated[str, typer.Argument(help="Share class metadata address.")],
    amount: Annotated[str, typer.Argument(help="USDC amount.")],
    output: OutputOption = OutputFormat.TABLE,
):
    """Payload for request_issuance."""
    settings = _state(ctx).settings
    guard = _guard(ctx)
    builder = TransactionBuilder(settings)
    request = _build_or_fail(
        lambda: builder.invest(
            Invest(
                asset_address=guard.require_address(asset, "share class"),
                amount=guard.require_units(
                    to_on_chain_units(amount, settings.usdc_decimals)
                ),
            )
        )
    )
    _emit(request, output)


@build_app.command("withdraw")
def build_withdraw(
    ctx: typer.Context,
    asset: Annotated[str, typer.Argument(help="Share class metadata address.")],
    amount: Annotated[str, typer.Argument(help="Share tokens to redeem.")],
    decimals: Annotated[
        int | None,
        typer.Option(
            "--decimals", help="Share decimals; fetched from the indexer if omitted."
        ),
    ] = None,
    output: OutputOption = OutputFormat.TABLE,
):
    """Payload for request_redemption."""
    state = _state(ctx)
    guard = _guard(ctx)
    target = _build_or_fail(lambda: guard.require_address(asset, "share class"))
    if decimals is None:
        decimals = asyncio.run(_service(state).resolve_asset(target)).decimals
    builder = TransactionBuilder(state.settings)
    request = _build_or_fail(
        lambda: builder.withdraw(
            Withdraw(
                asset_address=target,
                amount=guard.require_units(
                    to_on_chain_units(amount, guard.require_decimals(decimals))
                ),
            )
        )
    )
    _emit(request, output)


@build_app.command("update-price")
def build_update_price(
    ctx: typer.Context,
    asset: Annotated[str, typer.Argument(help="Share class metadata address.")],
    new_price: Annotated[str, typer.Argument(help="New price in contract units.")],
    output: OutputOption = OutputFormat.TABLE,
):
    """Payload for update_price_per_share."""
    guard = _guard(ctx)
    builder = TransactionBuilder(_state(ctx).settings)
    request = _build_or_fail(
        lambda: builder.update_price(
            UpdatePrice(
                asset_address=guard.require_address(asset, "share class"),
                price=guard.require_contract_price(
                    new_price, "Please enter a valid price greater than 0"
                ),
            )
        )
    )
    _emit(request, output)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
