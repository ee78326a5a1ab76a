"""Domain models for the exchange client."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from ..errors import OperationError
from ..units import display_price, format_units, from_on_chain_units


@dataclass(frozen=True)
class Asset:
    """A fungible asset identified by its metadata address."""

    address: str
    decimals: int


@dataclass(frozen=True)
class AssetBalance:
    """Raw on-chain balance of an asset held by an owner."""

    asset: Asset
    amount: int

    @property
    def human_amount(self) -> Decimal:
        return from_on_chain_units(self.amount, self.asset.decimals)

    def display(self, places: int = 6) -> str:
        return format_units(self.amount, self.asset.decimals, places)


class WithdrawType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


class ConversionDirection(str, Enum):
    TO_SHARES = "to_shares"
    TO_USDC = "to_usdc"


@dataclass(frozen=True)
class CreateShareClass:
    name: str
    symbol: str
    decimals: int
    underlying_asset: str
    price: int
    max_supply: str


@dataclass(frozen=True)
class Invest:
    asset_address: str
    amount: str  # on-chain units


@dataclass(frozen=True)
class Withdraw:
    asset_address: str
    amount: str  # on-chain units


@dataclass(frozen=True)
class UpdatePrice:
    asset_address: str
    price: int


Operation = Union[CreateShareClass, Invest, Withdraw, UpdatePrice]


@dataclass(frozen=True)
class TransactionRequest:
    """Entry-function call in the shape consumed by the wallet."""

    function_id: str
    arguments: list[Any] = field(default_factory=list)
    type_arguments: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "function": self.function_id,
            "type_arguments": list(self.type_arguments),
            "arguments": list(self.arguments),
        }


@dataclass(frozen=True)
class AssetSnapshot:
    """Balance and price fetched for the currently selected asset."""

    asset_address: str
    balance: AssetBalance | None = None
    scaled_price: int | None = None

    @property
    def balance_display(self) -> str:
        if self.balance is None:
            return "0"
        return self.balance.display()

    @property
    def price_display(self) -> str | None:
        if self.scaled_price is None:
            return None
        return display_price(self.scaled_price)


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of one operation attempt: a hash or a classified error."""

    hash: str | None = None
    error: OperationError | None = None

    @property
    def succeeded(self) -> bool:
        return self.hash is not None and self.error is None

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.message
        return f"Transaction submitted: {self.hash}"
