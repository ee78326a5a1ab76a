"""Transaction builder for the exchange module's entry functions."""

from __future__ import annotations

import logging

from ..constants import (
    CREATE_SHARE_CLASS,
    REQUEST_ISSUANCE,
    REQUEST_REDEMPTION,
    UPDATE_PRICE_PER_SHARE,
)
from ..domain import (
    CreateShareClass,
    Invest,
    Operation,
    TransactionRequest,
    UpdatePrice,
    Withdraw,
)
from ..settings import ExchangeSettings

logger = logging.getLogger(__name__)


def encode_bytes(text: str) -> list[int]:
    """UTF-8 encode ``text`` as the list of byte values a ``vector<u8>`` expects."""
    return list(text.encode("utf-8"))


class TransactionBuilder:
    """Builds entry-function calls for the four supported operations.

    Builders are pure: they only format already-validated, already-scaled
    values into the argument order each entry function declares.
    """

    def __init__(self, settings: ExchangeSettings):
        self.settings = settings

    def create_share_class(self, op: CreateShareClass) -> TransactionRequest:
        """Build ``create_share_class``.

        Arguments, in order: ``vector<u8> name``, ``vector<u8> symbol``,
        ``u8 decimals``, ``address underlying``, ``u64 price_per_share``,
        ``u128 max_supply`` (``"0"`` means unlimited).
        """
        if not 0 <= op.decimals <= 255:
            raise ValueError(f"decimals must fit in a u8, got {op.decimals}")
        request = TransactionRequest(
            function_id=self.settings.function_id(CREATE_SHARE_CLASS),
            arguments=[
                encode_bytes(op.name),
                encode_bytes(op.symbol),
                str(op.decimals),
                op.underlying_asset,
                str(op.price),
                op.max_supply,
            ],
        )
        logger.debug(
            "Built create_share_class(name=%s, symbol=%s, price=%d, max_supply=%s)",
            op.name,
            op.symbol,
            op.price,
            op.max_supply,
        )
        return request

    def invest(self, op: Invest) -> TransactionRequest:
        """Build ``request_issuance(address, u64 amount)``."""
        logger.debug(
            "Built request_issuance for %s: %s units", op.asset_address, op.amount
        )
        return TransactionRequest(
            function_id=self.settings.function_id(REQUEST_ISSUANCE),
            arguments=[op.asset_address, op.amount],
        )

    def withdraw(self, op: Withdraw) -> TransactionRequest:
        """Build ``request_redemption(address, u64 amount)``."""
        logger.debug(
            "Built request_redemption for %s: %s units", op.asset_address, op.amount
        )
        return TransactionRequest(
            function_id=self.settings.function_id(REQUEST_REDEMPTION),
            arguments=[op.asset_address, op.amount],
        )

    def update_price(self, op: UpdatePrice) -> TransactionRequest:
        """Build ``update_price_per_share(address, u64 new_price)``."""
        logger.debug(
            "Built update_price_per_share for %s: %d", op.asset_address, op.price
        )
        return TransactionRequest(
            function_id=self.settings.function_id(UPDATE_PRICE_PER_SHARE),
            arguments=[op.asset_address, str(op.price)],
        )

    def build(self, op: Operation) -> TransactionRequest:
        """Dispatch on the operation variant."""
        if isinstance(op, CreateShareClass):
            return self.create_share_class(op)
        if isinstance(op, Invest):
            return self.invest(op)
        if isinstance(op, Withdraw):
            return self.withdraw(op)
        if isinstance(op, UpdatePrice):
            return self.update_price(op)
        raise TypeError(f"Unsupported operation: {type(op).__name__}")
