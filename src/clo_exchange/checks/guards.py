"""Preconditions evaluated before any request is built or submitted."""

from __future__ import annotations

import logging
from decimal import Decimal

from ..domain import AssetBalance
from ..errors import ErrorKind, OperationError
from ..settings import ExchangeSettings
from ..units import parse_amount, price_to_on_chain
from ..wallet import BaseWallet, WalletAccount

logger = logging.getLogger(__name__)

MAX_U8 = 255


class ValidationError(OperationError):
    """Raised when a precondition fails; nothing has been submitted yet."""

    pass


class ValidationGuard:
    """Wallet, network, input and authorization checks.

    Each ``require_*`` method raises :class:`ValidationError` with a distinct
    :class:`ErrorKind` on failure. Only the wallet and network checks talk to
    the wallet; everything else is synchronous.
    """

    def __init__(self, settings: ExchangeSettings, wallet: BaseWallet | None):
        self.settings = settings
        self.wallet = wallet

    async def require_wallet(self) -> WalletAccount:
        """Ensure the extension is injected and authorized; return its account."""
        if self.wallet is None:
            raise ValidationError(
                ErrorKind.WALLET_UNAVAILABLE, "Wallet extension not found"
            )
        if not await self.wallet.is_connected():
            raise ValidationError(
                ErrorKind.WALLET_NOT_CONNECTED, "Please connect your wallet first"
            )
        return await self.wallet.account()

    async def require_network(self) -> str:
        """Ensure the wallet points at the expected network."""
        if self.wallet is None:
            raise ValidationError(
                ErrorKind.WALLET_UNAVAILABLE, "Wallet extension not found"
            )
        current = await self.wallet.network()
        logger.debug("Current wallet network: %s", current)
        expected = self.settings.expected_network
        if expected.lower() not in (current or "").lower():
            raise ValidationError(
                ErrorKind.WRONG_NETWORK,
                f"Please switch to {expected.capitalize()} in your wallet",
            )
        return current

    async def require_session(self) -> WalletAccount:
        """Wallet connected and on the expected network."""
        account = await self.require_wallet()
        await self.require_network()
        return account

    def require_admin(self, account: WalletAccount, action: str) -> None:
        if account.address.lower() != self.settings.admin_address.lower():
            raise ValidationError(
                ErrorKind.UNAUTHORIZED, f"Only admin can {action}"
            )

    def require_address(self, address: str | None, label: str) -> str:
        prefix = self.settings.address_prefix
        if not address or not address.strip().startswith(prefix):
            raise ValidationError(
                ErrorKind.INVALID_INPUT,
                f"Invalid {label} address. Must start with {prefix}",
            )
        return address.strip()

    def require_text(self, value: str | None, message: str) -> str:
        if value is None or not value.strip():
            raise ValidationError(ErrorKind.INVALID_INPUT, message)
        return value

    def require_positive(self, amount: str | None, message: str) -> Decimal:
        """Parse ``amount`` and require it to be strictly greater than zero."""
        value = parse_amount(amount)
        if value is None or value <= 0:
            raise ValidationError(ErrorKind.INVALID_INPUT, message)
        return value

    def require_within_balance(
        self, amount: Decimal, available: Decimal, message: str
    ) -> None:
        if amount > available:
            raise ValidationError(ErrorKind.INSUFFICIENT_BALANCE, message)

    def require_holdings(
        self, balance: AssetBalance | None, message: str
    ) -> AssetBalance:
        """Require a known, non-zero balance; a missing balance counts as zero."""
        if balance is None or balance.amount <= 0:
            raise ValidationError(ErrorKind.INSUFFICIENT_BALANCE, message)
        return balance

    def require_decimals(self, decimals: int) -> int:
        if not 0 <= decimals <= MAX_U8:
            raise ValidationError(
                ErrorKind.INVALID_INPUT,
                f"Decimals must be between 0 and {MAX_U8}, got {decimals}",
            )
        return decimals

    def require_units(self, units: str) -> str:
        """Reject amounts that floor to zero on-chain units."""
        if int(units) <= 0:
            raise ValidationError(
                ErrorKind.INVALID_INPUT, "Amount is below the smallest unit"
            )
        return units

    def require_contract_price(self, price: str | None, message: str) -> int:
        """Floor ``price`` to contract units and require at least one unit."""
        self.require_positive(price, message)
        on_chain = price_to_on_chain(price)
        if on_chain < 1:
            raise ValidationError(
                ErrorKind.INVALID_INPUT, "Price must be at least 1 contract unit"
            )
        return on_chain
