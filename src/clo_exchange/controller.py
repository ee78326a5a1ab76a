"""Orchestrates validate -> build -> sign -> confirm for each user action."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from .checks.guards import ValidationError, ValidationGuard
from .clients.aptos import AptosClient
from .domain import (
    AssetSnapshot,
    CreateShareClass,
    Invest,
    TransactionOutcome,
    TransactionRequest,
    UpdatePrice,
    Withdraw,
    WithdrawType,
)
from .errors import ErrorKind, OperationError, classify_error
from .services.exchange import ExchangeService
from .state import AppState
from .transactions.builder import TransactionBuilder
from .units import (
    floor_integer,
    shares_from_investment,
    to_on_chain_units,
    value_from_shares,
)
from .wallet import BaseWallet, WalletAccount


class OperationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


IN_FLIGHT_STATES = frozenset(
    {OperationState.VALIDATING, OperationState.SUBMITTING, OperationState.CONFIRMING}
)


@dataclass
class FormInputs:
    """Transient form values owned by the controller."""

    asset_address: str = ""
    amount: str = ""
    price: str = ""
    name: str = ""
    symbol: str = ""
    max_supply: str = "0"
    withdraw_type: WithdrawType = WithdrawType.FULL

    def clear_amounts(self) -> None:
        self.amount = ""
        self.price = ""
        self.name = ""
        self.symbol = ""
        self.max_supply = "0"


class OperationController:
    """Entry points called by the surrounding UI.

    One attempt runs at a time: a call made while another attempt is still
    validating, submitting or confirming is ignored and returns ``None`` so
    the user never sees two signature prompts.
    """

    def __init__(
        self,
        state: AppState,
        wallet: BaseWallet | None,
        service: ExchangeService | None = None,
    ):
        self.state = state
        self.settings = state.settings
        self.log = state.logger
        self.wallet = wallet
        self.service = service or ExchangeService(
            self.settings, AptosClient.from_settings(self.settings)
        )
        self.guard = ValidationGuard(self.settings, wallet)
        self.builder = TransactionBuilder(self.settings)

        self.status = OperationState.IDLE
        self.inputs = FormInputs()
        self.account: WalletAccount | None = None
        self.last_outcome: TransactionOutcome | None = None
        self.snapshot: AssetSnapshot | None = None
        self._generation = 0

    @property
    def busy(self) -> bool:
        return self.status in IN_FLIGHT_STATES

    # --- wallet session ---

    async def connect_wallet(self) -> WalletAccount:
        """Prompt the wallet for authorization.

        Raises:
            OperationError: ``WalletUnavailable`` without an extension, or the
                classified wallet failure
        """
        if self.wallet is None:
            raise OperationError(
                ErrorKind.WALLET_UNAVAILABLE, "Wallet extension not found"
            )
        try:
            self.account = await self.wallet.connect()
        except Exception as e:
            raise classify_error(e) from e
        self.log.info("Connected to wallet: %s", self.account.address)
        return self.account

    async def restore_session(self) -> WalletAccount | None:
        """Pick up an existing authorization without prompting."""
        if self.wallet is None:
            return None
        try:
            if not await self.wallet.is_connected():
                return None
            self.account = await self.wallet.account()
            network = await self.wallet.network()
        except Exception as e:
            self.log.error("Error checking wallet connection: %s", e)
            return None
        self.log.debug("Wallet %s on network %s", self.account.address, network)
        return self.account

    async def disconnect_wallet(self) -> None:
        if self.wallet is None:
            return
        try:
            await self.wallet.disconnect()
        except Exception as e:
            self.log.error("Error disconnecting wallet: %s", e)
            return
        self.account = None
        await self.select_asset("")

    @property
    def is_admin(self) -> bool:
        return (
            self.account is not None
            and self.account.address.lower() == self.settings.admin_address.lower()
        )

    # --- read-only queries and previews ---

    async def current_price(self, asset_address: str) -> str | None:
        price = await self.service.fetch_exchange_price(asset_address)
        if price is None:
            return None
        return AssetSnapshot(asset_address, scaled_price=price).price_display

    async def current_balance(
        self, asset_address: str, owner: str | None = None
    ) -> str:
        owner = owner or (self.account.address if self.account else "")
        return await self.service.fetch_balance_display(owner, asset_address)

    async def select_asset(self, asset_address: str) -> AssetSnapshot | None:
        """Fetch balance and price for a new selection.

        Only the most recent selection is applied: a result that arrives
        after the selection changed again is discarded.
        """
        self._generation += 1
        generation = self._generation
        self.inputs.asset_address = asset_address

        if not asset_address or self.account is None:
            self.snapshot = None
            return None

        balance, price = await asyncio.gather(
            self.service.fetch_asset_balance(self.account.address, asset_address),
            self.service.fetch_exchange_price(asset_address),
        )
        if generation != self._generation:
            self.log.debug("Discarding stale preview for %s", asset_address)
            return None

        self.snapshot = AssetSnapshot(
            asset_address=asset_address, balance=balance, scaled_price=price
        )
        return self.snapshot

    def estimate_shares(self, amount: str | None = None) -> str:
        """Shares obtainable for ``amount`` USDC at the selected asset's price."""
        if self.snapshot is None or self.snapshot.scaled_price is None:
            return "0"
        value = self.inputs.amount if amount is None else amount
        return shares_from_investment(value, self.snapshot.scaled_price)

    def estimate_withdrawal_value(
        self,
        amount: str | None = None,
        withdraw_type: WithdrawType | None = None,
    ) -> str:
        """USDC value of a withdrawal at the selected asset's price."""
        if self.snapshot is None or self.snapshot.scaled_price is None:
            return "0"
        withdraw_type = withdraw_type or self.inputs.withdraw_type
        if withdraw_type == WithdrawType.FULL:
            value = self.snapshot.balance_display
        else:
            value = self.inputs.amount if amount is None else amount
        return value_from_shares(value, self.snapshot.scaled_price)

    # --- operations ---

    async def _run(
        self,
        label: str,
        prepare: Callable[[], Awaitable[TransactionRequest]],
        **inputs: Any,
    ) -> TransactionOutcome | None:
        if self.busy:
            self.log.warning(
                "Ignoring %s while another operation is %s", label, self.status.value
            )
            return None

        for field_name, value in inputs.items():
            setattr(self.inputs, field_name, value)

        self.status = OperationState.VALIDATING
        wallet = self.wallet
        if wallet is None:
            return self._fail(
                label,
                ValidationError(
                    ErrorKind.WALLET_UNAVAILABLE, "Wallet extension not found"
                ),
            )
        try:
            request = await prepare()
        except Exception as e:
            return self._fail(label, e)

        payload = request.to_payload()
        self.log.debug("%s payload: %s", label, payload)

        self.status = OperationState.SUBMITTING
        try:
            self.log.info("Requesting signature for %s...", label)
            tx_hash = await wallet.sign_and_submit_transaction(payload)
            self.log.info("%s transaction submitted: %s", label, tx_hash)

            self.status = OperationState.CONFIRMING
            await self.service.wait_for_confirmation(tx_hash)
        except Exception as e:
            return self._fail(label, e)

        self.status = OperationState.SUCCEEDED
        self.inputs.clear_amounts()
        self.last_outcome = TransactionOutcome(hash=tx_hash)
        self.log.info("%s confirmed: %s", label, tx_hash)
        return self.last_outcome

    def _fail(self, label: str, exc: Exception) -> TransactionOutcome:
        error = classify_error(exc)
        if isinstance(exc, ValidationError):
            self.log.warning("%s rejected: %s", label, error.message)
        else:
            self.log.error("%s failed: %r", label, exc)
        self.status = OperationState.FAILED
        self.last_outcome = TransactionOutcome(error=error)
        return self.last_outcome

    async def create_share_class(
        self,
        name: str,
        symbol: str,
        price: str,
        max_supply: str = "0",
        underlying_asset: str | None = None,
        decimals: int | None = None,
    ) -> TransactionOutcome | None:
        """Admin only. ``price`` is taken in contract units (no 1000x scaling)."""
        async def prepare() -> TransactionRequest:
            account = await self.guard.require_session()
            self.guard.require_admin(account, "create share classes")
            self.guard.require_text(name, "Please enter a share class name")
            self.guard.require_text(symbol, "Please enter a symbol")
            on_chain_price = self.guard.require_contract_price(
                price, "Please enter a valid price per share greater than 0"
            )
            underlying = self.guard.require_address(
                underlying_asset or self.settings.usdc_metadata, "underlying token"
            )
            supply = (
                "0" if max_supply.strip() in ("", "0") else floor_integer(max_supply)
            )
            share_decimals = self.guard.require_decimals(
                self.settings.share_class_decimals if decimals is None else decimals
            )
            return self.builder.create_share_class(
                CreateShareClass(
                    name=name,
                    symbol=symbol,
                    decimals=share_decimals,
                    underlying_asset=underlying,
                    price=on_chain_price,
                    max_supply=supply,
                )
            )

        return await self._run(
            "create_share_class",
            prepare,
            name=name,
            symbol=symbol,
            price=price,
            max_supply=max_supply,
        )

    async def invest(
        self, asset_address: str, amount: str
    ) -> TransactionOutcome | None:
        """Request issuance of shares for ``amount`` USDC."""
        async def prepare() -> TransactionRequest:
            account = await self.guard.require_session()
            target = self.guard.require_address(asset_address, "share class")
            value = self.guard.require_positive(
                amount, "Please enter a valid investment amount"
            )
            balance = await self.service.fetch_asset_balance(
                account.address, self.settings.usdc_metadata
            )
            if balance is None:
                self.log.warning("USDC balance unavailable, skipping balance check")
            else:
                available = balance.display(self.settings.display_precision)
                self.guard.require_within_balance(
                    value,
                    balance.human_amount,
                    f"Insufficient balance. Maximum available: {available}",
                )
            units = self.guard.require_units(
                to_on_chain_units(amount, self.settings.usdc_decimals)
            )
            return self.builder.invest(Invest(asset_address=target, amount=units))

        return await self._run(
            "request_issuance", prepare, asset_address=asset_address, amount=amount
        )

    async def withdraw(
        self,
        asset_address: str,
        amount: str = "",
        withdraw_type: WithdrawType = WithdrawType.PARTIAL,
    ) -> TransactionOutcome | None:
        """Request redemption of share tokens; FULL redeems the whole balance."""
        async def prepare() -> TransactionRequest:
            account = await self.guard.require_session()
            target = self.guard.require_address(asset_address, "share class")
            balance = self.guard.require_holdings(
                await self.service.fetch_asset_balance(account.address, target),
                "You don't have any tokens to withdraw from this share class",
            )

            if withdraw_type == WithdrawType.FULL:
                units = str(balance.amount)
            else:
                value = self.guard.require_positive(
                    amount, "Please enter a valid withdrawal amount"
                )
                self.guard.require_within_balance(
                    value,
                    balance.human_amount,
                    f"Insufficient balance. You have {balance.display()} tokens "
                    f"but are trying to withdraw {amount}",
                )
                units = self.guard.require_units(
                    to_on_chain_units(amount, balance.asset.decimals)
                )
            return self.builder.withdraw(Withdraw(asset_address=target, amount=units))

        return await self._run(
            "request_redemption",
            prepare,
            asset_address=asset_address,
            amount=amount,
            withdraw_type=withdraw_type,
        )

    async def update_price(
        self, asset_address: str, new_price: str
    ) -> TransactionOutcome | None:
        """Admin only. ``new_price`` is taken in contract units."""
        async def prepare() -> TransactionRequest:
            account = await self.guard.require_session()
            self.guard.require_admin(account, "update prices")
            target = self.guard.require_address(asset_address, "share class")
            price = self.guard.require_contract_price(
                new_price, "Please enter a valid price greater than 0"
            )
            return self.builder.update_price(
                UpdatePrice(asset_address=target, price=price)
            )

        return await self._run(
            "update_price_per_share",
            prepare,
            asset_address=asset_address,
            price=new_price,
        )
