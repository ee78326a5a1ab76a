"""Chain-backed read queries used for previews and amount scaling."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..clients.aptos import AptosClient
from ..constants import APTOS_COIN_STORE, APTOS_DECIMALS, EXCHANGE_PRICE
from ..domain import Asset, AssetBalance
from ..errors import ChainClientError
from ..settings import ExchangeSettings
from ..units import format_units

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletBalances:
    """Native coin and stablecoin balances shown next to the wallet."""

    apt: str
    usdc: str


class ExchangeService:
    """Read-only queries against the exchange module and the indexer.

    Query failures are logged and reported as "no data" (``None`` or ``"0"``)
    so a flaky node never blocks the form; submissions do not go through here.
    """

    def __init__(self, settings: ExchangeSettings, client: AptosClient):
        self.settings = settings
        self.client = client

    def is_stablecoin(self, asset_address: str) -> bool:
        return asset_address.lower() == self.settings.usdc_metadata.lower()

    async def fetch_exchange_price(self, asset_address: str) -> int | None:
        """Scaled on-chain price per share, or None for USDC/unknown assets."""
        if not asset_address or self.is_stablecoin(asset_address):
            return None
        try:
            return await self.client.view_integer(
                self.settings.function_id(EXCHANGE_PRICE), [asset_address]
            )
        except ChainClientError as e:
            logger.error("Error fetching exchange price for %s: %s", asset_address, e)
            return None

    async def get_asset_metadata(self, asset_address: str) -> Asset | None:
        try:
            metadata = await self.client.get_fungible_asset_metadata(asset_address)
        except ChainClientError as e:
            logger.error("Error fetching asset metadata for %s: %s", asset_address, e)
            return None
        if metadata is None:
            return None
        decimals = metadata.get("decimals")
        if decimals is None:
            decimals = self.settings.default_asset_decimals
        return Asset(address=asset_address, decimals=int(decimals))

    async def resolve_asset(self, asset_address: str) -> Asset:
        """Asset with its decimals: 6 for USDC, indexer metadata otherwise."""
        if self.is_stablecoin(asset_address):
            return Asset(address=asset_address, decimals=self.settings.usdc_decimals)
        asset = await self.get_asset_metadata(asset_address)
        if asset is None:
            logger.debug(
                "No metadata for %s, assuming %d decimals",
                asset_address,
                self.settings.default_asset_decimals,
            )
            return Asset(
                address=asset_address,
                decimals=self.settings.default_asset_decimals,
            )
        return asset

    async def fetch_asset_balance(
        self, owner: str, asset_address: str
    ) -> AssetBalance | None:
        """Raw balance of ``asset_address`` for ``owner``; None on query failure."""
        if not owner or not asset_address:
            return None
        try:
            amount = await self.client.get_fungible_asset_balance(owner, asset_address)
        except ChainClientError as e:
            logger.error("Error fetching asset balance: %s", e)
            return None
        asset = await self.resolve_asset(asset_address)
        return AssetBalance(asset=asset, amount=amount or 0)

    async def fetch_balance_display(self, owner: str, asset_address: str) -> str:
        balance = await self.fetch_asset_balance(owner, asset_address)
        if balance is None:
            return "0"
        return balance.display(self.settings.display_precision)

    async def fetch_wallet_balances(self, owner: str) -> WalletBalances:
        """APT (coin store, 4 digits) and USDC (fungible asset, 2 digits)."""

        async def _apt() -> str:
            try:
                resource = await self.client.get_account_resource(
                    owner, APTOS_COIN_STORE
                )
                return format_units(resource["coin"]["value"], APTOS_DECIMALS, 4)
            except (ChainClientError, KeyError, TypeError) as e:
                logger.error("Error fetching APT balance: %s", e)
                return "0"

        async def _usdc() -> str:
            balance = await self.fetch_asset_balance(
                owner, self.settings.usdc_metadata
            )
            if balance is None:
                return "0"
            return balance.display(2)

        apt, usdc = await asyncio.gather(_apt(), _usdc())
        return WalletBalances(apt=apt, usdc=usdc)

    async def wait_for_confirmation(self, tx_hash: str) -> None:
        logger.info("Waiting for transaction confirmation: %s", tx_hash)
        await self.client.wait_for_transaction(tx_hash)
        logger.info("Transaction confirmed: %s", tx_hash)
