from __future__ import annotations

import os
from typing import Any

import pytest

from clo_exchange.constants import ADMIN_ADDRESS
from clo_exchange.settings import ExchangeSettings
from clo_exchange.wallet import BaseWallet, WalletAccount


class FakeWallet(BaseWallet):
    """In-memory stand-in for the browser extension."""

    def __init__(
        self,
        address: str = ADMIN_ADDRESS,
        network: str = "Mainnet",
        connected: bool = True,
        tx_hash: str = "0xhash",
        sign_error: Exception | None = None,
    ):
        self.address = address
        self.network_name = network
        self.connected = connected
        self.tx_hash = tx_hash
        self.sign_error = sign_error
        self.submitted: list[dict[str, Any]] = []

    async def connect(self) -> WalletAccount:
        self.connected = True
        return WalletAccount(address=self.address, public_key="0xpub")

    async def is_connected(self) -> bool:
        return self.connected

    async def account(self) -> WalletAccount:
        return WalletAccount(address=self.address, public_key="0xpub")

    async def network(self) -> str:
        return self.network_name

    async def sign_and_submit_transaction(self, payload: dict[str, Any]) -> str:
        self.submitted.append(payload)
        if self.sign_error is not None:
            raise self.sign_error
        return self.tx_hash

    async def disconnect(self) -> None:
        self.connected = False


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep local config files and CLO_EXCHANGE_* variables out of tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in list(os.environ):
        if name.startswith("CLO_EXCHANGE_"):
            monkeypatch.delenv(name)
    monkeypatch.delenv("CLO_EXCHANGE_CONFIG", raising=False)


@pytest.fixture
def settings() -> ExchangeSettings:
    return ExchangeSettings(
        node_url="https://node.example/v1",
        indexer_url="https://indexer.example/graphql",
    )


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def make_wallet():
    return FakeWallet
