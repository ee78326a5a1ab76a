"""Capability interface for the browser wallet extension."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WalletAccount:
    """Account exposed by the wallet."""

    address: str
    public_key: str


class BaseWallet(ABC):
    """Request/response contract of the injected wallet object.

    Implementations wrap the real extension bridge; tests use an in-memory
    fake. Rejections must be raised as :class:`clo_exchange.errors.WalletError`
    carrying the wallet's ``code`` and ``message``.
    """

    @abstractmethod
    async def connect(self) -> WalletAccount:
        """Prompt the user to authorize this site."""
        ...

    @abstractmethod
    async def is_connected(self) -> bool: ...

    @abstractmethod
    async def account(self) -> WalletAccount: ...

    @abstractmethod
    async def network(self) -> str:
        """Name of the network the wallet is currently pointed at."""
        ...

    @abstractmethod
    async def sign_and_submit_transaction(self, payload: dict[str, Any]) -> str:
        """Ask the user to sign ``payload`` and submit it.

        Args:
            payload: ``{"function", "type_arguments", "arguments"}``

        Returns:
            The pending transaction hash
        """
        ...

    async def disconnect(self) -> None:
        """Revoke authorization; wallets without support ignore the call."""
        return None
