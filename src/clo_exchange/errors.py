"""Error taxonomy surfaced to callers and the classifier for boundary failures."""

from __future__ import annotations

import logging
from enum import Enum

from .constants import WALLET_UNSUPPORTED_METHOD, WALLET_USER_REJECTED

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    WALLET_UNAVAILABLE = "WalletUnavailable"
    WALLET_NOT_CONNECTED = "WalletNotConnected"
    WRONG_NETWORK = "WrongNetwork"
    USER_REJECTED = "UserRejected"
    UNSUPPORTED_METHOD = "UnsupportedMethod"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INVALID_INPUT = "InvalidInput"
    UNAUTHORIZED = "Unauthorized"
    CHAIN_ERROR = "ChainError"


USER_REJECTED_MESSAGE = "Transaction rejected by user"
UNSUPPORTED_METHOD_MESSAGE = "The requested method is not supported by the wallet"
INSUFFICIENT_BALANCE_MESSAGE = "Insufficient balance for this transaction"
GENERIC_FAILURE_MESSAGE = "Transaction failed. Please check the logs for details."


class OperationError(Exception):
    """A classified failure, safe to show to the operator."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"OperationError({self.kind.value}, {self.message!r})"


class InvalidAmount(OperationError):
    """Raised when a human-entered amount cannot be converted."""

    def __init__(self, message: str):
        super().__init__(ErrorKind.INVALID_INPUT, message)


class WalletError(Exception):
    """Rejection reported by the wallet extension as ``{code, message}``."""

    def __init__(self, code: int | None = None, message: str | None = None):
        super().__init__(message or f"Wallet error (code {code})")
        self.code = code
        self.message = message


class ChainClientError(Exception):
    """Raised by the chain client for failed or malformed chain responses."""

    pass


def _message_of(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str):
        return message
    return str(exc)


def classify_error(exc: BaseException) -> OperationError:
    """Map a failure from the wallet/chain boundary into the closed taxonomy.

    Args:
        exc: Whatever was raised while submitting or confirming

    Returns:
        An OperationError whose message is suitable for display

    Wallet codes take priority over any accompanying message text, so a
    4001 rejection is always reported as ``UserRejected``.
    """
    if isinstance(exc, OperationError):
        return exc

    code = getattr(exc, "code", None)
    if code == WALLET_USER_REJECTED:
        return OperationError(ErrorKind.USER_REJECTED, USER_REJECTED_MESSAGE)
    if code == WALLET_UNSUPPORTED_METHOD:
        return OperationError(
            ErrorKind.UNSUPPORTED_METHOD, UNSUPPORTED_METHOD_MESSAGE
        )

    message = _message_of(exc)
    if "insufficient balance" in message.lower():
        return OperationError(
            ErrorKind.INSUFFICIENT_BALANCE, INSUFFICIENT_BALANCE_MESSAGE
        )
    if message:
        return OperationError(ErrorKind.CHAIN_ERROR, f"Error: {message}")

    logger.debug("Unclassified failure without message: %r", exc)
    return OperationError(ErrorKind.CHAIN_ERROR, GENERIC_FAILURE_MESSAGE)
