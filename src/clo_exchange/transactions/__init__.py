from __future__ import annotations

from .builder import TransactionBuilder, encode_bytes

__all__ = ["TransactionBuilder", "encode_bytes"]
