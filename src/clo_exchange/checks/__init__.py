from __future__ import annotations

from .guards import ValidationError, ValidationGuard

__all__ = ["ValidationError", "ValidationGuard"]
