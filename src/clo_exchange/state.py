"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .settings import ExchangeSettings


@dataclass
class AppState:
    """Container for session-wide settings and dependencies.

    Passed to the controller and CLI commands to avoid global state and enable testing.
    """

    settings: ExchangeSettings
    logger: logging.Logger
