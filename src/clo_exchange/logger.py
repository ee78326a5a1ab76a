"""Simple logging configuration for clo-exchange."""

import logging
import os
import sys

# Define TRACE level (lower than DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class ColoredFormatter(logging.Formatter):
    """Colored log formatter using ANSI escape codes."""

    COLORS = {
        "TRACE": "\033[90m",  # Dark gray
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[levelname]}{self.BOLD}{levelname}{self.RESET}"
            )

        result = super().format(record)

        record.levelname = levelname

        return result


def resolve_level(log_level: str | None = None) -> int:
    """Translate a level name (including TRACE) to its numeric value.

    Unknown names fall back to INFO.
    """
    name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if name == "TRACE":
        return TRACE
    return getattr(logging, name, logging.INFO)


def setup_logging(log_level: str | None = None) -> None:
    """Configure logging for the application.

    Uses ``log_level`` when given, otherwise the LOG_LEVEL environment
    variable (defaults to INFO). HTTP client loggers are kept at WARNING
    unless TRACE is requested.
    """
    level = resolve_level(log_level)

    handler = logging.StreamHandler(sys.stderr)
    formatter = ColoredFormatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    if level == TRACE:
        logging.getLogger("urllib3").setLevel(TRACE)
        logging.getLogger("backoff").setLevel(TRACE)
    else:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module.

    Args:
        name: Usually __name__ of the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
