import logging

import pytest

from clo_exchange.logger import TRACE, ColoredFormatter, resolve_level, setup_logging


@pytest.mark.parametrize(
    "name,expected",
    [("trace", TRACE), ("DEBUG", logging.DEBUG), ("warning", logging.WARNING)],
)
def test_resolve_level(name, expected):
    assert resolve_level(name) == expected


def test_resolve_level_unknown_falls_back_to_info(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert resolve_level("LOUD") == logging.INFO
    assert resolve_level() == logging.INFO


def test_setup_logging_quiets_urllib3():
    setup_logging("DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_colored_formatter_restores_levelname():
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", None, None)
    output = ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert "\033[31m" in output
    assert record.levelname == "ERROR"
