"""Tests for console logging setup."""

import logging

import pytest

from floor_arbitrage import logging_config


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    names = ("floor_arbitrage", "aiohttp.access", "aiohttp.client")
    named = {n: logging.getLogger(n).level for n in names}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, named_level in named.items():
        logging.getLogger(name).setLevel(named_level)


def test_setup_installs_single_console_handler():
    logging_config.setup()
    logging_config.setup()

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.INFO
    formatter = root.handlers[0].formatter
    assert formatter._fmt == "%(asctime)s | %(levelname)-7s | %(message)s"
    assert formatter.datefmt == "%H:%M:%S"


def test_setup_quiets_access_log():
    logging_config.setup()
    assert logging.getLogger("aiohttp.access").level == logging.WARNING
    assert logging.getLogger("floor_arbitrage").level == logging.INFO


def test_setup_minimal():
    logging_config.setup_minimal()
    assert logging.getLogger().level == logging.WARNING


def test_setup_debug():
    logging_config.setup_debug()
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("aiohttp.access").level == logging.DEBUG
    assert logging.getLogger("floor_arbitrage").level == logging.DEBUG
