"""Tests for logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from migration_simulator.app_logging import ROOT_LOGGER_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


def test_rich_handler_installed():
    root = setup_logging("info")

    assert root.name == ROOT_LOGGER_NAME
    assert root.level == logging.INFO
    assert not root.propagate
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], RichHandler)


def test_plain_output(capsys):
    setup_logging("DEBUG", rich_output=False)

    get_logger("engine").debug("packed %d bins", 3)

    err = capsys.readouterr().err
    assert "DEBUG" in err
    assert "migration_simulator.engine: packed 3 bins" in err


def test_repeated_setup_replaces_handler():
    setup_logging("WARNING")
    root = setup_logging("ERROR", rich_output=False)

    assert len(root.handlers) == 1
    assert root.level == logging.ERROR


def test_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("LOUD")
