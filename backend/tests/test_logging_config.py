import logging
import sys
from logging.handlers import TimedRotatingFileHandler

import pytest

from launchkit.logging_config import setup_logging


@pytest.fixture
def restore_root_logger(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_console_and_rotating_file(tmp_path, restore_root_logger):
    logger = setup_logging(tmp_path / "logs")

    file_handlers = [h for h in logger.handlers if isinstance(h, TimedRotatingFileHandler)]
    assert len(logger.handlers) == 2
    assert len(file_handlers) == 1
    assert file_handlers[0].backupCount == 30
    assert (tmp_path / "logs").is_dir()
    assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR


def test_repeated_setup_does_not_duplicate_handlers(tmp_path, restore_root_logger):
    setup_logging(tmp_path)
    logger = setup_logging(tmp_path)

    assert len(logger.handlers) == 2
