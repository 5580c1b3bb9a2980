import logging

import pytest

from pcr_tracker import logging_config


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_console_only_without_service_name(restore_root_logger):
    logging_config.setup_logging()

    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0], logging.StreamHandler)
    assert restore_root_logger.level == logging.INFO


def test_file_handler_written_to_log_directory(restore_root_logger, monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIRECTORY", str(tmp_path / "logs"))

    logging_config.setup_logging("pcr_tracker")
    logging.getLogger("pcr_tracker.test").info("hello")

    assert (tmp_path / "logs" / "pcr_tracker.log").exists()
    assert len(restore_root_logger.handlers) == 2


def test_log_to_file_can_be_disabled(restore_root_logger, monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_TO_FILE", "false")
    monkeypatch.setenv("LOG_DIRECTORY", str(tmp_path))

    logging_config.setup_logging("pcr_tracker")

    assert len(restore_root_logger.handlers) == 1


def test_log_level_from_environment(restore_root_logger, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    logging_config.setup_logging()

    assert restore_root_logger.level == logging.DEBUG
    assert logging.getLogger("aiohttp").level == logging.WARNING
