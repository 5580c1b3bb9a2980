"""
Centralized logging configuration for the PCR tracker.

Provides a single setup_logging function that configures:
- Console output to stdout
- Optional file output to logs/{service_name}.log (fresh file per start
  unless LOG_APPEND=1)
- Quieter third-party loggers
"""

import logging
import logging.handlers
import os
import sys
import threading
from pathlib import Path
from typing import Optional

from .config import env_bool, env_str

# Thread-safe lock for logging configuration
_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)
_LOG_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(default: int) -> int:
    name = env_str("LOG_LEVEL")
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def _close_handlers(logger: logging.Logger) -> None:
    """Close all handlers for a logger, logging any errors."""
    for handler in list(logger.handlers):
        try:
            handler.close()
        except OSError as exc:  # Best-effort cleanup
            _MODULE_LOGGER.debug("Handler close failed for logger '%s': %s", logger.name, exc)
    logger.handlers = []


def _build_console_handler(level: int) -> logging.Handler:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    console_handler.setLevel(level)
    return console_handler


def _resolve_log_directory(project_root: Path) -> Path:
    configured = env_str("LOG_DIRECTORY")
    if configured:
        return Path(configured).expanduser()
    return project_root / "logs"


def _build_file_handler(service_name: str, project_root: Path) -> logging.Handler:
    logs_dir = _resolve_log_directory(project_root)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"{service_name}.log"
    file_mode = "a" if os.getenv("LOG_APPEND") == "1" else "w"

    file_handler = logging.handlers.WatchedFileHandler(log_path, mode=file_mode)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    file_handler.setLevel(logging.INFO)
    return file_handler


def _suppress_noisy_third_parties() -> None:
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def setup_logging(service_name: Optional[str] = None, *, log_to_file: Optional[bool] = None) -> None:
    """Configure root logging for the application.

    Args:
        service_name: Names the log file; no file handler when omitted
        log_to_file: Override of the LOG_TO_FILE environment switch
    """
    with _config_lock:
        root_logger = logging.getLogger()
        _close_handlers(root_logger)

        level = _resolve_level(logging.INFO)
        root_logger.addHandler(_build_console_handler(level))

        write_file = log_to_file if log_to_file is not None else env_bool("LOG_TO_FILE", or_value=True)
        if service_name and write_file:
            project_root = Path.cwd()
            root_logger.addHandler(_build_file_handler(service_name, project_root))

        root_logger.setLevel(level)
        _suppress_noisy_third_parties()


__all__ = ["setup_logging"]
