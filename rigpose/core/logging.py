"""Logging system with colored output and file logging"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "rigpose"

CONSOLE_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)-24s │ %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s"


class ColoredFormatter(logging.Formatter):
    """Level and logger name in ANSI colors."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    NAME_COLOR = "\033[34m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers share the record; color a copy
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        colored.name = f"{self.NAME_COLOR}{record.name}{self.RESET}"
        return super().format(colored)


def parse_level(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _console_handler(color: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    formatter_cls = ColoredFormatter if color else logging.Formatter
    handler.setFormatter(formatter_cls(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _file_handler(log_file: str, log_dir: str) -> logging.FileHandler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    handler = logging.FileHandler(directory / f"{log_file}_{stamp}.log")
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    color: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure the rigpose logger tree.

    Safe to call again: the level is updated and handlers are only added
    once per kind (one console, one log file).

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name prefix; a timestamp is appended
        log_dir: Directory for log files
        color: Force ANSI colors on or off; default is on for a terminal

    Returns:
        Root logger of the rigpose namespace
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(parse_level(level))

    kinds = {type(h) for h in root_logger.handlers}
    if logging.StreamHandler not in kinds:
        if color is None:
            color = sys.stdout.isatty()
        root_logger.addHandler(_console_handler(color))

    if log_file and logging.FileHandler not in kinds:
        handler = _file_handler(log_file, log_dir)
        root_logger.addHandler(handler)
        root_logger.info(f"Logging to file: {handler.baseFilename}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, e.g. get_logger("assets.loader")."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
