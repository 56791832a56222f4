"""
Logging for the boss timer engine.

Handlers live only on the package logger ``guild_boss_timer``. Module loggers
obtained through get_logger() stay at NOTSET with no handlers of their own, so
whatever setup_logging() installs on the package logger sees every record.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = 'guild_boss_timer'

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
FALLBACK_FORMAT = '%(levelname)s: %(message)s'


class FlushingStreamHandler(logging.StreamHandler):
    """Flushes after every record so output shows up when stdout is not a TTY."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def log_file_name(day: Optional[datetime] = None) -> str:
    return f"boss_timer_{(day or datetime.now()).strftime('%Y%m%d')}.log"


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(log_file, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = FlushingStreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    return handler


def _package_loggers():
    prefix = ROOT_LOGGER_NAME + '.'
    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(prefix) and isinstance(candidate, logging.Logger):
            yield candidate


def _reset_package_loggers(root: logging.Logger) -> None:
    """Drop every handler under the package and let module loggers inherit again."""
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for module_logger in _package_loggers():
        for handler in list(module_logger.handlers):
            module_logger.removeHandler(handler)
            handler.close()
        module_logger.setLevel(logging.NOTSET)
        module_logger.propagate = True


def setup_logging(log_dir: Union[str, Path, None] = None, log_level: int = logging.INFO) -> logging.Logger:
    """
    Send engine logs to a dated file and to stdout.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        log_dir: Directory for log files (defaults to "logs" in the user data directory)
        log_level: Logging level (default: INFO)

    Returns:
        The package logger
    """
    if log_dir is None:
        # config imports this module, so resolve the data directory lazily
        from .config import user_data_dir
        log_dir = user_data_dir() / "logs"
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name()

    root = logging.getLogger(ROOT_LOGGER_NAME)
    _reset_package_loggers(root)
    root.setLevel(log_level)
    root.addHandler(_file_handler(log_file, log_level))
    root.addHandler(_console_handler(log_level))

    root.info("=" * 80)
    root.info("Guild Boss Timer - Logging initialized")
    root.info(f"Log file: {log_file}")
    root.info("=" * 80)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger for a module, as a child of the package logger.

    Until setup_logging() runs (library use, tests) the package logger prints
    warnings and errors to stderr.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
        logger_name = name
    else:
        logger_name = f'{ROOT_LOGGER_NAME}.{name}'

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        fallback = logging.StreamHandler()
        fallback.setLevel(logging.WARNING)
        fallback.setFormatter(logging.Formatter(FALLBACK_FORMAT))
        root.addHandler(fallback)
        if root.level == logging.NOTSET:
            root.setLevel(logging.WARNING)

    return logging.getLogger(logger_name)
