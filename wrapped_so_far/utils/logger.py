"""
Logging for Wrapped-So-Far

The console only shows what the listener needs to see: warnings, errors and
records flagged as user-facing, or every record in verbose mode. Everything
else goes to the optional rotating log file.
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style


colorama.init()

USER_FACING = 'console_output'
CONSOLE_LOGGER_SUFFIX = '.console'

LOG_LINE = '%(asctime)s %(levelname)-8s [%(name)s] %(message)s'
LOG_DATE = '%Y-%m-%d %H:%M:%S'

SIZE_UNITS = {'TB': 1024 ** 4, 'GB': 1024 ** 3, 'MB': 1024 ** 2, 'KB': 1024, 'B': 1}

# HTTP client chatter is never interesting to a listener
QUIET_LOGGERS = ('aiohttp', 'asyncio')


class ConsoleMessageFilter(logging.Filter):
    """Pass warnings and above, plus records meant for the listener; everything when verbose"""

    def __init__(self, verbose: bool = False):
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        return (
            self.verbose
            or record.levelno >= logging.WARNING
            or getattr(record, USER_FACING, False)
            or record.name.endswith(CONSOLE_LOGGER_SUFFIX)
        )


class ColoredFormatter(logging.Formatter):
    """Plain message text, tinted by severity when colors are enabled"""

    TINTS = {
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_colors: bool = True):
        super().__init__('%(message)s')
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        tint = self.TINTS.get(record.levelno) if self.use_colors else None
        return f"{tint}{text}{Style.RESET_ALL}" if tint else text


def parse_size(size_str: str) -> int:
    """
    Convert a size such as "10MB" or "1.5 GB" to bytes

    Raises:
        ValueError: If the string is not a number followed by a known unit
    """
    text = size_str.strip().upper()
    for unit, factor in SIZE_UNITS.items():
        if text.endswith(unit):
            number = text[:-len(unit)].strip()
            try:
                return int(float(number) * factor)
            except ValueError:
                break
    raise ValueError(f"Invalid size format: {size_str}")


def _console_handler(colored: bool, verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(ConsoleMessageFilter(verbose))
    handler.setFormatter(ColoredFormatter(use_colors=colored))
    return handler


def _file_handler(path: Path, level: int, max_size: str, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=parse_size(max_size), backupCount=backup_count, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_LINE, datefmt=LOG_DATE))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3,
    verbose: bool = False
) -> None:
    """
    Replace the root handlers with a console handler and an optional file handler

    Args:
        level: Threshold for the log file
        log_file: Log file path, or None for no file
        console_output: Show user-facing messages on stderr
        colored_output: Tint console warnings and errors
        max_size: Rotation size, e.g. "10MB"
        backup_count: Rotated files to keep
        verbose: Also show debug and info records on the console
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if console_output:
        root.addHandler(_console_handler(colored_output, verbose))
    if log_file:
        file_level = getattr(logging, level.upper(), logging.INFO)
        root.addHandler(_file_handler(Path(log_file), file_level, max_size, backup_count))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging ready (level={level}, file={log_file or 'none'})")


def log_file_path() -> Optional[Path]:
    """Path of the active rotating log file, if any"""
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def get_logger(name: str) -> logging.Logger:
    """
    Module logger with a ``console_info`` method for user-facing progress lines
    """
    logger = logging.getLogger(name)
    if not hasattr(logger, 'console_info'):
        logger.console_info = lambda message: logger.info(message, extra={USER_FACING: True})
    return logger


def configure_from_settings(settings=None, verbose: bool = False) -> None:
    """Apply the ``logging`` section of the settings; verbose opens the console to every record"""
    if settings is None:
        from ..config.settings import get_settings
        settings = get_settings()

    config = settings.logging
    log_file = None
    if config.file:
        log_file = Path(config.file)
        if not log_file.is_absolute():
            log_file = settings.get_config_directory() / log_file

    setup_logging(
        level=config.level,
        log_file=str(log_file) if log_file else None,
        console_output=config.console_output,
        colored_output=config.colored_output,
        max_size=config.max_size,
        backup_count=config.backup_count,
        verbose=verbose
    )


class OperationLogger:
    """
    Context manager timing one named operation

    Logs when the block starts and how long it took, or the exception that
    ended it. The exception is never suppressed.
    """

    def __init__(self, logger: logging.Logger, name: str):
        self.logger = logger
        self.name = name
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return 0.0 if self._started is None else time.monotonic() - self._started

    def __enter__(self) -> 'OperationLogger':
        self._started = time.monotonic()
        self.logger.info(f"{self.name} started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None:
            self.logger.info(f"{self.name} finished in {self.elapsed:.2f}s")
        elif isinstance(exc_val, Exception):
            self.logger.error(f"{self.name} failed after {self.elapsed:.2f}s: {exc_val}")
        return False
