"""Logging configuration shared by the command-line tools"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# SDK and transport loggers that flood INFO/DEBUG with per-request chatter
NOISY_LOGGERS = (
    'urllib3',
    'botocore',
    'boto3',
    's3transfer',
    'google',
    'yt_dlp',
)


def resolve_level(log_level: str = "INFO", verbose: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(str(log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    noisy_loggers: Iterable[str] = NOISY_LOGGERS,
) -> int:
    """Send tool output to stdout (and optionally a file); returns the level in effect.

    Third-party loggers listed in ``noisy_loggers`` are held at WARNING even in
    verbose mode so a debug run still shows the tool's own progress.
    """
    level = resolve_level(log_level, verbose)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [_handler(logging.StreamHandler(sys.stdout), level, formatter)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_handler(logging.FileHandler(log_path, encoding='utf-8'), level, formatter))

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
    return level
