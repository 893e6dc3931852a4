# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_configured = False

FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party loggers that are only interesting when debugging the client itself.
NOISY_LOGGERS = ("urllib3", "asyncio")


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    # Reports go to stdout, so console logging defaults to stderr.
    stream_name = os.getenv("LOG_STREAM", "stderr").strip().lower()
    stream = sys.stdout if stream_name == "stdout" else sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    log_file = os.getenv("LOG_FILE", "/data/storefront.log")
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
        backupCount=int(os.getenv("LOG_BACKUPS", "3")),
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_to_file = os.getenv("LOG_TO_FILE", "true").lower() == "true"
    log_to_stdout = os.getenv("LOG_TO_STDOUT", "true").lower() == "true"

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(FORMAT)

    # Avoid duplicate handlers
    if not root.handlers:
        if log_to_stdout:
            root.addHandler(_console_handler(level, formatter))
        if log_to_file:
            try:
                root.addHandler(_file_handler(level, formatter))
            except OSError as e:
                root.warning("Failed to initialize file logging: %s", e)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def set_level(level_name: str) -> None:
    """Override the configured level, e.g. from a command-line flag."""
    setup_logging()
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        handler.setLevel(level)


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
