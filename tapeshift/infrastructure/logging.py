import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from rich.logging import RichHandler

LOGGER_NAME = "tapeshift"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configures the package logger; with debug, records are mirrored to the terminal."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    if debug:
        console_handler = RichHandler(show_path=False, rich_tracebacks=True)
        console_handler.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)
    elif not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


@contextmanager
def session_log(log_file: Path) -> Iterator[logging.Handler]:
    """Appends package log records to the session log while the block runs."""
    logger = logging.getLogger(LOGGER_NAME)
    handler = logging.FileHandler(log_file, mode="a")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
        handler.close()


def append_section(log_file: Path, title: str):
    """Writes a section header separating the output of one external command from the next."""
    with open(log_file, "a") as f:
        f.write(f"\n---------------- {title} ----------------\n")
