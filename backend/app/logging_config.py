"""Logging setup with Rich for readable terminal output."""

import logging

from rich.logging import RichHandler

NOISY_LOGGERS = [
    "urllib3.connectionpool",
    "requests.packages.urllib3.connectionpool",
    "httpx",
]


def setup_logging(log_level: str = "INFO") -> None:
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        handlers=[rich_handler],
        format="%(message)s",
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
