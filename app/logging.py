"""Logging setup: a single stdout handler shared by the app and uvicorn."""
import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

APP_LOGGERS = ("storefront", "app")
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
# log every outgoing Paystack request at INFO
CHATTY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: int | str = logging.INFO, format_string: str = DEFAULT_FORMAT) -> None:
    if isinstance(level, str):
        level = level.strip().upper()
    logging.basicConfig(level=level, format=format_string, stream=sys.stdout, force=True)
    for name in APP_LOGGERS + UVICORN_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
