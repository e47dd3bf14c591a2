import logging
import os
import threading
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .models import TableChecksum

LOGGER_NAME = "md5tabsum"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# instance loglevel from the config file -> logging level
INSTANCE_LOG_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def setup_logging(log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Configure the md5tabsum loggers.

    Every message goes to the log file, errors are also shown on stderr.
    Calling it again replaces the handlers of a previous call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(fh)

    ch = RichHandler(
        console=Console(stderr=True),
        level=logging.ERROR,
        show_path=False,
        markup=False,
    )
    logger.addHandler(ch)
    return logger


class InstanceLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the instance id."""

    def process(self, msg, kwargs):
        return f"[{self.extra['instance_id']}] {msg}", kwargs


def instance_logger(instance_id: str, loglevel: int = 1) -> InstanceLogAdapter:
    logger = logging.getLogger(f"{LOGGER_NAME}.instance.{instance_id}")
    logger.setLevel(INSTANCE_LOG_LEVELS.get(loglevel, logging.INFO))
    return InstanceLogAdapter(logger, {"instance_id": instance_id})


class ChecksumPrinter:
    """Writes one `instance.table:checksum` line per table to stdout.

    Runners of several instances print concurrently, the lock keeps lines whole.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(soft_wrap=True, highlight=False)
        self._lock = threading.Lock()

    def __call__(self, checksum: TableChecksum):
        with self._lock:
            self.console.print(str(checksum), markup=False, emoji=False)
