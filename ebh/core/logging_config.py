"""
Logging setup

Console output plus two daily files under settings.LOG_DIR:
app_<date>.log (INFO and up) and error_<date>.log (ERROR and up).
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from ebh.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# chatty libraries, WARNING and up only
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "apscheduler")

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"


class ConsoleFormatter(logging.Formatter):
    """Level names coloured when the console is a terminal"""

    def __init__(self, use_color: bool):
        super().__init__(LOG_FORMAT, DATE_FORMAT)
        self.use_color = use_color

    def formatMessage(self, record):
        if not self.use_color or record.levelno not in LEVEL_COLORS:
            return super().formatMessage(record)
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{LEVEL_COLORS[record.levelno]}{record.levelname:<8}{RESET}"
        return super().formatMessage(colored)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[str] = None) -> Path:
    """Replace the root handlers; returns the log directory in use"""
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = date.today().isoformat()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter(use_color=sys.stdout.isatty()))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(console)
    root.addHandler(_file_handler(directory / f"app_{stamp}.log", logging.INFO))
    root.addHandler(_file_handler(directory / f"error_{stamp}.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"📋 Logging to {directory} at {logging.getLevelName(level)}")
    return directory


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
