"""Logging setup: rich console output plus a rotating file in the data dir."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler

from flashdeck.config import settings

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None, log_path: Path | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)
    if any(getattr(h, "_flashdeck", False) for h in root.handlers):
        return

    console = RichHandler(show_path=False, rich_tracebacks=True)
    console.setLevel(logging.WARNING)
    console._flashdeck = True
    root.addHandler(console)

    log_path = log_path or settings.log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path, maxBytes=2 * 1024 * 1024, backupCount=2, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    file_handler._flashdeck = True
    root.addHandler(file_handler)
