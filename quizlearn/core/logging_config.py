"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; entry points call
``setup_logging`` once. Console output goes through rich.
"""

from typing import Optional
from pathlib import Path
import logging

from rich.console import Console
from rich.logging import RichHandler

from quizlearn.core.config import settings

console = Console(stderr=True)


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """
    Configure root logging from settings with rich console output.

    Args:
        level: Override for ``settings.LOG_LEVEL`` (e.g. "DEBUG")
        log_file: Optional file that also receives plain ``LOG_FORMAT`` lines
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    # Clear any existing handlers
    logging.getLogger().handlers = []

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=True
    )
    rich_handler.setLevel(log_level)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[rich_handler]
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)
