from __future__ import annotations
import logging
from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "WARNING") -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger("guided_cookbook")
    package_logger.setLevel(level.upper())
    package_logger.handlers = [handler]
