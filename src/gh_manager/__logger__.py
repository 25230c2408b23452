# pyright: standard

"""gh-manager: gh_manager/__logger__.py
A common logger for displaying through rich.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)
logger = logging.getLogger("gh_manager")


def create_logger(level: str | int = logging.INFO, log_file: str | Path | None = None) -> None:
    """Helper function to setup logging for the CLI.

    Console output always goes through rich; ``log_file`` additionally
    receives plain, timestamped records.
    """
    # pylint: disable=global-statement
    global cons, rich_handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    cons = Console(stderr=True)
    rich_handler = RichHandler(console=cons, show_path=False)
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(level)
    for handler in handlers:
        logger.addHandler(handler)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%H:%M:%S",
        level=level,
        handlers=handlers,
        force=True,
    )
