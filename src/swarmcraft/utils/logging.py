"""Logger setup for command-line runs.

Library code only calls ``logging.getLogger(__name__)``; handlers are
installed here, once, by the CLI.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "swarmcraft"


def initialize_logger(
    log_folder: str = "logs",
    workspace_dir: Union[str, Path] = "agent_workspace",
    level: Union[int, str] = "INFO",
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach a rich terminal handler and a per-run log file to the package logger.

    The file lives at ``<workspace_dir>/<log_folder>/<log_folder>_<uuid>.log``.
    If it cannot be created the terminal handler still works.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(
        RichHandler(console=console or Console(stderr=True), show_path=False, rich_tracebacks=True)
    )

    log_dir = Path(workspace_dir) / log_folder
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            log_dir / f"{log_folder}_{uuid.uuid4()}.log", encoding="utf-8"
        )
    except OSError as e:
        logger.warning("File logging disabled, cannot write to %s: %s", log_dir, e)
    else:
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger
