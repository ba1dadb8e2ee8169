"""Log file setup: everything to agent.log, errors also to errors.log."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import get_log_dir, get_log_level, is_verbose

LOG_FORMAT = "[%(asctime)s] %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5


def configure_logging(
    log_dir: str | Path | None = None,
    level: str | None = None,
    verbose: bool | None = None,
) -> logging.Logger:
    """Attach rotating file handlers to the ``agent_workspace`` logger."""
    log_dir = Path(log_dir) if log_dir else get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger("agent_workspace")
    logger.setLevel(level or get_log_level())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    main_handler = RotatingFileHandler(
        log_dir / "agent.log", maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    main_handler.setFormatter(formatter)
    logger.addHandler(main_handler)

    error_handler = RotatingFileHandler(
        log_dir / "errors.log", maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    logger.addHandler(error_handler)

    if verbose if verbose is not None else is_verbose():
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger
