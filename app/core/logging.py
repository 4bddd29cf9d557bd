import logging
import sys

from app.core.config import settings


def setup_logging() -> None:
    """Configure application logging."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    loggers_config = {
        "uvicorn": logging.INFO,
        "uvicorn.access": logging.INFO,
        "fastapi": logging.INFO,
        "apscheduler": logging.WARNING,
        "app": level,
    }

    for logger_name, lvl in loggers_config.items():
        logging.getLogger(logger_name).setLevel(lvl)
