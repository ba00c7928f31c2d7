import logging
import logging.config

from yaml import safe_load

from bankcards.config import settings


def configure_logging() -> None:
    """Configure logging from settings (LOG_CONFIG wins over LOG_LEVEL/LOG_FORMAT)."""
    if settings.LOG_CONFIG is None:
        logging.basicConfig(
            level=settings.LOG_LEVEL,
            format=settings.LOG_FORMAT,
            handlers=[logging.StreamHandler()],
        )
    else:
        with open(settings.LOG_CONFIG, "r") as f:
            logging_config = safe_load(f.read())
        logging.config.dictConfig(logging_config)
