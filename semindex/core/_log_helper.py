import logging
from typing import Any

LOGGER_NAME = "semindex"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def debug(msg: str, *args: Any, **kwargs: Any) -> None:
    logger.debug(msg, *args, **kwargs)


def info(msg: str, *args: Any, **kwargs: Any) -> None:
    logger.info(msg, *args, **kwargs)


def warn(msg: str, *args: Any, **kwargs: Any) -> None:
    logger.warning(msg, *args, **kwargs)
