import logging
from contextlib import contextmanager
from typing import Iterator

LOGGER_NAME = __name__.partition(".")[0]
logger = logging.getLogger(LOGGER_NAME)


def set_debug(enabled: bool = True) -> None:
    logger.setLevel(logging.DEBUG if enabled else logging.WARNING)


@contextmanager
def disable_logger(name: str = LOGGER_NAME) -> Iterator[None]:
    """Temporarily silence a logger, e.g. while dumping packet internals"""
    target = logging.getLogger(name)
    was_disabled = target.disabled
    target.disabled = True
    try:
        yield
    finally:
        target.disabled = was_disabled
