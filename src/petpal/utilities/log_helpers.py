import contextlib
import logging

LOG_FMT = "%(asctime)s %(levelname)-8s [%(name)s:%(lineno)d] %(message)s"


def basic_log_config(level: int | str = logging.WARNING, **kwargs) -> None:
    """Configure the root logger for applications embedding petpal.

    ``level`` may be a number or a level name such as "debug".
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FMT, **kwargs)


@contextlib.contextmanager
def suppress_logs(logger: logging.Logger | str):
    """Temporarily disable a logger (by object or name), restoring its previous state on exit."""
    if isinstance(logger, str):
        logger = logging.getLogger(logger)
    previous = logger.disabled
    logger.disabled = True
    try:
        yield logger
    finally:
        logger.disabled = previous
