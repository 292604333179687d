"""Logging setup shared by the services and scripts."""
import logging
import sys

_CONFIGURED_FLAG = "_freelance_tracker_configured"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO", debug: bool = False) -> logging.Logger:
    """
    Install a single stdout handler on the root logger.

    Repeated calls adjust the level but never add a second handler.
    """
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not getattr(root_logger, _CONFIGURED_FLAG, False):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        setattr(root_logger, _CONFIGURED_FLAG, True)
    root_logger.setLevel(resolved)
    return logging.getLogger("freelance_tracker")
