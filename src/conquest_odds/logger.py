import logging
import os

from .config import ENV_LOG_LEVEL

logging.basicConfig(
    format='%(asctime)s %(levelname)-8s %(filename)-15s %(message)s',
    datefmt='%Y-%m-%d,%H:%M:%S',
    level=logging.INFO)


def log_level(default=logging.INFO):
    """Level named by CONQUEST_LOG_LEVEL (e.g. DEBUG shows table-miss evaluations), or default."""
    name = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"{ENV_LOG_LEVEL} must be a logging level name, got {name!r}")
    return level


class ConquestLogger:
    def __init__(self, name, level=None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(log_level() if level is None else level)

    def get_logger(self):
        return self.logger
