import logging
import sys

from .config import LOG_LEVEL


def setup_logger(name: str, level=LOG_LEVEL):
    formatter = logging.Formatter("%(asctime)s | %(name)s | %(levelname)s | %(message)s")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.hasHandlers():
        logger.addHandler(handler)

    return logger


logger = setup_logger("studyspot")
