import logging

from cce_driver.core.config import LOG_LEVEL
from cce_driver.core.exceptions import InvalidOptionError


def setup_logger(logger_name: str) -> logging.Logger:
    logger = logging.getLogger(logger_name)
    logger.setLevel(LOG_LEVEL)
    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                  datefmt='%d-%b-%y %H:%M:%S')
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level=LOG_LEVEL)
    console_handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(console_handler)

    return logger


def parse_labels(labels: list[str]) -> dict[str, str]:
    parsed = {}

    for label in labels:
        parts = label.split('=')
        if len(parts) != 2 or not parts[0]:
            raise InvalidOptionError(f'invalid label value: {label}')

        key, value = parts
        parsed[key] = value

    return parsed
