# body_shape_engine/shape_engine/common/logging_utils.py
import logging
from pathlib import Path
from typing import Optional, Union
from .enums import LogLevel

_ROOT_LOGGER = "shape_engine"
_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Returns a child of the engine's root logger."""
    if name.startswith(_ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


def configure_logging(level: Union[LogLevel, str] = LogLevel.INFO,
                      log_file: Optional[str] = None) -> logging.Logger:
    """Attaches console (and optional file) handlers once to the root engine logger."""
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(_parse_level(level))

    # Avoid stacking handlers when called more than once.
    if getattr(logger, "_shape_engine_configured", False):
        return logger

    fmt = logging.Formatter(fmt=_FORMAT, datefmt="%H:%M:%S")

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_file:
        fh = logging.FileHandler(Path(log_file), encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    logger.propagate = False
    setattr(logger, "_shape_engine_configured", True)
    return logger


def _parse_level(level: Union[LogLevel, str]) -> int:
    name = level.value if isinstance(level, LogLevel) else str(level)
    value = logging.getLevelName(name.upper())
    if isinstance(value, int):
        return value
    return logging.INFO
