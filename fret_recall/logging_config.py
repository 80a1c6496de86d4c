"""Centralized logging configuration for Fret Recall.

Every module obtains its logger through :func:`fret_recall.logger.get_logger`;
this module decides where those records go and at which level.
"""

import logging
import sys
from typing import Optional

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "fret_recall": logging.INFO,
    "fret_recall.cli": logging.INFO,
    # Signal processing, chatty when debugging detection
    "fret_recall.audio": logging.INFO,
    "fret_recall.detection": logging.INFO,
    # Session orchestration
    "fret_recall.strategies": logging.INFO,
    "fret_recall.session": logging.INFO,
    "fret_recall.practice_session": logging.INFO,
    "fret_recall.calibration_session": logging.INFO,
    "fret_recall.stats": logging.INFO,
    "fret_recall.core": logging.INFO,
    "fret_recall.logger": logging.WARNING,  # Logger module itself should be quiet
    # Libraries/third-party
    "sounddevice": logging.ERROR,
    "soundfile": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'fret_recall' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("fret_recall"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    # Package loggers propagate to "fret_recall", which owns the handler.
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        if module_name in ("fret_recall", ""):
            logger.addHandler(_console_handler)
            logger.propagate = False

    logging.getLogger("fret_recall").info("Logging configuration complete")
