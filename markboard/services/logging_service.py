"""
Logging service for MarkBoard.

Console and daily-file logging for the whole application. Repository calls
and image downloads run on worker threads, so every line carries the thread
name. Log files are stored in ~/.local/share/markboard/logs/ by default.

Levels can be tuned per logger through the ``log_levels`` config key, e.g.
``{"markboard.services.supabase_repository": "DEBUG"}``; running with
``--debug`` turns every MarkBoard logger up to DEBUG regardless.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Mapping, Optional, Union


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "markboard" / "logs"

LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP client loggers report every connection; keep them at WARNING unless asked
DEFAULT_LOGGER_LEVELS: Dict[str, int] = {
    "urllib3": logging.WARNING,
    "requests": logging.WARNING,
}

# Module-level flag to track if logging has been set up
_logging_initialized = False


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    """
    Turn a config value ("debug", "WARNING", 10) into a logging level.

    Unknown names fall back to ``default``.
    """
    if isinstance(value, int):
        return value
    if not value:
        return default
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    log_level: int = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Configure the logging system for MarkBoard.

    Args:
        log_level: Root level, used by every logger without its own level.
        log_to_file: Whether to also log to a file.
        log_dir: Directory for log files. Defaults to ~/.local/share/markboard/logs/

    Returns:
        Path of the log file in use, or None when logging to console only.

    Only the first call has any effect.
    """
    global _logging_initialized

    if _logging_initialized:
        return None

    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # Handlers pass everything; logger levels decide, so log_levels can go
    # below the root level for single modules
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_path: Optional[Path] = None
    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)

            # One file per day
            log_path = log_dir / f"markboard_{datetime.now().strftime('%Y%m%d')}.log"

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        except OSError as e:
            log_path = None
            console_handler.setLevel(logging.WARNING)
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    apply_log_levels({}, debug=log_level <= logging.DEBUG)

    _logging_initialized = True
    return log_path


def apply_log_levels(
    levels: Mapping[str, Union[str, int]],
    debug: bool = False,
) -> Dict[str, int]:
    """
    Set per-logger levels on top of the root level.

    Args:
        levels: Logger name to level name, usually the ``log_levels`` config key.
            Entries override ``DEFAULT_LOGGER_LEVELS``.
        debug: ``--debug`` was given. MarkBoard's own loggers are then left at
            DEBUG whatever the config says; third-party loggers keep their levels.

    Returns:
        The levels that were applied, by logger name.
    """
    applied: Dict[str, int] = dict(DEFAULT_LOGGER_LEVELS)
    for name, value in levels.items():
        applied[name] = parse_level(value)

    if debug:
        applied = {
            name: level for name, level in applied.items()
            if not name.startswith("markboard")
        }
        logging.getLogger("markboard").setLevel(logging.DEBUG)

    for name, level in applied.items():
        logging.getLogger(name).setLevel(level)

    return applied


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Returns:
        A configured Logger instance.

    Usage:
        from markboard.services.logging_service import get_logger
        logger = get_logger(__name__)
        logger.info("Marks loaded")
    """
    return logging.getLogger(name)
