# src/a11yscan/utils/logging_config.py
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Dict, Any, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_PREFIX = "a11yscan"


def setup_logging(
    log_level: str = "INFO",
    log_dir: Union[str, Path, None] = "./logs",
    log_file: Optional[str] = None,
    component_name: str = LOGGER_PREFIX,
    console_output: bool = True,
    rotating_logs: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    log_format: str = LOG_FORMAT,
    date_format: str = "%Y-%m-%d %H:%M:%S",
) -> logging.Logger:
    """Set up the CLI logger with file rotation and console output."""
    numeric_level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logger = logging.getLogger(component_name)
    if logger.hasHandlers():
        logger.handlers.clear()
    logger.setLevel(numeric_level)
    logger.propagate = False

    formatter = logging.Formatter(log_format, date_format)

    log_file_path = None
    if log_dir:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)
        log_file_path = log_dir_path / (log_file or f"{component_name}.log")

        if rotating_logs:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=max_bytes,
                backupCount=backup_count
            )
        else:
            file_handler = logging.FileHandler(log_file_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.debug(f"Logger initialized for {component_name} - level: {log_level}")
    if log_file_path:
        logger.debug(f"Log file: {log_file_path}")
    return logger


def get_logger(component_name: str, log_config: Optional[Dict[str, Any]] = None,
               output_manager: Optional[Any] = None) -> logging.Logger:
    """
    Get or create a component logger.

    Args:
        component_name: Component requesting the logger (pipeline, crawler, ...)
        log_config: Optional per-component configuration ({"level": ..., "log_file": ...})
        output_manager: Optional output manager used to place the log file

    Returns:
        Configured logger instance named ``a11yscan.<component_name>``
    """
    logger = logging.getLogger(f"{LOGGER_PREFIX}.{component_name}")
    if logger.handlers:
        return logger
    logger.propagate = False

    global_config: Dict[str, Any] = {}
    if not log_config:
        # Imported lazily: the configuration manager logs through plain logging
        from .config_manager import get_config_manager

        config_manager = get_config_manager()
        if config_manager:
            global_config = config_manager.get_logging_config()
            log_config = global_config.get("components", {}).get(component_name, {})

    log_level = (log_config or {}).get("level", "INFO")
    log_file = (log_config or {}).get("log_file", f"{component_name}.log")

    if output_manager:
        log_dir = output_manager.get_path("logs")
    else:
        log_dir = Path(global_config.get("log_dir", "./logs"))

    formatter = logging.Formatter(LOG_FORMAT)

    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            Path(log_dir) / log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)
    except OSError as e:
        # Read-only file systems still get console logging
        sys.stderr.write(f"Cannot create log file in {log_dir}: {e}\n")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    logger.setLevel(log_level)
    return logger
