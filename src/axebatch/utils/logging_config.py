# src/axebatch/utils/logging_config.py
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional, Dict, Any, Union
import sys

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: str = "INFO",
    log_dir: Union[str, Path, None] = "./logs",
    log_file: Optional[str] = None,
    component_name: str = "axebatch",
    console_output: bool = True,
    rotating_logs: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.Logger:
    """Set up standardized logging with consistent configuration."""
    # Convert string log level to logging level
    numeric_level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logger = logging.getLogger(component_name)

    # Clear any existing handlers to prevent duplicates
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.setLevel(numeric_level)
    logger.propagate = False

    formatter = logging.Formatter(log_format, date_format)

    log_file_path = None
    if log_dir:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)

        if log_file is None:
            log_file = f"{component_name}.log"

        log_file_path = log_dir_path / log_file

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

    logger.info(f"Logger initialized for {component_name} - level: {log_level}")
    if log_file_path:
        logger.info(f"Log file: {log_file_path}")

    return logger


def get_logger(component_name: str, log_config: Optional[Dict[str, Any]] = None,
               output_manager: Optional[Any] = None) -> logging.Logger:
    """
    Get or create a logger with standardized configuration.

    Args:
        component_name: Name of the component requesting the logger
        log_config: Optional logging configuration (``level``, ``log_file``, ``log_dir``)
        output_manager: Optional output manager for path resolution

    Returns:
        Configured logger instance
    """
    # Use component_name as a cache key to avoid duplicate loggers
    logger = logging.getLogger(component_name)

    if logger.handlers:
        return logger

    logger.propagate = False
    log_config = log_config or {}

    log_level = str(log_config.get("level", "INFO")).upper()
    if not isinstance(getattr(logging, log_level, None), int):
        log_level = "INFO"
    log_file = log_config.get("log_file") or f"{component_name}.log"

    # Get log directory from output_manager if provided
    if output_manager:
        log_dir = Path(output_manager.get_path("logs"))
    else:
        log_dir = Path(log_config.get("log_dir") or "./logs")

    os.makedirs(log_dir, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(log_config.get("format", DEFAULT_LOG_FORMAT))
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    file_handler.setLevel(log_level)
    console_handler.setLevel(log_level)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.setLevel(log_level)

    return logger


def set_log_level(level: str, component_names) -> None:
    """Change the level of already configured component loggers and their handlers."""
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    for name in component_names:
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            handler.setLevel(numeric_level)
