"""
Logging utilities for the persona dispatch core
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from logging.handlers import RotatingFileHandler


DEFAULT_LOGGER_NAME = "persona_dispatch"


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    file_logging: bool = False
) -> logging.Logger:
    """
    Setup and configure logger

    Args:
        name: Logger name
        level: Logging level
        log_file: Path to log file (implies file logging)
        console: Enable console logging
        file_logging: Enable file logging to ./logs/<name>.log when no log_file is given

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    if console:
        # stderr keeps CLI output on stdout clean
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level.upper()))
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

    if file_logging or log_file:
        if not log_file:
            log_dir = Path("./logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / f"{name}.log"
        else:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger instance.

    Loggers below the package root (``persona_dispatch.*``) propagate to the
    root package logger, so configuring that one once is enough.
    """
    logger = logging.getLogger(name)

    if name == DEFAULT_LOGGER_NAME or name.startswith(DEFAULT_LOGGER_NAME + "."):
        root = logging.getLogger(DEFAULT_LOGGER_NAME)
        if not root.handlers:
            setup_logger(DEFAULT_LOGGER_NAME, level="WARNING")
            root.propagate = False
        return logger

    # Foreign names get their own default handler
    if not logger.handlers:
        setup_logger(name)
        logger.propagate = False

    return logger


class ComponentLogger:
    """
    Logger wrapper that prefixes every message with the emitting component,
    e.g. ``[Store:./personas] Loaded 3 personas``.
    """

    def __init__(self, component_type: str, instance_id: Optional[str] = None, base_logger: Optional[logging.Logger] = None):
        self.component_type = component_type
        self.instance_id = instance_id

        if instance_id:
            self.prefix = f"[{component_type}:{instance_id}]"
        else:
            self.prefix = f"[{component_type}]"

        if base_logger:
            self.logger = base_logger
        else:
            self.logger = get_logger(f"{DEFAULT_LOGGER_NAME}.{component_type.lower()}")

    def _format_message(self, message: str) -> str:
        return f"{self.prefix} {message}"

    def debug(self, message: str, *args, **kwargs):
        self.logger.debug(self._format_message(message), *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self.logger.info(self._format_message(message), *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self.logger.warning(self._format_message(message), *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self.logger.error(self._format_message(message), *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        self.logger.exception(self._format_message(message), *args, **kwargs)

    def isEnabledFor(self, level):
        return self.logger.isEnabledFor(level)

    def get_base_logger(self) -> logging.Logger:
        """Get the underlying base logger."""
        return self.logger


def get_component_logger(component_type: str, instance_id: Optional[str] = None) -> ComponentLogger:
    """
    Create a component-specific logger with automatic prefixing.

    Examples:
        logger = get_component_logger("Selector")
        logger.info("Selected persona")  # -> [Selector] Selected persona

        logger = get_component_logger("Store", "./personas")
        logger.info("Loading catalog")  # -> [Store:./personas] Loading catalog
    """
    return ComponentLogger(component_type, instance_id)
