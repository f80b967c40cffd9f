"""Logging service"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ..config import settings


class LogService:
    """Centralized logging service"""

    def __init__(self, log_dir: Path = None):
        self.log_dir = log_dir or settings.LOGS_DIR
        self.log_dir.mkdir(exist_ok=True, parents=True)

        # Setup loggers
        self.error_logger = self._setup_logger("error", logging.ERROR)
        self.indexer_logger = self._setup_logger("indexer", logging.DEBUG)
        self.mediatool_logger = self._setup_logger("mediatool", logging.DEBUG)

    def _setup_logger(self, name: str, level: int) -> logging.Logger:
        """Setup a logger with rotating file handler"""
        logger = logging.getLogger(f"mediavault.{name}")
        logger.setLevel(level)

        # Prevent duplicate handlers
        if logger.handlers:
            return logger

        # Create rotating file handler (10MB max, 3 backups)
        log_file = self.log_dir / f"{name}.log"
        handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
        )

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        return logger

    def error(self, message: str, **kwargs):
        """Log error message"""
        self.error_logger.error(message, extra=kwargs)

    def info(self, message: str, **kwargs):
        """Log indexer progress"""
        self.indexer_logger.info(message, extra=kwargs)

    def debug(self, message: str, **kwargs):
        self.indexer_logger.debug(message, extra=kwargs)

    def tool(self, message: str, **kwargs):
        """Log ffmpeg/ffprobe invocations and output"""
        self.mediatool_logger.debug(message, extra=kwargs)


# Global log service instance
log_service = LogService()
