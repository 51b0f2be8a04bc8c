"""
Logging configuration for the DAX benchmark application.

Logs go to stderr so stdout carries only benchmark output.
"""

import logging
import sys
from pathlib import Path


class BenchLogger:
    """Centralized logging configuration for the benchmark application."""

    def __init__(self, log_level: str = "WARNING", log_file: str = None):
        self.log_level = getattr(logging, log_level.upper())
        self.log_file = log_file
        self.logger = None
        self._setup_logging()

    def _setup_logging(self):
        """Setup logging configuration with both console and file handlers."""
        self.logger = logging.getLogger("dax_bench")
        self.logger.setLevel(self.log_level)
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        file_handler = None
        if self.log_file:
            log_path = Path(self.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(self.log_file)
            file_handler.setLevel(self.log_level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        self.logger.propagate = False

        # Route the AWS SDK and DAX client loggers through the same handlers
        library_loggers = [
            "boto3",
            "botocore",
            "amazondax",
        ]
        for logger_name in library_loggers:
            library_logger = logging.getLogger(logger_name)
            library_logger.setLevel(self.log_level)
            library_logger.handlers.clear()
            library_logger.addHandler(console_handler)
            if file_handler:
                library_logger.addHandler(file_handler)
            library_logger.propagate = False

    def get_logger(self) -> logging.Logger:
        """Get the configured logger instance."""
        return self.logger


# Global logger instance
_logger_instance = None


def get_logger() -> logging.Logger:
    """Get the global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = BenchLogger()
    return _logger_instance.get_logger()


def setup_logging(log_level: str = "WARNING", log_file: str = None) -> BenchLogger:
    """Setup global logging configuration."""
    global _logger_instance
    _logger_instance = BenchLogger(log_level, log_file)
    return _logger_instance

