"""JSON logging configuration for node certificate operations."""

import logging

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with a focused field set.

    Keeps timestamp, level, message, exc_info, funcName and lineno, plus the
    service and path fields when a call passes them through ``extra``.
    """

    allowed_fields = frozenset(
        {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
            "service",
            "path",
        }
    )

    def add_fields(self, log_record, record, message_dict):
        """Override to include only allowed fields.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        keys_to_remove = [key for key in log_record if key not in self.allowed_fields]
        for key in keys_to_remove:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Initialize and configure singleton logger.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger("node_tls")

    # Prevent duplicate handlers if module reloaded
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


# Singleton logger instance - import this in other modules
LOGGER = _setup_logger()
