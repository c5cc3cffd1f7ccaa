"""JSON logging configuration for CA provisioning."""

import logging
import os

from pythonjsonlogger.json import JsonFormatter

LOG_LEVEL_ENV = "CA_PROVISIONING_LOG_LEVEL"


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter with a focused field set.

    Keeps timestamp, level, message, exc_info, funcName and lineno, plus the
    step identity when a record carries one via extra={"step": ...}.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        allowed_fields = {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
            "step",
        }

        keys_to_remove = [key for key in log_record if key not in allowed_fields]
        for key in keys_to_remove:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Configure the package logger once; module loggers are its children."""
    logger = logging.getLogger("ca_provisioning")

    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    level = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logger.setLevel(logging.getLevelNamesMapping().get(level, logging.INFO))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
