import logging
import logging.config
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from settings import settings

SERVICE_NAME = "mailtracker"
JSON_FORMAT = (
    "%(module)s %(asctime)s %(levelname)s %(thread)d %(processName)s %(taskName)s %(name)s "
    "%(funcName)s %(filename)s %(lineno)d %(message)s"
)
LOCAL_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# Per-request and per-statement chatter from these drowns the beacon log
QUIET_LOGGERS = ("asyncio", "aiosqlite", "python_multipart", "aiohttp.access")


def _logging_config(formatter: dict[str, Any]) -> dict[str, Any]:
    """dictConfig with one stdout handler using the given formatter."""
    handler = {"formatter": "default", "class": "logging.StreamHandler", "stream": "ext://sys.stdout"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {"stdout": handler},
        "loggers": {
            "": {"handlers": ["stdout"], "level": settings.logging.level, "propagate": False},
            # uvicorn installs its own handlers, route them through ours exactly once
            "uvicorn": {"handlers": ["stdout"], "propagate": False},
            **{name: {"handlers": ["stdout"], "level": logging.WARNING, "propagate": False} for name in QUIET_LOGGERS},
        },
    }


LOGGING_CONFIG = _logging_config({"format": JSON_FORMAT, "class": "logging_config.CustomJsonFormatter"})
LOCAL_LOGGING_CONFIG = _logging_config({"format": LOCAL_FORMAT})


class CustomJsonFormatter(JsonFormatter):
    """JSON records tagged with service and environment; indented on a developer machine."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._app_env = settings.environment
        self._pretty_format = self._app_env.is_local and settings.logging.use_pretty_json
        if self._pretty_format:
            self.json_indent = 2

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = self._app_env.value

    def format(self, record: logging.LogRecord) -> str:
        result = super().format(record)
        if self._pretty_format:
            result = result.replace("\\n", "\n\t\t")
        return result


def setup_logging() -> None:
    """Setup root logger using our logging config"""
    logging.config.dictConfig(LOGGING_CONFIG if settings.logging.use_config else LOCAL_LOGGING_CONFIG)
    logging.captureWarnings(True)
    logging.disable(logging.NOTSET)
