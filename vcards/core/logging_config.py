import logging
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from .config import get_settings


class UTCFormatter(JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record.setdefault("app", settings.app_name)
        log_record.setdefault("service", settings.service_name)
        log_record.setdefault("module", record.name)
        log_record["level"] = record.levelname.lower()
        if "details" not in log_record:
            log_record["details"] = {}


settings = get_settings()


def _level() -> int:
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def _has_json_handler(logger: logging.Logger) -> bool:
    return any(isinstance(handler.formatter, UTCFormatter) for handler in logger.handlers)


def configure_logging() -> logging.Logger:
    """Route every record through a single JSON stream handler on the root logger.

    Safe to call repeatedly. Uvicorn and Alembic's ``fileConfig`` both replace
    root handlers, so the JSON handler is reinstalled whenever it is missing.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(_level())
    if not _has_json_handler(root_logger):
        root_logger.handlers.clear()
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(UTCFormatter("%(timestamp)s %(level)s %(message)s"))
        stream_handler.setLevel(_level())
        root_logger.addHandler(stream_handler)

    _tune_library_loggers()
    return root_logger


def get_logger(module_name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(module_name)


def _tune_library_loggers() -> None:
    # Uvicorn installs its own handlers; strip them so records reach the JSON root handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "uvicorn.asgi"):
        lib_logger = logging.getLogger(name)
        lib_logger.disabled = False
        lib_logger.setLevel(_level() if name != "uvicorn.access" else logging.INFO)
        lib_logger.handlers.clear()
        lib_logger.propagate = True

    for noisy in ("sqlalchemy.engine", "h11", "asyncio", "aiosqlite", "passlib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
