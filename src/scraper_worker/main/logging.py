import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from rich.logging import RichHandler

from scraper_worker.main.config import get_loglevel
from scraper_worker.main.log_context import get_log_context


JSON_LOGS_ENABLED = os.getenv("JSON_LOGS", "true").lower() in {"1", "true", "yes", "on"}


class ContextJSONFormatter(logging.Formatter):
    """Serialize log records with worker context into JSON."""

    RESERVED_ATTRS = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    }

    DEFAULT_KEYS = ("instance_id", "scraper_id", "work_item_id", "endpoint", "status_code")

    def format(self, record: logging.LogRecord) -> str:
        log: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Attach worker context values (instance, scraper, current work item)
        for key, value in get_log_context().items():
            if value is not None and key not in log:
                log[key] = value

        # Include extra attributes passed via logger(..., extra={})
        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS or key.startswith("_"):
                continue
            if value is None:
                continue
            log.setdefault(key, value)

        for key in self.DEFAULT_KEYS:
            if key not in log and getattr(record, key, None) is not None:
                log[key] = getattr(record, key)

        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log["stack"] = record.stack_info

        return json.dumps(log, default=str)


# aiohttp's access and client loggers are noisy at INFO
for logger_name in ("aiohttp.client", "aiohttp.internal", "asyncio"):
    logging.getLogger(logger_name).setLevel(
        logging.INFO if get_loglevel() <= logging.DEBUG else logging.WARNING
    )


class SimpleLogger(logging.Logger):
    FORMAT_STRING = '%(asctime)s | %(levelname)s | %(name)s : %(message)s'

    def __init__(
        self,
        name="main",
        fmt_string=FORMAT_STRING,
        level=logging.WARNING,
        console=True,
        files=None,
    ):
        logging.Logger.__init__(self, name, level)
        formatter_obj: logging.Formatter
        if JSON_LOGS_ENABLED:
            formatter_obj = ContextJSONFormatter()
        else:
            formatter_obj = logging.Formatter(fmt_string)

        if files is None:
            files = []
        elif isinstance(files, str):
            files = [files]

        def _add_stream(handler: logging.Handler, **kwargs):
            handler = handler(**kwargs)
            handler.setLevel(level)
            handler.setFormatter(formatter_obj)
            self.addHandler(handler)

        if console is True:
            if JSON_LOGS_ENABLED:
                _add_stream(logging.StreamHandler, stream=sys.stdout)
            else:
                rich_handler = RichHandler(rich_tracebacks=True, markup=False, show_path=True)
                rich_handler.setLevel(level)
                self.addHandler(rich_handler)

        for filepath in files:
            _add_stream(logging.FileHandler, filename=filepath)


def get_logger(module_name: str):
    # If we don't add a handler manually one will be created for us
    return SimpleLogger(name=module_name, level=get_loglevel())
