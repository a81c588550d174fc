"""
Logging setup.

`make_dict_config(settings)` builds the `logging.config.dictConfig` mapping
from `Settings`; `setup_logging(settings)` applies it and, with
`LOG_USE_QUEUE`, moves the real handlers behind a `QueueListener` thread so
request handlers only enqueue records.

In queue mode the request-id and redaction filters run on the producer-side
`QueueHandler`, where the request contextvar is still visible.
`stop_queue_logging()` flushes and stops the listener at shutdown.
"""

from pathlib import Path
import logging
import logging.config
import queue as _queue
import threading
from typing import Optional
from logging.handlers import QueueHandler, QueueListener

from user_management.config.settings import Settings
from user_management.utils.logging import get_project_name

from .formatters import JsonFormatter, ColorFormatter, DEFAULT_SERVICE_NAME
from .filters import RequestIdFilter, RedactFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
)

logger = logging.getLogger(__name__)

_QUEUE_LISTENER: Optional[QueueListener] = None
_QUEUE: Optional[_queue.Queue] = None

_DROPPED_LOGS_COUNT = 0
_DROPPED_LOGS_LOCK = threading.Lock()


class NonBlockingQueueHandler(QueueHandler):
    """
    QueueHandler that drops the record instead of blocking when a bounded queue is full.

    Every `warn_every` drops, a warning is written straight to the listener's
    handlers through the queue once room is available again.
    """

    def __init__(self, q: _queue.Queue, warn_every: int = 100):
        super().__init__(q)
        self.warn_every = warn_every

    def enqueue(self, record: logging.LogRecord) -> None:
        global _DROPPED_LOGS_COUNT
        try:
            self.queue.put_nowait(record)
        except _queue.Full:
            with _DROPPED_LOGS_LOCK:
                _DROPPED_LOGS_COUNT += 1
                dropped = _DROPPED_LOGS_COUNT
            if self.warn_every > 0 and dropped % self.warn_every == 0:
                self._enqueue_drop_warning(dropped)

    def _enqueue_drop_warning(self, dropped: int) -> None:
        warning = logging.LogRecord(
            name=__name__, level=logging.WARNING, pathname=__file__, lineno=0,
            msg="logging.queue.dropped", args=None, exc_info=None,
        )
        warning.dropped_logs = dropped
        warning.request_id = "-"
        try:
            self.queue.put_nowait(warning)
        except _queue.Full:
            pass


def get_queue_stats() -> dict:
    with _DROPPED_LOGS_LOCK:
        return {"dropped_logs": _DROPPED_LOGS_COUNT, "queue_present": _QUEUE is not None}


def make_dict_config(settings: Settings) -> dict:
    """
    Handlers: "console" always; "file" + "error_file" when logging to LOG_DIR,
    otherwise "error_console". Loggers: root, uvicorn.error, uvicorn.access,
    sqlalchemy.engine (DEBUG only with ENABLE_SQL_LOGGING since SQL may carry
    user data).
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(default=DEFAULT_SERVICE_NAME),
        },
    }

    filters = {
        "request_id": {"()": RequestIdFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if not settings.LOG_TO_STDOUT and settings.LOG_DIR:
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "uvicorn.error": {
                "level": settings.LOG_LEVEL,
                "handlers": list(handlers.keys()),
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the logging configuration; with LOG_USE_QUEUE, switch to queue mode.

    Calling it again (e.g. a second app in the same process) first stops a
    running listener so handlers are never attached twice.
    """
    global _QUEUE_LISTENER, _QUEUE

    stop_queue_logging()

    if not settings.LOG_TO_STDOUT and settings.LOG_DIR:
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))

    # keeps %(request_id)s safe for records that reach handlers without the filter
    logging.getLogger().addFilter(RequestIdFilter())

    if not settings.LOG_USE_QUEUE:
        return

    root_logger = logging.getLogger()
    real_handlers = list(root_logger.handlers)
    if not real_handlers:
        return

    # Detach the real handlers everywhere; only the listener thread runs them.
    to_move = set(real_handlers)
    for logger_obj in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(logger_obj, logging.Logger):
            for h in list(logger_obj.handlers):
                if h in to_move:
                    logger_obj.removeHandler(h)
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    max_size = settings.LOG_QUEUE_MAX_SIZE or 0
    log_queue: _queue.Queue = _queue.Queue(max_size)

    if max_size > 0 and not settings.LOG_QUEUE_BLOCKING:
        qh: QueueHandler = NonBlockingQueueHandler(
            log_queue, warn_every=settings.LOG_QUEUE_DROP_WARNING_THRESHOLD
        )
    else:
        qh = QueueHandler(log_queue)

    qh.addFilter(RequestIdFilter())
    qh.addFilter(RedactFilter())

    listener = QueueListener(log_queue, *real_handlers, respect_handler_level=True)
    listener.start()
    root_logger.addHandler(qh)

    _QUEUE_LISTENER = listener
    _QUEUE = log_queue
    logger.debug("logging.queue.started", extra={"max_size": max_size})


def stop_queue_logging() -> None:
    """Flush and stop the queue listener, if one is running."""
    global _QUEUE_LISTENER, _QUEUE
    listener = _QUEUE_LISTENER
    if listener is None:
        return

    try:
        listener.stop()
    except Exception:
        logging.getLogger(__name__).exception("logging.queue.stop_failed")
    finally:
        _QUEUE_LISTENER = None
        _QUEUE = None
