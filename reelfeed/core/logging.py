"""Structured logging setup.

Entries go through stdlib logging and are rendered by structlog as JSON or
console lines. Each entry carries the timestamp, level, logger name, the
request id of the HTTP request being served, and anything bound through
structlog.contextvars (fetch passes bind pass_id).
"""

import contextvars
import logging
import re
import sys
from typing import Any, Dict, List, Optional
from uuid import uuid4

import structlog

MAX_REQUEST_ID_LENGTH = 64

# Client-supplied ids are echoed back in a response header
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]+")

# Vendor loggers that chatter at INFO on every blob request
VENDOR_LOGGERS = (
    "google.auth",
    "google.cloud.storage",
    "urllib3",
    "httpx",
    "httpcore",
)

request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def add_request_id(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor merging the current request id into the entry."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def _build_renderer(log_format: str) -> Any:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" for production, "console" for development
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    logging.getLogger().setLevel(numeric_level)

    vendor_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in VENDOR_LOGGERS:
        logging.getLogger(name).setLevel(vendor_level)

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _build_renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request id for the current context.

    A client-supplied id is kept when it is a short token of letters,
    digits and ``._:-``. Anything else is replaced by a generated id.

    Args:
        request_id: Id from the X-Request-ID header, if any

    Returns:
        The request id now in effect
    """
    if request_id is not None:
        request_id = request_id.strip()
    if (
        not request_id
        or len(request_id) > MAX_REQUEST_ID_LENGTH
        or not _REQUEST_ID_PATTERN.fullmatch(request_id)
    ):
        request_id = f"req_{uuid4().hex[:12]}"
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def clear_request_id() -> None:
    request_id_var.set(None)
