"""structlog setup for draftsync: console plus JSONL output, secret redaction, per-operation context."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

from draftsync.config import LOG_FILE, LOG_LEVEL, VERBOSE_LOGGING

BoundLogger = structlog.stdlib.BoundLogger

# Event keys whose values must never reach a log sink
SECRET_KEYS = frozenset({"access_token", "refresh_token", "authorization", "token", "credentials"})
REDACTED = "***"

_NOISY_LOGGERS = (
    "googleapiclient",
    "google.auth",
    "google_auth_httplib2",
    "httpx",
    "httpcore",
    "urllib3",
    "sqlalchemy.engine",
)

_configured = False


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask OAuth tokens and bearer headers in any log event."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _level() -> int:
    if VERBOSE_LOGGING:
        return logging.DEBUG
    if LOG_LEVEL.isdigit():
        return int(LOG_LEVEL)
    return getattr(logging, LOG_LEVEL.upper(), logging.INFO)


def _handler(handler: logging.Handler, renderer: Any, pre_chain: list[Any], level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))
    return handler


def _configure_logging() -> None:
    global _configured
    if _configured:
        return

    level = _level()
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        timestamper,
        redact_secrets,
    ]

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(
        _handler(logging.StreamHandler(), structlog.dev.ConsoleRenderer(colors=True), pre_chain, level)
    )
    root_logger.addHandler(
        _handler(
            logging.FileHandler(LOG_FILE, encoding="utf-8"),
            structlog.processors.JSONRenderer(),
            pre_chain,
            level,
        )
    )
    logging.captureWarnings(True)

    # googleapiclient logs every discovery document and request at INFO
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str = "draftsync", **bindings: Any) -> BoundLogger:
    if not _configured:
        _configure_logging()
    logger = structlog.get_logger(name)
    if bindings:
        logger = logger.bind(**bindings)
    return logger


@contextmanager
def log_context(**context: Any) -> Iterator[None]:
    """Bind context (uid, operation, ...) to every log event emitted inside the block.

    Previous values are restored on exit, so nested service calls keep their caller's context.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
