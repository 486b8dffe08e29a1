"""Utility modules."""

from draftsync.utils.logger import get_logger
from draftsync.utils.tracing import get_tracer, init_tracing, shutdown_tracing

__all__ = [
    "get_logger",
    "get_tracer",
    "init_tracing",
    "shutdown_tracing",
]
