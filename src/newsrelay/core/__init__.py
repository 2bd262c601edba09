"""Core utilities: logging, exceptions, constants."""

from newsrelay.core.exceptions import ErrorKind, NewsRelayError, classify_error
from newsrelay.core.logging import bound_run, get_logger, setup_logging

__all__ = [
    "ErrorKind",
    "NewsRelayError",
    "bound_run",
    "classify_error",
    "get_logger",
    "setup_logging",
]
