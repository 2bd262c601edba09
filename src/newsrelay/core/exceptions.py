"""Custom exceptions for NewsRelay.

Every error raised at a collaborator boundary carries an ``ErrorKind`` tag.
Retry filters and fallbacks branch on the tag rather than on exception types.
"""

import asyncio
from enum import Enum

import httpx
from pydantic_ai.exceptions import ModelAPIError, ModelHTTPError, UnexpectedModelBehavior


class ErrorKind(str, Enum):
    """How an error should be treated by the enclosing stage."""

    transient = "transient"  # timeouts, connection resets, 5xx, 429 - retry
    permanent = "permanent"  # 4xx, misconfiguration - give up immediately
    malformed = "malformed"  # unparseable response - fall back, never retry


class NewsRelayError(Exception):
    """Base exception for all NewsRelay errors."""

    default_kind: ErrorKind = ErrorKind.permanent

    def __init__(self, message: str, *args: object, kind: ErrorKind | None = None) -> None:
        self.message = message
        self.kind = kind or self.default_kind
        super().__init__(message, *args)

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.transient


# Ingestion errors
class IngestionError(NewsRelayError):
    """Base error for ingestion layer."""


class FeedFetchError(IngestionError):
    """Failed to download or parse an RSS feed."""

    default_kind = ErrorKind.transient


# Processing errors
class ProcessingError(NewsRelayError):
    """Base error for processing layer."""


class OracleError(ProcessingError):
    """LLM completion call failed."""

    default_kind = ErrorKind.transient


class ResponseParseError(ProcessingError):
    """LLM answered but the response could not be parsed."""

    default_kind = ErrorKind.malformed


# Delivery errors
class DeliveryError(NewsRelayError):
    """Sink rejected or failed to receive a payload."""

    def __init__(
        self,
        message: str,
        *args: object,
        status_code: int | None = None,
        kind: ErrorKind | None = None,
    ) -> None:
        self.status_code = status_code
        if kind is None:
            kind = kind_for_status(status_code) if status_code is not None else ErrorKind.transient
        super().__init__(message, *args, kind=kind)

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def client_error(self) -> bool:
        if self.status_code is None or self.rate_limited:
            return False
        return 400 <= self.status_code < 500


# Storage errors
class StorageError(NewsRelayError):
    """Base error for storage layer."""

    default_kind = ErrorKind.transient


class HistoryStoreError(StorageError):
    """A history lookup or write failed."""


class DatabaseConnectionError(StorageError):
    """Failed to connect to database."""


def kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP status code to an error kind."""
    if status_code == 429 or status_code >= 500:
        return ErrorKind.transient
    return ErrorKind.permanent


def classify_error(error: BaseException) -> ErrorKind:
    """Tag an arbitrary exception raised by a collaborator.

    Used once, at the boundary where third-party exceptions enter the
    pipeline; everything downstream only looks at the returned kind.
    """
    if isinstance(error, NewsRelayError):
        return error.kind
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.transient
    if isinstance(error, ModelHTTPError):
        return kind_for_status(error.status_code)
    if isinstance(error, ModelAPIError):
        # connection resets and SDK timeouts surface without a status code
        return ErrorKind.transient
    if isinstance(error, UnexpectedModelBehavior):
        return ErrorKind.malformed
    if isinstance(error, httpx.HTTPStatusError):
        return kind_for_status(error.response.status_code)
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorKind.transient
    return ErrorKind.permanent
