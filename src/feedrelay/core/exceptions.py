"""Custom exceptions.

FeedRelay uses a small hierarchy of exceptions so callers can decide which
failures are fatal and which only cost one cycle:

Example:
    >>> from feedrelay.core.exceptions import FeedRelayError, StorageError
    >>> isinstance(StorageError("db error"), FeedRelayError)
    True
    >>> try:
    ...     raise StorageError("disk full")
    ... except FeedRelayError as e:
    ...     print(f"Caught: {type(e).__name__}")
    Caught: StorageError
"""

from __future__ import annotations


class FeedRelayError(Exception):
    """Base exception for FeedRelay.

    Example:
        >>> from feedrelay.core.exceptions import FeedRelayError
        >>> str(FeedRelayError("something went wrong"))
        'something went wrong'
    """


class StorageError(FeedRelayError):
    """Storage operation failed.

    Example:
        >>> from feedrelay.core.exceptions import StorageError
        >>> raise StorageError("connection lost")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        StorageError: connection lost
    """


class FeedError(FeedRelayError):
    """Fetching or parsing a feed failed.

    Example:
        >>> from feedrelay.core.exceptions import FeedError
        >>> err = FeedError("Connection failed", source="https://example.com/feed")
        >>> err.source
        'https://example.com/feed'
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.cause = cause


class DeliveryError(FeedRelayError):
    """Outbound message could not be delivered.

    Example:
        >>> from feedrelay.core.exceptions import DeliveryError
        >>> err = DeliveryError("Forbidden: bot was blocked", status_code=403)
        >>> err.status_code
        403
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(FeedRelayError):
    """Configuration value is invalid.

    Example:
        >>> from feedrelay.core.exceptions import ConfigurationError
        >>> raise ConfigurationError("bad duration")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ConfigurationError: bad duration
    """


class ChannelClosed(FeedRelayError):
    """Send or receive on a closed hand-off channel."""
