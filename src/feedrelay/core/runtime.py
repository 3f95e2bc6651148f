"""Runtime-mutable relay configuration.

The fetch interval, delivery interval and per-feed item cap can be changed
while the pipeline is running (usually from chat commands). Each value lives
in its own lock-guarded cell, so a reader never observes a torn value and
the fields never need to be updated together.

A timer loop reads its interval once, right before it starts waiting. A write
therefore takes effect on the next wait of that loop, never on a wait that is
already in progress.

Example:
    >>> from datetime import timedelta
    >>> from feedrelay.core.runtime import RuntimeConfig
    >>> config = RuntimeConfig()
    >>> config.fetch_interval
    datetime.timedelta(seconds=13)
    >>> config.set_delivery_interval("1m30s")
    datetime.timedelta(seconds=90)
    >>> print(config.snapshot().describe())
    Fetch interval: 13s
    Delivery interval: 1m30s
    Items limit: 10
"""

from __future__ import annotations

import math
import re
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Generic, TypeVar

from feedrelay.core.exceptions import ConfigurationError

T = TypeVar("T")

DEFAULT_FETCH_INTERVAL = timedelta(seconds=13)
DEFAULT_DELIVERY_INTERVAL = timedelta(seconds=24)
DEFAULT_ITEMS_LIMIT = 10

_DURATION = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ms|us|µs|s|m|h))+")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|us|µs|s|m|h)")
_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
}


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """Parse a duration.

    Accepts Go-style duration strings (``"90s"``, ``"1m30s"``, ``"500ms"``,
    ``"1.5h"``), a bare number of seconds, or a ``timedelta``.

    Raises:
        ConfigurationError: If the value is not a valid duration.

    Example:
        >>> from feedrelay.core.runtime import parse_duration
        >>> parse_duration("1m30s")
        datetime.timedelta(seconds=90)
        >>> parse_duration("45")
        datetime.timedelta(seconds=45)
        >>> parse_duration("250ms")
        datetime.timedelta(microseconds=250000)
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigurationError(f"invalid duration: {value!r}")
        return _seconds(value, value)

    text = str(value).strip()
    if not text:
        raise ConfigurationError("invalid duration: empty value")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ConfigurationError(f"invalid duration: {text!r}")
        return _seconds(seconds, text)

    if not _DURATION.fullmatch(text):
        raise ConfigurationError(f"invalid duration: {text!r}")

    total = timedelta()
    try:
        for number, unit in _DURATION_PART.findall(text):
            total += _UNITS[unit] * float(number)
    except OverflowError:
        raise ConfigurationError(f"duration out of range: {text!r}") from None
    return total


def _seconds(seconds: float, original: object) -> timedelta:
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        raise ConfigurationError(f"duration out of range: {original!r}") from None


def format_duration(value: timedelta) -> str:
    """Render a duration the way it is typed in commands.

    Example:
        >>> from datetime import timedelta
        >>> from feedrelay.core.runtime import format_duration
        >>> format_duration(timedelta(seconds=13))
        '13s'
        >>> format_duration(timedelta(hours=1, seconds=5))
        '1h0m5s'
        >>> format_duration(timedelta(milliseconds=500))
        '500ms'
    """
    micros = abs(value // timedelta(microseconds=1))
    sign = "-" if value < timedelta() else ""
    if micros == 0:
        return "0s"
    if micros < 1_000_000:
        return f"{sign}{micros / 1000:g}ms"

    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    if rest % 1_000_000 == 0:
        seconds = str(rest // 1_000_000)
    else:
        seconds = f"{rest / 1_000_000:.6f}".rstrip("0")

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def parse_items_limit(value: str | int) -> int:
    """Parse and validate a per-feed item cap.

    Example:
        >>> from feedrelay.core.runtime import parse_items_limit
        >>> parse_items_limit(" 5 ")
        5
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid items limit: {value!r}")
    try:
        limit = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"invalid items limit: {value!r}") from None
    if limit < 1:
        raise ConfigurationError(f"items limit must be at least 1, got {limit}")
    return limit


class AtomicValue(Generic[T]):
    """A single value guarded by its own lock.

    Example:
        >>> from feedrelay.core.runtime import AtomicValue
        >>> cell = AtomicValue(1)
        >>> cell.set(2)
        >>> cell.get()
        2
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value

    def __repr__(self) -> str:
        return f"AtomicValue({self.get()!r})"


@dataclass(frozen=True)
class ConfigSnapshot:
    """Point-in-time copy of the runtime configuration."""

    fetch_interval: timedelta
    delivery_interval: timedelta
    items_limit: int

    def describe(self) -> str:
        """Human-readable summary used by the ``/config`` command."""
        return (
            f"Fetch interval: {format_duration(self.fetch_interval)}\n"
            f"Delivery interval: {format_duration(self.delivery_interval)}\n"
            f"Items limit: {self.items_limit}"
        )


class RuntimeConfig:
    """Mutable relay knobs shared between the timers and the command handler.

    Args:
        fetch_interval: Wait between fetch cycles (default 13s).
        delivery_interval: Wait between delivery cycles (default 24s).
        items_limit: Max entries kept per feed per fetch cycle (default 10).

    Raises:
        ConfigurationError: If an initial value is invalid.
    """

    def __init__(
        self,
        fetch_interval: timedelta | str | float = DEFAULT_FETCH_INTERVAL,
        delivery_interval: timedelta | str | float = DEFAULT_DELIVERY_INTERVAL,
        items_limit: int | str = DEFAULT_ITEMS_LIMIT,
    ) -> None:
        self._fetch_interval = AtomicValue(_positive(fetch_interval, "fetch interval"))
        self._delivery_interval = AtomicValue(_positive(delivery_interval, "delivery interval"))
        self._items_limit = AtomicValue(parse_items_limit(items_limit))

    @property
    def fetch_interval(self) -> timedelta:
        return self._fetch_interval.get()

    @property
    def delivery_interval(self) -> timedelta:
        return self._delivery_interval.get()

    @property
    def items_limit(self) -> int:
        return self._items_limit.get()

    def set_fetch_interval(self, value: timedelta | str | float) -> timedelta:
        """Set the fetch interval; returns the parsed value."""
        interval = _positive(value, "fetch interval")
        self._fetch_interval.set(interval)
        return interval

    def set_delivery_interval(self, value: timedelta | str | float) -> timedelta:
        """Set the delivery interval; returns the parsed value."""
        interval = _positive(value, "delivery interval")
        self._delivery_interval.set(interval)
        return interval

    def set_items_limit(self, value: int | str) -> int:
        """Set the per-feed item cap; returns the parsed value."""
        limit = parse_items_limit(value)
        self._items_limit.set(limit)
        return limit

    def snapshot(self) -> ConfigSnapshot:
        """Read all three values.

        Each field is read atomically; the fields are independent, so no
        cross-field consistency is implied.
        """
        return ConfigSnapshot(
            fetch_interval=self.fetch_interval,
            delivery_interval=self.delivery_interval,
            items_limit=self.items_limit,
        )


def _positive(value: timedelta | str | float, name: str) -> timedelta:
    interval = parse_duration(value)
    if interval <= timedelta():
        raise ConfigurationError(f"{name} must be positive, got {format_duration(interval)}")
    return interval
