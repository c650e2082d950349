"""
Progress Clock Module

Sources of the monotonically non-decreasing progress counter the vesting
ledger measures elapsed vesting against. The ledger never advances a clock
itself; it only reads current_progress().
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger("tokenvest.blockchain.progress_clock")


@runtime_checkable
class ProgressClock(Protocol):
    """Anything that can report the current progress counter."""

    def current_progress(self) -> int:
        ...


def _coerce_progress(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError("progress provider must return an integer counter")
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ValueError("progress provider must return an integer counter") from exc


class ManualClock:
    """
    Counter advanced explicitly by its owner.

    Stands in for a block height in tests and in the local operator CLI,
    where "mining" empty blocks just advances the counter.
    """

    def __init__(self, start: int = 0) -> None:
        if not isinstance(start, int) or isinstance(start, bool) or start < 0:
            raise ValueError("Clock start must be a non-negative integer.")
        self._value = start
        self._lock = threading.Lock()

    def current_progress(self) -> int:
        return self._value

    def advance(self, ticks: int = 1) -> int:
        """Move the counter forward by ``ticks`` and return the new value."""
        if not isinstance(ticks, int) or isinstance(ticks, bool) or ticks < 0:
            raise ValueError("Clock can only advance by a non-negative integer.")
        with self._lock:
            self._value += ticks
            return self._value

    def set(self, value: int) -> None:
        """Jump to ``value``; moving backwards is refused."""
        with self._lock:
            if value < self._value:
                raise ValueError(
                    f"Progress counter cannot move backwards ({value} < {self._value})."
                )
            self._value = value


class CallableClock:
    """Wraps any zero-argument provider, e.g. a block height lookup."""

    def __init__(self, provider: Callable[[], int]) -> None:
        if not callable(provider):
            raise ValueError("Progress provider must be callable.")
        self._provider = provider

    def current_progress(self) -> int:
        return _coerce_progress(self._provider())


class WallClock:
    """Wall-clock derived counter: whole ``interval_seconds`` elapsed since ``origin``."""

    def __init__(
        self,
        origin: float = 0.0,
        interval_seconds: float = 1.0,
        time_provider: Callable[[], float] | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Interval must be a positive number of seconds.")
        self.origin = origin
        self.interval_seconds = interval_seconds
        self._time_provider = time_provider or time.time
        logger.debug(
            "WallClock initialized (origin=%s, interval=%ss)", origin, interval_seconds
        )

    def current_progress(self) -> int:
        elapsed = self._time_provider() - self.origin
        if elapsed <= 0:
            return 0
        return int(elapsed // self.interval_seconds)
