"""Absolute and idle expiry for one prompt.

A session waits on `next_event()`, which races the subscription against both
deadlines. The pending read survives timer wake-ups, so no event is lost when a
wait times out and the deadlines are re-evaluated.

While a child sub-flow is open the parent's clocks are frozen (`suspended()`):
the parent cannot expire until the child resolves.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from enum import StrEnum
from typing import Any

from draftdesk.core.logging import Logger, get_logger


class SessionStatus(StrEnum):
    ACTIVE = "active"
    IDLE_EXPIRED = "idle_expired"
    ABSOLUTE_EXPIRED = "absolute_expired"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


TERMINAL: frozenset[SessionStatus] = frozenset(
    {
        SessionStatus.IDLE_EXPIRED,
        SessionStatus.ABSOLUTE_EXPIRED,
        SessionStatus.CONFIRMED,
        SessionStatus.CANCELLED,
    }
)

_ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.ACTIVE: TERMINAL,
    SessionStatus.IDLE_EXPIRED: frozenset(),
    SessionStatus.ABSOLUTE_EXPIRED: frozenset(),
    SessionStatus.CONFIRMED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


async def _read_one(subscription: Any) -> Any:
    return await subscription.__anext__()


class Watchdog:
    def __init__(
        self,
        timeout: float,
        idle: float,
        on_terminal: Callable[[], Awaitable[None]],
        clock: Callable[[], float] | None = None,
        logger: Logger | None = None,
    ) -> None:
        if timeout <= 0 or idle <= 0:
            raise ValueError("timeout and idle must be positive")
        self.timeout = float(timeout)
        self.idle = float(idle)
        self.status = SessionStatus.ACTIVE
        self._on_terminal = on_terminal
        self._clock = clock or time.monotonic
        self.logger = logger or get_logger(__name__)

        self._started: float | None = None
        self._last_activity: float = 0.0
        self._paused_at: float | None = None
        self._pending: asyncio.Task[Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL

    @property
    def is_suspended(self) -> bool:
        return self._paused_at is not None

    def start(self) -> None:
        now = self._clock()
        self._started = now
        self._last_activity = now

    def touch(self) -> None:
        """Reset the idle window (called for every accepted event)."""
        self._last_activity = self._clock()

    def transition(self, new_status: SessionStatus) -> None:
        allowed = _ALLOWED_TRANSITIONS.get(self.status, frozenset())
        if new_status not in allowed:
            raise ValueError(
                f"illegal session status transition: {self.status.value} -> {new_status.value}"
            )
        self.status = new_status

    def remaining(self) -> tuple[float, SessionStatus]:
        """Seconds until the nearest deadline and the status it would produce."""
        if self._started is None:
            self.start()
        assert self._started is not None
        now = self._paused_at if self._paused_at is not None else self._clock()
        absolute_left = self._started + self.timeout - now
        idle_left = self._last_activity + self.idle - now
        if absolute_left <= idle_left:
            return absolute_left, SessionStatus.ABSOLUTE_EXPIRED
        return idle_left, SessionStatus.IDLE_EXPIRED

    async def next_event(self, subscription: Any) -> Any | None:
        """Next event from subscription, or None once expired or the source ends."""
        while not self.is_terminal:
            left, expiry = self.remaining()
            if left <= 0:
                self.logger.verbose(f"Session expired ({expiry.value})")
                await self.finish(expiry)
                return None

            if self._pending is None:
                self._pending = asyncio.ensure_future(_read_one(subscription))

            done, _ = await asyncio.wait({self._pending}, timeout=left)
            if self.is_terminal or self._pending is None:
                # finish() ran while we were waiting and cancelled the read.
                return None
            if not done:
                self.logger.debug(f"Watchdog wake-up, {left:.2f}s window elapsed")
                continue

            task, self._pending = self._pending, None
            try:
                return task.result()
            except StopAsyncIteration:
                return None
        return None

    @asynccontextmanager
    async def suspended(self) -> AsyncIterator[None]:
        """Freeze both clocks for the duration of the block."""
        if self._started is None:
            self.start()
        self._paused_at = self._clock()
        try:
            yield
        finally:
            paused_for = self._clock() - self._paused_at
            self._paused_at = None
            assert self._started is not None
            self._started += paused_for
            self._last_activity += paused_for

    async def finish(self, status: SessionStatus) -> bool:
        """Enter a terminal status once; later calls are no-ops returning False."""
        if self.is_terminal:
            return False
        self.transition(status)

        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

        try:
            await self._on_terminal()
        except Exception as e:
            self.logger.warning(f"Disabling prompt failed: {type(e).__name__}: {e}")
        return True
