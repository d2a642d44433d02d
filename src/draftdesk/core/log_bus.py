"""In-process log stream.

The core logger publishes every emitted line here. Subscribers (the HTTP log tail,
tests) receive records synchronously; a bounded history is kept so late readers can
fetch the most recent lines. Subscriber exceptions never reach the publisher.
"""

from __future__ import annotations

import contextlib
import sys
import time
import traceback
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

DEFAULT_HISTORY = 500


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str
    created: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level_name.lower(),
            "logger": self.logger_name,
            "line": self.plain,
            "created": self.created,
        }


class LogBus:
    def __init__(self, history: int = DEFAULT_HISTORY) -> None:
        self._subscribers: list[Callable[[LogRecord], None]] = []
        self._history: deque[LogRecord] = deque(maxlen=history)

    def subscribe(self, cb: Callable[[LogRecord], None]) -> None:
        self._subscribers.append(cb)

    def unsubscribe(self, cb: Callable[[LogRecord], None]) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(cb)

    def publish(self, record: LogRecord) -> None:
        self._history.append(record)
        for cb in list(self._subscribers):
            try:
                cb(record)
            except Exception:
                # Writing through the core logger here would recurse.
                msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg)

    def tail(self, limit: int = 50, level_name: str | None = None) -> list[LogRecord]:
        records = list(self._history)
        if level_name is not None:
            records = [r for r in records if r.level_name == level_name.upper()]
        if limit <= 0:
            return []
        return records[-limit:]

    def clear(self) -> None:
        self._subscribers.clear()
        self._history.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
