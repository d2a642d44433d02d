"""Diagnostics envelopes and the optional JSONL sink.

Every diagnostic event carries the same envelope:

    {
      "event": "<string>",
      "component": "<string>",
      "operation": "<string>",
      "timestamp": "<iso8601 utc, trailing Z>",
      "data": { ... }
    }

Emission is fail-safe: a broken subscriber or serializer never affects a session.
"""

from __future__ import annotations

import contextlib
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from draftdesk.core.config import ConfigResolver
from draftdesk.core.errors import ConfigError
from draftdesk.core.events import EventBus
from draftdesk.core.logging import get_logger

_logger = get_logger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_ENVELOPE_KEYS = frozenset({"event", "component", "operation", "timestamp", "data"})


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def emit(
    bus: EventBus | None,
    event: str,
    *,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> None:
    """Publish an envelope on bus; silently a no-op when bus is None."""
    if bus is None:
        return
    with contextlib.suppress(Exception):
        bus.publish(
            event,
            build_envelope(event=event, component=component, operation=operation, data=data),
        )


def is_diagnostics_enabled(resolver: ConfigResolver) -> bool:
    """Resolve diagnostics.enabled (default False); env strings are normalized."""
    try:
        value, src = resolver.resolve("diagnostics.enabled")
    except ConfigError:
        return False

    if isinstance(value, bool):
        return value
    if value is None:
        return False

    s = str(value).strip().lower()
    if s in _TRUE_VALUES:
        return True
    if s in _FALSE_VALUES:
        return False

    if src == "env":
        _logger.warning(
            f"Invalid DRAFTDESK_DIAGNOSTICS_ENABLED value; treating as disabled. value={value!r}"
        )
    return False


def is_envelope(obj: Any) -> bool:
    if not isinstance(obj, dict) or set(obj.keys()) != _ENVELOPE_KEYS:
        return False
    if not all(isinstance(obj.get(k), str) for k in ("event", "component", "operation")):
        return False
    return isinstance(obj.get("data"), dict)


def install_jsonl_sink(bus: EventBus, *, resolver: ConfigResolver) -> None:
    """Append every envelope to diagnostics.path while diagnostics are enabled."""

    def _on_any_event(event: str, data: dict[str, Any]) -> None:
        if not is_diagnostics_enabled(resolver):
            return

        try:
            raw_path, _src = resolver.resolve("diagnostics.path")
        except ConfigError:
            _logger.warning("Missing diagnostics.path; cannot write diagnostics JSONL.")
            return

        payload = data
        if not is_envelope(data):
            payload = build_envelope(
                event=event, component="unknown", operation="unknown", data=data
            )

        out_path = Path(str(raw_path)).expanduser()
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(
                payload, ensure_ascii=True, separators=(",", ":"), sort_keys=True, default=str
            )
            with out_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except Exception as e:
            _logger.warning(f"Diagnostics sink write failed: {type(e).__name__}: {e}")

    bus.subscribe_all(_on_any_event)
