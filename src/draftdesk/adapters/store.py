"""Document stores with `$set`-style partial updates.

A patch maps dotted paths to new values. Normalizers run on the patched
document before validators; a validator returning an error message rejects the
whole update, which leaves the stored document unchanged and returns None.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from draftdesk.core import diagnostics
from draftdesk.core.events import EventBus
from draftdesk.core.logging import get_logger
from draftdesk.core.state import clone

_LOGGER = get_logger(__name__)

Normalizer = Callable[[dict[str, Any]], None]
Validator = Callable[[dict[str, Any]], str | None]


def apply_patch(document: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of document with every dotted path in patch set."""
    out = clone(document)
    for path, value in patch.items():
        parts = path.split(".")
        target = out
        for part in parts[:-1]:
            nxt = target.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                target[part] = nxt
            target = nxt
        target[parts[-1]] = clone(value)
    return out


class InMemoryRecordStore:
    def __init__(
        self,
        records: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        normalizers: list[Normalizer] | None = None,
        validators: list[Validator] | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._records: dict[str, dict[str, Any]] = {
            str(k): clone(dict(v)) for k, v in (records or {}).items()
        }
        self.normalizers = list(normalizers or [])
        self.validators = list(validators or [])
        self.bus = bus
        self._lock = asyncio.Lock()

    def put(self, record_id: str, document: Mapping[str, Any]) -> None:
        doc = clone(dict(document))
        doc.setdefault("_id", str(record_id))
        self._records[str(record_id)] = doc

    def snapshot(self, record_id: str) -> dict[str, Any] | None:
        doc = self._records.get(str(record_id))
        return clone(doc) if doc is not None else None

    async def get(self, record_id: str) -> dict[str, Any] | None:
        return self.snapshot(record_id)

    async def conditional_update(
        self, record_id: str, patch: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        key = str(record_id)
        t0 = time.monotonic()
        diagnostics.emit(
            self.bus,
            "boundary.start",
            component="store",
            operation="conditional_update",
            data={"record_id": key, "fields": sorted(patch)},
        )

        async with self._lock:
            current = self._records.get(key)
            if current is None:
                _LOGGER.warning(f"Update of unknown record {key} ignored")
                self._emit_end(key, t0, "not_found")
                return None

            updated = apply_patch(current, patch)
            for normalize in self.normalizers:
                normalize(updated)
            for validate in self.validators:
                problem = validate(updated)
                if problem:
                    _LOGGER.verbose(f"Update of {key} rejected: {problem}")
                    self._emit_end(key, t0, "rejected", reason=problem)
                    return None

            self._store(key, updated)
            self._emit_end(key, t0, "succeeded")
            return clone(updated)

    def _store(self, key: str, document: dict[str, Any]) -> None:
        self._records[key] = document

    def _emit_end(self, key: str, t0: float, status: str, **extra: Any) -> None:
        diagnostics.emit(
            self.bus,
            "boundary.end",
            component="store",
            operation="conditional_update",
            data={
                "record_id": key,
                "status": status,
                "duration_ms": max(0, int((time.monotonic() - t0) * 1000)),
                **extra,
            },
        )


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


class YamlRecordStore(InMemoryRecordStore):
    """InMemoryRecordStore persisted to one YAML file (id -> document)."""

    def __init__(self, path: Path, **kwargs: Any) -> None:
        self.path = Path(path).expanduser()
        super().__init__(self._load(), **kwargs)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: expected a mapping of record id to document")
        return {str(k): v for k, v in data.items() if isinstance(v, dict)}

    def put(self, record_id: str, document: Mapping[str, Any]) -> None:
        super().put(record_id, document)
        self._write(self._records)

    def _store(self, key: str, document: dict[str, Any]) -> None:
        # The file is written first so a failed write leaves memory unchanged.
        records = {**self._records, key: document}
        self._write(records)
        self._records = records

    def _write(self, records: dict[str, dict[str, Any]]) -> None:
        text = yaml.safe_dump(records, default_flow_style=False, sort_keys=True)
        try:
            _atomic_write_text(self.path, text)
        except OSError:
            with contextlib.suppress(OSError):
                self.path.with_suffix(self.path.suffix + ".tmp").unlink()
            raise
