"""Structural comparison of drafts against their baseline.

`deep_equal` drives control flow (modified flag, commit gate). The field-level
diff and its summary are for display and patch building only.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from draftdesk.core.state import SessionState

_MISSING = object()


def normalize(value: Any) -> Any:
    """Canonical form: None-valued keys dropped, tuples as lists, dataclasses as dicts."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return {str(k): normalize(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    return value


def deep_equal(a: Any, b: Any) -> bool:
    return normalize(a) == normalize(b)


def is_modified(state: SessionState[Any]) -> bool:
    return not deep_equal(state.original, state.draft)


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: Any
    new_value: Any


def compute_field_diff(original: Any, draft: Any) -> list[FieldChange]:
    """List every field that differs between original and draft.

    Mappings are walked recursively and reported with dotted paths; lists and
    scalars are leaves. A root-level non-mapping difference is reported with an
    empty field name.
    """
    changes: list[FieldChange] = []
    _walk(normalize(original), normalize(draft), "", changes)
    return changes


def _walk(old: Any, new: Any, prefix: str, out: list[FieldChange]) -> None:
    if isinstance(old, dict) and isinstance(new, dict):
        for key in sorted(set(old) | set(new)):
            path = f"{prefix}.{key}" if prefix else key
            o = old.get(key, _MISSING)
            n = new.get(key, _MISSING)
            if o is _MISSING or n is _MISSING:
                out.append(
                    FieldChange(path, None if o is _MISSING else o, None if n is _MISSING else n)
                )
            else:
                _walk(o, n, path, out)
        return
    if old != new:
        out.append(FieldChange(prefix, old, new))


def build_patch(changes: Sequence[FieldChange], scope: str = "") -> dict[str, Any]:
    """Dotted partial patch containing only the changed fields."""
    patch: dict[str, Any] = {}
    for change in changes:
        path = ".".join(p for p in (scope, change.field) if p)
        patch[path] = change.new_value
    return patch


def get_path(value: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path out of nested mappings ("" returns value itself)."""
    if not path:
        return value
    current = value
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if value is None or value == [] or value == {} or value == "":
        return "None"
    if isinstance(value, (list, tuple)):
        if all(isinstance(v, Mapping) for v in value):
            return f"{len(value)} entr{'y' if len(value) == 1 else 'ies'}"
        return ", ".join(v if isinstance(v, str) else format_value(v) for v in value)
    return str(value)


def summarize_changes(
    changes: Sequence[FieldChange],
    value: Any,
    labels: Mapping[str, str] | None = None,
) -> list[str]:
    """Human readable "label: value" lines for each changed field, read from value."""
    labels = labels or {}
    lines = []
    for change in changes:
        shown = get_path(value, change.field) if change.field else value
        lines.append(f"{labels.get(change.field, change.field)}: {format_value(shown)}")
    return lines
