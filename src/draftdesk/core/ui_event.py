"""UI events as delivered by an event source.

The payload is a tagged variant: a menu selection, a button press, or a text
(modal) submission. Concrete action ids usually carry a contextual suffix such as
`:<actor id>`; routing is by prefix.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EventKind(StrEnum):
    SELECTION = "selection"
    BUTTON = "button"
    TEXT = "text"


@dataclass(frozen=True)
class Selection:
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class ButtonPress:
    pass


@dataclass(frozen=True)
class TextSubmission:
    fields: Mapping[str, str] = field(default_factory=dict)


Payload = Selection | ButtonPress | TextSubmission

_counter = itertools.count(1)


def next_timestamp() -> int:
    """Process-wide monotonically increasing event stamp."""
    return next(_counter)


@dataclass(frozen=True)
class UIEvent:
    action_id: str
    actor_id: str
    payload: Payload = field(default_factory=ButtonPress)
    timestamp: int = field(default_factory=next_timestamp)

    @classmethod
    def selection(cls, action_id: str, actor_id: str, values: Sequence[str]) -> UIEvent:
        return cls(action_id, str(actor_id), Selection(tuple(str(v) for v in values)))

    @classmethod
    def button(cls, action_id: str, actor_id: str) -> UIEvent:
        return cls(action_id, str(actor_id), ButtonPress())

    @classmethod
    def text(cls, action_id: str, actor_id: str, fields: Mapping[str, str]) -> UIEvent:
        return cls(action_id, str(actor_id), TextSubmission(dict(fields)))

    @property
    def kind(self) -> EventKind:
        if isinstance(self.payload, Selection):
            return EventKind.SELECTION
        if isinstance(self.payload, TextSubmission):
            return EventKind.TEXT
        return EventKind.BUTTON

    @property
    def values(self) -> list[str]:
        """Selected values ([] for non-selection events)."""
        if isinstance(self.payload, Selection):
            return list(self.payload.values)
        return []

    @property
    def fields(self) -> dict[str, str]:
        """Submitted text fields ({} for non-text events)."""
        if isinstance(self.payload, TextSubmission):
            return dict(self.payload.fields)
        return {}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "action_id": self.action_id,
            "actor_id": self.actor_id,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
        }
        if self.kind is EventKind.SELECTION:
            out["values"] = self.values
        elif self.kind is EventKind.TEXT:
            out["fields"] = self.fields
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UIEvent:
        """Parse the JSON form; raises ValueError on malformed input."""
        if not isinstance(data, Mapping):
            raise ValueError("event must be an object")
        action_id = data.get("action_id")
        actor_id = data.get("actor_id")
        if not isinstance(action_id, str) or not action_id:
            raise ValueError("action_id must be a non-empty string")
        if not isinstance(actor_id, (str, int)) or isinstance(actor_id, bool) or actor_id == "":
            raise ValueError("actor_id must be a non-empty string")

        try:
            kind = EventKind(str(data.get("kind", EventKind.BUTTON.value)))
        except ValueError:
            raise ValueError(f"unknown event kind: {data.get('kind')!r}") from None

        payload: Payload
        if kind is EventKind.SELECTION:
            values = data.get("values", [])
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ValueError("values must be a list of strings")
            payload = Selection(tuple(values))
        elif kind is EventKind.TEXT:
            fields_ = data.get("fields", {})
            if not isinstance(fields_, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in fields_.items()
            ):
                raise ValueError("fields must be an object of strings")
            payload = TextSubmission(dict(fields_))
        else:
            payload = ButtonPress()

        ts = data.get("timestamp")
        if ts is None:
            return cls(action_id, str(actor_id), payload)
        if not isinstance(ts, int) or isinstance(ts, bool):
            raise ValueError("timestamp must be an integer")
        return cls(action_id, str(actor_id), payload, ts)
