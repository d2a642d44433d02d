"""Field parsers used by the bundled topics.

Each parser either returns the cleaned value or raises FieldValidationError
with a message meant for the person who typed the input.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from draftdesk.core.errors import FieldValidationError

LIST_SPLIT = re.compile(r"\s*[,\n]\s*")
BEAT_RANGE = re.compile(r"^\s*(\d{1,3})\s*-\s*(\d{1,3})\s*$")
CHANNEL_ID = re.compile(r"[\w-]{1,32}")
OUTSIDE_CHANNEL = re.compile(r"\d{15,22}:\d{15,22}")
DURATION_PART = re.compile(
    r"(\d+)\s*(d|days?|h|hours?|hrs?|m|mins?|minutes?|s|secs?|seconds?)(?![a-z])"
)
DURATION_UNITS = {"d": 86_400_000, "h": 3_600_000, "m": 60_000, "s": 1000}
PLACEHOLDER = re.compile(r"\{(\w+)\}")

BEAT_MIN = 1
BEAT_MAX = 999

NOTES_MIN = 3
NOTES_MAX = 1000
NAME_MIN = 2

PREFIX_MIN = 2
PREFIX_MAX = 8

NICKNAME_FORMAT_MIN = 10
NICKNAME_FORMAT_MAX = 70
NICKNAME_PLACEHOLDERS = frozenset(
    {"division", "unit_type", "beat_num", "nickname", "display_name", "roblox_username"}
)

SERVICE_UNIT_TYPES: frozenset[str] = frozenset(
    {"A", "L", "X", "Y", "W", "K9", "SL", "TR", "E", "G", "H", "M", "R", "FB", "CRT", "Air"}
)

INCIDENT_STATUSES: tuple[str, ...] = (
    "Active",
    "Inactive",
    "Under Investigation",
    "Closed",
    "Cold Case",
)


def split_list(raw: str | None) -> list[str]:
    """Split comma/newline separated input, dropping blanks."""
    if not raw:
        return []
    return [p for p in LIST_SPLIT.split(raw.strip()) if p]


def split_tokens(raw: str | None) -> list[str]:
    """Split comma/newline separated input, keeping blank items as empty strings.

    Used where one empty item must fail the whole submission; "K9,,A" gives
    ["K9", "", "A"].
    """
    if not raw or not raw.strip():
        return []
    return [p.strip() for p in re.split(r"[,\n]", raw.strip())]


def parse_role_ids(
    raw: str | Sequence[str] | None,
    *,
    field: str,
    minimum: int = 0,
    maximum: int | None = None,
) -> list[str]:
    """Role ids from text or a selection, de-duplicated in order, with a count check."""
    items = split_list(raw) if raw is None or isinstance(raw, str) else list(raw)
    roles = list(dict.fromkeys(r.strip() for r in items if r.strip()))
    if len(roles) < minimum or (maximum is not None and len(roles) > maximum):
        if maximum is None:
            bounds = f"at least {minimum}"
        else:
            bounds = f"between {minimum} and {maximum}"
        raise FieldValidationError(
            f"Select {bounds} roles, got {len(roles)}",
            field=field,
        )
    return roles


def parse_channel(raw: str | None, *, field: str) -> str | None:
    """One channel id; empty input clears the channel (None)."""
    value = (raw or "").strip()
    if not value:
        return None
    if CHANNEL_ID.fullmatch(value) is None:
        raise FieldValidationError(
            f"Not a channel id: {value!r}",
            field=field,
            suggestion="Channel ids are letters, digits, dashes or underscores",
        )
    return value


def parse_outside_channel(raw: str | None, *, field: str) -> str | None:
    """`<server id>:<channel id>` for a log channel in another server; empty clears."""
    value = (raw or "").strip()
    if not value:
        return None
    if OUTSIDE_CHANNEL.fullmatch(value) is None:
        raise FieldValidationError(
            f"Not a server and channel pair: {value!r}",
            field=field,
            suggestion="Use <server id>:<channel id>, both numeric",
        )
    return value


def parse_duration_ms(raw: str | None, *, field: str) -> int:
    """`1h 30m`, `45m`, `2d` style durations in milliseconds; empty input is 0."""
    text = (raw or "").strip().lower()
    if not text:
        return 0
    pos = 0
    total = 0
    for m in DURATION_PART.finditer(text):
        if text[pos : m.start()].strip(" ,"):
            break
        total += int(m.group(1)) * DURATION_UNITS[m.group(2)[0]]
        pos = m.end()
    else:
        if pos and not text[pos:].strip(" ,"):
            return total
    raise FieldValidationError(
        f"Unknown duration: {raw!r}",
        field=field,
        suggestion="Use units such as 2h, 45m or 1d 4h",
    )


def parse_active_prefix(raw: str | None) -> str | None:
    """Nickname prefix for members on leave; `%s` stands for a space.

    Leading spaces are removed and the result is cut to 8 characters; fewer
    than 2 characters clears the prefix (None).
    """
    text = re.sub(r"(?<!\\)%s", " ", raw or "").lstrip()[:PREFIX_MAX]
    if len(text) < PREFIX_MIN:
        return None
    return text


def parse_nickname_format(raw: str | None, *, field: str = "nickname_format") -> str:
    text = (raw or "").strip()
    if not NICKNAME_FORMAT_MIN <= len(text) <= NICKNAME_FORMAT_MAX:
        raise FieldValidationError(
            f"The nickname format must be {NICKNAME_FORMAT_MIN} to {NICKNAME_FORMAT_MAX} "
            f"characters long, got {len(text)}",
            field=field,
        )
    unknown = sorted(set(PLACEHOLDER.findall(text)) - NICKNAME_PLACEHOLDERS)
    if unknown:
        raise FieldValidationError(
            f"Unknown placeholders: {', '.join('{' + p + '}' for p in unknown)}",
            field=field,
            suggestion=", ".join("{" + p + "}" for p in sorted(NICKNAME_PLACEHOLDERS)),
        )
    return text


def parse_bool_choice(values: Sequence[str], field: str | None = None) -> bool:
    if len(values) != 1:
        raise FieldValidationError("Select exactly one option", field=field)
    choice = values[0].strip().lower()
    if choice in {"true", "yes", "enabled", "1"}:
        return True
    if choice in {"false", "no", "disabled", "0"}:
        return False
    raise FieldValidationError(f"Unknown option: {values[0]!r}", field=field)


def parse_beat_range(raw: str) -> tuple[int, int] | None:
    """`start-end`, inclusive, within 1..999 and start <= end; None when invalid."""
    m = BEAT_RANGE.match(raw or "")
    if m is None:
        return None
    start, end = int(m.group(1)), int(m.group(2))
    if start < BEAT_MIN or end > BEAT_MAX or start > end:
        return None
    return start, end


def normalize_unit_type(raw: str, allowed: Iterable[str] = SERVICE_UNIT_TYPES) -> str | None:
    value = (raw or "").strip()
    if value.lower() == "air":
        value = "Air"
    return value if value in set(allowed) else None


def parse_names(raw: str | None) -> list[str]:
    """Comma separated names; entries shorter than two characters are dropped."""
    return [n for n in split_list(raw) if len(n) >= NAME_MIN]


def collapse_whitespace(raw: str | None) -> str:
    return re.sub(r"\s+", " ", raw or "").strip()


def parse_notes(raw: str | None) -> str | None:
    """Collapsed notes text; empty input clears the notes (None)."""
    text = collapse_whitespace(raw)
    if not text:
        return None
    if len(text) < NOTES_MIN:
        raise FieldValidationError(
            f"Notes must be at least {NOTES_MIN} characters long", field="notes"
        )
    if len(text) > NOTES_MAX:
        raise FieldValidationError(
            f"Notes must be at most {NOTES_MAX} characters long", field="notes"
        )
    return text


def parse_status(values: Sequence[str], allowed: Sequence[str] = INCIDENT_STATUSES) -> str:
    if len(values) != 1 or values[0] not in allowed:
        raise FieldValidationError(
            "Choose one of the listed statuses",
            field="status",
            suggestion=", ".join(allowed),
        )
    return values[0]
