"""Handler factories shared by the settings topics.

Every factory takes the dotted path of the field inside the topic's draft and
returns an async handler that parses the event, writes the path and asks for a
redraw. Parse failures raise FieldValidationError, which leaves the draft as it
was.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from draftdesk.core.errors import FieldValidationError
from draftdesk.core.router import Handler, HandlerContext
from draftdesk.validators import parse_bool_choice, parse_channel, parse_role_ids


def set_path(draft: dict[str, Any], path: str, value: Any) -> None:
    """Write value at a dotted path, creating intermediate mappings."""
    parts = path.split(".")
    target = draft
    for part in parts[:-1]:
        nxt = target.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            target[part] = nxt
        target = nxt
    target[parts[-1]] = value


def bool_handler(path: str) -> Handler:
    async def _set(ctx: HandlerContext) -> bool:
        set_path(ctx.draft, path, parse_bool_choice(ctx.event.values, field=path))
        return True

    return _set


def channel_handler(path: str) -> Handler:
    """Text submission with a `channel` field; an empty value clears it."""

    async def _set(ctx: HandlerContext) -> bool:
        raw = ctx.event.fields.get("channel")
        if raw is None and ctx.event.values:
            raw = ctx.event.values[0]
        set_path(ctx.draft, path, parse_channel(raw, field=path))
        return True

    return _set


def role_handler(
    path: str,
    *,
    maximum: int | None = None,
    role_filter: Callable[[str], bool] | None = None,
) -> Handler:
    """Role selection replacing the list at path; role_filter refuses unusable roles."""

    async def _set(ctx: HandlerContext) -> bool:
        roles = parse_role_ids(ctx.event.values, field=path, maximum=maximum)
        if role_filter is not None:
            refused = [r for r in roles if not role_filter(r)]
            if refused:
                raise FieldValidationError(
                    f"These roles cannot be used here: {', '.join(refused)}",
                    field=path,
                    suggestion="Managed and everyone roles are not selectable",
                )
        set_path(ctx.draft, path, roles)
        return True

    return _set


def single_role_handler(path: str) -> Handler:
    """Selection of at most one role; selecting nothing clears it."""

    async def _set(ctx: HandlerContext) -> bool:
        roles = parse_role_ids(ctx.event.values, field=path, maximum=1)
        set_path(ctx.draft, path, roles[0] if roles else None)
        return True

    return _set
