"""Shift management module settings."""

from __future__ import annotations

from draftdesk.core.router import HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.topics.common import bool_handler, channel_handler, role_handler, set_path
from draftdesk.validators import parse_duration_ms

TOPIC = "app-config-sc"
SCOPE = "settings.shift_management"

MAX_ASSIGNED_ROLES = 3


async def _set_default_quota(ctx: HandlerContext) -> bool:
    # Stored in milliseconds; 0 means no server-wide quota.
    quota = parse_duration_ms(ctx.event.fields.get("default_quota"), field="default_quota")
    set_path(ctx.draft, "default_quota", quota)
    return True


def shift_topic() -> TopicSpec:
    return TopicSpec(
        topic=TOPIC,
        title="shift module configuration",
        scope=SCOPE,
        pages=(
            PageLayout(
                title="Shift Management Module",
                fields=(
                    FieldSpec("enabled", "Module Enabled", options=("true", "false"), action="en"),
                    FieldSpec("log_channel", "Shift Log Channel", kind="text", action="lc"),
                    FieldSpec("default_quota", "Server Default Quota", kind="text", action="dq"),
                ),
            ),
            PageLayout(
                title="Role Assignment",
                fields=(
                    FieldSpec("role_assignment.on_duty", "On-Duty Roles", action="odr"),
                    FieldSpec("role_assignment.on_break", "On-Break Roles", action="obr"),
                ),
            ),
        ),
        handlers={
            "en": bool_handler("enabled"),
            "lc": channel_handler("log_channel"),
            "dq": _set_default_quota,
            "odr": role_handler("role_assignment.on_duty", maximum=MAX_ASSIGNED_ROLES),
            "obr": role_handler("role_assignment.on_break", maximum=MAX_ASSIGNED_ROLES),
        },
        close_on_commit=False,
    )
