"""Leave of absence and reduced activity module settings.

Both modules share one shape: an on/off switch, a role given to members while
their notice is active, requests and log channels, a nickname prefix and up to
three roles alerted on new requests. They differ in topic, scope and the key
of the status role.
"""

from __future__ import annotations

from draftdesk.core.router import HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.topics.common import (
    bool_handler,
    channel_handler,
    role_handler,
    set_path,
    single_role_handler,
)
from draftdesk.validators import parse_active_prefix

LEAVE_TOPIC = "app-config-loa"
LEAVE_SCOPE = "settings.leave_notices"
REDUCED_ACTIVITY_TOPIC = "app-config-ra"
REDUCED_ACTIVITY_SCOPE = "settings.reduced_activity"

MAX_ALERT_ROLES = 3


async def _set_active_prefix(ctx: HandlerContext) -> bool:
    set_path(ctx.draft, "active_prefix", parse_active_prefix(ctx.event.fields.get("prefix")))
    return True


def _absence_topic(
    *,
    topic: str,
    scope: str,
    title: str,
    heading: str,
    role_key: str,
    role_label: str,
) -> TopicSpec:
    return TopicSpec(
        topic=topic,
        title=title,
        scope=scope,
        pages=(
            PageLayout(
                title=heading,
                fields=(
                    FieldSpec("enabled", "Module Enabled", options=("true", "false"), action="en"),
                    FieldSpec(role_key, role_label, action="sr"),
                    FieldSpec("alert_roles", "Alert Roles", action="ar"),
                    FieldSpec("active_prefix", "Active Prefix", kind="text", action="ap"),
                    FieldSpec("requests_channel", "Requests Channel", kind="text", action="rc"),
                    FieldSpec("log_channel", "Log Channel", kind="text", action="lc"),
                ),
            ),
        ),
        handlers={
            "en": bool_handler("enabled"),
            "sr": single_role_handler(role_key),
            "ar": role_handler("alert_roles", maximum=MAX_ALERT_ROLES),
            "ap": _set_active_prefix,
            "rc": channel_handler("requests_channel"),
            "lc": channel_handler("log_channel"),
        },
        close_on_commit=False,
    )


def leave_topic() -> TopicSpec:
    return _absence_topic(
        topic=LEAVE_TOPIC,
        scope=LEAVE_SCOPE,
        title="leave notices module configuration",
        heading="Leave Notices Module",
        role_key="leave_role",
        role_label="On-Leave Role",
    )


def reduced_activity_topic() -> TopicSpec:
    return _absence_topic(
        topic=REDUCED_ACTIVITY_TOPIC,
        scope=REDUCED_ACTIVITY_SCOPE,
        title="reduced activity module configuration",
        heading="Reduced Activity Module",
        role_key="ra_role",
        role_label="Reduced Activity Role",
    )
