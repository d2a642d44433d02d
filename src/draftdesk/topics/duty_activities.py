"""Duty activities module settings: report options, signatures and log channels.

The topic edits the whole settings document because the signature format and
the authorization requirement constrain each other.
"""

from __future__ import annotations

from collections.abc import Sequence

from draftdesk.core.diff import get_path
from draftdesk.core.errors import FieldValidationError
from draftdesk.core.router import Handler, HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.topics.basic import SignatureFormat, roblox_dependency_conflict
from draftdesk.topics.common import bool_handler, channel_handler, set_path
from draftdesk.validators import parse_channel, parse_outside_channel

TOPIC = "app-config-da"
SCOPE = "settings"

_ALL_SIGNATURE_PARTS = int(
    SignatureFormat.DISCORD_NICKNAME
    | SignatureFormat.DISCORD_USERNAME
    | SignatureFormat.ROBLOX_DISPLAY_NAME
    | SignatureFormat.ROBLOX_USERNAME
)


def parse_signature_format(values: Sequence[str]) -> int:
    raw = values[0].strip() if len(values) == 1 else ""
    if not raw.isdigit() or not 0 < int(raw) <= _ALL_SIGNATURE_PARTS:
        raise FieldValidationError(
            f"Unknown signature format: {raw!r}",
            field="duty_activities.signature_format",
            suggestion="Pick one of the listed formats",
        )
    return int(raw)


async def _set_signature_format(ctx: HandlerContext) -> bool:
    fmt = parse_signature_format(ctx.event.values)
    set_path(ctx.draft, "duty_activities.signature_format", fmt)
    problem = roblox_dependency_conflict(ctx.draft)
    if problem:
        raise FieldValidationError(problem, field="duty_activities.signature_format")
    return True


def _log_channels_handler(path: str) -> Handler:
    """One local channel plus at most one `<server>:<channel>` in another server."""

    async def _set(ctx: HandlerContext) -> bool:
        current = [str(c) for c in get_path(ctx.draft, path) or []]
        local = next((c for c in current if ":" not in c), None)
        outside = next((c for c in current if ":" in c), None)
        fields = ctx.event.fields
        if "channel" in fields:
            local = parse_channel(fields["channel"], field=path)
        if "outside" in fields:
            outside = parse_outside_channel(fields["outside"], field=path)
        set_path(ctx.draft, path, [c for c in (local, outside) if c])
        return True

    return _set


def duty_activities_topic() -> TopicSpec:
    return TopicSpec(
        topic=TOPIC,
        title="duty activities module configuration",
        scope=SCOPE,
        pages=(
            PageLayout(
                title="Duty Activities Module",
                fields=(
                    FieldSpec(
                        "duty_activities.enabled",
                        "Module Enabled",
                        options=("true", "false"),
                        action="en",
                    ),
                    FieldSpec(
                        "duty_activities.signature_format",
                        "Signature Format",
                        options=tuple(str(i) for i in range(1, _ALL_SIGNATURE_PARTS + 1)),
                        action="sf",
                    ),
                    FieldSpec(
                        "duty_activities.auto_annotate_ca_codes",
                        "Auto-Annotate CA Codes",
                        options=("true", "false"),
                        action="caa",
                    ),
                ),
            ),
            PageLayout(
                title="Reports",
                fields=(
                    FieldSpec(
                        "duty_activities.arrest_reports.show_header_img",
                        "Arrest Reports Header Image",
                        options=("true", "false"),
                        action="arhi",
                    ),
                    FieldSpec(
                        "duty_activities.incident_reports.auto_thread_management",
                        "Incident Reports Auto Thread Management",
                        options=("true", "false"),
                        action="iratm",
                    ),
                ),
            ),
            PageLayout(
                title="Log Channels",
                fields=(
                    FieldSpec(
                        "duty_activities.log_channels.incidents",
                        "Incident Log Channel",
                        kind="text",
                        action="ilc",
                    ),
                    FieldSpec(
                        "duty_activities.log_channels.citations",
                        "Citation Log Channels",
                        kind="text",
                        action="clc",
                    ),
                    FieldSpec(
                        "duty_activities.log_channels.arrests",
                        "Arrest Log Channels",
                        kind="text",
                        action="alc",
                    ),
                ),
            ),
        ),
        handlers={
            "en": bool_handler("duty_activities.enabled"),
            "sf": _set_signature_format,
            "caa": bool_handler("duty_activities.auto_annotate_ca_codes"),
            "arhi": bool_handler("duty_activities.arrest_reports.show_header_img"),
            "iratm": bool_handler("duty_activities.incident_reports.auto_thread_management"),
            "ilc": channel_handler("duty_activities.log_channels.incidents"),
            "clc": _log_channels_handler("duty_activities.log_channels.citations"),
            "alc": _log_channels_handler("duty_activities.log_channels.arrests"),
        },
        checks=(roblox_dependency_conflict,),
        close_on_commit=False,
    )
