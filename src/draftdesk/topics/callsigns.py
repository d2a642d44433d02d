"""Call signs module settings with unit type and beat number restriction lists."""

from __future__ import annotations

from collections.abc import Mapping

from draftdesk.core.router import HandlerContext
from draftdesk.core.subflow import OBJECT_ID, Entry, SubflowActions
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.topics.common import bool_handler, channel_handler, role_handler
from draftdesk.validators import (
    normalize_unit_type,
    parse_beat_range,
    parse_nickname_format,
    parse_role_ids,
    split_tokens,
)

TOPIC = "app-config-cs"
SCOPE = "settings.callsigns_module"

MAX_MANAGER_ROLES = 6
MAX_PERMITTED_ROLES = 6


def _permitted_roles(fields: Mapping[str, str]) -> list[str]:
    return parse_role_ids(
        fields.get("roles"),
        field="permitted_roles",
        minimum=1,
        maximum=MAX_PERMITTED_ROLES,
    )


def _parse_unit_types(fields: Mapping[str, str]) -> list[Entry]:
    roles = _permitted_roles(fields)
    return [
        {"unit_type": raw, "permitted_roles": list(roles)}
        for raw in split_tokens(fields.get("unit_types"))
    ]


def _parse_beat_ranges(fields: Mapping[str, str]) -> list[Entry]:
    roles = _permitted_roles(fields)
    return [
        {"range": raw, "permitted_roles": list(roles)}
        for raw in split_tokens(fields.get("beat_ranges"))
    ]


def _normalized_unit_type(entry: Entry) -> Entry:
    return {**entry, "unit_type": normalize_unit_type(str(entry["unit_type"]))}


def _normalized_range(entry: Entry) -> Entry:
    parsed = parse_beat_range(str(entry["range"]))
    assert parsed is not None
    return {**entry, "range": list(parsed)}


def _has_roles(entry: Entry) -> bool:
    return 0 < len(entry.get("permitted_roles") or []) <= MAX_PERMITTED_ROLES


UNIT_TYPE_RESTRICTIONS = SubflowActions(
    topic="cs-utr",
    label="Unit Type Restrictions",
    parse=_parse_unit_types,
    validate=lambda e: (
        _has_roles(e) and normalize_unit_type(str(e.get("unit_type", ""))) is not None
    ),
    normalize=_normalized_unit_type,
    describe=lambda e: str(e.get("unit_type")) or "(blank)",
    id_pattern=OBJECT_ID,
)

BEAT_RESTRICTIONS = SubflowActions(
    topic="cs-bnr",
    label="Beat Number Restrictions",
    parse=_parse_beat_ranges,
    validate=lambda e: _has_roles(e) and parse_beat_range(str(e.get("range", ""))) is not None,
    normalize=_normalized_range,
    describe=lambda e: str(e.get("range")) or "(blank)",
    id_pattern=OBJECT_ID,
)


def _restrictions_handler(key: str, actions: SubflowActions):
    async def _edit(ctx: HandlerContext) -> bool:
        result = await ctx.session.run_subflow(ctx.draft.get(key) or [], actions)
        if result.committed:
            ctx.draft[key] = result.value
        return True

    return _edit


async def _set_nickname_format(ctx: HandlerContext) -> bool:
    ctx.draft["nickname_format"] = parse_nickname_format(ctx.event.fields.get("format"))
    return True


def callsigns_topic() -> TopicSpec:
    return TopicSpec(
        topic=TOPIC,
        title="call signs module configuration",
        scope=SCOPE,
        pages=(
            PageLayout(
                title="Call Signs Module",
                fields=(
                    FieldSpec("enabled", "Module Enabled", options=("true", "false"), action="en"),
                    FieldSpec("requests_channel", "Requests Channel", kind="text", action="rc"),
                    FieldSpec("log_channel", "Log Channel", kind="text", action="lc"),
                    FieldSpec("manager_roles", "Manager Roles", action="mgr"),
                    FieldSpec(
                        "alert_on_request",
                        "Alert Managers on Requests",
                        options=("true", "false"),
                        action="aor",
                    ),
                ),
            ),
            PageLayout(
                title="Nicknames and Release",
                fields=(
                    FieldSpec(
                        "update_nicknames",
                        "Auto-Rename on Approval",
                        options=("true", "false"),
                        action="ara",
                    ),
                    FieldSpec(
                        "release_on_inactivity",
                        "Auto Call Sign Release",
                        options=("true", "false"),
                        action="acr",
                    ),
                    FieldSpec("nickname_format", "Nickname Format", kind="text", action="nf"),
                ),
            ),
            PageLayout(
                title="Unit Type Restrictions",
                fields=(
                    FieldSpec(
                        "unit_type_whitelist",
                        "Unit Type Whitelist Mode",
                        options=("true", "false"),
                        action="utrm",
                    ),
                    FieldSpec(
                        "unit_type_restrictions",
                        "Unit Type Restrictions",
                        kind="subflow",
                        action="utr",
                    ),
                ),
            ),
            PageLayout(
                title="Beat Number Restrictions",
                fields=(
                    FieldSpec(
                        "beat_restrictions",
                        "Beat Number Restrictions",
                        kind="subflow",
                        action="bnr",
                    ),
                ),
            ),
        ),
        handlers={
            "en": bool_handler("enabled"),
            "rc": channel_handler("requests_channel"),
            "lc": channel_handler("log_channel"),
            "mgr": role_handler("manager_roles", maximum=MAX_MANAGER_ROLES),
            "aor": bool_handler("alert_on_request"),
            "ara": bool_handler("update_nicknames"),
            "acr": bool_handler("release_on_inactivity"),
            "nf": _set_nickname_format,
            "utrm": bool_handler("unit_type_whitelist"),
            "utr": _restrictions_handler("unit_type_restrictions", UNIT_TYPE_RESTRICTIONS),
            "bnr": _restrictions_handler("beat_restrictions", BEAT_RESTRICTIONS),
        },
        close_on_commit=False,
    )
