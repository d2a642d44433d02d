"""The app configuration root menu and the read-only configuration overview.

Selecting a module in the menu runs that module's topic nested under the menu
prompt. The module's back action ends the nested session and the menu is shown
again; saving inside a module does not leave it.
"""

from __future__ import annotations

from collections.abc import Sequence

from draftdesk.core.errors import FieldValidationError
from draftdesk.core.router import Handler, HandlerContext
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec

TOPIC = "app-config"
SHOW_TOPIC = "app-config-vc"
SCOPE = "settings"


def _section(title: str, *fields: tuple[str, str]) -> PageLayout:
    return PageLayout(
        title=title,
        fields=tuple(FieldSpec(path, label, kind="display") for path, label in fields),
    )


OVERVIEW_PAGES = (
    _section(
        "Basic Configuration",
        ("require_authorization", "Roblox Authorization Required"),
        ("role_perms.staff", "Staff Roles"),
        ("role_perms.management", "Management Roles"),
    ),
    _section(
        "Shift Management Module",
        ("shift_management.enabled", "Module Enabled"),
        ("shift_management.log_channel", "Shift Log Channel"),
        ("shift_management.default_quota", "Server Default Quota"),
        ("shift_management.role_assignment.on_duty", "On-Duty Roles"),
        ("shift_management.role_assignment.on_break", "On-Break Roles"),
    ),
    _section(
        "Leave Notices Module",
        ("leave_notices.enabled", "Module Enabled"),
        ("leave_notices.leave_role", "On-Leave Role"),
        ("leave_notices.alert_roles", "Alert Roles"),
        ("leave_notices.active_prefix", "Active Prefix"),
        ("leave_notices.requests_channel", "Requests Channel"),
        ("leave_notices.log_channel", "Log Channel"),
    ),
    _section(
        "Reduced Activity Module",
        ("reduced_activity.enabled", "Module Enabled"),
        ("reduced_activity.ra_role", "Reduced Activity Role"),
        ("reduced_activity.alert_roles", "Alert Roles"),
        ("reduced_activity.active_prefix", "Active Prefix"),
        ("reduced_activity.requests_channel", "Requests Channel"),
        ("reduced_activity.log_channel", "Log Channel"),
    ),
    _section(
        "Duty Activities Module",
        ("duty_activities.enabled", "Module Enabled"),
        ("duty_activities.signature_format", "Signature Format"),
        ("duty_activities.auto_annotate_ca_codes", "Auto-Annotate CA Codes"),
        ("duty_activities.arrest_reports.show_header_img", "Arrest Reports Header Image"),
        (
            "duty_activities.incident_reports.auto_thread_management",
            "Incident Reports Auto Thread Management",
        ),
        ("duty_activities.log_channels.incidents", "Incident Log Channel"),
        ("duty_activities.log_channels.citations", "Citation Log Channels"),
        ("duty_activities.log_channels.arrests", "Arrest Log Channels"),
    ),
    _section(
        "Call Signs Module",
        ("callsigns_module.enabled", "Module Enabled"),
        ("callsigns_module.requests_channel", "Requests Channel"),
        ("callsigns_module.log_channel", "Log Channel"),
        ("callsigns_module.manager_roles", "Manager Roles"),
        ("callsigns_module.alert_on_request", "Alert Managers on Requests"),
        ("callsigns_module.update_nicknames", "Auto-Rename on Approval"),
        ("callsigns_module.release_on_inactivity", "Auto Call Sign Release"),
        ("callsigns_module.nickname_format", "Nickname Format"),
        ("callsigns_module.unit_type_whitelist", "Unit Type Whitelist Mode"),
        ("callsigns_module.unit_type_restrictions", "Unit Type Restrictions"),
        ("callsigns_module.beat_restrictions", "Beat Number Restrictions"),
    ),
    _section(
        "Additional Configuration",
        ("duty_activities.log_deletion_interval", "Log Deletion Interval"),
        ("utif_enabled", "Member Text Input Filtering"),
    ),
)


def show_configuration_topic() -> TopicSpec:
    return TopicSpec(
        topic=SHOW_TOPIC,
        title="current configuration",
        scope=SCOPE,
        pages=OVERVIEW_PAGES,
        read_only=True,
    )


def _select_handler(choices: Sequence[str]) -> Handler:
    async def _select(ctx: HandlerContext) -> bool:
        topic = ctx.event.values[0] if len(ctx.event.values) == 1 else ""
        if topic not in choices:
            raise FieldValidationError(
                f"Unknown configuration topic: {topic!r}",
                field="module",
                suggestion="Select one of the listed modules",
            )
        await ctx.session.run_topic(topic)
        return True

    return _select


def config_menu_topic(choices: Sequence[str]) -> TopicSpec:
    """Root menu offering choices, the topic ids of the overview and every module."""
    return TopicSpec(
        topic=TOPIC,
        title="app configuration",
        scope=SCOPE,
        pages=(
            PageLayout(
                title="App Configuration",
                fields=(FieldSpec("module", "Module", options=tuple(choices), action="sel"),),
            ),
        ),
        handlers={"sel": _select_handler(tuple(choices))},
        read_only=True,
    )
