"""Bundled topics."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from draftdesk.topics.absence import leave_topic, reduced_activity_topic
from draftdesk.topics.additional import additional_topic
from draftdesk.topics.basic import basic_topic
from draftdesk.topics.callsigns import callsigns_topic
from draftdesk.topics.duty_activities import duty_activities_topic
from draftdesk.topics.incident import incident_topic
from draftdesk.topics.menu import config_menu_topic, show_configuration_topic
from draftdesk.topics.shift import shift_topic


def register_default_topics(
    engine: Any,
    *,
    role_filter: Callable[[str], bool] | None = None,
    signature: Callable[[str], str] | None = None,
    now: Callable[[], datetime] | None = None,
) -> list[str]:
    """Register the configuration menu, its modules and the incident topic on engine."""
    config_specs = [
        show_configuration_topic(),
        basic_topic(role_filter=role_filter),
        shift_topic(),
        duty_activities_topic(),
        leave_topic(),
        reduced_activity_topic(),
        callsigns_topic(),
        additional_topic(),
    ]
    specs = [
        config_menu_topic([s.topic for s in config_specs]),
        *config_specs,
        incident_topic(signature=signature, now=now),
    ]
    for spec in specs:
        engine.register_topic(spec)
    return [s.topic for s in specs]


__all__ = [
    "additional_topic",
    "basic_topic",
    "callsigns_topic",
    "config_menu_topic",
    "duty_activities_topic",
    "incident_topic",
    "leave_topic",
    "reduced_activity_topic",
    "register_default_topics",
    "shift_topic",
    "show_configuration_topic",
]
