"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src (for 'draftdesk.*') and this directory (for 'session_support') to path
tests_dir = Path(__file__).parent
repo_root = tests_dir.parent
sys.path.insert(0, str(repo_root / "src"))
sys.path.insert(0, str(tests_dir))


@pytest.fixture(autouse=True)
def _quiet_logging():
    """Keep console output quiet and reset the shared buses between tests."""
    from draftdesk.core.events import get_event_bus
    from draftdesk.core.log_bus import get_log_bus
    from draftdesk.core.logging import VerbosityLevel, set_colors, set_stream, set_verbosity

    set_verbosity(VerbosityLevel.QUIET)
    yield
    set_verbosity(VerbosityLevel.NORMAL)
    set_stream(None)
    set_colors(True)
    get_log_bus().clear()
    get_event_bus().clear()


@pytest.fixture
def config_resolver(tmp_path):
    """ConfigResolver isolated from the real user and system config files.

    Args:
        tmp_path: pytest temporary directory

    Returns:
        ConfigResolver instance
    """
    from draftdesk.core.config import ConfigResolver

    return ConfigResolver(
        cli_args={},
        user_config_path=tmp_path / "user.yaml",
        system_config_path=tmp_path / "system.yaml",
    )


@pytest.fixture
def guild_record():
    """Guild settings document as the bundled config topics expect it."""
    return {
        "_id": "guild-1",
        "settings": {
            "require_authorization": True,
            "utif_enabled": True,
            "role_perms": {"staff": ["r-staff"], "management": []},
            "shift_management": {
                "enabled": False,
                "log_channel": None,
                "default_quota": 0,
                "role_assignment": {"on_duty": [], "on_break": []},
            },
            "duty_activities": {
                "enabled": False,
                "signature_format": 1,
                "auto_annotate_ca_codes": True,
                "log_deletion_interval": 0,
                "arrest_reports": {"show_header_img": False},
                "incident_reports": {"auto_thread_management": False},
                "log_channels": {"incidents": None, "citations": [], "arrests": []},
            },
            "leave_notices": {
                "enabled": False,
                "leave_role": None,
                "requests_channel": None,
                "log_channel": None,
                "active_prefix": None,
                "alert_roles": [],
            },
            "reduced_activity": {
                "enabled": False,
                "ra_role": None,
                "requests_channel": None,
                "log_channel": None,
                "active_prefix": None,
                "alert_roles": [],
            },
            "callsigns_module": {
                "enabled": False,
                "requests_channel": None,
                "log_channel": None,
                "manager_roles": [],
                "alert_on_request": False,
                "update_nicknames": False,
                "release_on_inactivity": True,
                "nickname_format": "{division}-{unit_type}-{beat_num} | {nickname}",
                "unit_type_whitelist": False,
                "unit_type_restrictions": [],
                "beat_restrictions": [],
            },
        },
    }


@pytest.fixture
def incident_record():
    return {
        "_id": "inc-1",
        "guild": "guild-1",
        "status": "Active",
        "officers": ["@officer"],
        "suspects": [],
        "witnesses": [],
        "notes": None,
    }
