"""DraftDesk core.

The session engine and the ambient services it is built on (logging,
diagnostics events, configuration, errors).
"""

__version__ = "1.0.0"

from draftdesk.core.commit import CommitHandler, CommitResult
from draftdesk.core.config import ConfigResolver, SessionSettings
from draftdesk.core.diff import (
    FieldChange,
    build_patch,
    compute_field_diff,
    deep_equal,
    is_modified,
    summarize_changes,
)
from draftdesk.core.engine import SessionEngine, SessionOutcome
from draftdesk.core.errors import (
    BatchValidationError,
    CommitError,
    ConfigError,
    DraftDeskError,
    EntriesNotFoundError,
    FieldValidationError,
    NoChangesError,
    RegistrationError,
    UnknownTopicError,
)
from draftdesk.core.events import EventBus, get_event_bus
from draftdesk.core.logging import VerbosityLevel, get_logger, get_verbosity, set_verbosity
from draftdesk.core.pagination import Direction, Pager, navigate
from draftdesk.core.router import DispatchResult, EventRouter, HandlerContext
from draftdesk.core.state import SessionState, clone, create_session
from draftdesk.core.subflow import CollectionEditor, SubflowActions, SubflowResult
from draftdesk.core.topic import FieldSpec, PageLayout, TopicSpec
from draftdesk.core.ui_event import EventKind, UIEvent
from draftdesk.core.watchdog import SessionStatus, Watchdog

__all__ = [
    # State and diff
    "SessionState",
    "clone",
    "create_session",
    "FieldChange",
    "build_patch",
    "compute_field_diff",
    "deep_equal",
    "is_modified",
    "summarize_changes",
    # Events and routing
    "EventKind",
    "UIEvent",
    "DispatchResult",
    "EventRouter",
    "HandlerContext",
    # Session machinery
    "Direction",
    "Pager",
    "navigate",
    "SessionStatus",
    "Watchdog",
    "CollectionEditor",
    "SubflowActions",
    "SubflowResult",
    "CommitHandler",
    "CommitResult",
    "FieldSpec",
    "PageLayout",
    "TopicSpec",
    "SessionEngine",
    "SessionOutcome",
    # Config
    "ConfigResolver",
    "SessionSettings",
    # Errors
    "DraftDeskError",
    "ConfigError",
    "RegistrationError",
    "UnknownTopicError",
    "FieldValidationError",
    "BatchValidationError",
    "EntriesNotFoundError",
    "NoChangesError",
    "CommitError",
    # Events
    "EventBus",
    "get_event_bus",
    # Logging
    "VerbosityLevel",
    "get_logger",
    "get_verbosity",
    "set_verbosity",
]
