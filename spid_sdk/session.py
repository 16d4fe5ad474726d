"""
Session change detection.

``diff_session`` compares the previously seen session with the current one
and returns the events describing the transition, in a fixed order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class SessionEventType(str, Enum):
    """Session events, valued by the name of their event channel."""
    VISITOR = "visitor"
    LOGIN = "login"
    LOGOUT = "logout"
    USER_CHANGE = "userChange"
    SESSION_CHANGE = "sessionChange"
    NOT_LOGGED_IN = "notLoggedIn"
    SESSION_INIT = "sessionInit"
    STATUS_CHANGE = "statusChange"


@dataclass(frozen=True)
class SessionEvent:
    type: SessionEventType
    payload: Any

    @property
    def name(self) -> str:
        return self.type.value


@dataclass
class SessionTracker:
    """Session state that outlives a single diff, owned by one facade instance."""

    # Set once sessionInit has fired
    session_init_sent: bool = False
    # Last observed userStatus
    user_status: Any = "unknown"


def diff_session(
    previous: Optional[Mapping[str, Any]],
    current: Optional[Mapping[str, Any]],
    tracker: SessionTracker,
) -> List[SessionEvent]:
    """
    Compute the events caused by going from ``previous`` to ``current``.

    Missing fields count as empty. The tracker is updated when sessionInit or
    statusChange fire.
    """
    previous = previous or {}
    current = current or {}
    payload: Dict[str, Any] = dict(current)
    previous_user = previous.get("userId")
    current_user = current.get("userId")
    events: List[SessionEvent] = []

    def add(event_type: SessionEventType, value: Any = payload) -> None:
        events.append(SessionEvent(event_type, value))

    if current.get("visitor"):
        add(SessionEventType.VISITOR, current["visitor"])

    # User has created a session, or user is no longer the same
    if current_user and previous_user != current_user:
        add(SessionEventType.LOGIN)

    if previous_user and not current_user:
        add(SessionEventType.LOGOUT)

    if previous_user and current_user and previous_user != current_user:
        add(SessionEventType.USER_CHANGE)

    # Decided on the current session alone
    if current_user:
        add(SessionEventType.SESSION_CHANGE)
    else:
        add(SessionEventType.NOT_LOGGED_IN)

    if current_user and not tracker.session_init_sent:
        tracker.session_init_sent = True
        add(SessionEventType.SESSION_INIT)

    if current.get("userStatus") != tracker.user_status:
        tracker.user_status = current.get("userStatus")
        add(SessionEventType.STATUS_CHANGE)

    return events
