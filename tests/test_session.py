"""
Tests for session change detection
"""

from typing import Any, Dict, List, Optional

import pytest

from spid_sdk.session import SessionEvent, SessionEventType, SessionTracker, diff_session


def names(events: List[SessionEvent]) -> List[str]:
    return [event.name for event in events]


@pytest.fixture
def tracker() -> SessionTracker:
    return SessionTracker()


def primed(previous: Dict[str, Any]) -> SessionTracker:
    """Tracker in the state a facade is in after having seen ``previous``."""
    tracker = SessionTracker()
    diff_session({}, previous, tracker)
    return tracker


class TestDiffSession:
    """Tests for the event sequence of a session transition."""

    def test_first_login(self, tracker: SessionTracker):
        events = diff_session({}, {"userId": "u1", "userStatus": "ok"}, tracker)

        assert names(events) == ["login", "sessionChange", "sessionInit", "statusChange"]
        assert tracker.session_init_sent is True
        assert tracker.user_status == "ok"

    def test_logout(self):
        previous = {"userId": "u1"}
        tracker = primed(previous)

        events = diff_session(previous, {}, tracker)

        assert names(events) == ["logout", "notLoggedIn"]

    def test_user_change(self):
        previous = {"userId": "u1", "userStatus": "ok"}
        tracker = primed(previous)

        events = diff_session(previous, {"userId": "u2", "userStatus": "ok"}, tracker)

        assert names(events) == ["login", "userChange", "sessionChange"]

    def test_anonymous_visitor(self, tracker: SessionTracker):
        events = diff_session({}, {"visitor": {"uid": "v1"}, "result": False}, tracker)

        assert names(events) == ["visitor", "notLoggedIn", "statusChange"]
        assert events[0].payload == {"uid": "v1"}
        assert tracker.user_status is None

    @pytest.mark.parametrize("previous, current, expected", [
        ({"userId": "u1"}, {}, "notLoggedIn"),
        ({}, {"userId": "u1"}, "sessionChange"),
        ({"userId": "u1"}, {"userId": "u2"}, "sessionChange"),
        ({}, {}, "notLoggedIn"),
    ])
    def test_logged_in_state_follows_current_session(self, previous, current, expected):
        events = names(diff_session(previous, current, primed(previous)))
        other = "notLoggedIn" if expected == "sessionChange" else "sessionChange"

        assert expected in events
        assert other not in events

    def test_unchanged_session(self):
        session = {"userId": "u1", "userStatus": "connected"}
        tracker = primed(session)

        assert names(diff_session(session, session, tracker)) == ["sessionChange"]

    def test_payload_is_the_current_session(self, tracker: SessionTracker):
        current = {"userId": 7, "userStatus": "connected", "displayName": "Jo"}

        events = diff_session({}, current, tracker)

        for event in events:
            assert event.payload == current
        assert events[0].payload is not current

    def test_session_init_fires_once(self, tracker: SessionTracker):
        diff_session({}, {"userId": 1}, tracker)
        diff_session({"userId": 1}, {}, tracker)

        events = diff_session({}, {"userId": 1}, tracker)

        assert SessionEventType.SESSION_INIT not in [event.type for event in events]

    def test_trackers_are_independent(self):
        first = SessionTracker()
        second = SessionTracker()

        diff_session({}, {"userId": 1}, first)

        assert "sessionInit" in names(diff_session({}, {"userId": 1}, second))

    @pytest.mark.parametrize("previous, current", [
        (None, None),
        ({}, {}),
        ({"userId": None}, {"userId": ""}),
        ({"unrelated": [1, 2]}, {"visitor": None}),
    ])
    def test_empty_sessions(self, previous: Optional[Dict], current: Optional[Dict]):
        tracker = primed({})

        assert names(diff_session(previous, current, tracker)) == ["notLoggedIn"]

    def test_repeat_is_idempotent(self, tracker: SessionTracker):
        previous: Dict[str, Any] = {}
        current = {"userId": "u1", "userStatus": "ok", "visitor": {"uid": 1}}

        first = names(diff_session(previous, current, tracker))
        second = names(diff_session(previous, current, tracker))

        assert second == [name for name in first if name not in ("sessionInit", "statusChange")]

    def test_event_type_values(self):
        assert SessionEventType.USER_CHANGE == "userChange"
        assert SessionEvent(SessionEventType.LOGIN, {}).name == "login"
