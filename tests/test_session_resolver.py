"""Tests for current session resolution."""

from __future__ import annotations

from datetime import timedelta

from livetiming.schemas.openf1 import SessionSchema, SessionType
from livetiming.services.session_resolver import resolve_current_session

from tests.conftest import NOW, make_session

SIX_HOURS = timedelta(hours=6)


class TestResolveCurrentSession:
    def test_practice_is_excluded_by_type(self) -> None:
        sessions = [
            make_session(1001, "Race", end=NOW - timedelta(hours=1)),
            make_session(1002, "Practice", end=NOW - timedelta(minutes=10)),
        ]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 1001

    def test_qualifying_is_tracked(self) -> None:
        sessions = [make_session(2001, "Qualifying", end=NOW - timedelta(hours=2))]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 2001

    def test_nothing_inside_window_returns_none(self) -> None:
        sessions = [make_session(3001, "Race", start=NOW - timedelta(days=2), end=NOW - timedelta(days=1))]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) is None

    def test_empty_catalog_returns_none(self) -> None:
        assert resolve_current_session([], NOW, SIX_HOURS) is None

    def test_wider_window_finds_older_race(self) -> None:
        sessions = [make_session(3001, "Race", start=NOW - timedelta(days=2), end=NOW - timedelta(days=1))]
        assert resolve_current_session(sessions, NOW, timedelta(days=7)) == 3001

    def test_latest_end_wins(self) -> None:
        sessions = [
            make_session(4001, "Qualifying", end=NOW - timedelta(hours=5)),
            make_session(4002, "Race", end=NOW - timedelta(hours=1)),
            make_session(4003, "Race", end=NOW - timedelta(hours=3)),
        ]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 4002

    def test_ongoing_session_beats_finished(self) -> None:
        sessions = [
            make_session(5001, "Race", end=NOW - timedelta(minutes=5)),
            make_session(5002, "Race", end=None),
        ]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 5002

    def test_tie_goes_to_higher_session_key(self) -> None:
        end = NOW - timedelta(hours=1)
        sessions = [
            make_session(6001, "Race", end=end),
            make_session(6003, "Race", end=end),
            make_session(6002, "Race", end=end),
        ]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 6003

    def test_future_session_is_ignored(self) -> None:
        sessions = [
            make_session(7001, "Race", end=NOW - timedelta(hours=2)),
            make_session(7002, "Race", start=NOW + timedelta(days=6), end=NOW + timedelta(days=6, hours=2)),
        ]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 7001

    def test_repeated_calls_are_deterministic(self) -> None:
        end = NOW - timedelta(hours=1)
        sessions = [make_session(k, "Race", end=end) for k in (8003, 8001, 8002)]
        results = {resolve_current_session(sessions, NOW, SIX_HOURS) for _ in range(5)}
        assert results == {8003}

    def test_custom_session_types(self) -> None:
        sessions = [make_session(9001, "Practice", end=NOW - timedelta(hours=1))]
        assert resolve_current_session(sessions, NOW, SIX_HOURS, [SessionType.PRACTICE]) == 9001

    def test_unknown_upstream_type_maps_to_other(self) -> None:
        session = make_session(9101, "Sprint Shootout", end=NOW)
        assert session.session_type == SessionType.OTHER
        assert resolve_current_session([session], NOW, SIX_HOURS) is None

    def test_session_without_start_or_end_is_ignored(self) -> None:
        undated = SessionSchema.model_validate({
            "session_key": 7002,
            "session_type": "Race",
            "date_start": None,
            "date_end": None,
        })
        sessions = [make_session(7001, "Race", end=NOW - timedelta(hours=1)), undated]
        assert resolve_current_session(sessions, NOW, SIX_HOURS) == 7001
