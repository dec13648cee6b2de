"""Tests for the HTTP endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from livetiming.core.deps import get_app_settings, get_db_session, get_openf1, get_poller
from livetiming.core.exceptions import UpstreamUnavailableException
from livetiming.core.time_utils import utc_now
from livetiming.main import app
from livetiming.schemas.openf1 import CarDataSchema
from livetiming.schemas.positions import PositionRecord
from livetiming.services import position_store
from livetiming.services.ingestion import PositionPoller

from tests.conftest import SESSION_KEY, FakeTelemetrySource, make_session

STARTED = utc_now().replace(microsecond=0) - timedelta(hours=1)


def _record(driver_number, full_name, team_name, position, minutes, session_key=SESSION_KEY):
    return PositionRecord(
        session_key=session_key,
        driver_number=driver_number,
        full_name=full_name,
        team_name=team_name,
        position=position,
        date=STARTED + timedelta(minutes=minutes),
    )


@pytest.fixture
def source() -> FakeTelemetrySource:
    return FakeTelemetrySource(sessions=[make_session(start=STARTED)])


@pytest.fixture
def client(database, settings, source):
    def _db():
        with database.session_scope() as db:
            yield db

    poller = PositionPoller(source, database, settings)
    app.dependency_overrides[get_db_session] = _db
    app.dependency_overrides[get_openf1] = lambda: source
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_poller] = lambda: poller
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded(database) -> None:
    with database.session_scope() as db:
        for record in [
            _record(44, "Lewis HAMILTON", "Mercedes", 3, 0),
            _record(44, "Lewis HAMILTON", "Mercedes", 1, 10),
            _record(1, "Max VERSTAPPEN", "Red Bull Racing", 1, 0),
            _record(1, "Max VERSTAPPEN", "Red Bull Racing", 2, 10),
            _record(16, "Charles LECLERC", "Ferrari", 3, 12),
            _record(55, "Carlos SAINZ", "Ferrari", 1, 5, session_key=1),
        ]:
            position_store.insert_position(db, record)


class TestCurrentPositions:
    def test_latest_position_per_driver(self, client, seeded) -> None:
        response = client.get("/api/current_positions")

        assert response.status_code == 200
        assert response.json() == [
            {"driver_number": 44, "full_name": "Lewis HAMILTON", "team_name": "Mercedes", "position": 1},
            {"driver_number": 1, "full_name": "Max VERSTAPPEN", "team_name": "Red Bull Racing", "position": 2},
            {"driver_number": 16, "full_name": "Charles LECLERC", "team_name": "Ferrari", "position": 3},
        ]

    def test_no_session_returns_empty_list(self, client, source, seeded) -> None:
        source.sessions = []
        response = client.get("/api/current_positions")
        assert response.status_code == 200
        assert response.json() == []

    def test_upstream_failure_is_500(self, client, source) -> None:
        source.error = UpstreamUnavailableException("down")
        response = client.get("/api/current_positions")
        assert response.status_code == 500
        assert response.json() == {"message": "Internal server error"}


class TestPositionHistory:
    def test_history_is_chronological(self, client, seeded) -> None:
        response = client.get("/api/positions/history/44")

        assert response.status_code == 200
        body = response.json()
        assert [p["position"] for p in body] == [3, 1]
        assert body[0]["driver_number"] == 44
        assert body[0]["full_name"] == "Lewis HAMILTON"
        assert set(body[0]) == {"driver_number", "full_name", "position", "date"}
        assert body[0]["date"] < body[1]["date"]

    def test_unknown_driver_has_empty_history(self, client, seeded) -> None:
        response = client.get("/api/positions/history/63")
        assert response.status_code == 200
        assert response.json() == []

    def test_no_session_is_404(self, client, source) -> None:
        source.sessions = []
        response = client.get("/api/positions/history/77")
        assert response.status_code == 404
        assert response.json() == {"message": "No active race session found."}


class TestDriversWithPositionData:
    def test_drivers_ordered_by_name(self, client, seeded) -> None:
        response = client.get("/api/drivers_with_position_data")

        assert response.status_code == 200
        assert response.json() == [
            {"driver_number": 16, "full_name": "Charles LECLERC"},
            {"driver_number": 44, "full_name": "Lewis HAMILTON"},
            {"driver_number": 1, "full_name": "Max VERSTAPPEN"},
        ]

    def test_no_session_returns_empty_list(self, client, source, seeded) -> None:
        source.sessions = []
        response = client.get("/api/drivers_with_position_data")
        assert response.status_code == 200
        assert response.json() == []


class TestCurrentSpeed:
    def test_latest_sample(self, client, source) -> None:
        source.car_data = [
            CarDataSchema(driver_number=44, speed=288, date=STARTED + timedelta(seconds=1)),
            CarDataSchema(driver_number=44, speed=312, date=STARTED + timedelta(seconds=3)),
            CarDataSchema(driver_number=44, speed=301, date=STARTED + timedelta(seconds=2)),
            CarDataSchema(driver_number=1, speed=330, date=STARTED + timedelta(seconds=4)),
        ]
        response = client.get("/api/current_speed/44")

        assert response.status_code == 200
        body = response.json()
        assert body["driver_number"] == 44
        assert body["full_name"] == "Lewis HAMILTON"
        assert body["speed"] == 312

    def test_unknown_driver_is_404(self, client) -> None:
        response = client.get("/api/current_speed/63")
        assert response.status_code == 404
        assert "63" in response.json()["message"]

    def test_driver_without_samples_is_404(self, client) -> None:
        response = client.get("/api/current_speed/16")
        assert response.status_code == 404

    def test_no_session_is_404(self, client, source) -> None:
        source.sessions = []
        response = client.get("/api/current_speed/44")
        assert response.status_code == 404
        assert response.json() == {"message": "No active race session found."}


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ingestion_status(self, client) -> None:
        response = client.get("/api/ingestion/status")
        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "live"
        assert body["cycle_running"] is False
        assert body["cycles_completed"] == 0
        assert body["cycles_failed"] == 0
        assert body["last_error"] is None

    def test_not_found_route_uses_message_body(self, client) -> None:
        response = client.get("/api/does_not_exist")
        assert response.status_code == 404
        assert "message" in response.json()

    def test_invalid_path_parameter_uses_message_body(self, client) -> None:
        response = client.get("/api/positions/history/abc")
        assert response.status_code == 422
        body = response.json()
        assert "detail" not in body
        assert body["message"].startswith("Invalid request: driver_number:")
