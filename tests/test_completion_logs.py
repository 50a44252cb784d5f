import pytest
from fastapi.testclient import TestClient
from sqlalchemy.dialects import postgresql

from playlog.main import app
from playlog.db import SessionLocal
from playlog.db_models import Addition, Game, LibraryEntry, UserPlaytime
from playlog.services.completion_service import recalculation_lock

client = TestClient(app)

USER = {"X-User-Id": "user-1"}
BASE = "/api/v1/games/game-1/completion-logs"


@pytest.fixture
def test_data(clean_db):
    with SessionLocal() as db:
        db.add(Game(id="game-1", title="Hollow Knight"))
        db.add_all(
            [
                Addition(id="dlc-a", game_id="game-1", name="Grimm Troupe", weight=1),
                Addition(id="dlc-b", game_id="game-1", name="Godmaster", weight=3),
            ]
        )
        db.add_all(
            [
                LibraryEntry(id="lib-1", user_id="user-1", game_id="game-1", platform_id="pc"),
                LibraryEntry(
                    id="lib-2", user_id="user-1", game_id="game-1", platform_id="switch"
                ),
            ]
        )
        db.add_all(
            [
                UserPlaytime(
                    id="pt-1", user_id="user-1", game_id="game-1", platform_id="pc", total_minutes=120
                ),
                UserPlaytime(
                    id="pt-2",
                    user_id="user-1",
                    game_id="game-1",
                    platform_id="switch",
                    total_minutes=30,
                ),
            ]
        )
        db.commit()
    yield


def _append(percentage, platform_id="pc", notes=None, headers=USER):
    return client.post(
        BASE,
        json={"platform_id": platform_id, "percentage": percentage, "notes": notes},
        headers=headers,
    )


def _recalculate():
    return client.post(f"{BASE}/recalculate", json={"platform_id": "pc"}, headers=USER)


def _own(dlc_ids):
    resp = client.put(
        "/api/v1/games/game-1/ownership/dlcs",
        json={"platform_id": "pc", "dlc_ids": dlc_ids},
        headers=USER,
    )
    assert resp.status_code == 200


class TestAppend:
    def test_append_manual_entry(self, test_data):
        resp = _append(40, notes="Reached the City of Tears")
        assert resp.status_code == 201
        data = resp.json()
        assert data["percentage"] == 40
        assert data["source"] == "manual"
        assert data["notes"] == "Reached the City of Tears"
        assert data["logged_at"]

    @pytest.mark.parametrize("percentage", [-1, 101])
    def test_out_of_range(self, test_data, percentage):
        resp = _append(percentage)
        assert resp.status_code == 422

    def test_bounds_are_inclusive(self, test_data):
        assert _append(0).status_code == 201
        assert _append(100).status_code == 201

    def test_game_not_in_library(self, test_data):
        resp = _append(10, headers={"X-User-Id": "user-2"})
        assert resp.status_code == 404


class TestList:
    def test_newest_first_with_playtime(self, test_data):
        for p in (10, 20, 30):
            _append(p)
        _append(5, platform_id="switch")

        resp = client.get(BASE, params={"platform_id": "pc"}, headers=USER)
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert [e["percentage"] for e in data["entries"]] == [30, 20, 10]
        assert data["total_minutes"] == 120

    def test_all_platforms(self, test_data):
        _append(10)
        _append(5, platform_id="switch")
        data = client.get(BASE, headers=USER).json()
        assert data["total"] == 2
        assert data["total_minutes"] == 150

    def test_pagination(self, test_data):
        for p in (10, 20, 30):
            _append(p)
        data = client.get(BASE, params={"limit": 1, "offset": 1}, headers=USER).json()
        assert data["total"] == 3
        assert data["limit"] == 1
        assert [e["percentage"] for e in data["entries"]] == [20]

    def test_date_range_validation(self, test_data):
        resp = client.get(
            BASE,
            params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
            headers=USER,
        )
        assert resp.status_code == 422

    def test_date_range_excludes_other_days(self, test_data):
        _append(10)
        data = client.get(
            BASE,
            params={"start_date": "2000-01-01", "end_date": "2000-12-31"},
            headers=USER,
        ).json()
        assert data["total"] == 0
        assert data["entries"] == []


class TestDelete:
    def test_delete_leaves_other_entries(self, test_data):
        first = _append(10).json()
        _append(20)
        resp = client.delete(f"{BASE}/{first['id']}", headers=USER)
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        data = client.get(BASE, headers=USER).json()
        assert [e["percentage"] for e in data["entries"]] == [20]

        assert client.delete(f"{BASE}/{first['id']}", headers=USER).status_code == 404

    def test_cannot_delete_other_users_entry(self, test_data):
        entry = _append(10).json()
        resp = client.delete(f"{BASE}/{entry['id']}", headers={"X-User-Id": "user-2"})
        assert resp.status_code == 404


class TestRecalculate:
    def test_appends_auto_entry_once(self, test_data):
        _own(["dlc-a"])
        first = _recalculate()
        assert first.status_code == 200
        data = first.json()
        assert data["percentage"] == 25
        assert data["logged"] is True
        assert data["entry"]["source"] == "auto"
        assert data["entry"]["notes"] == "Auto-calculated"
        assert data["status"] == "backlog"

        second = _recalculate().json()
        assert second["percentage"] == 25
        assert second["logged"] is False
        assert second["entry"] is None

        _own(["dlc-a", "dlc-b"])
        third = _recalculate().json()
        assert third["percentage"] == 100
        assert third["logged"] is True

        data = client.get(BASE, headers=USER).json()
        assert [e["percentage"] for e in data["entries"]] == [100, 25]

    def test_matching_manual_entry_suppresses_auto(self, test_data):
        _append(0)
        data = _recalculate().json()
        assert data["percentage"] == 0
        assert data["logged"] is False

    def test_status_is_read_not_written(self, test_data):
        client.put(
            "/api/v1/games/game-1/progress",
            json={"platform_id": "pc", "status": "dropped"},
            headers=USER,
        )
        assert _recalculate().json()["status"] == "dropped"

    def test_unknown_game(self, test_data):
        resp = client.post(
            "/api/v1/games/nope/completion-logs/recalculate",
            json={"platform_id": "pc"},
            headers=USER,
        )
        assert resp.status_code == 404


def test_recalculation_locks_the_game_row():
    sql = str(recalculation_lock("game-1").compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in sql
    assert "games" in sql
