from typing import Any
import asyncio

from fastapi.testclient import TestClient
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request

from playlog.main import app
from playlog.exception_handlers import error_code_for, handle_request_validation_error
from playlog.services.errors import ConflictError, OperationError


@app.get("/api/v1/_conflict-check", include_in_schema=False)
def conflict_check() -> dict[str, str]:
    raise ConflictError("Already running")


@app.get("/api/v1/_operation-check", include_in_schema=False)
def operation_check() -> dict[str, str]:
    raise OperationError("Failed to save")


def test_404_error_shape(client: TestClient) -> None:
    resp = client.get("/this/route/does/not/exist")
    assert resp.status_code == 404
    data = resp.json()
    assert data["error"] == "not_found"
    assert isinstance(data["message"], str) and data["message"]
    assert "timestamp" in data and isinstance(data["timestamp"], str)
    assert "request_id" in data and isinstance(data["request_id"], str)
    # Request id header must match body
    assert resp.headers.get("X-Request-Id") == data["request_id"]


def test_405_error_code(client: TestClient) -> None:
    resp = client.delete("/api/v1/health")
    assert resp.status_code == 405
    assert resp.json()["error"] == "method_not_allowed"


def test_body_validation_error_lists_fields(client: TestClient) -> None:
    resp = client.put(
        "/api/v1/games/any-game/ownership/dlcs",
        json={"platform_id": "pc", "dlc_ids": "not-a-list"},
        headers={"X-User-Id": "user-1"},
    )
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"] == "validation_error"
    assert any(d["field"] == "dlc_ids" for d in data["details"])


def test_validation_error_handler_formats_details() -> None:
    scope: dict[str, Any] = {"type": "http", "method": "GET", "path": "/"}
    request = Request(scope)  # type: ignore[arg-type]
    exc = RequestValidationError([
        {
            "type": "missing",
            "loc": ("body", "platform_id"),
            "msg": "Field required",
            "input": None,
        }
    ])

    resp = asyncio.run(handle_request_validation_error(request, exc))
    assert resp.status_code == 422
    data = resp.body.decode()
    assert "validation_error" in data
    assert "platform_id" in data
    assert "Field required" in data


def test_error_codes_by_status() -> None:
    assert error_code_for(409) == "conflict"
    assert error_code_for(422) == "validation_error"
    assert error_code_for(418) == "error"


def test_untranslated_service_errors(client: TestClient) -> None:
    resp = client.get("/api/v1/_conflict-check")
    assert resp.status_code == 409
    data = resp.json()
    assert data["error"] == "conflict"
    assert data["message"] == "Already running"
    assert resp.headers["X-Request-Id"] == data["request_id"]

    resp = client.get("/api/v1/_operation-check")
    assert resp.status_code == 500
    assert resp.json()["error"] == "internal_error"


def test_query_validation_field_path(client: TestClient) -> None:
    resp = client.get(
        "/api/v1/games/game-1/sessions",
        params={"limit": 0},
        headers={"X-User-Id": "user-1"},
    )
    assert resp.status_code == 422
    assert [d["field"] for d in resp.json()["details"]] == ["limit"]
