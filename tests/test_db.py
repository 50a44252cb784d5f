from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from playlog.main import app
from playlog.db import SessionLocal, get_db, upsert
from playlog.db_models import UserPlaytime


# Register a temporary route for exercising the DB dependency
@app.get("/api/v1/_db-check", include_in_schema=False)
def db_check(db: Session = Depends(get_db)) -> dict[str, str]:
    assert isinstance(db, Session)
    return {"dialect": db.get_bind().dialect.name}


def test_db_dependency(client: TestClient) -> None:
    resp = client.get("/api/v1/_db-check")
    assert resp.status_code == 200
    assert resp.json() == {"dialect": "sqlite"}


def test_upsert_supports_on_conflict() -> None:
    with SessionLocal() as db:
        stmt = upsert(db, UserPlaytime).values(
            id="x", user_id="u", game_id="g", platform_id="p", total_minutes=1
        )
        assert hasattr(stmt, "on_conflict_do_update")
