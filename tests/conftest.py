import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure the project root is on sys.path when running from elsewhere
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from playlog.main import app
from playlog.db import Base, SessionLocal
from playlog import db_models  # noqa: F401

# Ensure tables exist
Base.metadata.create_all(bind=SessionLocal.kw["bind"])


@pytest.fixture()
def client() -> TestClient:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def clean_db():
    """Empty every table before the test."""
    with SessionLocal() as db:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    yield
