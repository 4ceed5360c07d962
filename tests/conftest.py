import os
import tempfile
from pathlib import Path

import pytest

# point the app at a throwaway database before footprint.config is imported
_TMP_DIR = tempfile.mkdtemp(prefix="footprint-tests-")
os.environ["FOOTPRINT_DATABASE_URL"] = f"sqlite:///{Path(_TMP_DIR) / 'test.db'}"
os.environ.setdefault("FOOTPRINT_LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from footprint import crud  # noqa: E402
from footprint.database import Base, SessionLocal, engine, init_db  # noqa: E402
from footprint.main import app  # noqa: E402


@pytest.fixture
def db():
    """Fresh tables and a session for each test."""
    Base.metadata.drop_all(bind=engine)
    init_db(engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def user(db):
    return crud.create_user(db, "Asha Rao", "Asha@Example.com")


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c
