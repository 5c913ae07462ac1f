import os
import tempfile

# Point the app at a throwaway database before inventory_api.database is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="inventory-uploads-")

import pytest
from fastapi.testclient import TestClient

from inventory_api.database import Base, SessionLocal, engine, init_db
from inventory_api.store import SqlProductStore


@pytest.fixture(autouse=True)
def reset_database():
    init_db()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    return SqlProductStore(db_session)


@pytest.fixture
def client():
    from inventory_api.main import app

    with TestClient(app) as test_client:
        yield test_client
