import itertools
import os
import tempfile
from io import BytesIO

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

# Set test configuration BEFORE importing any app modules
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="spacemotors-static-")
os.environ["WHATSAPP_PHONE"] = "525536343619"
os.environ["ADMIN_USER"] = "admin"
os.environ["ADMIN_PASS"] = "password"

from app.main import app
from app.database import Base
from app.dependencies import get_db, get_file_storage
from app.services.car_service import CarService
from app.services.file_storage import LocalFileStorage
from app import models  # noqa: F401


@pytest.fixture(scope="session")
def test_engine():
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # share same in-memory DB across connections
    )


@pytest.fixture()
def db_session(test_engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    # Fresh schema per test to avoid cross-test data (e.g. unique slugs)
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture()
def storage(upload_dir):
    return LocalFileStorage(str(upload_dir))


@pytest.fixture()
def clock():
    counter = itertools.count(1700000000000)
    return lambda: next(counter)


@pytest.fixture()
def service(db_session, storage, clock):
    return CarService(db_session, storage, clock=clock)


@pytest.fixture(autouse=True)
def override_dependencies(test_engine, db_session, storage):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )

    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_file_storage] = lambda: storage

    # Disable rate limiter globally for tests
    if hasattr(app.state, "limiter"):
        setattr(app.state.limiter, "enabled", False)
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def admin_auth():
    return ("admin", "password")


@pytest.fixture()
def make_upload():
    def _make(name: str, content: bytes = b"jpeg-bytes") -> UploadFile:
        return UploadFile(file=BytesIO(content), filename=name)

    return _make


@pytest.fixture()
def mazda_payload():
    def _payload(**overrides):
        payload = {
            "title": "Mazda 3 i Touring",
            "price": 158000,
            "year": 2017,
            "mileage": 78500,
            "city": "Ciudad de Mexico",
        }
        payload.update(overrides)
        return payload

    return _payload
