import os
import uuid

os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_blob_store, get_db, get_notarizer
from app.db import Base, SessionLocal
from app.main import app
from app.models.person import Person
from app.services.auth_dependencies import create_access_token
from tests.fakes import FakeNotarizer, InMemoryBlobStore


@pytest.fixture()
def db_session():
    engine = SessionLocal.kw["bind"]
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


def _make_person(db_session, username, **overrides):
    defaults = dict(
        username=username,
        email=f"{username}-{uuid.uuid4().hex[:8]}@example.com",
        wallet_address=f"0x{uuid.uuid4().hex}{uuid.uuid4().hex[:8]}",
    )
    defaults.update(overrides)
    person = Person(**defaults)
    db_session.add(person)
    db_session.commit()
    db_session.refresh(person)
    return person


@pytest.fixture()
def person(db_session):
    return _make_person(db_session, "alice")


@pytest.fixture()
def other_person(db_session):
    return _make_person(db_session, "bob")


@pytest.fixture()
def third_person(db_session):
    return _make_person(db_session, "carol")


@pytest.fixture()
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture()
def notarizer():
    return FakeNotarizer()


@pytest.fixture()
def client(db_session, blob_store, notarizer):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notarizer] = lambda: notarizer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(person):
    return {"Authorization": f"Bearer {create_access_token(person.id)}"}


@pytest.fixture()
def other_auth_headers(other_person):
    return {"Authorization": f"Bearer {create_access_token(other_person.id)}"}
