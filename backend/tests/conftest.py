"""Shared test fixtures for the ShareTree backend test suite.

All tests run against an in-memory SQLite database (one shared connection
through StaticPool). Tables are dropped and recreated before each test for
complete isolation. Object-store tests use a LocalObjectStore rooted in
pytest's ``tmp_path``.
"""

import os
import tempfile

# Use the in-memory database and quiet logging before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="sharetree-test-")
os.environ["BOOTSTRAP_ADMIN_ID"] = ""
os.environ["ENVIRONMENT"] = "development"

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from sharetree import models  # noqa: F401
from sharetree.core.auth import IdentityContext
from sharetree.database import Base, SessionLocal, engine, get_db
from sharetree.main import app
from sharetree.services.mutation_service import MutationService
from sharetree.services.user_service import UserService
from sharetree.storage import LocalObjectStore, get_object_store

from fakes import FlakyObjectStore


@dataclass
class Account:
    """A provisioned user: identity for service calls plus root folder id."""
    user_id: str
    root_id: str
    identity: IdentityContext

    @property
    def headers(self) -> dict:
        return {"X-User-Id": self.user_id}


def make_account(db, store, name: str, role: str = "user", is_superadmin: bool = False) -> Account:
    created = UserService(db, store).create_user(
        display_name=name,
        role=role,
        is_superadmin=is_superadmin,
        user_id=name.lower(),
    )
    return Account(
        user_id=created.user.user_id,
        root_id=created.root.id,
        identity=IdentityContext.for_user(created.user),
    )


@pytest.fixture(autouse=True)
def _clean_tables():
    """Recreate all tables before each test for isolation."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(str(tmp_path / "objects"))


@pytest.fixture()
def flaky_store(store) -> FlakyObjectStore:
    return FlakyObjectStore(store)


@pytest.fixture()
def mutations(db, store) -> MutationService:
    return MutationService(db, store)


@pytest.fixture()
def alice(db, store) -> Account:
    return make_account(db, store, "Alice")


@pytest.fixture()
def bob(db, store) -> Account:
    return make_account(db, store, "Bob")


@pytest.fixture()
def carol(db, store) -> Account:
    return make_account(db, store, "Carol")


@pytest.fixture()
def superadmin(db, store) -> Account:
    return make_account(db, store, "Root", role="admin", is_superadmin=True)


@pytest.fixture()
def restricted_admin(db, store) -> Account:
    return make_account(db, store, "Helpdesk", role="admin")


@pytest.fixture()
def client(db, store):
    """FastAPI TestClient with DB and object store overridden for the test."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_object_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
