import os
import tempfile

# Must be set before storage / auth / api_app are imported.
_DB_DIR = tempfile.mkdtemp(prefix="delivery-calculator-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["API_KEY"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

import storage
from api_app import app
from auth import Actor, get_current_actor


@pytest.fixture(autouse=True)
def clean_db():
    storage.Base.metadata.drop_all(bind=storage.engine)
    storage.Base.metadata.create_all(bind=storage.engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = storage.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_profile(db):
    def _add(user_id, role="CLIENT", **fields):
        profile = storage.Profile(id=user_id, type=role, status=fields.pop("status", "ACTIVE"), **fields)
        db.add(profile)
        db.commit()
        return user_id

    return _add


@pytest.fixture
def login():
    """Make every request authenticate as the given user."""

    def _login(user_id, role):
        app.dependency_overrides[get_current_actor] = lambda: Actor(id=user_id, role=role)

    return _login
