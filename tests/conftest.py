import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from fakes import FakeAIClient
from spendwise.db.sql import SqlStore, build_engine, init_db
from spendwise.deps import get_ai_client, get_store, get_token_subject
from spendwise.main import app
from spendwise.models.user import UserInDB


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'spendwise-test.db'}")
    init_db(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    session = session_factory()
    yield SqlStore(session)
    session.close()


@pytest.fixture
def user(store):
    return store.create_user(UserInDB(username="alice", password_hash="not-used"))


@pytest.fixture
def ai_client():
    return FakeAIClient(error=ConnectionError("AI service unreachable"))


@pytest.fixture
def anon_client(session_factory, ai_client):
    """API client backed by the test database, without an authenticated user."""

    def _store():
        session = session_factory()
        try:
            yield SqlStore(session)
        finally:
            session.close()

    app.dependency_overrides[get_store] = _store
    app.dependency_overrides[get_ai_client] = lambda: ai_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client, user):
    app.dependency_overrides[get_token_subject] = lambda: user.id
    return anon_client
