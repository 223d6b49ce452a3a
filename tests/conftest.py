"""
Shared pytest fixtures: an in-memory SQLite store seeded with one user per
role, a channel, and a TestClient wired to that store.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from outreach.core import security
from outreach.core.database import Base
from outreach.core.dependencies import get_db
from outreach.crud import crud_channel
from outreach.main import app
from outreach.models import ChannelType, User
from outreach.schemas.user import CurrentUser


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, email, role, name=None):
    user = User(email=email, role=role, name=name or email.split("@")[0])
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def founder(db):
    return _make_user(db, "founder@example.org", "founder")


@pytest.fixture
def intern(db):
    return _make_user(db, "intern@example.org", "intern")


@pytest.fixture
def volunteer(db):
    return _make_user(db, "volunteer@example.org", "volunteer")


@pytest.fixture
def outsider(db):
    return _make_user(db, "outsider@example.org", "volunteer")


@pytest.fixture
def channel(db, founder, volunteer):
    """A general channel owned by the founder with the volunteer as a member."""
    db_channel = crud_channel.create_channel(
        db, name="schools", channel_type=ChannelType.GENERAL, description="School outreach", creator_id=founder.id
    )
    crud_channel.add_user_to_channel(db, channel_id=db_channel.id, user_id=volunteer.id)
    return db_channel


@pytest.fixture
def as_current():
    def _as_current(user) -> CurrentUser:
        return CurrentUser.model_validate(user)
    return _as_current


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(user) -> str:
    return security.create_access_token(data={"sub": str(user.id)}, expires_delta=timedelta(minutes=5))


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {make_token(user)}"}
    return _auth_headers


@pytest.fixture
def token_for():
    return make_token
