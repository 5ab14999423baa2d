import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from db import Base, build_engine
from api.deps.db import get_db
from core.auth import create_access_token
from core.codes import generate_code
from core.roles import UserRole
from models.tournament import TournamentMode
from models.user import User
from services.team_registry import TeamRegistry
from services.tournament_registry import TournamentRegistry
from services.wallet_service import WalletService


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------
@pytest.fixture(scope="function")
def engine(tmp_path):
    """Fresh SQLite file per test; a file (not :memory:) so threads share it."""
    engine = build_engine(f"sqlite:///{tmp_path / 'platform.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI client, one session per request like production"""
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    # No context manager: startup would run migrations against the real database
    yield TestClient(app)
    app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------
@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    def _make(username=None, role=UserRole.USER, balance=None, is_active=True):
        username = username or f"player{next(counter)}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            referral_code=generate_code(),
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        if balance:
            WalletService(db_session).fund(user.id, balance, f"seed-{user.id}")
        return user

    return _make


@pytest.fixture
def make_tournament(db_session):
    def _make(max_participants=10, entry_fee="0.00", mode=TournamentMode.SOLO, title="Friday Night Cup"):
        return TournamentRegistry(db_session).open({
            "title": title,
            "game": "bgmi",
            "mode": mode,
            "max_participants": max_participants,
            "entry_fee": Decimal(str(entry_fee)),
            "prize_pool": Decimal("0.00"),
            "start_time": datetime.now(timezone.utc) + timedelta(days=1),
        })

    return _make


@pytest.fixture
def make_team(db_session, make_user):
    counter = itertools.count(1)

    def _make(captain=None, members=0, name=None):
        """Team with `members` players besides the captain"""
        captain = captain or make_user()
        registry = TeamRegistry(db_session)
        team = registry.create(captain.id, name or f"Team {next(counter)}")
        for _ in range(members):
            registry.join_by_code(make_user().id, team.join_code)
        return registry.get_team(team.id)

    return _make


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers
