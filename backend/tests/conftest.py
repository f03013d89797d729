"""
backend/tests/conftest.py

Shared fixtures: fixed clock, in-memory repository, BetStore and a FastAPI
TestClient wired to them with real Supabase-style JWTs.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest

_BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from database.repositories import InMemoryBetRepository  # noqa: E402
from models.schemas import BetCreate, CurrentUser  # noqa: E402
from services.bet_store import BetStore  # noqa: E402

JWT_SECRET = "test-jwt-secret"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository(clock):
    # Each insert gets a later created_at so ordering is deterministic
    ticks = {"n": 0}

    def ticking_clock():
        ticks["n"] += 1
        return clock() + timedelta(seconds=ticks["n"])

    return InMemoryBetRepository(clock=ticking_clock)


@pytest.fixture
def store(repository, clock):
    return BetStore(repository, clock=clock)


@pytest.fixture
def creator():
    return CurrentUser(id="u-creator", email="ana@example.com", name="Ana")


@pytest.fixture
def other_user():
    return CurrentUser(id="u-other", email="bruno@example.com", name="Bruno")


def make_bet_data(**overrides) -> BetCreate:
    data = {
        "title": "Quem ganha o clássico?",
        "description": "Domingo, 16h",
        "options": ["A", "B"],
        "closing_at": NOW + timedelta(days=1),
        "stake_amount": "10,00",
        "visibility": "public",
        "allow_anonymous_voting": True,
    }
    data.update(overrides)
    return BetCreate(**data)


@pytest.fixture
def bet(store, creator):
    return store.create_bet(make_bet_data(), creator)


def make_token(user: CurrentUser, secret: str = JWT_SECRET, expires_in: int = 3600) -> str:
    payload = {
        "sub": user.id,
        "email": user.email,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        "user_metadata": {"full_name": user.name},
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_header(user: CurrentUser) -> dict:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def api_client(monkeypatch, store):
    from fastapi.testclient import TestClient

    import main
    from database.dependencies import get_bet_store

    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)
    main.app.dependency_overrides[get_bet_store] = lambda: store
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
