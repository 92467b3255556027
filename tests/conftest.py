from __future__ import annotations

import os
import tempfile

# Settings and logging are set up at import time; these must be in place
# before any backend module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789abcdef"
os.environ["PASSWORD_HASH_ROUNDS"] = "1000"
os.environ["GYMAUTH_LOG_DIR"] = tempfile.mkdtemp(prefix="gymauth-log-")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401  registers every table
from auth.router import get_login_service
from auth.service import LoginService
from core.security import hash_password
from database import Base, get_db
from main import app
from models.license import License
from models.master_credential import MasterCredential
from models.pre_generated_account import PreGeneratedAccount
from models.profile import Profile


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'gymauth.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    # Tokens minted with this clock are decoded against the real one, so it
    # starts at the real current time.
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def service(db, clock):
    return LoginService(db, clock=clock)


@pytest.fixture
def api(session_factory, clock):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def _get_login_service(session=Depends(get_db)):
        return LoginService(session, clock=clock)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_login_service] = _get_login_service
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# -- data factories ----------------------------------------------------------


@pytest.fixture
def make_pre_generated(db):
    def _make(username, license_key, account_type="client", duration=30):
        row = PreGeneratedAccount(
            username=username,
            license_key=license_key,
            account_type=account_type,
            license_duration_days=duration,
            is_used=False,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_regular(db, clock):
    """A profile with a license that was not issued through a pre-generated account."""

    def _make(username, license_key, cref=None, license_type="full", status="active", expires_in=None):
        profile = Profile(username=username.upper(), cref=cref, full_name=f"Pessoa {username}")
        db.add(profile)
        db.flush()
        now = clock()
        license = License(
            profile_id=profile.id,
            license_key=license_key,
            license_type=license_type,
            status=status,
            started_at=now,
            expires_at=now + expires_in if expires_in is not None else None,
        )
        db.add(license)
        db.commit()
        return profile, license

    return _make


@pytest.fixture
def make_master(db):
    def _make(username="chefe", password="senha-master-1", full_name="Chefe Geral", active=True):
        credential = MasterCredential(
            username=username.lower(),
            password_hash=hash_password(password),
            full_name=full_name,
            is_active=active,
        )
        db.add(credential)
        db.commit()
        return credential

    return _make


@pytest.fixture
def master_headers(api, make_master):
    make_master("chefe", "senha-master-1")
    resp = api.post("/auth/login", json={"username": "chefe", "password": "senha-master-1", "panelType": "admin"})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['session']['access_token']}"}
