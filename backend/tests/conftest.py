from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from badminton_alphabet.config import Settings
from badminton_alphabet.db.models import UserModel
from badminton_alphabet.db.session import Database
from badminton_alphabet.errors import AuthenticationError
from badminton_alphabet.identity_provider import VerifiedIdentity
from badminton_alphabet.main import create_app
from badminton_alphabet.repositories.users import users
from badminton_alphabet.rubric import seed_rubric
from badminton_alphabet.telemetry import TelemetryEvent, clear_listeners, register_listener


class FakeIdentityProvider:
    """Accepts only the tokens it was told about."""

    def __init__(self) -> None:
        self.identities: Dict[str, VerifiedIdentity] = {}
        self.calls: List[str] = []

    def add(self, token: str, external_id: str, email: Optional[str], **metadata: object) -> None:
        self.identities[token] = VerifiedIdentity(external_id=external_id, email=email, metadata=dict(metadata))

    def verify_token(self, access_token: str) -> VerifiedIdentity:
        self.calls.append(access_token)
        identity = self.identities.get(access_token)
        if identity is None:
            raise AuthenticationError("invalid session")
        return identity


def make_settings(db_path: Optional[Path] = None, **overrides: object) -> Settings:
    values: Dict[str, object] = {
        "database_url": f"sqlite:///{db_path}" if db_path is not None else None,
        "identity_url": None,
        "identity_service_key": None,
        "auto_create_schema": False,
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path / "alphabet.sqlite")


@pytest.fixture()
def database(settings: Settings) -> Iterator[Database]:
    db = Database(settings)
    db.create_schema()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture()
def seeded_database(database: Database) -> Database:
    with database.session_scope() as session:
        seed_rubric(session)
    return database


@pytest.fixture()
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def client(settings: Settings, seeded_database: Database, provider: FakeIdentityProvider) -> Iterator[TestClient]:
    app = create_app(settings, identity_provider=provider, database=seeded_database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def events() -> Iterator[List[TelemetryEvent]]:
    captured: List[TelemetryEvent] = []
    register_listener(captured.append)
    try:
        yield captured
    finally:
        clear_listeners()


def create_user(database: Database, *, email: str, role: str = "coach", name: str = "Coach Carter") -> UserModel:
    with database.session_scope() as session:
        return users.create(session, name=name, email=email, role=role)
