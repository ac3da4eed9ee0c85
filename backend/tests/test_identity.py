from __future__ import annotations

import pytest
from sqlalchemy import func, select

from badminton_alphabet.db.models import InvitationModel, UserModel
from badminton_alphabet.errors import AuthorizationError, ConflictError, ValidationError
from badminton_alphabet.identity import AuthClaims, IdentityService, resolve_name, resolve_role
from badminton_alphabet.repositories.invitations import invitations
from badminton_alphabet.repositories.rubric import rubric

from conftest import create_user


def _user_count(database) -> int:
    with database.session_scope(commit=False) as session:
        return session.execute(select(func.count(UserModel.id))).scalar_one()


def _invite(database, email: str, coach_id: int) -> str:
    with database.session_scope() as session:
        return invitations.create(session, email, coach_id).token


def test_resolve_role_precedence() -> None:
    assert resolve_role("coach", {"role": "admin"}) == "coach"
    assert resolve_role(None, {"role": "admin", "user_role": "coach"}) == "admin"
    assert resolve_role(None, {"user_role": "coach"}) == "coach"
    assert resolve_role(None, {}) == "player"
    assert resolve_role(None, {"role": "student", "user_role": "coach"}) == "coach"
    assert resolve_role(None, {"role": "student"}) == "player"
    with pytest.raises(ValidationError):
        resolve_role("superuser", {})


def test_resolve_name_falls_back_to_email_local_part() -> None:
    assert resolve_name("Lin Dan", {"full_name": "Other"}, "x@y.com") == "Lin Dan"
    assert resolve_name(None, {"full_name": "Tai Tzu Ying"}, "x@y.com") == "Tai Tzu Ying"
    assert resolve_name(None, {"name": "Viktor"}, "x@y.com") == "Viktor"
    assert resolve_name("  ", {}, "carolina@club.es") == "carolina"


def test_player_without_invitation_is_rejected(client, seeded_database) -> None:
    response = client.post("/api/auth/sync", json={"email": "p@x.com", "role": "player"})

    assert response.status_code == 403
    assert response.json() == {"error": "invitation required"}
    assert _user_count(seeded_database) == 0


def test_invited_player_sync_consumes_invitation(client, seeded_database) -> None:
    coach = create_user(seeded_database, email="coach@club.com")
    created = client.post("/api/invitations", json={"email": "p@x.com", "coach_id": coach.id})
    token = created.json()["token"]

    response = client.post("/api/auth/sync", json={"email": "p@x.com", "role": "player"})

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "player"
    assert body["email"] == "p@x.com"
    assert body["name"] == "p"
    with seeded_database.session_scope(commit=False) as session:
        assert body["current_stage_id"] == rubric.first_stage_id(session)
    assert client.get(f"/api/invitations/{token}").status_code == 404


def test_explicit_token_admits_player_under_other_email(client, seeded_database) -> None:
    coach = create_user(seeded_database, email="coach@club.com")
    token = _invite(seeded_database, "parent@family.com", coach.id)

    response = client.post(
        "/api/auth/sync",
        json={"email": "kid@family.com", "role": "player", "invitationToken": token},
    )

    assert response.status_code == 200
    with seeded_database.session_scope(commit=False) as session:
        invitation = session.execute(select(InvitationModel)).scalar_one()
        assert invitation.status == "accepted"
        assert invitation.accepted_at is not None


def test_consumed_token_cannot_admit_second_player(client, seeded_database) -> None:
    coach = create_user(seeded_database, email="coach@club.com")
    token = _invite(seeded_database, "first@x.com", coach.id)
    assert client.post("/api/auth/sync", json={"email": "first@x.com"}).status_code == 200

    response = client.post("/api/auth/sync", json={"email": "second@x.com", "invitation_token": token})

    assert response.status_code == 403
    assert _user_count(seeded_database) == 2


def test_coach_can_self_register_without_invitation(client) -> None:
    response = client.post(
        "/api/auth/sync",
        json={"supabase_uid": "ext-coach", "email": "Coach@Club.COM ", "name": "Head Coach", "role": "coach"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "coach"
    assert body["email"] == "coach@club.com"
    assert body["external_identity_id"] == "ext-coach"
    assert "password_hash" not in body


def test_repeated_sync_returns_same_user(client, provider, seeded_database) -> None:
    provider.add("tok-1", "ext-1", "coach@club.com", role="coach", full_name="Coach One")

    first = client.post("/api/auth/sync", json={"access_token": "tok-1"})
    second = client.post("/api/auth/sync", json={"access_token": "tok-1"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["name"] == "Coach One"
    assert _user_count(seeded_database) == 1


def test_unknown_provider_role_signs_in_as_invited_player(client, provider, seeded_database) -> None:
    coach = create_user(seeded_database, email="coach@club.com")
    _invite(seeded_database, "learner@club.com", coach.id)
    provider.add("tok-student", "ext-student", "learner@club.com", role="student")

    response = client.post("/api/auth/sync", json={"access_token": "tok-student"})

    assert response.status_code == 200
    assert response.json()["role"] == "player"


def test_verified_identity_overrides_client_claims(client, provider) -> None:
    provider.add("tok-2", "ext-verified", "real@club.com", role="coach")

    response = client.post(
        "/api/auth/sync",
        json={"access_token": "tok-2", "external_id": "spoofed", "email": "spoofed@club.com"},
    )

    assert response.status_code == 200
    assert response.json()["email"] == "real@club.com"
    assert response.json()["external_identity_id"] == "ext-verified"


def test_rejected_token_creates_nothing_and_keeps_invitation(client, seeded_database) -> None:
    coach = create_user(seeded_database, email="coach@club.com")
    token = _invite(seeded_database, "p@x.com", coach.id)

    response = client.post(
        "/api/auth/sync",
        json={"access_token": "expired", "email": "p@x.com", "invitation_token": token},
    )

    assert response.status_code == 401
    assert _user_count(seeded_database) == 1
    assert client.get(f"/api/invitations/{token}").status_code == 200


def test_sync_links_external_identity_to_local_user(client, seeded_database, provider) -> None:
    local = create_user(seeded_database, email="coach@club.com")
    provider.add("tok-3", "ext-3", "coach@club.com")

    response = client.post("/api/auth/sync", json={"access_token": "tok-3"})

    assert response.status_code == 200
    assert response.json()["id"] == local.id
    assert response.json()["external_identity_id"] == "ext-3"

    provider.add("tok-4", "ext-other", "coach@club.com")
    again = client.post("/api/auth/sync", json={"access_token": "tok-4"})
    assert again.json()["external_identity_id"] == "ext-3"


def test_sync_requires_email(client) -> None:
    response = client.post("/api/auth/sync", json={"external_id": "ext-only"})

    assert response.status_code == 400
    assert response.json()["error"] == "email required"


def test_sync_with_token_and_no_provider_reports_unconfigured(settings, seeded_database) -> None:
    from fastapi.testclient import TestClient

    from badminton_alphabet.main import create_app

    app = create_app(settings, database=seeded_database)
    with TestClient(app) as client:
        response = client.post("/api/auth/sync", json={"access_token": "anything"})

    assert response.status_code == 500
    assert response.json()["error"] == "identity provider not configured"


def test_ambiguous_identity_is_reported(client, seeded_database, provider) -> None:
    first = create_user(seeded_database, email="a@club.com")
    with seeded_database.session_scope() as session:
        session.get(UserModel, first.id).external_identity_id = "ext-a"
    create_user(seeded_database, email="b@club.com")
    provider.add("tok-amb", "ext-a", "b@club.com")

    response = client.post("/api/auth/sync", json={"access_token": "tok-amb"})

    assert response.status_code == 500
    assert response.json()["error"] == "multiple users match this identity"


def test_register_and_login_return_same_user(client, seeded_database) -> None:
    coach = create_user(seeded_database, email="coach@club.com")
    _invite(seeded_database, "player@x.com", coach.id)

    registered = client.post(
        "/api/auth/register",
        json={"email": "player@x.com", "password": "shuttlecock", "name": "Player One"},
    )
    assert registered.status_code == 201
    user_id = registered.json()["id"]

    for _ in range(2):
        login = client.post("/api/auth/login", json={"email": "PLAYER@x.com", "password": "shuttlecock"})
        assert login.status_code == 200
        assert login.json()["id"] == user_id
        assert "password_hash" not in login.json()


def test_login_rejects_wrong_password_and_unknown_email(client) -> None:
    client.post("/api/auth/register", json={"email": "c@x.com", "password": "racketsports", "role": "coach"})

    wrong = client.post("/api/auth/login", json={"email": "c@x.com", "password": "wrong-password"})
    unknown = client.post("/api/auth/login", json={"email": "nobody@x.com", "password": "racketsports"})

    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"error": "invalid credentials"}


def test_register_rejects_short_password_and_duplicates(client) -> None:
    short = client.post("/api/auth/register", json={"email": "c@x.com", "password": "short", "role": "coach"})
    assert short.status_code == 400

    ok = client.post("/api/auth/register", json={"email": "c@x.com", "password": "longenough", "role": "coach"})
    assert ok.status_code == 201
    duplicate = client.post(
        "/api/auth/register", json={"email": "c@x.com", "password": "longenough", "role": "coach"}
    )
    assert duplicate.status_code == 409


def test_register_player_without_invitation_is_forbidden(seeded_database) -> None:
    service = IdentityService(seeded_database)

    with pytest.raises(AuthorizationError):
        service.register_local(email="p@x.com", password="longenough")

    assert _user_count(seeded_database) == 0


def test_lost_race_returns_the_winning_user(seeded_database, monkeypatch) -> None:
    service = IdentityService(seeded_database)
    winner = create_user(seeded_database, email="race@club.com", role="coach")

    from badminton_alphabet.repositories import users as users_module

    calls = {"count": 0}
    real_lookup = users_module.UserRepository.find_for_identity

    def miss_first_time(self, session, external_id, email):  # type: ignore[no-untyped-def]
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_lookup(self, session, external_id, email)

    monkeypatch.setattr(users_module.UserRepository, "find_for_identity", miss_first_time)

    user = service.reconcile(AuthClaims(external_id="ext-race", email="race@club.com", requested_role="coach"))

    assert user.id == winner.id
    assert user.external_identity_id == "ext-race"
    assert _user_count(seeded_database) == 1


def test_lost_race_without_winner_is_a_conflict(seeded_database, monkeypatch) -> None:
    from sqlalchemy.exc import IntegrityError

    from badminton_alphabet.repositories import users as users_module

    def always_conflict(self, session, **kwargs):  # type: ignore[no-untyped-def]
        raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(users_module.UserRepository, "create", always_conflict)
    service = IdentityService(seeded_database)

    with pytest.raises(ConflictError):
        service.reconcile(AuthClaims(email="ghost@club.com", requested_role="coach"))


def test_reconcile_emits_outcome_events(seeded_database, events) -> None:
    service = IdentityService(seeded_database)

    service.reconcile(AuthClaims(email="coach@club.com", requested_role="coach"))
    service.reconcile(AuthClaims(email="coach@club.com", external_id="ext-9"))
    service.reconcile(AuthClaims(email="coach@club.com", external_id="ext-9"))

    outcomes = [event.payload["outcome"] for event in events if event.name == "identity_reconciled"]
    assert outcomes == ["created", "linked", "existing"]
