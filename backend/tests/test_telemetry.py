from __future__ import annotations

import json
import logging

from badminton_alphabet.telemetry import emit_event


def test_secret_fields_are_redacted(events, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="alphabet.telemetry"):
        emit_event("identity_login", user_id=7, access_token="secret", password="hunter22", token=None)

    assert events[-1].name == "identity_login"
    assert events[-1].payload == {"user_id": 7, "access_token": "***", "password": "***", "token": None}
    logged = caplog.records[-1].getMessage()
    assert logged.startswith("TELEMETRY ")
    assert json.loads(logged[len("TELEMETRY "):])["access_token"] == "***"
    assert "hunter22" not in logged


def test_failing_listener_does_not_break_emission(events) -> None:
    from badminton_alphabet.telemetry import register_listener

    def explode(event) -> None:  # type: ignore[no-untyped-def]
        raise RuntimeError("listener bug")

    register_listener(explode)
    emit_event("progress_recorded", user_id=1, skill_id=2, status="level_1")

    assert events[-1].name == "progress_recorded"


def test_invitation_tokens_never_reach_telemetry(client, events) -> None:
    client.post("/api/auth/sync", json={"email": "p@x.com", "invitation_token": "guessing"})

    missing = [event for event in events if event.name == "invitation_missing"]
    assert missing
    assert "guessing" not in json.dumps([event.payload for event in events])
