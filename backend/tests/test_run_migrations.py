from __future__ import annotations

import types
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from scripts import run_migrations as runner


def _config(tmp_path: Path, url: str = "") -> runner.Config:
    config = runner.get_alembic_config(str(runner.BACKEND_ROOT / "alembic.ini"))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_resolve_database_url_falls_back_to_env(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("ALPHABET_DATABASE_URL", "sqlite://")
    config = _config(tmp_path)

    assert runner.resolve_database_url(config) == "sqlite://"
    assert config.get_main_option("sqlalchemy.url") == "sqlite://"


def test_resolve_database_url_requires_some_url(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("ALPHABET_DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError):
        runner.resolve_database_url(_config(tmp_path))


def test_wait_for_database_succeeds_with_sqlite(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'ready.sqlite'}"
    runner.wait_for_database(url, timeout=2, poll_interval=0.1)


def test_wait_for_database_times_out(monkeypatch) -> None:
    class DummyEngine:
        def connect(self) -> types.SimpleNamespace:
            raise runner.OperationalError("SELECT 1", {}, Exception("boom"))

        def dispose(self) -> None:
            pass

    monkeypatch.setattr(runner, "create_engine", lambda *_, **__: DummyEngine())
    with pytest.raises(RuntimeError):
        runner.wait_for_database("postgresql://example", timeout=0, poll_interval=0)


def test_run_migrations_invokes_upgrade(tmp_path, monkeypatch) -> None:
    config = _config(tmp_path, "sqlite://")
    recorded: dict[str, object] = {}

    def fake_wait(url: str, *, timeout: int, poll_interval: float) -> None:
        recorded["wait"] = (url, timeout, poll_interval)

    def fake_upgrade(cfg, revision: str) -> None:  # type: ignore[no-untyped-def]
        recorded["revision"] = revision
        recorded["script_location"] = cfg.get_main_option("script_location")

    monkeypatch.setattr(runner, "wait_for_database", fake_wait)
    monkeypatch.setattr(runner.command, "upgrade", fake_upgrade)

    runner.run_migrations("head", timeout=5, poll_interval=0.1, config=config)

    assert recorded["revision"] == "head"
    assert recorded["wait"] == ("sqlite://", 5, 0.1)
    assert str(recorded["script_location"]).endswith("alembic")


def test_migrations_build_the_schema_and_seed(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.sqlite'}"
    config = _config(tmp_path, url)

    runner.run_migrations("head", timeout=2, poll_interval=0.1, config=config, seed=True)

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert {"stages", "skills", "stage_skills", "users", "user_progress", "invitations", "audit_events"} <= tables
        user_indexes = {index["name"] for index in inspector.get_indexes("users")}
        assert {"ix_users_email", "ix_users_external_identity_id"} <= user_indexes
        with engine.connect() as connection:
            assert connection.exec_driver_sql("SELECT COUNT(*) FROM skills").scalar_one() == 26
    finally:
        engine.dispose()
