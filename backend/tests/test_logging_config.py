from __future__ import annotations

import logging

from badminton_alphabet.logging_config import configure_logging


def test_sql_logging_is_quiet_by_default(monkeypatch) -> None:
    monkeypatch.delenv("ALPHABET_DATABASE_ECHO", raising=False)
    monkeypatch.setenv("ALPHABET_LOG_LEVEL", "debug")

    configure_logging()

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_database_echo_opens_sql_logging(monkeypatch) -> None:
    monkeypatch.setenv("ALPHABET_DATABASE_ECHO", "true")
    monkeypatch.setenv("ALPHABET_DEBUG_HTTP", "1")

    configure_logging()

    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
    assert logging.getLogger("httpx").level == logging.DEBUG
