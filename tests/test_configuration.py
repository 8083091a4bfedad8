"""Mini README: Tests for environment driven settings and logging set-up."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError as SettingsError

from donation_ledger.configuration import LedgerSettings, get_settings
from donation_ledger.logging_utils import configure_root_logger, get_logger


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch) -> None:
    """Without environment overrides the SQLite backend is used."""

    monkeypatch.delenv("DONATION_LEDGER_STORAGE_BACKEND", raising=False)
    settings = LedgerSettings(_env_file=None)
    assert settings.storage_backend == "sqlite"
    assert settings.database_path == Path("data/donation_ledger.db")


def test_environment_overrides(monkeypatch, tmp_path) -> None:
    """Prefixed environment variables override defaults and are cached."""

    monkeypatch.setenv("DONATION_LEDGER_STORAGE_BACKEND", "Memory")
    monkeypatch.setenv("DONATION_LEDGER_DATABASE_PATH", str(tmp_path / "ledger.db"))

    settings = get_settings()

    assert settings.storage_backend == "memory"
    assert settings.database_path == tmp_path / "ledger.db"
    assert get_settings() is settings


def test_unknown_backend_rejected(monkeypatch) -> None:
    """Unsupported backend names are refused when settings load."""

    monkeypatch.setenv("DONATION_LEDGER_STORAGE_BACKEND", "postgres")
    with pytest.raises(SettingsError):
        LedgerSettings(_env_file=None)


def test_configure_root_logger_adjusts_level_once_initialised() -> None:
    """Reconfiguring adjusts the level without stacking handlers."""

    root = logging.getLogger()
    previous = root.level
    handlers = len(root.handlers)
    try:
        configure_root_logger("warning")
        assert root.level == logging.WARNING
        get_logger("donation_ledger.tests")
        assert len(root.handlers) == handlers
    finally:
        root.setLevel(previous)
