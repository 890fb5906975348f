from __future__ import annotations

import os
from pathlib import Path

import pytest

from src.config.settings import DEFAULT_MODELS, Settings, collect_credentials, load_settings


def test_collect_credentials_orders_primary_then_numbered() -> None:
    environ = {
        "GEMINI_API_KEY_10": "k10",
        "GEMINI_API_KEY_2": "k2",
        "GEMINI_API_KEY_1": "k1",
        "GEMINI_API_KEY_X": "ignored",
        "GEMINI_API_KEY_3": " ",
    }

    assert collect_credentials("p1, p2,,k1", environ) == ["p1", "p2", "k1", "k2", "k10"]


def test_collect_credentials_empty() -> None:
    assert collect_credentials(None, {}) == []


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "t")
    monkeypatch.setenv("DATABASE_URL", " ")
    monkeypatch.delenv("GEMINI_MODELS", raising=False)
    monkeypatch.delenv("PAGE_SIZE", raising=False)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.database_url is None
    assert settings.model_ids == list(DEFAULT_MODELS)
    assert settings.page_size == 50


def test_settings_rejects_non_utc_timezone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "t")
    monkeypatch.setenv("DB_TIMEZONE", "Europe/Berlin")

    with pytest.raises(ValueError):
        Settings(_env_file=None)  # type: ignore[call-arg]


def test_load_settings_collects_credentials(
        monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("GEMINI_API_KEY_2=from-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "t")
    monkeypatch.setenv("GEMINI_API_KEY", "primary")
    monkeypatch.setenv("GEMINI_API_KEY_1", "fallback")
    monkeypatch.setenv("GEMINI_MODELS", "m1, m2")

    settings = load_settings()

    assert settings.gemini_credentials == ["primary", "fallback", "from-dotenv"]
    assert settings.model_ids == ["m1", "m2"]


def test_load_settings_requires_a_credential(
        monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "t")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    for name in [n for n in os.environ if n.startswith("GEMINI_API_KEY_")]:
        monkeypatch.delenv(name)

    with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
        load_settings()
