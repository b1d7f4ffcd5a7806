"""
Tests pour la résolution des variables d'environnement.

Le fichier .env utilisé est choisi à l'import du module settings (ENV_FILE > .env.{APP_ENV} >
.env); le module est rechargé pour prendre en compte un ENV_FILE de test.
"""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest


@pytest.fixture
def reload_settings(monkeypatch):
    mod = importlib.import_module("courseware.core.settings")

    def _reload():
        return importlib.reload(mod)

    yield _reload
    monkeypatch.undo()
    importlib.reload(mod)


def test_settings_reads_env_file(tmp_path: Path, monkeypatch, reload_settings) -> None:
    """Les valeurs d'un fichier .env personnalisé sont appliquées aux settings."""
    env = tmp_path / ".env.custom"
    env.write_text("CACHE_TTL_SECONDS=42\nCACHE_MAX_ENTRIES=7\n", encoding="utf-8")
    monkeypatch.setenv("ENV_FILE", str(env))
    monkeypatch.delenv("CACHE_TTL_SECONDS", raising=False)
    monkeypatch.delenv("CACHE_MAX_ENTRIES", raising=False)

    s = reload_settings().get_settings()
    assert s.CACHE_TTL_SECONDS == 42.0
    assert s.CACHE_MAX_ENTRIES == 7


def test_environment_overrides_env_file(tmp_path: Path, monkeypatch, reload_settings) -> None:
    env = tmp_path / ".env.custom"
    env.write_text("LINK_MAX_RETRIES=9\n", encoding="utf-8")
    monkeypatch.setenv("ENV_FILE", str(env))
    monkeypatch.setenv("LINK_MAX_RETRIES", "5")

    assert reload_settings().get_settings().LINK_MAX_RETRIES == 5


def test_defaults(monkeypatch, reload_settings) -> None:
    monkeypatch.setenv("ENV_FILE", "/nonexistent/.env")
    for name in ("CACHE_TTL_SECONDS", "CACHE_MAX_ENTRIES", "CACHE_KEY_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    s = reload_settings().get_settings()
    assert (s.CACHE_TTL_SECONDS, s.CACHE_MAX_ENTRIES, s.CACHE_KEY_PREFIX) == (300.0, 20, "fp")
