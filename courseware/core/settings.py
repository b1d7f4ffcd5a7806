"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )
    APP_NAME: str = "courseware-core"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True

    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None
    REQUIRE_REDIS: bool = False

    # Génération de texte
    OPENAI_API_KEY: str | None = None
    LLM_MODEL: str = "gpt-4o-mini"

    # Cache des recherches (empreinte de requête)
    CACHE_TTL_SECONDS: float = 300.0
    CACHE_MAX_ENTRIES: int = 20
    CACHE_KEY_PREFIX: str = "fp"

    # Transactions de liaison / registre de versions
    LINK_MAX_RETRIES: int = 3
    VERSION_MAX_RETRIES: int = 3
    RETRY_BASE_DELAY_SECONDS: float = 0.01

    # Récupération de sortie structurée
    RECOVERY_MAX_CONTENT_CHARS: int = 1000
    SYLLABUS_EXCERPT_CHARS: int = 1000


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
