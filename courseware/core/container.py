"""
Conteneur d'injection de dépendances.

Instancie les composants centraux (settings, moteur SQL, cache par empreinte, générateur de
texte, services) et les expose à l'application. Le cache utilise Redis si `REDIS_URL` est
défini, sinon un cache mémoire; `REQUIRE_REDIS` interdit ce repli.
"""

from __future__ import annotations

import redis
import structlog

from courseware.core.locks import AsyncKeyedLock, KeyedLock
from courseware.core.settings import Settings, get_settings
from courseware.domain.recovery_pipeline import RecoveryPipeline
from courseware.infra.cache.fingerprint_cache import (
    FingerprintCache,
    InMemoryFingerprintCache,
    RedisFingerprintCache,
)
from courseware.infra.llm.base import TextGenerator
from courseware.infra.llm.openai_client import OpenAITextGenerator
from courseware.infra.repo.db import create_schema, get_engine
from courseware.services.generation import GenerationService
from courseware.services.link_manager import LinkTransactionManager
from courseware.services.resource_search import ResourceSearchService
from courseware.services.version_ledger import VersionLedger

log = structlog.get_logger(__name__).bind(component="container")


class Container:
    """Assemble les composants à partir des paramètres."""

    def __init__(
        self,
        settings: Settings | None = None,
        generator: TextGenerator | None = None,
        cache: FingerprintCache | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.storage_backend = "injected"
        s = self.settings

        self.engine = get_engine(s.DATABASE_URL)
        if s.DATABASE_URL is None or s.APP_ENV in ("dev", "test"):
            create_schema(self.engine)

        self.cache = cache if cache is not None else self._build_cache()
        self.generator = generator or OpenAITextGenerator(
            api_key=s.OPENAI_API_KEY, model=s.LLM_MODEL
        )
        self.pipeline = RecoveryPipeline(max_content_chars=s.RECOVERY_MAX_CONTENT_CHARS)

        # verrous partagés: une édition et une liaison du même contenu se sérialisent
        self.locks = KeyedLock()
        self.link_manager = LinkTransactionManager(
            self.engine,
            max_retries=s.LINK_MAX_RETRIES,
            retry_base_delay=s.RETRY_BASE_DELAY_SECONDS,
            locks=self.locks,
        )
        self.version_ledger = VersionLedger(
            self.engine,
            max_retries=s.VERSION_MAX_RETRIES,
            retry_base_delay=s.RETRY_BASE_DELAY_SECONDS,
            locks=self.locks,
        )
        self.resource_search = ResourceSearchService(
            self.generator,
            self.cache,
            pipeline=self.pipeline,
            locks=AsyncKeyedLock(),
            excerpt_chars=s.SYLLABUS_EXCERPT_CHARS,
        )
        self.generation = GenerationService(
            self.generator, pipeline=self.pipeline, excerpt_chars=s.SYLLABUS_EXCERPT_CHARS
        )

    def _build_cache(self) -> FingerprintCache:
        s = self.settings
        if s.REDIS_URL:
            try:
                client = redis.Redis.from_url(s.REDIS_URL, decode_responses=True)
                client.ping()
                self.storage_backend = "redis"
                return RedisFingerprintCache(
                    client,
                    ttl_seconds=s.CACHE_TTL_SECONDS,
                    max_entries=s.CACHE_MAX_ENTRIES,
                    prefix=s.CACHE_KEY_PREFIX,
                )
            except redis.RedisError as err:
                if s.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                log.warning("redis_unavailable_fallback_memory", error=str(err))
                self.storage_backend = "memory-fallback"
        else:
            if s.REQUIRE_REDIS:
                raise RuntimeError("Redis required but REDIS_URL not set")
            self.storage_backend = "memory"
        return InMemoryFingerprintCache(
            ttl_seconds=s.CACHE_TTL_SECONDS, max_entries=s.CACHE_MAX_ENTRIES
        )
