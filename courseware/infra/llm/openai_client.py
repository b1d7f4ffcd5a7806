"""
Générateur de texte basé sur l'API OpenAI avec fallback déterministe.

- chat.completions via le SDK asynchrone (`AsyncOpenAI`)
- fallback local déterministe quand aucune clé n'est configurée (tests/dev)
"""

from __future__ import annotations

from typing import Any

import structlog
from openai import AsyncOpenAI, OpenAIError

from courseware.domain.errors import UpstreamUnavailable
from courseware.infra.llm.base import TextGenerator

log = structlog.get_logger(__name__).bind(component="openai_text_generator")


class OpenAITextGenerator(TextGenerator):
    """
    Générateur OpenAI avec fallback.

    Utilise l'API si une clé est fournie, sinon renvoie une réponse déterministe.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialise le client (injectable pour les tests)."""
        self.model = model
        if client is not None:
            self.client: AsyncOpenAI | None = client
        elif api_key:
            self.client = AsyncOpenAI(api_key=api_key)
        else:
            self.client = None

    async def generate(self, prompt: str, *, system: str | None = None) -> str:
        if self.client is None:
            return self._fallback_response(prompt)

        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        try:
            resp = await self.client.chat.completions.create(model=self.model, messages=messages)
        except OpenAIError as exc:
            log.warning("llm_request_failed", model=self.model, error=str(exc))
            raise UpstreamUnavailable(f"text generation failed: {exc}") from exc

        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise UpstreamUnavailable("text generation returned an empty response")
        log.debug("llm_response", model=self.model, **self._extract_usage_dict(resp))
        return str(content)

    def _fallback_response(self, prompt: str) -> str:
        """Réponse déterministe (utile pour tests)."""
        return f"FAKE_OPENAI: {prompt[:80]}".strip()

    def _extract_usage_dict(self, resp: Any) -> dict[str, int]:
        """Extrait les compteurs de jetons de la réponse (dict vide si absents)."""
        usage = getattr(resp, "usage", None)
        if usage is None:
            return {}
        return {
            "prompt_tokens": int(getattr(usage, "prompt_tokens", 0) or 0),
            "completion_tokens": int(getattr(usage, "completion_tokens", 0) or 0),
            "total_tokens": int(getattr(usage, "total_tokens", 0) or 0),
        }
