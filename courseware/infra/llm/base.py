"""Interface de base pour les générateurs de texte."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TextGenerator(ABC):
    """Interface abstraite d'un générateur de texte (modèle de langage).

    `generate` est la seule frontière asynchrone du noyau: aucune écriture (cache, registre)
    n'a lieu avant que la réponse complète soit reçue.
    """

    @abstractmethod
    async def generate(self, prompt: str, *, system: str | None = None) -> str:
        """Retourne le texte brut produit pour `prompt`.

        Lève `UpstreamUnavailable` si le fournisseur échoue ou renvoie un texte vide.
        """
        ...
