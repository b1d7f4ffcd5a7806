"""Pipeline de récupération de sortie structurée.

Transforme le texte brut d'un générateur en objet typé, en paliers strictement ordonnés:

1. extraction du bloc délimité (```json ... ```),
2. extraction de la portée `{...}` / `[...]`,
3. décodage direct + validation               -> palier `exact`,
4. réparations syntaxiques successives          -> palier `repaired`,
5. reconstruction heuristique depuis la prose   -> palier `heuristic`.

Le pipeline ne lève jamais d'exception: le pire cas est un objet de substitution au palier
`heuristic`. Le palier est journalisé et compté mais ne change jamais le type retourné.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from courseware.app.metrics import RECOVERY_TIER_TOTAL, REPAIR_STEP_TOTAL
from courseware.domain.entities import RawModelResponse, Tier
from courseware.domain.errors import ShapeViolation
from courseware.domain.heuristic_reconstructor import MAX_CONTENT_CHARS, Context, reconstruct
from courseware.domain.kinds import ObjectKind
from courseware.domain.schema_validator import Validated, dump, validate
from courseware.domain.structural_repair import REPAIR_STEPS, RepairStep
from courseware.domain.text_normalizer import normalize


@dataclass(frozen=True)
class RecoveredObject:
    """
    Objet de domaine récupéré, étiqueté par le palier qui l'a produit.

    Attributs
    - kind: type d'objet demandé.
    - tier: palier ayant satisfait la demande.
    - value: objet validé (modèle pydantic, ou liste de modèles pour les types en tableau).
    - data: valeur JSON décodée (ou reconstruite) correspondante.
    - repairs: noms des réparations appliquées avant le décodage réussi.
    """

    kind: ObjectKind
    tier: Tier
    value: Validated
    data: Any
    repairs: tuple[str, ...] = field(default=())

    @property
    def approximate(self) -> bool:
        """Vrai si les champs doivent être considérés comme approximatifs."""
        return self.tier is Tier.HEURISTIC

    def to_dict(self) -> dict[str, Any]:
        """Forme sérialisable (cache Redis, réponses API)."""
        return {
            "kind": self.kind.value,
            "tier": self.tier.value,
            "data": dump(self.value),
            "repairs": list(self.repairs),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RecoveredObject:
        """Reconstruit un objet sérialisé par `to_dict` (revalidation incluse)."""
        kind = ObjectKind(raw["kind"])
        return cls(
            kind=kind,
            tier=Tier(raw["tier"]),
            value=validate(raw["data"], kind),
            data=raw["data"],
            repairs=tuple(raw.get("repairs", ())),
        )


def _probe(candidate: str, kind: ObjectKind) -> tuple[Any, Validated] | None:
    """Décodage + validation; None si l'un des deux échoue."""
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return None
    try:
        return parsed, validate(parsed, kind)
    except ShapeViolation:
        return None


class RecoveryPipeline:
    """Orchestrateur des paliers de récupération (sans état partagé)."""

    def __init__(
        self,
        repair_steps: Sequence[tuple[str, RepairStep]] | None = None,
        max_content_chars: int = MAX_CONTENT_CHARS,
    ) -> None:
        """Initialise le pipeline avec la liste ordonnée des réparations."""
        self.repair_steps = list(repair_steps if repair_steps is not None else REPAIR_STEPS)
        self.max_content_chars = max_content_chars
        self._log = structlog.get_logger(__name__).bind(component="recovery_pipeline")

    def recover(
        self, raw_text: str | None, kind: ObjectKind, context: Context = None
    ) -> RecoveredObject:
        """Retourne toujours un objet conforme au contrat de forme de `kind`."""
        text = raw_text or ""
        candidate = normalize(text, kind)

        probed = _probe(candidate, kind)
        if probed is not None:
            return self._done(kind, Tier.EXACT, probed, ())

        applied: list[str] = []
        for name, step in self.repair_steps:
            repaired = step(candidate)
            if repaired == candidate:
                continue
            candidate = repaired
            applied.append(name)
            REPAIR_STEP_TOTAL.labels(step=name).inc()
            probed = _probe(candidate, kind)
            if probed is not None:
                return self._done(kind, Tier.REPAIRED, probed, tuple(applied))

        data, value = reconstruct(text, kind, context, self.max_content_chars)
        return self._done(kind, Tier.HEURISTIC, (data, value), tuple(applied))

    def recover_response(
        self, response: RawModelResponse, kind: ObjectKind, context: Context = None
    ) -> RecoveredObject:
        """Variante prenant une `RawModelResponse` complète."""
        return self.recover(response.text, kind, context)

    def _done(
        self,
        kind: ObjectKind,
        tier: Tier,
        probed: tuple[Any, Validated],
        repairs: tuple[str, ...],
    ) -> RecoveredObject:
        data, value = probed
        RECOVERY_TIER_TOTAL.labels(kind=kind.value, tier=tier.value).inc()
        self._log.info(
            "recovery_tier_selected", kind=kind.value, tier=tier.value, repairs=list(repairs)
        )
        return RecoveredObject(kind=kind, tier=tier, value=value, data=data, repairs=repairs)


_default_pipeline = RecoveryPipeline()


def recover(
    prompt_context: Context, raw_response_text: str | None, kind: ObjectKind
) -> RecoveredObject:
    """Point d'entrée fonctionnel: `recover(contexte, texte brut, type)`."""
    return _default_pipeline.recover(raw_response_text, kind, prompt_context)
