"""Taxonomie des erreurs du noyau.

Seules `NotFound` et `TransientFailure` sortent du noyau vers les appelants. Les autres sont
absorbées en interne (escalade de palier pour `ShapeViolation`, nouvelle tentative pour
`LinkConflict`, reconstruction heuristique pour `UpstreamUnavailable`).
"""

from __future__ import annotations

from typing import Any


class CoursewareError(Exception):
    """Erreur de base du noyau, porteuse d'un code stable."""

    code = "courseware_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ShapeViolation(CoursewareError):
    """Valeur décodée ne respectant pas le contrat de forme d'un type d'objet."""

    code = "shape_violation"

    def __init__(self, kind: str, errors: list[str]) -> None:
        super().__init__(f"{kind}: {'; '.join(errors) or 'invalid shape'}", {"errors": errors})
        self.kind = kind
        self.errors = errors


class NotFound(CoursewareError):
    """Identifiant introuvable (aucune mutation n'a été effectuée)."""

    code = "not_found"

    def __init__(self, entity: str, identifier: str | int) -> None:
        super().__init__(f"{entity} not found: {identifier}", {"entity": entity, "id": identifier})
        self.entity = entity
        self.identifier = identifier


class LinkConflict(CoursewareError):
    """Conflit d'écriture concurrente détecté pendant une transaction."""

    code = "link_conflict"


class TransientFailure(CoursewareError):
    """Conflits répétés: nombre maximal de tentatives atteint."""

    code = "transient_failure"

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(
            f"{operation} failed after {attempts} attempts",
            {"operation": operation, "attempts": attempts},
        )
        self.operation = operation
        self.attempts = attempts


class UpstreamUnavailable(CoursewareError):
    """Le générateur de texte a échoué ou a renvoyé un texte vide."""

    code = "upstream_unavailable"
