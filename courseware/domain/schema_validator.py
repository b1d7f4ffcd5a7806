"""Validation d'une valeur décodée contre le contrat de forme d'un type d'objet."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from courseware.domain.errors import ShapeViolation
from courseware.domain.kinds import MODELS, RESOURCE_LIST_ADAPTER, ObjectKind, ResourceSuggestion

Validated = BaseModel | list[ResourceSuggestion]


def _format_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    ]


def validate(parsed: Any, kind: ObjectKind) -> Validated:
    """Valide `parsed` pour `kind` et retourne l'objet typé.

    Lève `ShapeViolation` (avec la liste des écarts) si un champ requis manque ou a un type
    primitif incorrect. Seuls élargissements acceptés: chaîne -> liste d'un élément, objet
    seul -> liste d'un élément pour les types en tableau.
    """
    if kind.is_list:
        if isinstance(parsed, dict):
            parsed = [parsed]
        try:
            return RESOURCE_LIST_ADAPTER.validate_python(parsed)
        except ValidationError as exc:
            raise ShapeViolation(kind.value, _format_errors(exc)) from exc

    if not isinstance(parsed, dict):
        raise ShapeViolation(kind.value, [f"<root>: expected object, got {type(parsed).__name__}"])
    try:
        return MODELS[kind].model_validate(parsed)
    except ValidationError as exc:
        raise ShapeViolation(kind.value, _format_errors(exc)) from exc


def dump(value: Validated) -> Any:
    """Sérialise un objet validé en structure JSON (clés camelCase)."""
    if isinstance(value, list):
        return [item.model_dump(by_alias=True, exclude_none=True) for item in value]
    return value.model_dump(by_alias=True, exclude_none=True)
