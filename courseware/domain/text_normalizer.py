"""Normalisation du texte brut: extraction d'un bloc délimité puis de la portée structurelle.

Les modèles enveloppent souvent leur JSON dans des commentaires ou des blocs ```json```;
ces fonctions isolent la charge utile sans jamais lever d'exception.
"""

from __future__ import annotations

import re

from courseware.domain.kinds import ObjectKind

_FENCE_RE = re.compile(r"```[ \t]*(?:json|JSON|javascript|js)?[ \t]*\r?\n?(.*?)```", re.DOTALL)
_OPEN_FENCE_RE = re.compile(r"```[ \t]*(?:json|JSON|javascript|js)?[ \t]*\r?\n?(.*)$", re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}


def extract_fenced(text: str) -> str:
    """Retourne l'intérieur du premier bloc ``` ``` ``` non vide, sinon le texte inchangé.

    Un bloc ouvert mais jamais refermé (réponse tronquée) donne tout ce qui suit l'ouverture.
    """
    for match in _FENCE_RE.finditer(text):
        inner = match.group(1).strip()
        if inner:
            return inner
    match = _OPEN_FENCE_RE.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return text


def _span(text: str, opener: str) -> str | None:
    start = text.find(opener)
    if start < 0:
        return None
    end = text.rfind(_CLOSERS[opener])
    if end < start:
        # pas de fermeture: charge utile probablement tronquée
        return text[start:]
    return text[start : end + 1]


def _balanced_end(text: str) -> int | None:
    """Index du caractère fermant la structure ouverte en position 0, ou None si inachevée."""
    depth = 0
    in_string = False
    escaped = False
    for index, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch in ('"', "\n"):
                # une chaîne non refermée s'arrête au saut de ligne
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            depth += 1
        elif ch in ("}", "]"):
            depth -= 1
            if depth == 0:
                return index
    return None


def extract_structural_span(text: str, kind: ObjectKind) -> str:
    """Isole la portée `{...}` (ou `[...]` pour les types en tableau).

    Si le texte commence déjà par le caractère ouvrant attendu, seul le commentaire qui suit la
    structure refermée est retiré; une structure inachevée est laissée intacte.
    """
    stripped = text.strip()
    if stripped.startswith(kind.opening):
        end = _balanced_end(stripped)
        return stripped if end is None else stripped[: end + 1]
    span = _span(stripped, kind.opening)
    if span is None and kind.is_list:
        span = _span(stripped, "{")
    return span if span is not None else stripped


def normalize(text: str, kind: ObjectKind) -> str:
    """Étapes 1 et 2 du pipeline: bloc délimité puis portée structurelle."""
    return extract_structural_span(extract_fenced(text or ""), kind)
