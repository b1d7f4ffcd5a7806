"""Réparations syntaxiques d'un JSON abîmé.

Chaque réparation est une fonction indépendante `str -> str`, appliquée dans l'ordre de
`REPAIR_STEPS` par le pipeline, qui tente un décodage + validation après chaque étape.
Toutes les réparations ignorent le texte situé à l'intérieur des chaînes littérales.

Ordre:
    (a) quote_bare_keys            {title: 1}          -> {"title": 1}
    (b) close_unterminated_strings "a": "Intro\\n       -> "a": "Intro"\\n
    (c) remove_trailing_commas     ["A", "B",]         -> ["A", "B"]
    (d) insert_missing_commas      "a": "x"\\n"b": 1    -> "a": "x",\\n"b": 1
    (e) balance_closers            {"a": [1, 2         -> {"a": [1, 2]}
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import NamedTuple

RepairStep = Callable[[str], str]

_BARE_KEY_RE = re.compile(r"(^|[{,])([ \t]*)([A-Za-z_$][\w$-]*)([ \t]*):", re.MULTILINE)
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")
_VALUE_END_RE = re.compile(r"([\d}\]]|\btrue|\bfalse|\bnull)(\s+)$")
_PAIRS = {"{": "}", "[": "]"}


class Segment(NamedTuple):
    """Portion du texte: chaîne littérale (avec ses guillemets) ou code structurel."""

    text: str
    is_string: bool
    closed: bool = True


def split_segments(text: str) -> list[Segment]:
    """Découpe `text` en segments code / chaîne.

    Une chaîne non refermée s'arrête au saut de ligne (un JSON valide n'en contient pas) ou en
    fin de texte; elle est alors marquée `closed=False`.
    """
    segments: list[Segment] = []
    n = len(text)
    i = 0
    code_start = 0
    while i < n:
        if text[i] != '"':
            i += 1
            continue
        if code_start < i:
            segments.append(Segment(text[code_start:i], False))
        j = i + 1
        closed = False
        while j < n:
            ch = text[j]
            if ch == "\\":
                j += 2
                continue
            if ch == '"':
                closed = True
                j += 1
                break
            if ch == "\n":
                break
            j += 1
        j = min(j, n)
        segments.append(Segment(text[i:j], True, closed))
        i = code_start = j
    if code_start < n:
        segments.append(Segment(text[code_start:], False))
    return segments


def _join(segments: Iterable[Segment]) -> str:
    return "".join(s.text for s in segments)


def _map_code(text: str, fn: Callable[[str], str]) -> str:
    return _join(
        s if s.is_string else Segment(fn(s.text), False) for s in split_segments(text)
    )


def quote_bare_keys(text: str) -> str:
    """(a) Entoure de guillemets les clés de style identifiant."""
    return _map_code(text, lambda code: _BARE_KEY_RE.sub(r'\1\2"\3"\4:', code))


def close_unterminated_strings(text: str) -> str:
    """(b) Referme une chaîne interrompue par un saut de ligne ou par la fin du texte."""
    out: list[str] = []
    for seg in split_segments(text):
        if seg.is_string and not seg.closed:
            body = seg.text
            tail = ""
            if body.endswith("\r"):
                body, tail = body[:-1], "\r"
            if body.endswith("\\") and not body.endswith("\\\\"):
                body = body[:-1]
            out.append(f'{body}"{tail}')
        else:
            out.append(seg.text)
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """(c) Supprime une virgule placée juste avant `]` ou `}`."""
    return _map_code(text, lambda code: _TRAILING_COMMA_RE.sub(r"\1", code))


def _is_key(segments: list[Segment], idx: int) -> bool:
    if idx >= len(segments) or not segments[idx].is_string:
        return False
    nxt = segments[idx + 1] if idx + 1 < len(segments) else None
    return nxt is not None and not nxt.is_string and nxt.text.lstrip().startswith(":")


def _is_pair_value(segments: list[Segment], idx: int) -> bool:
    prev = segments[idx - 1] if idx > 0 else None
    return prev is not None and not prev.is_string and prev.text.rstrip().endswith(":")


def insert_missing_commas(text: str) -> str:
    """(d) Insère la virgule manquante entre deux paires clé/valeur adjacentes."""
    segments = split_segments(text)
    for idx, seg in enumerate(segments):
        if seg.is_string or not _is_key(segments, idx + 1):
            continue
        before = segments[idx - 1] if idx > 0 else None
        if not seg.text.strip():
            # "a": "x"  "b": ...  (valeur chaîne puis clé, séparées par des blancs)
            if before is not None and before.is_string and _is_pair_value(segments, idx - 1):
                segments[idx] = Segment("," + seg.text, False)
            continue
        # "a": 42  "b": ... / "a": {...}  "b": ... (valeur non chaîne en fin de segment)
        if ":" in seg.text or seg.text.rstrip().endswith(("}", "]")):
            fixed = _VALUE_END_RE.sub(r"\1,\2", seg.text)
            segments[idx] = Segment(fixed, False)
    return _join(segments)


def balance_closers(text: str) -> str:
    """(e) Ajoute les `}`/`]` manquants, dans l'ordre inverse des ouvertures."""
    stack: list[str] = []
    for seg in split_segments(text):
        if seg.is_string:
            continue
        for ch in seg.text:
            if ch in _PAIRS:
                stack.append(ch)
            elif ch in ("}", "]") and stack and _PAIRS[stack[-1]] == ch:
                stack.pop()
    if not stack:
        return text
    body = text.rstrip()
    if body.endswith(","):
        body = body[:-1].rstrip()
    if body.endswith(":"):
        body += " null"
    return body + "".join(_PAIRS[ch] for ch in reversed(stack))


REPAIR_STEPS: list[tuple[str, RepairStep]] = [
    ("quote_bare_keys", quote_bare_keys),
    ("close_unterminated_strings", close_unterminated_strings),
    ("remove_trailing_commas", remove_trailing_commas),
    ("insert_missing_commas", insert_missing_commas),
    ("balance_closers", balance_closers),
]
