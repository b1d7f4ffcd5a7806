"""Reconstruction heuristique d'un objet typé à partir de prose non structurée.

Dernier palier du pipeline: utilisé quand aucune réparation syntaxique n'a produit une valeur
valide (ou quand le générateur n'a rien renvoyé). Les règles sont propres à chaque type
d'objet (section « Key points » découpée en puces, lignes « Slide N: », URLs, etc.).
Garantie: ne lève jamais d'exception et retourne toujours un objet conforme au contrat de forme,
au besoin rempli de valeurs de substitution.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any
from urllib.parse import urlparse

import structlog

from courseware.domain.errors import ShapeViolation
from courseware.domain.kinds import ObjectKind
from courseware.domain.schema_validator import Validated, validate

Context = str | Mapping[str, Any] | None

DEFAULT_KEY_POINTS = [
    "Understanding the fundamentals",
    "Application of concepts",
    "Core principles",
]
PLACEHOLDER_URL_HOST = "example.com"
MAX_CONTENT_CHARS = 1000

_BULLET_RE = re.compile(r"^\s*(?:[-*•+]|\d{1,3}[.)])\s+(?P<item>.*\S)\s*$")
_NUMBERED_RE = re.compile(r"^\s*\d{1,3}[.)]\s+(?P<item>.*\S)\s*$")
_TOPIC_LINE_RE = re.compile(
    r"^\s*(?:#{1,6}\s*)?(?:\*\*)?(?:week|unit|module|topic|chapter|part|lesson)\s*\d+\s*[:.\-–]\s*"
    r"(?P<item>.*?\S)(?:\*\*)?\s*$",
    re.IGNORECASE,
)
_MD_HEADING_RE = re.compile(r"^\s*#{1,6}\s+(?P<item>.*\S)\s*$")
_SLIDE_RE = re.compile(
    r"^\s*(?:#{1,6}\s*)?(?:\*\*)?slide\s*\d+\s*(?:[:.\-–]\s*(?P<item>.*?\S)?)?(?:\*\*)?\s*$",
    re.IGNORECASE,
)
_NOTES_RE = re.compile(r"^\s*(?:\*\*)?(?:speaker\s+|presenter\s+)?notes?(?:\*\*)?\s*:\s*(?P<item>.*)$", re.I)
_LABEL_LINE_RE = re.compile(r"^[\s*_]*[A-Za-z][\w \-/&()']{0,48}[\s*_]*:[\s*_]*$")
_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE)
_TOTAL_HOURS_RE = re.compile(
    r"total[^\n\d]{0,40}?(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE
)
_URL_RE = re.compile(r"https?://[^\s<>\"'`)\]}]+")
_FENCE_MARK_RE = re.compile(r"```(?:json)?")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")

_KEY_POINTS = (r"key\s+(?:points|takeaways|concepts)(?:\s+to\s+remember)?",)
_EXAMPLES = (r"examples?",)
_REFERENCES = (r"references?", r"further\s+reading", r"sources?")
_EXERCISES = (r"exercises?", r"practice(?:\s+questions)?", r"activities")
_OBJECTIVES = (r"(?:course\s+|learning\s+)?objectives?", r"learning\s+outcomes?", r"goals?")
_PREREQUISITES = (r"prerequisites?", r"requirements?", r"pre-?requisites?")
_SUBTOPICS = (r"sub-?topics?",)

log = structlog.get_logger(__name__).bind(component="heuristic_reconstructor")


# -------------------- Helpers de découpage --------------------


def _clean(item: str) -> str:
    return item.strip().strip("*_`").strip().rstrip(",;").strip().strip('"').strip()


def _context_title(context: Context) -> str | None:
    if isinstance(context, str):
        return context.strip() or None
    if isinstance(context, Mapping):
        for key in ("title", "topic", "name"):
            value = context.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _label_re(labels: tuple[str, ...]) -> re.Pattern[str]:
    alt = "|".join(labels)
    return re.compile(
        rf"^[\s#*_>]*(?:{alt})[\s*_]*(?::(?P<inline>.*))?$",
        re.IGNORECASE,
    )


def _is_heading(line: str) -> bool:
    return bool(_MD_HEADING_RE.match(line) or _LABEL_LINE_RE.match(line))


def find_section(text: str, labels: tuple[str, ...]) -> tuple[list[str], tuple[int, int]] | None:
    """Localise une section étiquetée (« Key points: ») et retourne ses lignes.

    Retourne `(lignes, (début, fin))` où l'intervalle de lignes couvre aussi l'en-tête, ou
    None si l'étiquette est absente.
    """
    lines = text.splitlines()
    pattern = _label_re(labels)
    for start, line in enumerate(lines):
        match = pattern.match(line)
        if not match:
            continue
        body: list[str] = []
        inline = _clean(match.group("inline") or "")
        if inline:
            body.append(inline)
        end = start + 1
        while end < len(lines):
            current = lines[end]
            if not current.strip():
                # saute le bloc de lignes vides d'un coup (parcours linéaire)
                following = end + 1
                while following < len(lines) and not lines[following].strip():
                    following += 1
                if body and (following == len(lines) or not _BULLET_RE.match(lines[following])):
                    break
                end = following
                continue
            if _is_heading(current) and not _BULLET_RE.match(current):
                break
            body.append(current)
            end += 1
        return body, (start, end)
    return None


def split_items(lines: list[str]) -> list[str]:
    """Découpe des lignes en éléments de liste selon les puces (`-`, `*`, `•`) ou numéros.

    Sans aucune puce, chaque ligne non vide devient un élément; une ligne unique est découpée
    sur les virgules/points-virgules.
    """
    items: list[str] = []
    saw_bullet = False
    for line in lines:
        if not line.strip():
            continue
        match = _BULLET_RE.match(line)
        if match:
            saw_bullet = True
            items.append(_clean(match.group("item")))
        elif saw_bullet and items and line[:1].isspace():
            items[-1] = f"{items[-1]} {_clean(line)}"
        else:
            items.append(_clean(line))
    if not saw_bullet and len(items) == 1 and re.search(r"[,;]", items[0]):
        items = [_clean(p) for p in re.split(r"[,;]", items[0])]
    return [i for i in items if i]


def section_items(text: str, labels: tuple[str, ...]) -> list[str]:
    found = find_section(text, labels)
    return split_items(found[0]) if found else []


def _drop_sections(text: str, *label_groups: tuple[str, ...]) -> str:
    lines = text.splitlines()
    keep = [True] * len(lines)
    for labels in label_groups:
        found = find_section("\n".join(ln if keep[i] else "" for i, ln in enumerate(lines)), labels)
        if found:
            start, end = found[1]
            for i in range(start, end):
                keep[i] = False
    return "\n".join(ln for i, ln in enumerate(lines) if keep[i])


def _json_string_field(text: str, key: str) -> str | None:
    match = re.search(rf'"{key}"\s*:\s*"((?:[^"\\]|\\.)*)"', text)
    if not match:
        return None
    try:
        return json.loads(f'"{match.group(1)}"')
    except ValueError:
        return match.group(1).replace("\\n", "\n").replace('\\"', '"')


def _json_string_list(text: str, key: str) -> list[str]:
    match = re.search(rf'"{key}"\s*:\s*\[(.*?)(?:\]|$)', text, re.DOTALL)
    if not match:
        return []
    return [s for s in re.findall(r'"((?:[^"\\]|\\.)*)"', match.group(1)) if s.strip()]


def _prose(text: str) -> str:
    cleaned = _FENCE_MARK_RE.sub("", text)
    cleaned = re.sub(r"^[ \t]*#{1,6}[ \t]+(.+?)[ \t]*$", r"\1", cleaned, flags=re.MULTILINE)
    return cleaned.strip()


def _first_line(text: str) -> str | None:
    for line in text.splitlines():
        cleaned = _clean(line.lstrip("#>").strip())
        if cleaned and not cleaned.startswith(("{", "[")):
            return cleaned[:120]
    return None


def _sentences(text: str, limit: int) -> list[str]:
    flat = " ".join(_prose(text).split())
    return [s for s in _SENTENCE_RE.split(flat) if s][:limit]


def _bullets(lines: list[str]) -> list[str]:
    return [_clean(m.group("item")) for ln in lines if (m := _BULLET_RE.match(ln))]


# -------------------- Règles par type --------------------


def _topic(text: str, context: Context) -> dict[str, Any]:
    title = _context_title(context) or _json_string_field(text, "title") or _first_line(text)
    subtopics = section_items(text, _SUBTOPICS) or _json_string_list(text, "subtopics")
    if not subtopics:
        subtopics = _bullets(text.splitlines())
    return {"title": title or "Untitled topic", "subtopics": subtopics}


def _syllabus(text: str, context: Context) -> dict[str, Any]:
    objectives = section_items(text, _OBJECTIVES)
    prerequisites = section_items(text, _PREREQUISITES)
    body = _drop_sections(text, _OBJECTIVES, _PREREQUISITES)

    topics: list[dict[str, Any]] = []
    current: dict[str, Any] | None = None
    for line in body.splitlines():
        head = _TOPIC_LINE_RE.match(line) or _NUMBERED_RE.match(line) or _MD_HEADING_RE.match(line)
        if head and not line[:1].isspace():
            title = _clean(head.group("item"))
            hours = _HOURS_RE.search(title)
            current = {"title": title, "subtopics": []}
            if hours:
                current["estimatedDuration"] = float(hours.group(1))
            topics.append(current)
            continue
        bullet = _BULLET_RE.match(line)
        if bullet:
            item = _clean(bullet.group("item"))
            if current is None:
                topics.append({"title": item, "subtopics": []})
            else:
                current["subtopics"].append(item)

    if not topics:
        title = _context_title(context) or _first_line(text) or "Course overview"
        topics = [{"title": title, "subtopics": []}]

    total = _TOTAL_HOURS_RE.search(text)
    if total:
        total_duration = float(total.group(1))
    else:
        total_duration = float(sum(t.get("estimatedDuration", 0.0) for t in topics))
    return {
        "topics": topics,
        "totalDuration": total_duration,
        "courseObjectives": objectives,
        "prerequisites": prerequisites,
    }


def _content_draft(
    text: str, context: Context, max_chars: int = MAX_CONTENT_CHARS
) -> dict[str, Any]:
    title = _context_title(context) or _json_string_field(text, "title") or "Untitled content"
    key_points = section_items(text, _KEY_POINTS) or _json_string_list(text, "keyPoints")
    examples = section_items(text, _EXAMPLES) or _json_string_list(text, "examples")
    references = section_items(text, _REFERENCES) or _json_string_list(text, "references")

    content = _json_string_field(text, "content")
    if content is None:
        remaining = _drop_sections(text, _KEY_POINTS, _EXAMPLES, _REFERENCES)
        content = _prose(remaining)
        if content.lstrip().startswith(("{", "[")):
            content = ""
    content = content.strip()[:max_chars] or f"Content for {title} based on your materials."
    return {
        "title": title,
        "content": content,
        "keyPoints": key_points or list(DEFAULT_KEY_POINTS),
        "examples": examples,
        "references": references,
    }


def _headed_blocks(text: str, heading: re.Pattern[str]) -> list[tuple[str, list[str]]]:
    blocks: list[tuple[str, list[str]]] = []
    for line in text.splitlines():
        match = heading.match(line)
        if match:
            blocks.append((_clean(match.group("item") or ""), []))
        elif blocks and line.strip():
            blocks[-1][1].append(line)
    return blocks


def _lecture_outline(text: str, context: Context) -> dict[str, Any]:
    title = _context_title(context) or _json_string_field(text, "title") or _first_line(text)
    key_points = section_items(text, _KEY_POINTS) or _json_string_list(text, "keyPoints")
    examples = section_items(text, _EXAMPLES) or _json_string_list(text, "examples")
    exercises = section_items(text, _EXERCISES) or _json_string_list(text, "exercises")
    body = _drop_sections(text, _KEY_POINTS, _EXAMPLES, _EXERCISES)

    section_re = re.compile(
        rf"{_MD_HEADING_RE.pattern}|^\s*(?:section|part)\s*\d+\s*[:.\-–]\s*(?P<sec>.*\S)\s*$",
        re.IGNORECASE,
    )
    sections = []
    for line in body.splitlines():
        match = section_re.match(line)
        if match:
            sections.append({"title": _clean(match.group("item") or match.group("sec")), "content": []})
        elif sections and line.strip():
            bullet = _BULLET_RE.match(line)
            sections[-1]["content"].append(_clean(bullet.group("item") if bullet else line))
    if not sections:
        sections = [{"title": "Overview", "content": _sentences(body, 3)}]
    return {
        "title": title or "Untitled lecture",
        "sections": sections,
        "keyPoints": key_points or list(DEFAULT_KEY_POINTS),
        "examples": examples,
        "exercises": exercises,
    }


def _slide_outline(text: str, context: Context) -> dict[str, Any]:
    title = _context_title(context) or _json_string_field(text, "title") or _first_line(text)
    title = title or "Untitled presentation"
    blocks = _headed_blocks(text, _SLIDE_RE) or _headed_blocks(text, _MD_HEADING_RE)
    slides = []
    for index, (slide_title, lines) in enumerate(blocks, start=1):
        notes: list[str] = []
        content: list[str] = []
        for line in lines:
            note = _NOTES_RE.match(line)
            if note:
                notes.append(_clean(note.group("item")))
            else:
                bullet = _BULLET_RE.match(line)
                content.append(_clean(bullet.group("item") if bullet else line))
        slide: dict[str, Any] = {"title": slide_title or f"Slide {index}", "content": content}
        if notes:
            slide["notes"] = " ".join(n for n in notes if n)
        slides.append(slide)
    if not slides:
        slides = [{"title": title, "content": _sentences(text, 3) or [f"Overview of {title}"]}]
    return {"title": title, "slides": slides}


def _resource_type(url: str) -> str:
    lowered = url.lower()
    if any(host in lowered for host in ("youtube.com", "youtu.be", "vimeo.com", "khanacademy")):
        return "video"
    if lowered.split("?")[0].endswith(".pdf"):
        return "pdf"
    if any(host in lowered for host in ("oreilly.com", "manning.com", "packtpub.com")):
        return "book"
    return "article"


def _resource_list(text: str, context: Context) -> list[dict[str, Any]]:
    topic = _context_title(context) or "Course topic"
    resources: list[dict[str, Any]] = []
    seen: set[str] = set()
    for line in text.splitlines():
        for url in _URL_RE.findall(line):
            url = url.rstrip(".,;")
            if url in seen:
                continue
            seen.add(url)
            host = urlparse(url).netloc.lower().removeprefix("www.")
            label = _clean(_BULLET_RE.sub(r"\g<item>", line).replace(url, "")).strip(" -:–()[]")
            resources.append(
                {
                    "id": f"res_heuristic_{len(resources)}",
                    "title": label or f"{topic} - {host}",
                    "description": label or f"Learning resource on {topic} from {host}.",
                    "url": url,
                    "type": _resource_type(url),
                    "source": host or "web",
                }
            )
    if not resources:
        resources.append(
            {
                "id": "res_placeholder_0",
                "title": f"{topic} - Comprehensive Guide",
                "description": f"An in-depth guide to understanding {topic}.",
                "url": f"https://{PLACEHOLDER_URL_HOST}/article/0",
                "type": "article",
                "source": "Educational Resource Portal",
            }
        )
    return resources


_BUILDERS: dict[ObjectKind, Callable[[str, Context], Any]] = {
    ObjectKind.TOPIC: _topic,
    ObjectKind.SYLLABUS_ANALYSIS: _syllabus,
    ObjectKind.CONTENT_DRAFT: _content_draft,
    ObjectKind.LECTURE_OUTLINE: _lecture_outline,
    ObjectKind.SLIDE_OUTLINE: _slide_outline,
    ObjectKind.RESOURCE_LIST: _resource_list,
}


def default_object(kind: ObjectKind, context: Context = None) -> Any:
    """Objet de substitution minimal (dernier recours absolu) pour `kind`."""
    return _BUILDERS[kind]("", context)


def reconstruct(
    raw_text: str,
    kind: ObjectKind,
    context: Context = None,
    max_content_chars: int = MAX_CONTENT_CHARS,
) -> tuple[Any, Validated]:
    """Construit `(données JSON, objet validé)` pour `kind` depuis la prose brute.

    `max_content_chars` borne le texte libre repris tel quel dans un brouillon de contenu.
    """
    text = raw_text or ""
    builder = _BUILDERS[kind]
    if kind is ObjectKind.CONTENT_DRAFT:
        builder = partial(_content_draft, max_chars=max_content_chars)
    try:
        data = builder(text, context)
        return data, validate(data, kind)
    except (ShapeViolation, ValueError, TypeError, KeyError, IndexError, AttributeError) as exc:
        log.warning("heuristic_rules_failed", kind=kind.value, error=str(exc))
    data = default_object(kind, context)
    return data, validate(data, kind)
