"""Org note template for a reference that has no node yet."""

from __future__ import annotations

import re
import textwrap
import unicodedata
from typing import Any

from ..models.citation import CitationRecord
from .refs import Ref

IGNORED_FIELDS = frozenset({
    "id",
    "title",
    "title-short",
    "abstract",
    "author",
    "citation-key",
    "issued",
    "note",
    "source",
    "journal-abbreviation",
})

FIELD_RENAMES = {
    "container-title": "from",
}

ABSTRACT_WIDTH = 80


def property_name(field_name: str) -> str:
    """``container-title`` -> ``FROM``, ``collection-title`` -> ``COLLECTION_TITLE``."""
    name = FIELD_RENAMES.get(field_name, field_name)
    return re.sub(r"[-\s]+", "_", name).upper()


def _property_value(value: Any) -> str | None:
    if isinstance(value, dict):
        parts = value.get("date-parts")
        if parts and isinstance(parts[0], list):
            return "/".join(str(p) for p in parts[0])
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    text = str(value).replace("\n", " ").strip()
    return text or None


def metadata_lines(item_data: dict[str, Any]) -> list[str]:
    lines = []
    for key, value in item_data.items():
        if key in IGNORED_FIELDS:
            continue
        text = _property_value(value)
        if text is None:
            continue
        lines.append(f":{property_name(key)}: {text}")
    return lines


def doi_link(doi: str) -> str:
    return f"[[https://doi.org/{doi}][doi:{doi}]]" if doi else ""


def build_template(record: CitationRecord, ref: Ref) -> str:
    """Render the body of a new note for ``record``.

    The property drawer carries ``ROAM_REFS`` plus every item field that
    is not shown elsewhere in the note.
    """
    lines = [":PROPERTIES:", f":ROAM_REFS: {ref.uri}"]
    lines += metadata_lines(record.item_data)
    lines += [":END:", f"#+title: {record.title}", ""]

    authors = [a.display() for a in record.authors if a.display()]
    if authors:
        lines.append("- authors ::")
        lines += [f"  {name}" for name in authors]
    if record.date:
        lines.append(f"- date :: {record.date}")
    if authors or record.date:
        lines.append("")

    link = doi_link(record.doi)
    if record.abstract:
        lines.append("* Abstract")
        if link:
            lines += [link, ""]
        lines += textwrap.wrap(" ".join(record.abstract.split()), ABSTRACT_WIDTH)
        lines.append("")
    elif link:
        lines += [link, ""]

    lines += ["* Notes", ""]
    return "\n".join(lines)


def slugify(title: str) -> str:
    """Filename-safe slug: ASCII letters and digits joined by ``_``."""
    decomposed = unicodedata.normalize("NFD", title)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    slug = re.sub(r"[^A-Za-z0-9]+", "_", stripped).strip("_").lower()
    return slug or "untitled"
