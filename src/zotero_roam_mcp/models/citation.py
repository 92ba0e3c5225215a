"""Citation record extracted from a ``Field.setCode`` payload.

The field code looks like ``ITEM CSL_CITATION {...}``: a non-JSON prefix
followed by a CSL citation object whose first ``citationItems`` entry
carries the item's URIs and its CSL-JSON ``itemData``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

UNKNOWN_TITLE = "unknown title"


class CitationError(ValueError):
    """The field code does not contain a usable citation."""


@dataclass
class Author:
    given: str = ""
    family: str = ""

    def display(self) -> str:
        """``given, family``, or whichever half is present."""
        if self.given and self.family:
            return f"{self.given}, {self.family}"
        return self.given or self.family


@dataclass
class CitationRecord:
    """Bibliographic fields of the first cited item."""

    uri: str
    title: str = UNKNOWN_TITLE
    authors: list[Author] = field(default_factory=list)
    issued: list[Any] = field(default_factory=list)
    doi: str = ""
    abstract: str = ""
    item_data: dict[str, Any] = field(default_factory=dict)

    @property
    def date(self) -> str:
        """Date parts joined with ``/`` (e.g. ``2021/3/14``)."""
        return "/".join(str(part) for part in self.issued)

    @classmethod
    def from_item(cls, uri: str, item_data: dict[str, Any]) -> CitationRecord:
        title = item_data.get("title") or item_data.get("title-short") or UNKNOWN_TITLE
        authors = [
            Author(given=a.get("given", ""), family=a.get("family", ""))
            for a in item_data.get("author", [])
            if isinstance(a, dict)
        ]
        issued: list[Any] = []
        date_parts = (item_data.get("issued") or {}).get("date-parts") or []
        if date_parts and isinstance(date_parts[0], list):
            issued = list(date_parts[0])
        return cls(
            uri=uri,
            title=title,
            authors=authors,
            issued=issued,
            doi=item_data.get("DOI", ""),
            abstract=item_data.get("abstract", ""),
            item_data=item_data,
        )


def extract_json(code: str) -> dict[str, Any]:
    """Parse the JSON object that starts at the first ``{`` of ``code``."""
    start = code.find("{")
    if start < 0:
        raise CitationError("Field code contains no JSON object")
    try:
        value, _ = json.JSONDecoder().raw_decode(code, start)
    except json.JSONDecodeError as e:
        raise CitationError(f"Invalid citation JSON: {e}") from e
    if not isinstance(value, dict):
        raise CitationError("Citation JSON is not an object")
    return value


def parse_citation_payload(code: str) -> CitationRecord:
    """Build a CitationRecord from a raw field code.

    Raises:
        CitationError: If ``citationItems`` or the item's ``uris`` are missing.
    """
    citation = extract_json(code)
    items = citation.get("citationItems")
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        raise CitationError("Citation has no citationItems")
    item = items[0]
    uris = item.get("uris") or item.get("uri")
    if not isinstance(uris, list) or not uris:
        raise CitationError("Cited item has no uris")
    item_data = item.get("itemData")
    if not isinstance(item_data, dict):
        item_data = {}
    return CitationRecord.from_item(str(uris[0]), item_data)
