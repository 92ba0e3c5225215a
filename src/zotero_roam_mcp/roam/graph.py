"""Knowledge-graph collaborator backed by an org-roam database.

org-roam keeps its index in SQLite with string values printed the Lisp
way (wrapped in double quotes). Refs written as ``https://host/path`` are
indexed with the scheme split off, so the stored ref is ``//host/path``.
"""

from __future__ import annotations

import logging
import shlex
import sqlite3
import subprocess
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Protocol

from .refs import strip_scheme
from .template import slugify

logger = logging.getLogger(__name__)


@dataclass
class Node:
    """A knowledge-graph node as seen by the resolver."""

    id: str
    file: str
    pos: int = 1
    title: str = ""


class KnowledgeGraph(Protocol):
    def find_node_by_ref(self, ref: str) -> Node | None: ...

    def find_ref_owner(self, ref: str) -> str | None: ...

    def create_node(self, template: str, title: str) -> Node: ...

    def open_node(self, node_id: str, file: str, pos: int) -> None: ...


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _unquote(value) -> str:
    if isinstance(value, str) and len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return "" if value is None else str(value)


def line_and_column(text: str, pos: int) -> tuple[int, int]:
    """1-based line and column of the 1-based character position ``pos``."""
    prefix = text[: max(pos - 1, 0)]
    line = prefix.count("\n") + 1
    column = len(prefix) - (prefix.rfind("\n") + 1) + 1
    return line, column


class OrgRoamGraph:
    """Looks up refs in the org-roam index and writes new org notes.

    Args:
        db_path: Path to ``org-roam.db``; opened read-only.
        directory: Where new notes are written.
        filename_template: ``str.format`` template with ``{timestamp}``
            and ``{slug}`` fields.
        timestamp_format: ``strftime`` format for ``{timestamp}``.
        editor_command: Command line that opens a file; ``+LINE:COL FILE``
            is appended.
    """

    def __init__(
        self,
        db_path: str | Path,
        directory: str | Path,
        filename_template: str = "{timestamp}-{slug}.org",
        timestamp_format: str = "%Y%m%d%H%M%S",
        editor_command: str = "emacsclient -n",
        launcher: Callable[[list[str]], object] = subprocess.Popen,
    ) -> None:
        self.db_path = Path(db_path).expanduser()
        self.directory = Path(directory).expanduser()
        self.filename_template = filename_template
        self.timestamp_format = timestamp_format
        self.editor_command = editor_command
        self._launcher = launcher
        # Notes written by this process, keyed by ref, until org-roam indexes them
        self._created: dict[str, Node] = {}

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
        try:
            yield conn
        finally:
            conn.close()

    def find_ref_owner(self, ref: str) -> str | None:
        """Return the (still quoted) id of the node owning ``ref``."""
        created = self._created.get(ref)
        if created is not None:
            return _quote(created.id)
        if not self.db_path.exists():
            logger.warning("org-roam database not found at %s", self.db_path)
            return None
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT node_id FROM refs WHERE ref IN (?, ?) LIMIT 1",
                (_quote("//" + ref), _quote(ref)),
            ).fetchone()
        return row[0] if row else None

    def find_node_by_ref(self, ref: str) -> Node | None:
        if ref in self._created:
            return self._created[ref]
        owner = self.find_ref_owner(ref)
        if owner is None:
            return None
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT id, file, pos, title FROM nodes WHERE id = ?",
                (owner,),
            ).fetchone()
        if row is None:
            return None
        return Node(
            id=_unquote(row[0]),
            file=_unquote(row[1]),
            pos=int(row[2] or 1),
            title=_unquote(row[3]),
        )

    def note_path(self, title: str, now: datetime | None = None) -> Path:
        now = now or datetime.now()
        name = self.filename_template.format(
            timestamp=now.strftime(self.timestamp_format),
            slug=slugify(title),
        )
        return self.directory / name

    def create_node(self, template: str, title: str) -> Node:
        """Write a new note from ``template`` and open it.

        An ``:ID:`` property is added to the leading property drawer. The
        note's ``ROAM_REFS`` stay findable before org-roam re-indexes.
        """
        node_id = str(uuid.uuid4())
        if template.startswith(":PROPERTIES:\n"):
            content = template.replace(":PROPERTIES:\n", f":PROPERTIES:\n:ID: {node_id}\n", 1)
        else:
            content = f":PROPERTIES:\n:ID: {node_id}\n:END:\n{template}"

        path = self.note_path(title)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "x", encoding="utf-8") as f:
            f.write(content)
        logger.info("Created note %s (%s)", path, title)

        node = Node(id=node_id, file=str(path), pos=1, title=title)
        for value in parse_roam_refs(content):
            self._created[strip_scheme(value)] = node
        self.open_node(node.id, node.file, node.pos)
        return node

    def open_node(self, node_id: str, file: str, pos: int) -> None:
        path = Path(file)
        line, column = 1, 1
        if path.exists():
            line, column = line_and_column(path.read_text(encoding="utf-8"), pos)
        argv = shlex.split(self.editor_command) + [f"+{line}:{column}", str(path)]
        logger.info("Opening node %s at %s:%d", node_id, path, line)
        self._launcher(argv)


def parse_roam_refs(text: str) -> list[str]:
    """Values of the first ``ROAM_REFS`` property in org text.

    Raises:
        ValueError: If a quoted value is not closed.
    """
    for raw in text.splitlines():
        line = raw.strip()
        if line.upper().startswith(":ROAM_REFS:"):
            return shlex.split(line[len(":ROAM_REFS:"):])
    return []


def read_roam_refs(path: str | Path) -> list[str]:
    return parse_roam_refs(Path(path).read_text(encoding="utf-8"))
