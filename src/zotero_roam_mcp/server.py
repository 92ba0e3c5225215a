"""MCP server entry point for the Zotero / org-roam bridge.

Exposes the two user actions, picking a reference into a note and
jumping from a note back to its reference, as tools over the Model
Context Protocol using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import sys
import webbrowser
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import Settings, load_settings
from .roam.graph import read_roam_refs
from .roam.refs import canonicalize, ref_to_select_link
from .session import Session

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "zotero-roam",
    instructions="Open or create org-roam notes for references picked in Zotero",
)

# Global session state
_settings: Settings | None = None
_session: Session | None = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def _get_session() -> Session:
    """Get the process-wide session, creating it on first use."""
    global _session
    if _session is None:
        _session = Session(_get_settings())
    return _session


# ─── TOOLS ────────────────────────────────────────────────────────────

@mcp.tool()
def pick_reference() -> dict[str, Any]:
    """Pick a reference in Zotero and open its org-roam note.

    Zotero shows its citation picker. The chosen item's note is opened
    if one already carries the item's ref; otherwise a new note is
    created from the item's metadata and opened.

    Zotero alerts are answered on the controlling terminal. A server
    started without one (the usual case for stdio MCP clients) answers
    every alert as dismissed.
    """
    session = _get_session()
    try:
        resolution = session.pick_reference()
    except ConnectionError as e:
        logger.error("Citation exchange failed: %s", e)
        return {"error": str(e)}
    except Exception as e:
        logger.exception("Citation exchange aborted")
        return {"error": f"{type(e).__name__}: {e}"}

    if resolution is None:
        return {"picked": False}

    return {
        "picked": True,
        "title": resolution.record.title,
        "ref": resolution.ref.uri,
        "item_id": resolution.ref.item_id,
        "node_id": resolution.node.id,
        "file": resolution.node.file,
        "created": resolution.created,
    }


@mcp.tool()
def open_in_zotero(note_path: str) -> dict[str, Any]:
    """Select the reference linked from a note in Zotero.

    Args:
        note_path: Path to an org-roam note with a ROAM_REFS property.
    """
    try:
        refs = read_roam_refs(note_path)
    except OSError as e:
        return {"error": f"Could not read note: {e}"}
    except ValueError as e:
        return {"error": f"Malformed ROAM_REFS: {e}"}

    for ref in refs:
        try:
            link = ref_to_select_link(ref)
        except ValueError:
            continue
        webbrowser.open(link)
        logger.info("Opened %s", link)
        return {"opened": link, "ref": ref}

    return {"error": "No Zotero ref in ROAM_REFS", "refs": refs}


@mcp.tool()
def find_note(item_uri: str) -> dict[str, Any]:
    """Look up the note for a Zotero item URI without opening anything.

    Args:
        item_uri: An item web link or ``zotero://select`` link.
    """
    settings = _get_settings()
    try:
        ref = canonicalize(item_uri, settings.uri_format, settings.username)
    except ValueError as e:
        return {"error": str(e)}

    node = _get_session().graph.find_node_by_ref(ref.key)
    if node is None:
        return {"found": False, "ref": ref.uri}
    return {
        "found": True,
        "ref": ref.uri,
        "node_id": node.id,
        "file": node.file,
        "title": node.title,
    }


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("zotero-roam://document/state")
def resource_document_state() -> str:
    """Fake document fields the reference manager has seen."""
    document = _get_session().document
    return json.dumps({
        "document_id": document.document_id,
        "api_version": document.api_version,
        "data": document.data,
    })


@mcp.resource("zotero-roam://config")
def resource_config() -> str:
    """Active settings."""
    return json.dumps(_get_settings().to_dict())


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    settings = _get_settings()
    logging.basicConfig(level=settings.log_level, stream=sys.stderr)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
