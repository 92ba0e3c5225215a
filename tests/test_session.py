"""End-to-end exchange tests with a scripted reference manager."""

import json
import sqlite3
from unittest.mock import MagicMock

import pytest

from zotero_roam_mcp.config import Settings
from zotero_roam_mcp.prompt import Choice, PromptAdapter
from zotero_roam_mcp.protocol.framing import HEADER_SIZE, decode_frame, encode_frame, peek_header
from zotero_roam_mcp.roam.graph import Node
from zotero_roam_mcp.session import Session
from zotero_roam_mcp.transport.tcp_connection import TCPConnection

CODE = "ITEM CSL_CITATION " + json.dumps({
    "citationItems": [{
        "uris": ["https://zotero.org/users/1/items/XYZ"],
        "itemData": {"title": "T"},
    }],
})


def _script():
    """Calls a reference manager makes while inserting one citation."""
    return [
        ["Application.getActiveDocument", [3]],
        ["Document.getDocumentData", ["doc"]],
        ["Document.setDocumentData", ["doc", "<data new/>"]],
        ["Document.cursorInField", ["doc", "ReferenceMark"]],
        ["Document.canInsertField", ["doc", "ReferenceMark"]],
        ["Document.insertField", ["doc", "ReferenceMark", 1]],
        ["Field.setCode", ["doc", "f", CODE]],
        ["Field.setText", ["doc", "f", "(T)", False]],
        ["Document.complete", ["doc"]],
    ]


def _split_frames(data):
    frames = []
    while data:
        _, length = peek_header(data)
        frames.append(decode_frame(data[: HEADER_SIZE + length]))
        data = data[HEADER_SIZE + length:]
    return frames


def _make_session(graph, chunk=5):
    stream = b"".join(encode_frame(0, call) for call in _script())
    chunks = [stream[i : i + chunk] for i in range(0, len(stream), chunk)]
    sock = MagicMock()
    sock.fileno.return_value = 5
    sock.recv.side_effect = chunks + [b""]
    conn = TCPConnection(socket_factory=MagicMock(return_value=sock))
    prompt = PromptAdapter(ask=MagicMock(return_value=Choice.CONFIRM))
    session = Session(Settings(), graph=graph, prompt=prompt, connection=conn)
    return session, sock


def _sent_frames(sock):
    return _split_frames(b"".join(c.args[0] for c in sock.sendall.call_args_list))


def test_new_reference_creates_one_node():
    """A set-code for an unknown ref creates exactly one node."""
    graph = MagicMock()
    graph.find_node_by_ref.return_value = None
    graph.create_node.return_value = Node(id="n", file="/roam/t.org", title="T")
    session, sock = _make_session(graph)

    resolution = session.pick_reference()

    graph.create_node.assert_called_once()
    template, title = graph.create_node.call_args.args
    assert title == "T"
    assert "zotero.org/users/1/items/XYZ" in next(
        line for line in template.splitlines() if line.startswith(":ROAM_REFS:")
    )
    graph.open_node.assert_not_called()
    assert resolution.created
    assert session.document.data == "<data new/>"


def test_existing_reference_opens_node():
    """A set-code for a known ref opens it and creates nothing."""
    graph = MagicMock()
    graph.find_node_by_ref.return_value = Node(id="n", file="/roam/t.org", pos=7, title="T")
    session, _ = _make_session(graph, chunk=3)

    session.pick_reference()

    graph.open_node.assert_called_once_with("n", "/roam/t.org", 7)
    graph.create_node.assert_not_called()


def test_replies_follow_calls():
    """The initiating call is sent first, then one reply per call in order."""
    graph = MagicMock()
    graph.find_node_by_ref.return_value = None
    session, sock = _make_session(graph)

    session.pick_reference()

    sent = _sent_frames(sock)
    assert sent[0].json() == {"command": "addEditCitation", "templateVersion": 1}
    replies = sent[1:]
    assert len(replies) == len(_script())
    assert all(r.transaction_id == 0 for r in replies)
    assert replies[0].json() == [3, "zotero-roam-document"]
    assert replies[5].text == "ERR:unknown command"
    assert replies[-1].json() is None


def test_exchange_stops_at_complete():
    """Nothing is read after Document.complete is answered."""
    graph = MagicMock()
    graph.find_node_by_ref.return_value = None
    session, sock = _make_session(graph, chunk=10_000)

    session.pick_reference()

    assert sock.recv.call_count == 1
    assert session.connection.connected


def test_remote_close_ends_exchange():
    """A closed connection ends the exchange without a resolution."""
    sock = MagicMock()
    sock.fileno.return_value = 5
    sock.recv.return_value = b""
    conn = TCPConnection(socket_factory=MagicMock(return_value=sock))
    session = Session(Settings(), graph=MagicMock(), prompt=PromptAdapter(ask=MagicMock()), connection=conn)

    assert session.pick_reference() is None
    assert not conn.connected


def test_failed_exchange_drops_connection():
    """A graph failure mid-exchange closes the socket and clears the buffer."""
    graph = MagicMock()
    graph.find_node_by_ref.side_effect = sqlite3.OperationalError("database is locked")
    stream = encode_frame(0, ["Field.setCode", ["doc", "f", CODE]]) + encode_frame(0, ["Document.complete", ["doc"]])
    sock = MagicMock()
    sock.fileno.return_value = 5
    sock.recv.side_effect = [stream]
    conn = TCPConnection(socket_factory=MagicMock(return_value=sock))
    session = Session(Settings(), graph=graph, prompt=PromptAdapter(ask=MagicMock()), connection=conn)

    with pytest.raises(sqlite3.OperationalError):
        session.pick_reference()

    assert not conn.connected
    assert conn.buffered == 0
    sock.close.assert_called_once()


def test_next_pick_after_failure_uses_fresh_socket():
    """The pick after a failed exchange reconnects before sending."""
    graph = MagicMock()
    graph.find_node_by_ref.side_effect = [sqlite3.OperationalError("locked"), None]
    first, second = MagicMock(), MagicMock()
    first.fileno.return_value = second.fileno.return_value = 5
    first.recv.side_effect = [encode_frame(0, ["Field.setCode", ["doc", "f", CODE]])]
    second.recv.side_effect = [encode_frame(0, ["Document.complete", ["doc"]])]
    factory = MagicMock(side_effect=[first, second])
    conn = TCPConnection(socket_factory=factory)
    session = Session(Settings(), graph=graph, prompt=PromptAdapter(ask=MagicMock()), connection=conn)

    with pytest.raises(sqlite3.OperationalError):
        session.pick_reference()
    session.pick_reference()

    assert factory.call_count == 2
    sent = _split_frames(b"".join(c.args[0] for c in second.sendall.call_args_list))
    assert sent[0].json() == {"command": "addEditCitation", "templateVersion": 1}
    assert sent[1].json() is None
