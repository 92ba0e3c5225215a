"""Tests for call identifiers and call parsing."""

import pytest

from zotero_roam_mcp.protocol.commands import (
    Command,
    PendingCall,
    UNSUPPORTED_COMMANDS,
    build_initiate_call,
    parse_call,
)
from zotero_roam_mcp.protocol.framing import Frame, decode_frame, encode_frame


def test_command_values():
    """Command values are the wire call names."""
    assert Command.GET_ACTIVE_DOCUMENT == "Application.getActiveDocument"
    assert Command.FIELD_SET_CODE == "Field.setCode"
    assert Command.COMPLETE == "Document.complete"


def test_unsupported_commands():
    """Document-editing calls are in the unsupported set."""
    assert Command.INSERT_FIELD in UNSUPPORTED_COMMANDS
    assert Command.EXPORT_DOCUMENT in UNSUPPORTED_COMMANDS
    assert Command.FIELD_SET_CODE not in UNSUPPORTED_COMMANDS


def test_parse_call():
    """A [name, params] payload becomes a PendingCall."""
    frame = decode_frame(encode_frame(0, ["Document.displayAlert", ["doc", "Hi", 2, 3]]))
    call = parse_call(frame)
    assert call.transaction_id == 0
    assert call.name == "Document.displayAlert"
    assert call.params == ["doc", "Hi", 2, 3]
    assert call.command == Command.DISPLAY_ALERT


def test_parse_call_without_params():
    """Missing params default to an empty list."""
    call = parse_call(Frame(transaction_id=4, text='["Application.getActiveDocument"]'))
    assert call.params == []
    assert call.transaction_id == 4


def test_parse_call_rejects_non_call():
    """Non-array payloads are not calls."""
    with pytest.raises(ValueError):
        parse_call(Frame(transaction_id=0, text="null"))
    with pytest.raises(ValueError):
        parse_call(Frame(transaction_id=0, text="[1, []]"))


def test_foreign_name_has_no_command():
    """Names outside the protocol map to no command."""
    assert PendingCall(transaction_id=0, name="Document.frobnicate").command is None


def test_build_initiate_call():
    """The initiating call uses transaction 0 and a two-field payload."""
    frame = decode_frame(build_initiate_call(2))
    assert frame.transaction_id == 0
    assert frame.json() == {"command": "addEditCitation", "templateVersion": 2}
