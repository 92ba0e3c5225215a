"""Call identifiers of the document-integration protocol.

The reference manager drives the exchange: every inbound frame carries a
JSON array ``[name, params]`` naming a document API call. The only call
this side originates is the initiating command that starts an exchange.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .framing import Frame, encode_frame

# The remote party always uses transaction 0 in this usage pattern
INITIATE_TRANSACTION_ID = 0
DEFAULT_INITIATE_COMMAND = "addEditCitation"


class Command(str, Enum):
    """Document API calls received from the reference manager."""

    GET_ACTIVE_DOCUMENT = "Application.getActiveDocument"
    DISPLAY_ALERT = "Document.displayAlert"
    ACTIVATE = "Document.activate"
    CAN_INSERT_FIELD = "Document.canInsertField"
    SET_DOCUMENT_DATA = "Document.setDocumentData"
    GET_DOCUMENT_DATA = "Document.getDocumentData"
    CURSOR_IN_FIELD = "Document.cursorInField"
    GET_FIELDS = "Document.getFields"
    SET_BIBLIOGRAPHY_STYLE = "Document.setBibliographyStyle"
    COMPLETE = "Document.complete"
    INSERT_FIELD = "Document.insertField"
    INSERT_TEXT = "Document.insertText"
    CONVERT = "Document.convert"
    CONVERT_PLACEHOLDERS = "Document.convertPlaceholdersToFields"
    IMPORT_DOCUMENT = "Document.importDocument"
    EXPORT_DOCUMENT = "Document.exportDocument"
    FIELD_DELETE = "Field.delete"
    FIELD_SELECT = "Field.select"
    FIELD_REMOVE_CODE = "Field.removeCode"
    FIELD_SET_TEXT = "Field.setText"
    FIELD_GET_TEXT = "Field.getText"
    FIELD_SET_CODE = "Field.setCode"
    FIELD_CONVERT = "Field.convert"


# Known calls that a fake document cannot honour
UNSUPPORTED_COMMANDS: frozenset[Command] = frozenset({
    Command.INSERT_FIELD,
    Command.INSERT_TEXT,
    Command.CONVERT,
    Command.CONVERT_PLACEHOLDERS,
    Command.IMPORT_DOCUMENT,
    Command.EXPORT_DOCUMENT,
})


@dataclass
class PendingCall:
    """One decoded inbound call, discarded after it is answered."""

    transaction_id: int
    name: str
    params: list[Any] = field(default_factory=list)

    @property
    def command(self) -> Command | None:
        """The known command for this call, or ``None`` for foreign names."""
        try:
            return Command(self.name)
        except ValueError:
            return None


def parse_call(frame: Frame) -> PendingCall:
    """Decode a frame's JSON payload ``[name, params]`` into a PendingCall.

    Raises:
        ValueError: If the payload is not a JSON array led by a string name.
    """
    value = frame.json()
    if not isinstance(value, list) or not value or not isinstance(value[0], str):
        raise ValueError(f"Expected [name, params] call, got {frame.text!r}")
    params = value[1] if len(value) > 1 and value[1] is not None else []
    if not isinstance(params, list):
        params = [params]
    return PendingCall(
        transaction_id=frame.transaction_id,
        name=value[0],
        params=params,
    )


def build_initiate_call(
    template_version: int,
    command: str = DEFAULT_INITIATE_COMMAND,
) -> bytes:
    """Build the frame that asks the reference manager to start an exchange."""
    return encode_frame(
        INITIATE_TRANSACTION_ID,
        {"command": command, "templateVersion": template_version},
    )
