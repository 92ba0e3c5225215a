"""Fake-document state machine answering the reference manager's calls.

Nothing here touches a real document. Each call is answered from a small
amount of synthetic state so the remote validator is satisfied, while two
calls trigger real side effects: ``Document.displayAlert`` asks the user,
and ``Field.setCode`` hands the chosen citation to the resolver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from .commands import Command, PendingCall, UNSUPPORTED_COMMANDS, parse_call
from .framing import Frame, encode_frame
from ..models.citation import CitationError

logger = logging.getLogger(__name__)

API_VERSION = 3
DOCUMENT_ID = "zotero-roam-document"
FIELD_ID = "zotero-roam-field"
# "TEMP" marks a placeholder field that receives a fresh citation
FIELD_CODE = "TEMP"
NOTE_INDEX = 0
UNKNOWN_COMMAND = "unknown command"

DEFAULT_DOCUMENT_DATA = (
    '<data data-version="3" zotero-version="6.0">'
    '<session id="zotero-roam"/>'
    '<style id="http://www.zotero.org/styles/chicago-author-date" '
    'locale="en-US" hasBibliography="1" bibliographyStyleHasBeenSet="0"/>'
    '<prefs><pref name="fieldType" value="ReferenceMark"/></prefs>'
    "</data>"
)


class AlertPrompt(Protocol):
    def show(self, message: str, icon: int, buttons: int) -> int: ...


class CitationSink(Protocol):
    def resolve(self, payload: str) -> None: ...


@dataclass
class FakeDocument:
    """The only document state the remote party can observe."""

    data: str = DEFAULT_DOCUMENT_DATA
    document_id: str = DOCUMENT_ID
    api_version: int = API_VERSION


@dataclass
class Reply:
    """Result of one dispatched call: either a JSON value or a wire error."""

    value: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, value: Any = None) -> Reply:
        return cls(value=value)

    @classmethod
    def err(cls, message: str = UNKNOWN_COMMAND) -> Reply:
        return cls(error=message)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def encode(self, transaction_id: int) -> bytes:
        return encode_frame(transaction_id, self.value, self.error)


def _param(call: PendingCall, index: int, default: Any = None) -> Any:
    if -len(call.params) <= index < len(call.params):
        return call.params[index]
    return default


class Dispatcher:
    """Maps each call name to its fake-document behaviour.

    Args:
        document: Mutable fake document state.
        prompt: Collaborator that shows ``Document.displayAlert`` dialogs.
        resolver: Collaborator that receives ``Field.setCode`` payloads.
    """

    def __init__(
        self,
        document: FakeDocument,
        prompt: AlertPrompt,
        resolver: CitationSink,
    ) -> None:
        self.document = document
        self._prompt = prompt
        self._resolver = resolver
        self._handlers: dict[Command, Callable[[PendingCall], Reply]] = {
            Command.GET_ACTIVE_DOCUMENT: self._get_active_document,
            Command.DISPLAY_ALERT: self._display_alert,
            Command.ACTIVATE: self._no_op,
            Command.CAN_INSERT_FIELD: lambda call: Reply.ok(True),
            Command.SET_DOCUMENT_DATA: self._set_document_data,
            Command.GET_DOCUMENT_DATA: lambda call: Reply.ok(self.document.data),
            Command.CURSOR_IN_FIELD: lambda call: Reply.ok(
                [FIELD_ID, FIELD_CODE, NOTE_INDEX]
            ),
            Command.GET_FIELDS: lambda call: Reply.ok(
                [[FIELD_ID], [FIELD_CODE], [NOTE_INDEX]]
            ),
            Command.SET_BIBLIOGRAPHY_STYLE: self._no_op,
            Command.COMPLETE: self._no_op,
            Command.FIELD_DELETE: self._no_op,
            Command.FIELD_SELECT: self._no_op,
            Command.FIELD_REMOVE_CODE: self._no_op,
            Command.FIELD_SET_TEXT: self._no_op,
            Command.FIELD_CONVERT: self._no_op,
            Command.FIELD_GET_TEXT: lambda call: Reply.ok(""),
            Command.FIELD_SET_CODE: self._set_code,
        }

    def dispatch(self, call: PendingCall) -> Reply:
        """Execute one call against the fake document."""
        command = call.command
        handler = self._handlers.get(command) if command is not None else None
        if handler is None:
            if command in UNSUPPORTED_COMMANDS:
                logger.warning("Unsupported document call: %s", call.name)
            else:
                logger.warning("Unknown call: %s", call.name)
            return Reply.err()
        logger.debug("Dispatching %s with %d params", call.name, len(call.params))
        return handler(call)

    def handle_frame(self, frame: Frame) -> tuple[PendingCall, bytes]:
        """Decode, dispatch, and encode the reply for one inbound frame.

        The reply echoes the frame's transaction id.
        """
        call = parse_call(frame)
        reply = self.dispatch(call)
        return call, reply.encode(call.transaction_id)

    # ─── HANDLERS ─────────────────────────────────────────────────────

    def _no_op(self, call: PendingCall) -> Reply:
        return Reply.ok()

    def _get_active_document(self, call: PendingCall) -> Reply:
        return Reply.ok([self.document.api_version, self.document.document_id])

    def _display_alert(self, call: PendingCall) -> Reply:
        # params: [documentID, text, icon, buttons]
        message = str(_param(call, 1, ""))
        icon = _param(call, 2, 0)
        buttons = _param(call, 3, 0)
        return Reply.ok(self._prompt.show(message, icon, buttons))

    def _set_document_data(self, call: PendingCall) -> Reply:
        self.document.data = _param(call, -1, "")
        return Reply.ok()

    def _set_code(self, call: PendingCall) -> Reply:
        # params: [documentID, fieldID, code]
        code = _param(call, -1, "")
        try:
            self._resolver.resolve(code)
        except CitationError as e:
            logger.warning("Could not resolve citation: %s", e)
            return Reply.err(str(e))
        return Reply.ok()
