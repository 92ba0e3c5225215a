"""Protocol layer: frame codec, call identifiers, and the fake-document dispatcher."""

from .framing import Frame, encode_frame, decode_frame, peek_header
from .commands import Command, PendingCall, parse_call, build_initiate_call
from .dispatcher import Dispatcher, FakeDocument, Reply
