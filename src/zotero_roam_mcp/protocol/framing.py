"""Frame codec for the word-processor integration wire format.

Frame layout::

    +----------------+----------+------------------------+
    | Transaction ID |  Length  |        Payload         |
    | 4 bytes        | 4 bytes  | ``Length`` bytes       |
    +----------------+----------+------------------------+

- Transaction ID: big-endian unsigned 32-bit, echoed back on replies
- Length: big-endian unsigned 32-bit byte length of the payload
- Payload: UTF-8 text; ``null``, ``ERR:<message>``, or a JSON value
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from typing import Any

HEADER = struct.Struct(">II")
HEADER_SIZE = HEADER.size  # 8
ERROR_PREFIX = "ERR:"
NULL_PAYLOAD = "null"
MAX_UINT32 = 0xFFFFFFFF


@dataclass
class Frame:
    """A decoded protocol frame."""

    transaction_id: int
    text: str

    @property
    def is_error(self) -> bool:
        return self.text.startswith(ERROR_PREFIX)

    @property
    def error_message(self) -> str | None:
        if not self.is_error:
            return None
        return self.text[len(ERROR_PREFIX):]

    def json(self) -> Any:
        """Parse the payload text as JSON (``null`` becomes ``None``)."""
        return json.loads(self.text)

    def __repr__(self) -> str:
        preview = self.text if len(self.text) <= 60 else self.text[:57] + "..."
        return f"Frame(transaction_id={self.transaction_id}, text={preview!r})"


def encode_json(value: Any) -> bytes:
    """Serialize a value to the compact JSON text sent on the wire."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encode_frame(
    transaction_id: int,
    payload: Any = None,
    error: str | None = None,
) -> bytes:
    """Build a complete frame.

    Args:
        transaction_id: Transaction to answer (or 0 for an initiated call).
        payload: Any JSON-serializable value. ``None`` encodes as ``null``.
        error: If set, the payload becomes ``ERR:<error>`` and ``payload``
            is ignored.

    Returns:
        Header plus body, ready to write to the socket.
    """
    if not 0 <= transaction_id <= MAX_UINT32:
        raise ValueError(f"Transaction id must fit in 32 bits, got {transaction_id}")

    if error is not None:
        body = (ERROR_PREFIX + error).encode("utf-8")
    elif payload is not None:
        body = encode_json(payload)
    else:
        body = NULL_PAYLOAD.encode("utf-8")

    # Length is measured on the encoded bytes, not on characters
    return HEADER.pack(transaction_id, len(body)) + body


def peek_header(data: bytes) -> tuple[int, int]:
    """Decode only the 8-byte header.

    Returns:
        ``(transaction_id, payload_length)``.
    """
    if len(data) < HEADER_SIZE:
        raise ValueError(f"Header needs {HEADER_SIZE} bytes, got {len(data)}")
    return HEADER.unpack_from(data, 0)


def decode_frame(data: bytes) -> Frame:
    """Decode exactly one frame.

    ``data`` must hold the header and exactly ``length`` payload bytes;
    bytes belonging to a following frame are rejected.
    """
    transaction_id, length = peek_header(data)
    expected = HEADER_SIZE + length
    if len(data) != expected:
        raise ValueError(f"Frame needs exactly {expected} bytes, got {len(data)}")
    text = bytes(data[HEADER_SIZE:]).decode("utf-8")
    return Frame(transaction_id=transaction_id, text=text)
