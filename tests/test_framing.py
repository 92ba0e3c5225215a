"""Tests for frame encoding and decoding."""

import pytest

from zotero_roam_mcp.protocol.framing import (
    encode_frame,
    decode_frame,
    peek_header,
    Frame,
    HEADER_SIZE,
)


def test_header_size():
    """Header is two 32-bit integers."""
    assert HEADER_SIZE == 8


def test_encode_null_payload():
    """No payload and no error encodes the text null."""
    frame = encode_frame(0)
    assert frame == b"\x00\x00\x00\x00\x00\x00\x00\x04null"


def test_encode_header_is_big_endian():
    """Transaction id and length are big-endian."""
    frame = encode_frame(0x01020304, [1])
    assert frame[:4] == b"\x01\x02\x03\x04"
    assert frame[4:8] == b"\x00\x00\x00\x03"
    assert frame[8:] == b"[1]"


def test_roundtrip_json_payload():
    """Build a frame and parse it back."""
    payload = ["Document.getFields", ["doc", "ReferenceMark"]]
    frame = decode_frame(encode_frame(7, payload))
    assert frame.transaction_id == 7
    assert frame.json() == payload


def test_roundtrip_error():
    """Errors encode as ERR: followed by the message."""
    frame = decode_frame(encode_frame(3, None, "X"))
    assert frame.text == "ERR:X"
    assert frame.is_error
    assert frame.error_message == "X"


def test_error_overrides_payload():
    """An error message wins over any payload."""
    frame = decode_frame(encode_frame(0, {"a": 1}, "unknown command"))
    assert frame.text == "ERR:unknown command"


def test_length_counts_bytes_not_characters():
    """Multi-byte text is measured after encoding."""
    data = encode_frame(0, "Größe – π")
    _, length = peek_header(data)
    assert length == len(data) - HEADER_SIZE
    assert length > len('"Größe – π"')
    assert decode_frame(data).json() == "Größe – π"


def test_peek_header():
    """Peeking only needs the first 8 bytes."""
    data = encode_frame(5, {"k": "v"})
    assert peek_header(data[:HEADER_SIZE]) == (5, len(data) - HEADER_SIZE)


def test_peek_header_too_short():
    """Fewer than 8 bytes cannot be peeked."""
    with pytest.raises(ValueError):
        peek_header(b"\x00\x00\x00")


def test_decode_rejects_trailing_bytes():
    """Bytes of a following frame are not part of this one."""
    data = encode_frame(0, True) + encode_frame(0)
    with pytest.raises(ValueError):
        decode_frame(data)


def test_decode_rejects_truncated_frame():
    """A frame missing payload bytes is rejected."""
    data = encode_frame(0, "abcdef")
    with pytest.raises(ValueError):
        decode_frame(data[:-1])


def test_transaction_id_range():
    """Transaction ids must fit in 32 bits."""
    with pytest.raises(ValueError):
        encode_frame(2**32)
    with pytest.raises(ValueError):
        encode_frame(-1)


def test_null_json():
    """A null payload parses to None."""
    assert decode_frame(encode_frame(0)).json() is None


def test_frame_repr():
    """Frame repr should be readable."""
    r = repr(Frame(transaction_id=0, text="null"))
    assert "transaction_id=0" in r
    assert "null" in r
