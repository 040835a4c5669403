"""Tests for frame building and parsing."""

import pytest

from unit_synth_link.protocol.framing import (
    MAX_FRAME_SIZE,
    PREAMBLE,
    Frame,
    FrameReader,
    build_frame,
    parse_frame,
)
from unit_synth_link.utils.crc import crc16


def test_build_frame_note_on():
    """Verify frame structure for note on channel 0, middle C, velocity 100.

    Structure: AA 55 [size] [id] [payload] [crc_lo crc_hi]
    """
    frame = build_frame(0x03, b"\x00\x3C\x64")
    assert frame[0:2] == PREAMBLE
    assert frame[2] == 4  # identifier + 3 payload bytes
    assert frame[3] == 0x03
    assert frame[4:7] == b"\x00\x3C\x64"
    expected_crc = crc16(bytes([0x03, 0x00, 0x3C, 0x64]))
    assert frame[7] == expected_crc & 0xFF
    assert frame[8] == (expected_crc >> 8) & 0xFF
    assert len(frame) == 9


def test_roundtrip_parse():
    """Build a frame and parse it back."""
    parsed = parse_frame(build_frame(0x0E, bytes(range(9))))
    assert parsed is not None
    assert parsed.identifier == 0x0E
    assert parsed.payload == bytes(range(9))


def test_roundtrip_empty_payload():
    """Commands with no payload (reset, all drums) should round-trip."""
    parsed = parse_frame(build_frame(0x15))
    assert parsed is not None
    assert parsed.identifier == 0x15
    assert parsed.payload == b""


def test_max_payload():
    """A 32-byte payload is the largest allowed."""
    frame = build_frame(0x01, bytes(32))
    assert len(frame) == MAX_FRAME_SIZE
    assert parse_frame(frame).payload == bytes(32)
    with pytest.raises(ValueError):
        build_frame(0x01, bytes(33))


def test_parse_invalid_preamble():
    """Frames with wrong preamble should return None."""
    frame = bytearray(build_frame(0x05, b"\x00"))
    frame[0] = 0xBB
    assert parse_frame(bytes(frame)) is None


def test_parse_bad_checksum():
    """Frames with corrupt checksum should return None."""
    frame = bytearray(build_frame(0x05, b"\x00"))
    frame[-1] ^= 0xFF
    assert parse_frame(bytes(frame)) is None


def test_parse_truncated():
    """A frame cut short should return None."""
    frame = build_frame(0x03, b"\x00\x3C\x64")
    assert parse_frame(frame[:-1]) is None


def test_reader_split_chunks():
    """Frames arriving byte by byte are reassembled."""
    reader = FrameReader()
    frame = build_frame(0x03, b"\x00\x3C\x64")
    out = []
    for b in frame:
        out.extend(reader.feed(bytes([b])))
    assert out == [Frame(identifier=0x03, payload=b"\x00\x3C\x64")]
    assert reader.pending == 0


def test_reader_skips_garbage_and_bad_frames():
    """Noise and corrupt frames are dropped; good frames still come out."""
    reader = FrameReader()
    bad = bytearray(build_frame(0x08, b"\x64"))
    bad[-1] ^= 0xFF
    data = b"\x00\x12\xAA" + bytes(bad) + build_frame(0x09, b"\x01\x50")
    frames = reader.feed(data)
    assert [f.identifier for f in frames] == [0x09]
    assert frames[0].payload == b"\x01\x50"
    assert reader.dropped >= 1


def test_reader_multiple_frames():
    """Back-to-back frames in one chunk all come out in order."""
    reader = FrameReader()
    data = build_frame(0x03, b"\x00\x3C\x64") + build_frame(0x04, b"\x00\x3C\x00")
    frames = reader.feed(data)
    assert [f.identifier for f in frames] == [0x03, 0x04]


def test_frame_repr():
    """Frame repr should be readable."""
    r = repr(Frame(identifier=0x0A, payload=b"\x02"))
    assert "0x0A" in r
