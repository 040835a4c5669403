"""Frame builder and parser for the serial link.

Frame layout::

    +----------+--------+------------+------------------+----------+
    | Preamble |  Size  | Identifier |     Payload      | Checksum |
    | 2 bytes  | 1 byte |   1 byte   |  0-32 bytes      |  2 bytes |
    +----------+--------+------------+------------------+----------+

- Preamble: 0xAA 0x55
- Size: length of (identifier + payload)
- Checksum: CRC-16/MODBUS over (identifier + payload), little-endian

Requests and responses share the layout; a response echoes the request's
identifier.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.crc import crc16
from .commands import MAX_PAYLOAD

PREAMBLE = b"\xAA\x55"
HEADER_SIZE = 3  # preamble(2) + size(1)
CHECKSUM_SIZE = 2
MAX_FRAME_SIZE = HEADER_SIZE + 1 + MAX_PAYLOAD + CHECKSUM_SIZE


@dataclass
class Frame:
    """A parsed protocol frame."""

    identifier: int
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(identifier=0x{self.identifier:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(identifier: int, payload: bytes = b"") -> bytes:
    """Build a single frame.

    Args:
        identifier: Single-byte command identifier.
        payload: Command-specific payload bytes, at most 32.

    Returns:
        The frame bytes ready to write to the serial port.
    """
    if len(payload) > MAX_PAYLOAD:
        raise ValueError(
            f"Payload must be at most {MAX_PAYLOAD} bytes, got {len(payload)}"
        )
    body = bytes([identifier]) + payload
    checksum = crc16(body).to_bytes(2, "little")
    return PREAMBLE + bytes([len(body)]) + body + checksum


def parse_frame(data: bytes) -> Frame | None:
    """Parse one complete frame.

    Returns:
        A ``Frame``, or ``None`` if the preamble, size, or checksum is wrong.
    """
    if len(data) < HEADER_SIZE + 1 + CHECKSUM_SIZE:
        return None

    if data[0:2] != PREAMBLE:
        return None

    body_size = data[2]
    if not 1 <= body_size <= MAX_PAYLOAD + 1:
        return None
    if len(data) < HEADER_SIZE + body_size + CHECKSUM_SIZE:
        return None

    body = data[HEADER_SIZE : HEADER_SIZE + body_size]
    expected_checksum = int.from_bytes(
        data[HEADER_SIZE + body_size : HEADER_SIZE + body_size + CHECKSUM_SIZE],
        "little",
    )
    if crc16(body) != expected_checksum:
        return None

    return Frame(identifier=body[0], payload=bytes(body[1:]))


class FrameReader:
    """Incremental decoder for a byte stream.

    Bytes are fed in as they arrive; complete frames come out. Garbage
    before a preamble is skipped, and a frame with a bad checksum is
    dropped by resyncing one byte past its preamble.

    Usage::

        reader = FrameReader()
        for frame in reader.feed(chunk):
            handle(frame)
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.dropped = 0

    def feed(self, data: bytes) -> list[Frame]:
        self._buffer.extend(data)
        frames: list[Frame] = []
        while True:
            start = self._buffer.find(PREAMBLE)
            if start < 0:
                # Keep a trailing 0xAA, it may be the first preamble byte
                keep = 1 if self._buffer[-1:] == PREAMBLE[:1] else 0
                del self._buffer[: len(self._buffer) - keep]
                break
            del self._buffer[:start]

            if len(self._buffer) < HEADER_SIZE:
                break
            body_size = self._buffer[2]
            if not 1 <= body_size <= MAX_PAYLOAD + 1:
                self.dropped += 1
                del self._buffer[:1]
                continue

            total = HEADER_SIZE + body_size + CHECKSUM_SIZE
            if len(self._buffer) < total:
                break

            frame = parse_frame(bytes(self._buffer[:total]))
            if frame is None:
                self.dropped += 1
                del self._buffer[:1]
                continue
            del self._buffer[:total]
            frames.append(frame)
        return frames

    def clear(self) -> None:
        self._buffer.clear()

    @property
    def pending(self) -> int:
        """Bytes buffered but not yet part of a complete frame."""
        return len(self._buffer)
