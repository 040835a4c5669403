"""CRC-16 used to checksum serial frames.

Reflected polynomial 0xA001 (CRC-16/MODBUS), initial value 0xFFFF, no
final XOR. The same routine runs on both ends of the link.
"""

from __future__ import annotations

_POLY = 0xA001


def _make_table() -> list[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ _POLY
            else:
                crc >>= 1
        table.append(crc)
    return table


_TABLE = _make_table()


def crc16(data: bytes) -> int:
    """Return the CRC-16/MODBUS of ``data``."""
    crc = 0xFFFF
    for byte in data:
        crc = (crc >> 8) ^ _TABLE[(crc ^ byte) & 0xFF]
    return crc
