"""CRC-32C (Castagnoli) checksums, one-shot and incremental."""

from __future__ import annotations

_POLY = 0x82F63B78
_MASK = 0xFFFFFFFF


def _make_table() -> tuple[int, ...]:
    table = []
    for value in range(256):
        crc = value
        for _ in range(8):
            crc = (crc >> 1) ^ _POLY if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_TABLE = _make_table()


def _advance(crc: int, data: bytes | bytearray | memoryview) -> int:
    table = _TABLE
    for byte in memoryview(data).cast("B"):
        crc = table[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc


def crc32(data: bytes | bytearray | memoryview, init: int = 0) -> int:
    """Return the CRC-32C of ``data``, continuing from a previous result ``init``."""
    return ~_advance(~init & _MASK, data) & _MASK


class CRC32C:
    """Incremental CRC-32C calculator."""

    def __init__(self, init: int = 0):
        self._crc = ~init & _MASK

    def update(self, data: bytes | bytearray | memoryview) -> None:
        """Feed more bytes into the checksum."""
        self._crc = _advance(self._crc, data)

    def digest(self) -> int:
        """Return the checksum of everything fed so far."""
        return ~self._crc & _MASK