"""A small zlib-format compressor using fixed Huffman codes.

The output is a valid zlib stream. When compression would expand the
data, stored (uncompressed) blocks are emitted instead.
"""

from __future__ import annotations

_HASH_SIZE = 16384
_WINDOW = 32768
_MAX_MATCH = 258
_MOD_ADLER = 65521
_ADLER_BLOCK = 5552

_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31, 35, 43, 51, 59,
    67, 83, 99, 115, 131, 163, 195, 227, 258, 259,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3, 4, 4, 4, 4,
    5, 5, 5, 5, 0,
)
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385, 513,
    769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577, 32768,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8, 9, 9, 10, 10,
    11, 11, 12, 12, 13, 13,
)

_U32 = 0xFFFFFFFF


def _bitrev(code: int, codebits: int) -> int:
    result = 0
    for _ in range(codebits):
        result = (result << 1) | (code & 1)
        code >>= 1
    return result


def _zhash(data: bytes, pos: int) -> int:
    h = data[pos] + (data[pos + 1] << 8) + (data[pos + 2] << 16)
    h ^= (h << 3) & _U32
    h = (h + (h >> 5)) & _U32
    h ^= (h << 4) & _U32
    h = (h + (h >> 17)) & _U32
    h ^= (h << 25) & _U32
    h = (h + (h >> 6)) & _U32
    return h


def _match_length(data: bytes, a: int, b: int, limit: int) -> int:
    limit = min(limit, _MAX_MATCH)
    length = 0
    while length < limit and data[a + length] == data[b + length]:
        length += 1
    return length


class _BitWriter:
    def __init__(self, out: bytearray):
        self.out = out
        self.bitbuf = 0
        self.bitcount = 0

    def add(self, code: int, codebits: int) -> None:
        self.bitbuf |= code << self.bitcount
        self.bitcount += codebits
        while self.bitcount >= 8:
            self.out.append(self.bitbuf & 0xFF)
            self.bitbuf >>= 8
            self.bitcount -= 8

    def huff_code(self, code: int, codebits: int) -> None:
        self.add(_bitrev(code, codebits), codebits)

    def huff(self, n: int) -> None:
        if n <= 143:
            self.huff_code(0x30 + n, 8)
        elif n <= 255:
            self.huff_code(0x190 + n - 144, 9)
        elif n <= 279:
            self.huff_code(n - 256, 7)
        else:
            self.huff_code(0xC0 + n - 280, 8)

    def pad_to_byte(self) -> None:
        while self.bitcount:
            self.add(0, 1)


def adler32(data: bytes | bytearray | memoryview) -> int:
    """Return the Adler-32 checksum of ``data``."""
    data = bytes(data)
    s1, s2 = 1, 0
    start = 0
    blocklen = len(data) % _ADLER_BLOCK
    while start < len(data):
        for byte in data[start:start + blocklen]:
            s1 += byte
            s2 += s1
        s1 %= _MOD_ADLER
        s2 %= _MOD_ADLER
        start += blocklen
        blocklen = _ADLER_BLOCK
    return (s2 << 16) | s1


def zlib_compress(data: bytes | bytearray | memoryview, quality: int = 8) -> bytes:
    """Compress ``data`` into a zlib stream.

    ``quality`` bounds how many candidate positions are kept per hash bucket;
    values below 5 are treated as 5.
    """
    data = bytes(data)
    n = len(data)
    quality = max(quality, 5)

    out = bytearray((0x78, 0x5E))
    bits = _BitWriter(out)
    bits.add(1, 1)  # BFINAL
    bits.add(1, 2)  # fixed Huffman block

    table: list[list[int]] = [[] for _ in range(_HASH_SIZE)]
    mask = _HASH_SIZE - 1

    i = 0
    while i < n - 3:
        h = _zhash(data, i) & mask
        best = 3
        bestloc = None
        for pos in table[h]:
            if pos > i - _WINDOW:
                d = _match_length(data, pos, i, n - i)
                if d >= best:
                    best = d
                    bestloc = pos
        if len(table[h]) == 2 * quality:
            del table[h][:quality]
        table[h].append(i)

        if bestloc is not None:
            # Lazy matching: prefer a literal if the next byte matches longer.
            h_next = _zhash(data, i + 1) & mask
            for pos in table[h_next]:
                if pos > i - (_WINDOW - 1):
                    if _match_length(data, pos, i + 1, n - i - 1) > best:
                        bestloc = None
                        break

        if bestloc is not None:
            distance = i - bestloc
            j = 0
            while best > _LENGTH_BASE[j + 1] - 1:
                j += 1
            bits.huff(j + 257)
            if _LENGTH_EXTRA[j]:
                bits.add(best - _LENGTH_BASE[j], _LENGTH_EXTRA[j])
            j = 0
            while distance > _DIST_BASE[j + 1] - 1:
                j += 1
            bits.add(_bitrev(j, 5), 5)
            if _DIST_EXTRA[j]:
                bits.add(distance - _DIST_BASE[j], _DIST_EXTRA[j])
            i += best
        else:
            bits.huff(data[i])
            i += 1

    for byte in data[i:]:
        bits.huff(byte)
    bits.huff(256)
    bits.pad_to_byte()

    if len(out) > n + 2 + ((n + 32766) // 32767) * 5:
        del out[2:]
        start = 0
        while start < n:
            blocklen = min(n - start, 32767)
            out.append(1 if n - start == blocklen else 0)
            out += (blocklen & 0xFFFF).to_bytes(2, "little")
            out += (~blocklen & 0xFFFF).to_bytes(2, "little")
            out += data[start:start + blocklen]
            start += blocklen

    out += adler32(data).to_bytes(4, "big")
    return bytes(out)