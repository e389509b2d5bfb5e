"""Baseline JPEG encoding with the standard quantisation and Huffman tables."""

from __future__ import annotations

import os

from .png import ImageWriteError

_ZIGZAG = (
    0, 1, 5, 6, 14, 15, 27, 28, 2, 4, 7, 13, 16, 26, 29, 42, 3, 8, 12, 17, 25,
    30, 41, 43, 9, 11, 18, 24, 31, 40, 44, 53, 10, 19, 23, 32, 39, 45, 52, 54,
    20, 22, 33, 38, 46, 51, 55, 60, 21, 34, 37, 47, 50, 56, 59, 61, 35, 36, 48,
    49, 57, 58, 62, 63,
)

_DC_LUM_COUNTS = bytes((0, 1, 5, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0))
_DC_LUM_VALUES = bytes(range(12))
_AC_LUM_COUNTS = bytes((0, 2, 1, 3, 3, 2, 4, 3, 5, 5, 4, 4, 0, 0, 1, 0x7D))
_AC_LUM_VALUES = bytes((
    0x01, 0x02, 0x03, 0x00, 0x04, 0x11, 0x05, 0x12, 0x21, 0x31, 0x41, 0x06, 0x13, 0x51, 0x61, 0x07,
    0x22, 0x71, 0x14, 0x32, 0x81, 0x91, 0xA1, 0x08, 0x23, 0x42, 0xB1, 0xC1, 0x15, 0x52, 0xD1, 0xF0,
    0x24, 0x33, 0x62, 0x72, 0x82, 0x09, 0x0A, 0x16, 0x17, 0x18, 0x19, 0x1A, 0x25, 0x26, 0x27, 0x28,
    0x29, 0x2A, 0x34, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48, 0x49,
    0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68, 0x69,
    0x6A, 0x73, 0x74, 0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x83, 0x84, 0x85, 0x86, 0x87, 0x88, 0x89,
    0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3, 0xA4, 0xA5, 0xA6, 0xA7,
    0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3, 0xC4, 0xC5,
    0xC6, 0xC7, 0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA, 0xE1, 0xE2,
    0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF1, 0xF2, 0xF3, 0xF4, 0xF5, 0xF6, 0xF7, 0xF8,
    0xF9, 0xFA,
))
_DC_CHROM_COUNTS = bytes((0, 3, 1, 1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0))
_DC_CHROM_VALUES = bytes(range(12))
_AC_CHROM_COUNTS = bytes((0, 2, 1, 2, 4, 4, 3, 4, 7, 5, 4, 4, 0, 1, 2, 0x77))
_AC_CHROM_VALUES = bytes((
    0x00, 0x01, 0x02, 0x03, 0x11, 0x04, 0x05, 0x21, 0x31, 0x06, 0x12, 0x41, 0x51, 0x07, 0x61, 0x71,
    0x13, 0x22, 0x32, 0x81, 0x08, 0x14, 0x42, 0x91, 0xA1, 0xB1, 0xC1, 0x09, 0x23, 0x33, 0x52, 0xF0,
    0x15, 0x62, 0x72, 0xD1, 0x0A, 0x16, 0x24, 0x34, 0xE1, 0x25, 0xF1, 0x17, 0x18, 0x19, 0x1A, 0x26,
    0x27, 0x28, 0x29, 0x2A, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48,
    0x49, 0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68,
    0x69, 0x6A, 0x73, 0x74, 0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x82, 0x83, 0x84, 0x85, 0x86, 0x87,
    0x88, 0x89, 0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3, 0xA4, 0xA5,
    0xA6, 0xA7, 0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3,
    0xC4, 0xC5, 0xC6, 0xC7, 0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA,
    0xE2, 0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF2, 0xF3, 0xF4, 0xF5, 0xF6, 0xF7, 0xF8,
    0xF9, 0xFA,
))

_YQT = (
    16, 11, 10, 16, 24, 40, 51, 61, 12, 12, 14, 19, 26, 58, 60, 55, 14, 13, 16, 24, 40, 57, 69, 56,
    14, 17, 22, 29, 51, 87, 80, 62, 18, 22, 37, 56, 68, 109, 103, 77, 24, 35, 55, 64, 81, 104, 113,
    92, 49, 64, 78, 87, 103, 121, 120, 101, 72, 92, 95, 98, 112, 100, 103, 99,
)
_UVQT = (
    17, 18, 24, 47, 99, 99, 99, 99, 18, 21, 26, 66, 99, 99, 99, 99, 24, 26, 56, 99, 99, 99, 99, 99,
    47, 66, 99, 99, 99, 99, 99, 99,
) + (99,) * 32

_AASF = tuple(
    f * 2.828427125
    for f in (1.0, 1.387039845, 1.306562965, 1.175875602, 1.0, 0.785694958, 0.541196100, 0.275899379)
)

_HEAD0 = bytes((
    0xFF, 0xD8, 0xFF, 0xE0, 0, 0x10, ord("J"), ord("F"), ord("I"), ord("F"), 0, 1, 1, 0, 0, 1, 0, 1,
    0, 0, 0xFF, 0xDB, 0, 0x84, 0,
))
_HEAD2 = bytes((0xFF, 0xDA, 0, 0xC, 3, 1, 0, 2, 0x11, 3, 0x11, 0, 0x3F, 0))

_EOB = 0x00
_ZERO_RUN_16 = 0xF0


def _huffman_codes(counts: bytes, values: bytes) -> dict[int, tuple[int, int]]:
    """Canonical Huffman codes: symbol -> (code, length)."""
    codes: dict[int, tuple[int, int]] = {}
    symbols = iter(values)
    code = 0
    for length, count in enumerate(counts, start=1):
        for _ in range(count):
            codes[next(symbols)] = (code, length)
            code += 1
        code <<= 1
    return codes


_YDC = _huffman_codes(_DC_LUM_COUNTS, _DC_LUM_VALUES)
_YAC = _huffman_codes(_AC_LUM_COUNTS, _AC_LUM_VALUES)
_UVDC = _huffman_codes(_DC_CHROM_COUNTS, _DC_CHROM_VALUES)
_UVAC = _huffman_codes(_AC_CHROM_COUNTS, _AC_CHROM_VALUES)


class _BitStream:
    def __init__(self, out: bytearray):
        self.out = out
        self.buf = 0
        self.count = 0

    def write(self, code: int, length: int) -> None:
        self.count += length
        self.buf |= code << (24 - self.count)
        while self.count >= 8:
            byte = (self.buf >> 16) & 0xFF
            self.out.append(byte)
            if byte == 0xFF:
                self.out.append(0)
            self.buf = (self.buf << 8) & 0xFFFFFF
            self.count -= 8


def _dct(d0, d1, d2, d3, d4, d5, d6, d7):
    tmp0 = d0 + d7
    tmp7 = d0 - d7
    tmp1 = d1 + d6
    tmp6 = d1 - d6
    tmp2 = d2 + d5
    tmp5 = d2 - d5
    tmp3 = d3 + d4
    tmp4 = d3 - d4

    tmp10 = tmp0 + tmp3
    tmp13 = tmp0 - tmp3
    tmp11 = tmp1 + tmp2
    tmp12 = tmp1 - tmp2

    out0 = tmp10 + tmp11
    out4 = tmp10 - tmp11
    z1 = (tmp12 + tmp13) * 0.707106781
    out2 = tmp13 + z1
    out6 = tmp13 - z1

    tmp10 = tmp4 + tmp5
    tmp11 = tmp5 + tmp6
    tmp12 = tmp6 + tmp7

    z5 = (tmp10 - tmp12) * 0.382683433
    z2 = tmp10 * 0.541196100 + z5
    z4 = tmp12 * 1.306562965 + z5
    z3 = tmp11 * 0.707106781

    z11 = tmp7 + z3
    z13 = tmp7 - z3

    return (out0, z11 + z4, out2, z13 - z2, out4, z13 + z2, out6, z11 - z4)


def _category(value: int) -> tuple[int, int]:
    """Return (extra bits, bit count) for a DC difference or AC coefficient."""
    length = max(abs(value).bit_length(), 1)
    if value < 0:
        value -= 1
    return value & ((1 << length) - 1), length


def _process_block(
    bits: _BitStream,
    block: list[float],
    fdtbl: list[float],
    dc: int,
    htdc: dict[int, tuple[int, int]],
    htac: dict[int, tuple[int, int]],
) -> int:
    for r in range(0, 64, 8):
        block[r:r + 8] = _dct(*block[r:r + 8])
    for c in range(8):
        block[c::8] = _dct(*block[c::8])

    du = [0] * 64
    for j in range(64):
        v = block[j] * fdtbl[j]
        du[_ZIGZAG[j]] = int(v - 0.5 if v < 0 else v + 0.5)

    diff = du[0] - dc
    if diff == 0:
        bits.write(*htdc[0])
    else:
        extra, length = _category(diff)
        bits.write(*htdc[length])
        bits.write(extra, length)

    end = 63
    while end > 0 and du[end] == 0:
        end -= 1
    if end == 0:
        bits.write(*htac[_EOB])
        return du[0]

    i = 1
    while i <= end:
        start = i
        while du[i] == 0 and i <= end:
            i += 1
        zeros = i - start
        if zeros >= 16:
            for _ in range(zeros >> 4):
                bits.write(*htac[_ZERO_RUN_16])
            zeros &= 15
        extra, length = _category(du[i])
        bits.write(*htac[(zeros << 4) + length])
        bits.write(extra, length)
        i += 1
    if end != 63:
        bits.write(*htac[_EOB])
    return du[0]


def _quant_table(base: tuple[int, ...], scale: int) -> bytes:
    table = bytearray(64)
    for i, q in enumerate(base):
        value = (q * scale + 50) // 100
        table[_ZIGZAG[i]] = min(max(value, 1), 255)
    return bytes(table)


def _divisors(table: bytes) -> list[float]:
    return [
        1.0 / (table[_ZIGZAG[row * 8 + col]] * _AASF[row] * _AASF[col])
        for row in range(8)
        for col in range(8)
    ]


def encode_jpeg(
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    quality: int = 90,
    *,
    flip_vertically: bool = False,
) -> bytes:
    """Encode interleaved 8-bit pixels as a baseline JPEG and return its bytes.

    Alpha is ignored. ``quality`` runs from 1 to 100 (0 means 90); above 90
    the chroma channels are kept at full resolution, otherwise they are
    subsampled 2x2.
    """
    if not width or not height or width < 0 or height < 0:
        raise ImageWriteError(f"invalid image size: {width}x{height}")
    if components < 1 or components > 4:
        raise ImageWriteError(f"unsupported number of components: {components}")
    data = bytes(pixels)
    if not data or len(data) < width * height * components:
        raise ImageWriteError("pixel data is shorter than the image described")

    quality = quality or 90
    subsample = quality <= 90
    quality = min(max(quality, 1), 100)
    scale = 5000 // quality if quality < 50 else 200 - quality * 2

    y_table = _quant_table(_YQT, scale)
    uv_table = _quant_table(_UVQT, scale)
    fdtbl_y = _divisors(y_table)
    fdtbl_uv = _divisors(uv_table)

    head1 = bytes((
        0xFF, 0xC0, 0, 0x11, 8, (height >> 8) & 0xFF, height & 0xFF, (width >> 8) & 0xFF,
        width & 0xFF, 3, 1, 0x22 if subsample else 0x11, 0, 2, 0x11, 1, 3, 0x11, 1,
        0xFF, 0xC4, 0x01, 0xA2, 0,
    ))
    out = bytearray(_HEAD0)
    out += y_table
    out.append(1)
    out += uv_table
    out += head1
    out += _DC_LUM_COUNTS + _DC_LUM_VALUES
    out.append(0x10)
    out += _AC_LUM_COUNTS + _AC_LUM_VALUES
    out.append(1)
    out += _DC_CHROM_COUNTS + _DC_CHROM_VALUES
    out.append(0x11)
    out += _AC_CHROM_COUNTS + _AC_CHROM_VALUES
    out += _HEAD2

    ofs_g = 1 if components > 2 else 0
    ofs_b = 2 if components > 2 else 0

    def sample(x0: int, y0: int, size: int) -> tuple[list[float], list[float], list[float]]:
        ys: list[float] = []
        us: list[float] = []
        vs: list[float] = []
        for row in range(y0, y0 + size):
            clamped = min(row, height - 1)
            source_row = height - 1 - clamped if flip_vertically else clamped
            base = source_row * width * components
            for col in range(x0, x0 + size):
                p = base + min(col, width - 1) * components
                r, g, b = data[p], data[p + ofs_g], data[p + ofs_b]
                ys.append(0.29900 * r + 0.58700 * g + 0.11400 * b - 128)
                us.append(-0.16874 * r - 0.33126 * g + 0.50000 * b)
                vs.append(0.50000 * r - 0.41869 * g - 0.08131 * b)
        return ys, us, vs

    bits = _BitStream(out)
    dc_y = dc_u = dc_v = 0
    if subsample:
        for y0 in range(0, height, 16):
            for x0 in range(0, width, 16):
                ys, us, vs = sample(x0, y0, 16)
                for offset in (0, 8, 128, 136):
                    block = [ys[offset + r * 16 + c] for r in range(8) for c in range(8)]
                    dc_y = _process_block(bits, block, fdtbl_y, dc_y, _YDC, _YAC)
                sub_u = []
                sub_v = []
                for yy in range(8):
                    for xx in range(8):
                        j = yy * 32 + xx * 2
                        sub_u.append((us[j] + us[j + 1] + us[j + 16] + us[j + 17]) * 0.25)
                        sub_v.append((vs[j] + vs[j + 1] + vs[j + 16] + vs[j + 17]) * 0.25)
                dc_u = _process_block(bits, sub_u, fdtbl_uv, dc_u, _UVDC, _UVAC)
                dc_v = _process_block(bits, sub_v, fdtbl_uv, dc_v, _UVDC, _UVAC)
    else:
        for y0 in range(0, height, 8):
            for x0 in range(0, width, 8):
                ys, us, vs = sample(x0, y0, 8)
                dc_y = _process_block(bits, ys, fdtbl_y, dc_y, _YDC, _YAC)
                dc_u = _process_block(bits, us, fdtbl_uv, dc_u, _UVDC, _UVAC)
                dc_v = _process_block(bits, vs, fdtbl_uv, dc_v, _UVDC, _UVAC)

    bits.write(0x7F, 7)
    out += b"\xff\xd9"
    return bytes(out)


def write_jpeg(
    path: str | os.PathLike,
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    quality: int = 90,
    *,
    flip_vertically: bool = False,
) -> None:
    """Encode the pixels as JPEG and write them to ``path``."""
    encoded = encode_jpeg(
        pixels, width, height, components, quality, flip_vertically=flip_vertically
    )
    with open(path, "wb") as handle:
        handle.write(encoded)