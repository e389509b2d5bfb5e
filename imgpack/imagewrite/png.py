"""PNG encoding of 8-bit images with per-row filter selection."""

from __future__ import annotations

import os
import zlib
from typing import Optional

from .deflate import zlib_compress

PNG_SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))

# Colour type for 1..4 interleaved components: Y, YA, RGB, RGBA.
_COLOR_TYPES = {1: 0, 2: 4, 3: 2, 4: 6}

_FILTER_COUNT = 5


class ImageWriteError(Exception):
    """Raised when an image cannot be encoded from the given arguments."""


def png_crc32(data: bytes | bytearray | memoryview) -> int:
    """Return the CRC-32 used by PNG chunks."""
    return zlib.crc32(data) & 0xFFFFFFFF


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _filter_row(row: bytes, prior: bytes, n: int, filter_type: int) -> bytes:
    """Apply one of the five PNG filters; ``prior`` is the row above (zeros for the first)."""
    if filter_type == 0:
        return bytes(row)
    out = bytearray(len(row))
    for i, cur in enumerate(row):
        left = row[i - n] if i >= n else 0
        up = prior[i]
        if filter_type == 1:
            predicted = left
        elif filter_type == 2:
            predicted = up
        elif filter_type == 3:
            predicted = (left + up) >> 1
        else:
            upleft = prior[i - n] if i >= n else 0
            predicted = _paeth(left, up, upleft)
        out[i] = (cur - predicted) & 0xFF
    return bytes(out)


def _estimate(line: bytes) -> int:
    return sum(v if v < 128 else 256 - v for v in line)


def _chunk(tag: bytes, payload: bytes) -> bytes:
    body = tag + payload
    return len(payload).to_bytes(4, "big") + body + png_crc32(body).to_bytes(4, "big")


def encode_png(
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    *,
    stride: Optional[int] = None,
    compression_level: int = 8,
    force_filter: int = -1,
    flip_vertically: bool = False,
) -> bytes:
    """Encode interleaved 8-bit pixels as a PNG file and return its bytes.

    ``stride`` is the distance in bytes between rows (``width * components``
    when omitted or zero). ``force_filter`` in 0..4 uses that filter for every
    row; any other value picks the filter with the smallest estimated
    entropy per row.
    """
    if components not in _COLOR_TYPES:
        raise ImageWriteError(f"unsupported number of components: {components}")
    if width < 0 or height < 0:
        raise ImageWriteError(f"invalid image size: {width}x{height}")

    line_len = width * components
    if not stride:
        stride = line_len
    if stride < line_len:
        raise ImageWriteError(f"stride {stride} is shorter than a row ({line_len} bytes)")

    data = bytes(pixels)
    if height and len(data) < stride * (height - 1) + line_len:
        raise ImageWriteError("pixel data is shorter than the image described")

    if force_filter >= _FILTER_COUNT:
        force_filter = -1

    filtered = bytearray()
    prior = bytes(line_len)
    for j in range(height):
        source_row = height - 1 - j if flip_vertically else j
        start = source_row * stride
        row = data[start:start + line_len]

        if force_filter > -1:
            chosen = force_filter
            line = _filter_row(row, prior, components, chosen)
        else:
            chosen, line = 0, b""
            best_value = None
            for candidate in range(_FILTER_COUNT):
                attempt = _filter_row(row, prior, components, candidate)
                value = _estimate(attempt)
                if best_value is None or value < best_value:
                    best_value, chosen, line = value, candidate, attempt

        filtered.append(chosen)
        filtered += line
        prior = row

    compressed = zlib_compress(filtered, compression_level)

    header = (
        width.to_bytes(4, "big")
        + height.to_bytes(4, "big")
        + bytes((8, _COLOR_TYPES[components], 0, 0, 0))
    )
    return (
        PNG_SIGNATURE
        + _chunk(b"IHDR", header)
        + _chunk(b"IDAT", compressed)
        + _chunk(b"IEND", b"")
    )


def write_png(
    path: str | os.PathLike,
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    *,
    stride: Optional[int] = None,
    compression_level: int = 8,
    force_filter: int = -1,
    flip_vertically: bool = False,
) -> None:
    """Encode the pixels as PNG and write them to ``path``."""
    encoded = encode_png(
        pixels,
        width,
        height,
        components,
        stride=stride,
        compression_level=compression_level,
        force_filter=force_filter,
        flip_vertically=flip_vertically,
    )
    with open(path, "wb") as handle:
        handle.write(encoded)