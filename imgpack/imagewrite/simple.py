"""BMP, TGA and Radiance HDR encoders for interleaved pixel data."""

from __future__ import annotations

import math
import os
import struct
from typing import Iterator, Sequence

from .png import ImageWriteError

_HDR_HEADER = b"#?RADIANCE\n# Written by imgpack\nFORMAT=32-bit_rle_rgbe\n"
_TGA_HEADER = struct.Struct("<BBBHHBHHHHBB")
_BMP_HEADER = struct.Struct("<2sIHHIIIIHHIIIIII")


def _f32(value: float) -> float:
    """Round ``value`` to single precision."""
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


_RGBE_THRESHOLD = _f32(1e-32)


def _validate(
    pixels: bytes | bytearray | memoryview, width: int, height: int, components: int
) -> bytes:
    if components not in (1, 2, 3, 4):
        raise ImageWriteError(f"unsupported number of components: {components}")
    if width < 0 or height < 0:
        raise ImageWriteError(f"invalid image size: {width}x{height}")
    data = bytes(pixels)
    if len(data) < width * height * components:
        raise ImageWriteError("pixel data is shorter than the image described")
    return data


def _row_order(height: int, flip_vertically: bool) -> range:
    """Rows from the bottom up, or top down when flipped."""
    if flip_vertically:
        return range(height)
    return range(height - 1, -1, -1)


def _row_pixels(data: bytes, row: int, width: int, components: int) -> list[bytes]:
    start = row * width * components
    return [
        data[start + i * components:start + (i + 1) * components] for i in range(width)
    ]


def _pixel(d: bytes, components: int, write_alpha: bool, expand_mono: bool) -> bytes:
    """One pixel in BGR(A) order, or grey, as the file formats store it."""
    if components <= 2:
        color = bytes((d[0], d[0], d[0])) if expand_mono else bytes((d[0],))
    else:
        color = bytes((d[2], d[1], d[0]))
    if write_alpha:
        color += bytes((d[components - 1],))
    return color


def encode_bmp(
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> bytes:
    """Encode 8-bit pixels as a BMP file.

    Images with four components are written as 32-bit BMPs with an alpha
    mask; everything else becomes 24-bit RGB, with grey expanded and any
    grey alpha dropped.
    """
    data = _validate(pixels, width, height, components)
    if components != 4:
        pad = (-width * 3) & 3
        offset = 14 + 40
        size = offset + (width * 3 + pad) * height
        header = _BMP_HEADER.pack(
            b"BM", size & 0xFFFFFFFF, 0, 0, offset,
            40, width, height, 1, 24, 0, 0, 0, 0, 0, 0,
        )
        with_alpha = False
    else:
        pad = 0
        offset = 14 + 108
        size = offset + width * height * 4
        header = _BMP_HEADER.pack(
            b"BM", size & 0xFFFFFFFF, 0, 0, offset,
            108, width, height, 1, 32, 3, 0, 0, 0, 0, 0,
        )
        header += struct.pack("<5I", 0xFF0000, 0xFF00, 0xFF, 0xFF000000, 0)
        header += bytes(36)
        with_alpha = True

    out = bytearray(header)
    for row in _row_order(height, flip_vertically):
        for px in _row_pixels(data, row, width, components):
            out += _pixel(px, components, with_alpha, True)
        out += bytes(pad)
    return bytes(out)


def write_bmp(
    path: str | os.PathLike,
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> None:
    """Encode the pixels as BMP and write them to ``path``."""
    encoded = encode_bmp(pixels, width, height, components, flip_vertically=flip_vertically)
    with open(path, "wb") as handle:
        handle.write(encoded)


def _tga_rle_row(row: list[bytes], components: int, has_alpha: bool) -> bytes:
    out = bytearray()
    count = len(row)
    i = 0
    while i < count:
        length = 1
        diff = True
        if i < count - 1:
            length = 2
            diff = row[i] != row[i + 1]
            if diff:
                for k in range(i + 2, count):
                    if length >= 128:
                        break
                    if row[k - 2] != row[k]:
                        length += 1
                    else:
                        length -= 1
                        break
            else:
                for k in range(i + 2, count):
                    if length >= 128:
                        break
                    if row[k] == row[i]:
                        length += 1
                    else:
                        break
        if diff:
            out.append(length - 1)
            for px in row[i:i + length]:
                out += _pixel(px, components, has_alpha, False)
        else:
            out.append((length - 129) & 0xFF)
            out += _pixel(row[i], components, has_alpha, False)
        i += length
    return bytes(out)


def encode_tga(
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    *,
    rle: bool = True,
    flip_vertically: bool = False,
) -> bytes:
    """Encode 8-bit pixels as a TGA file, run-length encoded unless ``rle`` is False."""
    data = _validate(pixels, width, height, components)
    has_alpha = components in (2, 4)
    color_bytes = components - 1 if has_alpha else components
    image_type = 3 if color_bytes < 2 else 2
    if rle:
        image_type += 8

    out = bytearray(
        _TGA_HEADER.pack(
            0, 0, image_type, 0, 0, 0, 0, 0,
            width & 0xFFFF, height & 0xFFFF,
            (color_bytes + has_alpha) * 8, has_alpha * 8,
        )
    )
    for row in _row_order(height, flip_vertically):
        row_pixels = _row_pixels(data, row, width, components)
        if rle:
            out += _tga_rle_row(row_pixels, components, has_alpha)
        else:
            for px in row_pixels:
                out += _pixel(px, components, has_alpha, False)
    return bytes(out)


def write_tga(
    path: str | os.PathLike,
    pixels: bytes | bytearray | memoryview,
    width: int,
    height: int,
    components: int,
    *,
    rle: bool = True,
    flip_vertically: bool = False,
) -> None:
    """Encode the pixels as TGA and write them to ``path``."""
    encoded = encode_tga(
        pixels, width, height, components, rle=rle, flip_vertically=flip_vertically
    )
    with open(path, "wb") as handle:
        handle.write(encoded)


def _linear_to_rgbe(linear: tuple[float, float, float]) -> tuple[int, int, int, int]:
    if not all(math.isfinite(v) for v in linear):
        raise ImageWriteError("HDR values must be finite")
    red, green, blue = linear
    maxcomp = red if red > (green if green > blue else blue) else (green if green > blue else blue)
    if maxcomp < _RGBE_THRESHOLD:
        return (0, 0, 0, 0)
    mantissa, exponent = math.frexp(maxcomp)
    normalize = _f32(_f32(mantissa) * 256.0 / maxcomp)
    return (
        int(_f32(red * normalize)) & 0xFF,
        int(_f32(green * normalize)) & 0xFF,
        int(_f32(blue * normalize)) & 0xFF,
        (exponent + 128) & 0xFF,
    )


def _scanline_colors(
    scan: Sequence[float], width: int, components: int
) -> Iterator[tuple[float, float, float]]:
    for x in range(width):
        base = x * components
        if components >= 3:
            yield scan[base], scan[base + 1], scan[base + 2]
        else:
            value = scan[base]
            yield value, value, value


def _rle_component(values: bytes) -> bytes:
    out = bytearray()
    width = len(values)
    x = 0
    while x < width:
        r = x
        while r + 2 < width:
            if values[r] == values[r + 1] == values[r + 2]:
                break
            r += 1
        if r + 2 >= width:
            r = width
        while x < r:
            length = min(r - x, 128)
            out.append(length)
            out += values[x:x + length]
            x += length
        if r + 2 < width:
            while r < width and values[r] == values[x]:
                r += 1
            while x < r:
                length = min(r - x, 127)
                out.append(length + 128)
                out.append(values[x])
                x += length
    return bytes(out)


def _hdr_scanline(scan: Sequence[float], width: int, components: int) -> bytes:
    rgbe = [_linear_to_rgbe(color) for color in _scanline_colors(scan, width, components)]
    if width < 8 or width >= 32768:
        return b"".join(bytes(px) for px in rgbe)
    out = bytearray((2, 2, (width >> 8) & 0xFF, width & 0xFF))
    for channel in range(4):
        out += _rle_component(bytes(px[channel] for px in rgbe))
    return bytes(out)


def encode_hdr(
    data: Sequence[float],
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> bytes:
    """Encode linear float pixels as a Radiance RGBE file.

    Alpha is discarded and grey is replicated across the three channels.
    """
    if width <= 0 or height <= 0:
        raise ImageWriteError(f"invalid image size: {width}x{height}")
    if components not in (1, 2, 3, 4):
        raise ImageWriteError(f"unsupported number of components: {components}")
    values = [_f32(float(v)) for v in data]
    row_len = width * components
    if len(values) < row_len * height:
        raise ImageWriteError("pixel data is shorter than the image described")

    out = bytearray(_HDR_HEADER)
    out += f"EXPOSURE=          1.0000000000000\n\n-Y {height} +X {width}\n".encode("ascii")
    for i in range(height):
        row = height - 1 - i if flip_vertically else i
        scan = values[row * row_len:(row + 1) * row_len]
        out += _hdr_scanline(scan, width, components)
    return bytes(out)


def write_hdr(
    path: str | os.PathLike,
    data: Sequence[float],
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> None:
    """Encode the values as Radiance HDR and write them to ``path``."""
    encoded = encode_hdr(data, width, height, components, flip_vertically=flip_vertically)
    with open(path, "wb") as handle:
        handle.write(encoded)