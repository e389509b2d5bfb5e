import io
import struct

import pytest
from PIL import Image

from imgpack.imagewrite.png import ImageWriteError
from imgpack.imagewrite.simple import (
    encode_bmp,
    encode_hdr,
    encode_tga,
    write_bmp,
    write_hdr,
    write_tga,
)


def _pattern(width, height, components):
    return bytes(
        (i * 37 + c * 11 + (i // 3) * 5) % 256
        for i in range(width * height)
        for c in range(components)
    )


def _flip(data, width, height, components):
    row = width * components
    rows = [data[j * row:(j + 1) * row] for j in range(height)]
    return b"".join(reversed(rows))


def _open_tga(data):
    return Image.open(io.BytesIO(data), formats=["TGA"])


def _decode_hdr(data):
    start = data.index(b"\n\n") + 2
    end = data.index(b"\n", start)
    tokens = data[start:end].split()
    height, width = int(tokens[1]), int(tokens[3])
    pos = end + 1
    rows = []
    for _ in range(height):
        if 8 <= width < 32768:
            assert data[pos:pos + 4] == bytes((2, 2, width >> 8, width & 0xFF))
            pos += 4
            channels = []
            for _ in range(4):
                values = bytearray()
                while len(values) < width:
                    count = data[pos]
                    pos += 1
                    if count > 128:
                        values += bytes((data[pos],)) * (count - 128)
                        pos += 1
                    else:
                        values += data[pos:pos + count]
                        pos += count
                assert len(values) == width
                channels.append(values)
            rows.append([tuple(ch[x] for ch in channels) for x in range(width)])
        else:
            rows.append(
                [tuple(data[pos + 4 * x:pos + 4 * x + 4]) for x in range(width)]
            )
            pos += 4 * width
    assert pos == len(data)
    return rows


# --- BMP ---------------------------------------------------------------


def test_bmp_rgb_round_trip_with_row_padding():
    pixels = _pattern(3, 2, 3)
    data = encode_bmp(pixels, 3, 2, 3)
    image = Image.open(io.BytesIO(data))
    assert image.size == (3, 2)
    assert image.convert("RGB").tobytes() == pixels


def test_bmp_header_size_field_matches_length():
    data = encode_bmp(_pattern(5, 3, 3), 5, 3, 3)
    assert data[:2] == b"BM"
    assert struct.unpack_from("<I", data, 2)[0] == len(data)


def test_bmp_rgba_round_trip():
    pixels = _pattern(4, 3, 4)
    data = encode_bmp(pixels, 4, 3, 4)
    assert struct.unpack_from("<I", data, 2)[0] == len(data)
    image = Image.open(io.BytesIO(data))
    assert image.mode == "RGBA"
    assert image.tobytes() == pixels


def test_bmp_grey_is_expanded():
    grey = _pattern(3, 3, 1)
    data = encode_bmp(grey, 3, 3, 1)
    rgb = Image.open(io.BytesIO(data)).convert("RGB").tobytes()
    assert rgb == bytes(v for g in grey for v in (g, g, g))


def test_bmp_grey_alpha_drops_alpha():
    grey = _pattern(2, 2, 1)
    with_alpha = bytes(v for g in grey for v in (g, 255 - g))
    assert encode_bmp(with_alpha, 2, 2, 2) == encode_bmp(grey, 2, 2, 1)


def test_bmp_flip_matches_flipped_input():
    pixels = _pattern(3, 4, 3)
    flipped = _flip(pixels, 3, 4, 3)
    assert encode_bmp(pixels, 3, 4, 3, flip_vertically=True) == encode_bmp(flipped, 3, 4, 3)


@pytest.mark.parametrize(
    "width, height, components, length",
    [(2, 2, 5, 20), (-1, 2, 3, 6), (2, 2, 3, 11)],
)
def test_bmp_rejects_bad_arguments(width, height, components, length):
    with pytest.raises(ImageWriteError):
        encode_bmp(bytes(length), width, height, components)


def test_write_bmp_writes_encoded_bytes(tmp_path):
    pixels = _pattern(3, 2, 4)
    path = tmp_path / "out.bmp"
    write_bmp(path, pixels, 3, 2, 4)
    assert path.read_bytes() == encode_bmp(pixels, 3, 2, 4)


# --- TGA ---------------------------------------------------------------


@pytest.mark.parametrize("rle", [False, True])
def test_tga_rgb_round_trip(rle):
    pixels = _pattern(6, 4, 3)
    image = _open_tga(encode_tga(pixels, 6, 4, 3, rle=rle))
    assert image.size == (6, 4)
    assert image.convert("RGB").tobytes() == pixels


@pytest.mark.parametrize("rle", [False, True])
def test_tga_rgba_round_trip_with_runs(rle):
    row = bytes((10, 20, 30, 40)) * 5 + _pattern(4, 1, 4) + bytes((1, 2, 3, 4)) * 3
    pixels = row * 2
    image = _open_tga(encode_tga(pixels, 12, 2, 4, rle=rle))
    assert image.mode == "RGBA"
    assert image.tobytes() == pixels


@pytest.mark.parametrize("rle", [False, True])
def test_tga_grey_round_trip(rle):
    pixels = bytes((7, 7, 7, 7, 9, 8, 9, 8, 200, 200))
    image = _open_tga(encode_tga(pixels, 5, 2, 1, rle=rle))
    assert image.mode == "L"
    assert image.tobytes() == pixels


def test_tga_long_uniform_row_splits_runs():
    pixels = bytes((50, 60, 70)) * 300
    image = _open_tga(encode_tga(pixels, 300, 1, 3))
    assert image.convert("RGB").tobytes() == pixels


def test_tga_run_packet_bytes():
    data = encode_tga(bytes((1, 2, 3)) * 4, 4, 1, 3)
    assert data[18:] == bytes((0x83, 3, 2, 1))


def test_tga_rle_smaller_for_uniform_image():
    pixels = bytes((9, 9, 9)) * 64
    assert len(encode_tga(pixels, 8, 8, 3)) < len(encode_tga(pixels, 8, 8, 3, rle=False))


@pytest.mark.parametrize("rle", [False, True])
def test_tga_flip_matches_flipped_input(rle):
    pixels = _pattern(5, 3, 4)
    flipped = _flip(pixels, 5, 3, 4)
    assert encode_tga(pixels, 5, 3, 4, rle=rle, flip_vertically=True) == encode_tga(
        flipped, 5, 3, 4, rle=rle
    )


def test_tga_rejects_bad_arguments():
    with pytest.raises(ImageWriteError):
        encode_tga(bytes(4), 2, -1, 1)
    with pytest.raises(ImageWriteError):
        encode_tga(bytes(4), 2, 2, 0)
    with pytest.raises(ImageWriteError):
        encode_tga(bytes(3), 2, 2, 1)


def test_write_tga_writes_encoded_bytes(tmp_path):
    pixels = _pattern(4, 4, 2)
    path = tmp_path / "out.tga"
    write_tga(path, pixels, 4, 4, 2, rle=False)
    assert path.read_bytes() == encode_tga(pixels, 4, 4, 2, rle=False)


# --- HDR ---------------------------------------------------------------


def test_hdr_header_lines():
    data = encode_hdr([0.5, 0.25, 2.0] * 6, 3, 2, 3)
    assert data.startswith(b"#?RADIANCE\n")
    assert b"FORMAT=32-bit_rle_rgbe\n" in data
    assert b"\n\n-Y 2 +X 3\n" in data


def test_hdr_unit_value_encoding():
    rows = _decode_hdr(encode_hdr([1.0, 1.0, 1.0], 1, 1, 3))
    assert rows == [[(128, 128, 128, 129)]]


def test_hdr_zero_is_all_zero():
    rows = _decode_hdr(encode_hdr([0.0], 1, 1, 1))
    assert rows == [[(0, 0, 0, 0)]]


def test_hdr_values_within_quantisation_step():
    values = [0.25, 3.0, 100.5, 7.0, 0.125, 1.5]
    data = encode_hdr(values, 2, 1, 3)
    (row,) = _decode_hdr(data)
    for x, (r, g, b, e) in enumerate(row):
        step = 2.0 ** (e - 136)
        for mantissa, value in zip((r, g, b), values[3 * x:3 * x + 3]):
            assert mantissa * step <= value < (mantissa + 1) * step


def test_hdr_rle_row_matches_per_pixel_encoding():
    values = [1.0, 2.0, 3.0] * 5 + [0.5, 0.75, 4.0, 9.0, 9.0, 9.0] + [6.0, 0.0, 1.0] * 4
    width = len(values) // 3
    (row,) = _decode_hdr(encode_hdr(values, width, 1, 3))
    singles = [
        _decode_hdr(encode_hdr(values[3 * x:3 * x + 3], 1, 1, 3))[0][0]
        for x in range(width)
    ]
    assert row == singles


def test_hdr_grey_replicated_and_alpha_ignored():
    assert encode_hdr([2.0], 1, 1, 1) == encode_hdr([2.0, 2.0, 2.0], 1, 1, 3)
    assert encode_hdr([2.0, 0.1], 1, 1, 2) == encode_hdr([2.0], 1, 1, 1)
    assert encode_hdr([1.0, 2.0, 3.0, 0.5], 1, 1, 4) == encode_hdr([1.0, 2.0, 3.0], 1, 1, 3)


def test_hdr_flip_matches_flipped_input():
    values = [float(i) for i in range(3 * 9 * 2)]
    flipped = values[27:] + values[:27]
    assert encode_hdr(values, 9, 2, 3, flip_vertically=True) == encode_hdr(flipped, 9, 2, 3)


@pytest.mark.parametrize(
    "width, height, components, length",
    [(0, 1, 3, 3), (1, 0, 3, 3), (1, 1, 5, 5), (2, 2, 3, 11)],
)
def test_hdr_rejects_bad_arguments(width, height, components, length):
    with pytest.raises(ImageWriteError):
        encode_hdr([1.0] * length, width, height, components)


def test_write_hdr_writes_encoded_bytes(tmp_path):
    values = [0.5 * i for i in range(30)]
    path = tmp_path / "out.hdr"
    write_hdr(path, values, 10, 1, 3)
    assert path.read_bytes() == encode_hdr(values, 10, 1, 3)