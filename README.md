# imgpack

`imgpack` is a set of building blocks for putting images together into a
texture atlas. Each one is a plain Python module:

- `imgpack.rectpack`: a skyline rectangle packer. It offers a bottom-left
  heuristic and a best-fit heuristic and does not rotate rectangles.
- `imgpack.imagewrite`: encoders for PNG, BMP, TGA (with or without RLE),
  Radiance HDR and baseline JPEG. They need nothing outside the standard
  library. The package also holds the small zlib/deflate encoder that the PNG
  writer uses.
- `imgpack.crc32c`: CRC-32C (Castagnoli) checksums, computed in one call or
  fed in piece by piece.
- `imgpack.zstdpack`: zstd compression of byte buffers, binary streams and
  files.

## Installation

```
pip install .
```

You need Python 3.10 or newer. The only runtime dependency is `zstandard`. To
run the tests, install the `test` extra (`pip install .[test]`). It adds pytest
and Pillow, which the tests use to decode the images the writers produce.

## Packing rectangles

```python
from imgpack.rectpack import Heuristic, MAX_VALUE, Rect, RectPacker

packer = RectPacker(256, 256, 256)        # width, height, number of skyline nodes
packer.setup_heuristic(Heuristic.SKYLINE_BF_SORT_HEIGHT)
rects = [Rect(id=0, w=64, h=32), Rect(id=1, w=100, h=100)]
all_packed = packer.pack_rects(rects)
for rect in rects:
    print(rect.id, rect.x, rect.y, rect.was_packed)
```

`pack_rects` sets `x`, `y` and `was_packed` on the rectangles you pass in. It
places the tallest rectangles first, and among equal heights the widest
first. It returns `True` only if every rectangle fit. A rectangle that does
not fit gets `x == y == MAX_VALUE` and `was_packed` set to `False`.
Rectangles with zero width or height are placed at the origin.

Unless you call `setup_allow_out_of_mem(True)`, widths are rounded up to a
multiple of `ceil(width / num_nodes)`. That rounding guarantees the packer
never runs out of skyline nodes. If you pass a value to `setup_heuristic`
that is not a known heuristic, it raises `ValueError`.

## Writing images

All writers take interleaved 8-bit pixels with 1 to 4 components (grey, grey
plus alpha, RGB, RGBA), stored top row first. The HDR writer takes floats
instead. Each format has an `encode_*` function that returns bytes and a
`write_*` function that writes to a path.

```python
from imgpack.imagewrite.png import encode_png, write_png
from imgpack.imagewrite.simple import write_bmp, write_hdr, write_tga
from imgpack.imagewrite.jpeg import write_jpeg

pixels = bytes([255, 0, 0, 255]) * (4 * 4)   # 4x4 opaque red RGBA
png_bytes = encode_png(pixels, 4, 4, 4)
write_png("red.png", pixels, 4, 4, 4)
write_bmp("red.bmp", pixels, 4, 4, 4)
write_tga("red.tga", pixels, 4, 4, 4, rle=True)
write_jpeg("red.jpg", pixels, 4, 4, 4, 90)
write_hdr("grey.hdr", [0.5] * 16, 4, 4, 1)
```

- PNG: `stride` sets the bytes per row. `compression_level` sets how many
  match candidates the deflate encoder keeps per hash bucket (default 8,
  minimum 5). `force_filter` (0 to 4) uses one filter for every row;
  otherwise each row gets the filter with the lowest estimated entropy.
- BMP: RGBA is written as a 32-bit BMP with an alpha mask. Every other input
  becomes 24-bit RGB.
- TGA: run-length encoded by default; pass `rle=False` for raw data.
- HDR: alpha is discarded and grey is copied to all three channels.
  Scanlines 8 to 32767 pixels wide are run-length encoded.
- JPEG: alpha is ignored. `quality` runs from 1 to 100, and 0 means 90. At
  90 or below, chroma is subsampled 2x2.

Every writer also takes `flip_vertically`. Invalid sizes, unsupported
component counts and pixel data that is too short all raise
`imgpack.imagewrite.png.ImageWriteError`.

`imgpack.imagewrite.deflate` exposes `zlib_compress(data, quality)` and
`adler32(data)`. `zlib_compress` produces a standard zlib stream. If
compression would make the data larger, it writes stored blocks instead.

## Checksums

```python
from imgpack.crc32c import CRC32C, crc32

checksum = crc32(b"123456789")            # 0xE3069283
digest = CRC32C()
digest.update(b"1234")
digest.update(b"56789")
assert digest.digest() == checksum
```

The `init` argument of `crc32` and `CRC32C` lets you continue from an
earlier result.

## Compression

```python
from imgpack.zstdpack import compress, decompress, stream_compress, stream_decompress

assert decompress(compress(b"hello" * 100, 3)) == b"hello" * 100
stream_compress("big.raw", "big.raw.zst", threads=2, compress_level=3)
stream_decompress("big.raw.zst", "big.raw")
```

`compress` and `decompress` work on a single frame. They also accept `str`,
which they encode as UTF-8 first. `compress_stream` and `decompress_stream`
read from and write to binary file objects. The streamed frame carries a
checksum. Malformed input, and a stream that ends before its frame is
complete, raise `ValueError`.

## What it does not do

The package has no texture-atlas object. It does not load images from disk
or compose their pixels into an atlas, and it does not read or write an atlas
file format. Those steps are left to the caller, who can build them from the
packer, the writers and the compressor above. The package also installs no
command-line program.