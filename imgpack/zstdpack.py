"""Zstandard compression of buffers, binary streams and files."""

from __future__ import annotations

import os
from typing import BinaryIO, Union

import zstandard

DEFAULT_LEVEL = 3

_CHUNK_SIZE = 1 << 17

Buffer = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: Buffer) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def compress(data: Buffer, compress_level: int = DEFAULT_LEVEL) -> bytes:
    """Compress ``data`` into a single zstd frame that records its content size.

    Text is encoded as UTF-8 first.
    """
    compressor = zstandard.ZstdCompressor(level=compress_level)
    return compressor.compress(_as_bytes(data))


def decompress(data: Buffer) -> bytes:
    """Decompress a single zstd frame; raise ValueError if it is not one."""
    try:
        return zstandard.ZstdDecompressor().decompress(_as_bytes(data))
    except zstandard.ZstdError as exc:
        raise ValueError(f"invalid zstd frame: {exc}") from exc


def compress_stream(
    source: BinaryIO,
    target: BinaryIO,
    threads: int = 1,
    compress_level: int = DEFAULT_LEVEL,
) -> tuple[int, int]:
    """Compress everything read from ``source`` into ``target``.

    The frame carries a checksum. Returns the number of bytes read and written.
    """
    compressor = zstandard.ZstdCompressor(
        level=compress_level,
        write_checksum=True,
        threads=threads if threads > 1 else 0,
    )
    return compressor.copy_stream(
        source, target, read_size=_CHUNK_SIZE, write_size=_CHUNK_SIZE
    )


def decompress_stream(source: BinaryIO, target: BinaryIO) -> None:
    """Decompress one or more zstd frames from ``source`` into ``target``.

    Raises ValueError if the data is not zstd or the last frame is incomplete.
    """
    dctx = zstandard.ZstdDecompressor()
    stream = dctx.decompressobj()
    seen_input = False
    try:
        for chunk in iter(lambda: source.read(_CHUNK_SIZE), b""):
            seen_input = True
            while chunk:
                if stream.eof:
                    stream = dctx.decompressobj()
                target.write(stream.decompress(chunk))
                chunk = stream.unused_data if stream.eof else b""
    except zstandard.ZstdError as exc:
        raise ValueError(f"invalid zstd stream: {exc}") from exc
    if seen_input and not stream.eof:
        raise ValueError("zstd stream ended before the frame was complete")


def stream_compress(
    in_path: str | os.PathLike,
    out_path: str | os.PathLike,
    threads: int = 1,
    compress_level: int = DEFAULT_LEVEL,
) -> None:
    """Compress the file at ``in_path`` into ``out_path``."""
    with open(in_path, "rb") as source, open(out_path, "wb") as target:
        compress_stream(source, target, threads, compress_level)


def stream_decompress(in_path: str | os.PathLike, out_path: str | os.PathLike) -> None:
    """Decompress the file at ``in_path`` into ``out_path``."""
    with open(in_path, "rb") as source, open(out_path, "wb") as target:
        decompress_stream(source, target)