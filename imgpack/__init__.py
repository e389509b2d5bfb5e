"""Rectangle packing, pure image writers, CRC-32C checksums and zstd helpers."""

__version__ = "0.1.0"