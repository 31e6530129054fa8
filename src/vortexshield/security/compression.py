"""gzip compression applied per chunk when the container's compressed bit is set."""

import gzip
import zlib

from vortexshield.core.exceptions import DecodeFailure


def compress(data: bytes, level: int = 6) -> bytes:
    # mtime=0 keeps output reproducible for identical input
    return gzip.compress(data, compresslevel=level, mtime=0)


def decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeFailure(f"Decompression failed: {e}") from e
