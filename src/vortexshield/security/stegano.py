"""Append-style steganography: cover bytes ++ delimiter ++ container.

The cover image stays a valid image for ordinary viewers (they stop at the
image's own end marker); the container is found again by scanning for the
delimiter. Only the first 50 MiB of a carrier are scanned, so covers are
expected to be reasonably small images.
"""

from __future__ import annotations

from typing import BinaryIO, Union

from vortexshield.core.config import STEGANO_DELIMITER, STEGANO_SCAN_LIMIT
from vortexshield.core.exceptions import PayloadNotFoundError

COPY_SIZE = 1024 * 1024

PNG_SIGNATURE = b"\x89P"
JPEG_SIGNATURE = b"\xff\xd8"


def embed(cover: bytes, container: bytes) -> bytes:
    return cover + STEGANO_DELIMITER + container


def write_carrier_prefix(sink: BinaryIO, cover: BinaryIO) -> int:
    """Copy the cover stream into ``sink`` followed by the delimiter; returns bytes written."""
    written = 0
    while True:
        block = cover.read(COPY_SIZE)
        if not block:
            break
        sink.write(block)
        written += len(block)
    sink.write(STEGANO_DELIMITER)
    return written + len(STEGANO_DELIMITER)


def find_delimiter(buffer: bytes, delimiter: bytes = STEGANO_DELIMITER) -> int:
    """Index of the first occurrence of ``delimiter`` in ``buffer``, or -1."""
    return bytes(buffer).find(delimiter)


def locate(carrier: Union[bytes, BinaryIO], scan_limit: int = STEGANO_SCAN_LIMIT) -> int:
    """
    Return the offset just past the delimiter.

    ``carrier`` is either the carrier bytes or a seekable binary stream
    positioned anywhere; streams are read from offset 0 and left where they
    were. Raises :class:`PayloadNotFoundError` when the delimiter is not in
    the first ``scan_limit`` bytes.
    """
    if isinstance(carrier, (bytes, bytearray, memoryview)):
        window = bytes(carrier[:scan_limit])
    else:
        position = carrier.tell()
        carrier.seek(0)
        window = carrier.read(scan_limit)
        carrier.seek(position)

    index = find_delimiter(window)
    if index == -1:
        raise PayloadNotFoundError("No steganography payload found")
    return index + len(STEGANO_DELIMITER)


def looks_like_image(prefix: bytes) -> bool:
    # PNG or JPEG magic at the start of a recovered payload
    return prefix.startswith(PNG_SIGNATURE) or prefix.startswith(JPEG_SIGNATURE)
