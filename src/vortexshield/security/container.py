"""Binary container codec.

Header layout (all big-endian):

- v1 (24 bytes): MAGIC(6="VORTEX") VERSION(1=0x01) ALGO(1) SALT(16)
- v2 (25 bytes): MAGIC(6="VORTEX") VERSION(1=0x02) ALGO(1) OPTIONS(1) SALT(16)

ALGO: 1 = AES-GCM, 2 = AES-CBC. OPTIONS bit0 = compressed, bit1 = keyfile-bound.

Body: chunk frames repeated until end of stream:
4-byte big-endian ciphertext length + nonce (12 or 16 bytes, per ALGO) + ciphertext.

Both header versions are decoded once into a :class:`ContainerDescriptor`; nothing
downstream looks at the raw version byte again.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from vortexshield.core.config import (
    ALGORITHM_IDS,
    ALGORITHMS_BY_ID,
    HEADER_LENGTH_V1,
    HEADER_LENGTH_V2,
    LENGTH_PREFIX_SIZE,
    MAGIC,
    NONCE_LENGTHS,
    OPTION_COMPRESSED,
    OPTION_KEYFILE,
    SALT_LENGTH,
    VERSION_CURRENT,
    VERSION_LEGACY,
)
from vortexshield.core.exceptions import (
    FormatError,
    TruncatedContainerError,
    UnsupportedVersionError,
)

_LENGTH = struct.Struct(">I")


@dataclass(frozen=True)
class ContainerDescriptor:
    """Normalized view of a parsed header."""

    version: int
    algorithm: str
    nonce_length: int
    compressed: bool
    keyfile_bound: bool
    salt: bytes
    header_length: int

    @property
    def options(self) -> int:
        return make_options(self.compressed, self.keyfile_bound)


@dataclass(frozen=True)
class ChunkFrame:
    ciphertext: bytes
    nonce: bytes

    @property
    def encoded_length(self) -> int:
        return LENGTH_PREFIX_SIZE + len(self.nonce) + len(self.ciphertext)


def make_options(compressed: bool, keyfile_bound: bool) -> int:
    value = 0
    if compressed:
        value |= OPTION_COMPRESSED
    if keyfile_bound:
        value |= OPTION_KEYFILE
    return value


def write_header(algorithm: str, options: int, salt: bytes, version: int = VERSION_CURRENT) -> bytes:
    if algorithm not in ALGORITHM_IDS:
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    if len(salt) != SALT_LENGTH:
        raise ValueError(f"salt must be {SALT_LENGTH} bytes")

    header = bytearray()
    header += MAGIC
    if version == VERSION_CURRENT:
        header += struct.pack("BBB", version, ALGORITHM_IDS[algorithm], options & 0xFF)
    elif version == VERSION_LEGACY:
        if options:
            raise ValueError("version 1 containers cannot carry options")
        header += struct.pack("BB", version, ALGORITHM_IDS[algorithm])
    else:
        raise UnsupportedVersionError(f"Unsupported version: {version}")
    header += salt
    return bytes(header)


def read_header(data: bytes) -> ContainerDescriptor:
    """
    Parse a header from the start of ``data``.

    ``data`` may hold more than the header (the caller usually reads the
    maximum header length); ``header_length`` in the result says how much
    was consumed.
    """
    if len(data) < len(MAGIC) + 1:
        raise TruncatedContainerError("Container is shorter than its header")
    if data[: len(MAGIC)] != MAGIC:
        raise FormatError("Invalid file format (magic mismatch)")

    version = data[len(MAGIC)]
    if version == VERSION_LEGACY:
        header_length = HEADER_LENGTH_V1
    elif version == VERSION_CURRENT:
        header_length = HEADER_LENGTH_V2
    else:
        raise UnsupportedVersionError(f"Unsupported version: {version}")

    if len(data) < header_length:
        raise TruncatedContainerError("Container is shorter than its header")

    algo_id = data[len(MAGIC) + 1]
    algorithm = ALGORITHMS_BY_ID.get(algo_id)
    if algorithm is None:
        raise FormatError(f"Unsupported algorithm id: {algo_id}")

    if version == VERSION_CURRENT:
        options = data[len(MAGIC) + 2]
        salt_offset = len(MAGIC) + 3
    else:
        options = 0
        salt_offset = len(MAGIC) + 2

    return ContainerDescriptor(
        version=version,
        algorithm=algorithm,
        nonce_length=NONCE_LENGTHS[algorithm],
        compressed=bool(options & OPTION_COMPRESSED),
        keyfile_bound=bool(options & OPTION_KEYFILE),
        salt=bytes(data[salt_offset : salt_offset + SALT_LENGTH]),
        header_length=header_length,
    )


def write_chunk_frame(ciphertext: bytes, nonce: bytes) -> bytes:
    return _LENGTH.pack(len(ciphertext)) + nonce + ciphertext


def read_chunk_frame(stream: BinaryIO, nonce_length: int) -> Optional[ChunkFrame]:
    """
    Read the next frame from ``stream``.

    Returns ``None`` at a clean end of stream (no bytes left), which is the
    normal way the frame loop ends. A partial length prefix, short nonce or
    short ciphertext raises :class:`TruncatedContainerError`.
    """
    len_bytes = stream.read(LENGTH_PREFIX_SIZE)
    if not len_bytes:
        return None
    if len(len_bytes) < LENGTH_PREFIX_SIZE:
        raise TruncatedContainerError("truncated frame length")
    (ct_len,) = _LENGTH.unpack(len_bytes)

    nonce = stream.read(nonce_length)
    if len(nonce) != nonce_length:
        raise TruncatedContainerError("truncated nonce")

    ciphertext = stream.read(ct_len)
    if len(ciphertext) != ct_len:
        raise TruncatedContainerError(
            f"truncated ciphertext (expected {ct_len} bytes, got {len(ciphertext)})"
        )
    return ChunkFrame(ciphertext=ciphertext, nonce=nonce)
