"""
Unit tests for the VORTEX container codec (headers and chunk frames).
"""

import io
import struct

import pytest

from vortexshield.core.config import (
    ALGORITHM_AES_CBC,
    ALGORITHM_AES_GCM,
    HEADER_LENGTH_V1,
    HEADER_LENGTH_V2,
    MAGIC,
)
from vortexshield.core.exceptions import (
    FormatError,
    TruncatedContainerError,
    UnsupportedVersionError,
)
from vortexshield.security.container import (
    ChunkFrame,
    make_options,
    read_chunk_frame,
    read_header,
    write_chunk_frame,
    write_header,
)

SALT = bytes(range(16))


# ==============================================================================
# Headers
# ==============================================================================

def test_header_lengths():
    assert HEADER_LENGTH_V1 == 24
    assert HEADER_LENGTH_V2 == 25


def test_write_header_v2_layout():
    header = write_header(ALGORITHM_AES_GCM, make_options(True, False), SALT)

    assert len(header) == 25
    assert header[:6] == b"VORTEX"
    assert header[6] == 2  # version
    assert header[7] == 1  # AES-GCM
    assert header[8] == 0x01  # compressed
    assert header[9:] == SALT


def test_write_header_v1_layout():
    header = write_header(ALGORITHM_AES_CBC, 0, SALT, version=1)

    assert len(header) == 24
    assert header[6:8] == b"\x01\x02"
    assert header[8:] == SALT


def test_write_header_v1_rejects_options():
    with pytest.raises(ValueError, match="cannot carry options"):
        write_header(ALGORITHM_AES_GCM, make_options(True, True), SALT, version=1)


def test_write_header_rejects_unknown_version():
    with pytest.raises(UnsupportedVersionError):
        write_header(ALGORITHM_AES_GCM, 0, SALT, version=3)


def test_write_header_rejects_bad_salt():
    with pytest.raises(ValueError, match="salt must be 16 bytes"):
        write_header(ALGORITHM_AES_GCM, 0, b"short")


@pytest.mark.parametrize(
    "compressed,keyfile_bound,expected",
    [(False, False, 0), (True, False, 1), (False, True, 2), (True, True, 3)],
)
def test_make_options_bits(compressed, keyfile_bound, expected):
    assert make_options(compressed, keyfile_bound) == expected


def test_read_header_v2_options():
    header = write_header(ALGORITHM_AES_CBC, make_options(True, True), SALT)
    descriptor = read_header(header)

    assert descriptor.version == 2
    assert descriptor.algorithm == ALGORITHM_AES_CBC
    assert descriptor.nonce_length == 16
    assert descriptor.compressed is True
    assert descriptor.keyfile_bound is True
    assert descriptor.salt == SALT
    assert descriptor.header_length == 25
    assert descriptor.options == 3


@pytest.mark.parametrize("algo_id,algorithm,nonce_len", [(1, ALGORITHM_AES_GCM, 12), (2, ALGORITHM_AES_CBC, 16)])
def test_read_header_v1_has_no_options(algo_id, algorithm, nonce_len):
    """Legacy headers parse as uncompressed, not keyfile-bound, 24 bytes long."""
    raw = MAGIC + bytes([1, algo_id]) + SALT
    descriptor = read_header(raw + b"\xff")  # trailing byte belongs to the body

    assert descriptor.version == 1
    assert descriptor.algorithm == algorithm
    assert descriptor.nonce_length == nonce_len
    assert descriptor.compressed is False
    assert descriptor.keyfile_bound is False
    assert descriptor.salt == SALT
    assert descriptor.header_length == 24


def test_read_header_ignores_unknown_option_bits():
    header = bytearray(write_header(ALGORITHM_AES_GCM, 0, SALT))
    header[8] = 0xFC
    descriptor = read_header(bytes(header))
    assert descriptor.compressed is False
    assert descriptor.keyfile_bound is False


def test_read_header_magic_mismatch():
    with pytest.raises(FormatError, match="magic mismatch"):
        read_header(b"NOTVTX" + b"\x02\x01\x00" + SALT)


def test_read_header_unsupported_version():
    with pytest.raises(UnsupportedVersionError, match="Unsupported version: 3"):
        read_header(MAGIC + b"\x03\x01\x00" + SALT)


def test_read_header_unknown_algorithm():
    with pytest.raises(FormatError, match="algorithm id: 9"):
        read_header(MAGIC + b"\x02\x09\x00" + SALT)


@pytest.mark.parametrize("length", [0, 3, 6])
def test_read_header_too_short_for_magic(length):
    with pytest.raises(TruncatedContainerError):
        read_header(MAGIC[:length])


def test_read_header_truncated_salt():
    header = write_header(ALGORITHM_AES_GCM, 0, SALT)
    with pytest.raises(TruncatedContainerError, match="shorter than its header"):
        read_header(header[:20])


def test_v1_header_of_exactly_24_bytes_parses():
    raw = MAGIC + b"\x01\x01" + SALT
    assert read_header(raw).header_length == 24


# ==============================================================================
# Frames
# ==============================================================================

def test_write_chunk_frame_layout():
    frame = write_chunk_frame(b"ciphertext", b"N" * 12)

    assert frame[:4] == struct.pack(">I", 10)
    assert frame[4:16] == b"N" * 12
    assert frame[16:] == b"ciphertext"


def test_read_frames_until_end_of_stream():
    stream = io.BytesIO(
        write_chunk_frame(b"first", b"a" * 12) + write_chunk_frame(b"second!", b"b" * 12)
    )

    first = read_chunk_frame(stream, 12)
    second = read_chunk_frame(stream, 12)

    assert first == ChunkFrame(ciphertext=b"first", nonce=b"a" * 12)
    assert second == ChunkFrame(ciphertext=b"second!", nonce=b"b" * 12)
    assert first.encoded_length == 4 + 12 + 5
    assert read_chunk_frame(stream, 12) is None


def test_empty_stream_is_end_of_stream():
    assert read_chunk_frame(io.BytesIO(b""), 12) is None


@pytest.mark.parametrize("leftover", [b"\x00", b"\x00\x00", b"\x00\x00\x00"])
def test_partial_length_prefix_is_truncation(leftover):
    with pytest.raises(TruncatedContainerError, match="frame length"):
        read_chunk_frame(io.BytesIO(leftover), 12)


def test_truncated_nonce():
    frame = write_chunk_frame(b"payload", b"n" * 16)
    with pytest.raises(TruncatedContainerError, match="nonce"):
        read_chunk_frame(io.BytesIO(frame[:10]), 16)


def test_truncated_ciphertext():
    frame = write_chunk_frame(b"payload", b"n" * 12)
    with pytest.raises(TruncatedContainerError, match="expected 7 bytes, got 6"):
        read_chunk_frame(io.BytesIO(frame[:-1]), 12)


def test_zero_length_frame():
    stream = io.BytesIO(write_chunk_frame(b"", b"z" * 12))
    frame = read_chunk_frame(stream, 12)
    assert frame.ciphertext == b""
    assert frame.nonce == b"z" * 12
