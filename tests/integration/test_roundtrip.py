"""
End-to-end flows at the production chunk size and KDF cost.

These run the real 64 MiB chunking and 100,000-round PBKDF2; the 130 MiB
case is marked ``slow``.
"""

import io
import os
from pathlib import Path

import pytest

from vortexshield.core.config import CHUNK_SIZE
from vortexshield.core.exceptions import AuthenticationFailure, KeyfileRequiredError
from vortexshield.core.hashing import hash_keyfile
from vortexshield.security.container import read_chunk_frame, read_header
from vortexshield.security.engine import ChunkedCipherEngine
from vortexshield.tasks.worker import TaskFailure, TaskKind, TaskRequest, TaskSuccess, run_batch

pytestmark = pytest.mark.integration

MIB = 1024 * 1024


@pytest.fixture(scope="module")
def engine():
    return ChunkedCipherEngine()


def _frame_lengths(blob: bytes, nonce_len: int):
    stream = io.BytesIO(blob[25:])
    lengths = []
    while True:
        frame = read_chunk_frame(stream, nonce_len)
        if frame is None:
            return lengths
        lengths.append(len(frame.ciphertext))


def test_compression_toggle_on_ten_mib(engine):
    data = (b"0123456789abcdef" * 64) * (10 * 1024)  # 10 MiB, highly repetitive
    plain = engine.encrypt_bytes(data, "pw")
    packed = engine.encrypt_bytes(data, "pw", compress=True)

    assert read_header(plain).compressed is False
    assert read_header(packed).compressed is True
    assert len(packed) < len(plain)
    assert engine.decrypt_bytes(plain, "pw") == data
    assert engine.decrypt_bytes(packed, "pw") == data


@pytest.mark.slow
def test_multi_chunk_at_default_size(engine):
    """130 MiB becomes frames of 64 MiB, 64 MiB and 2 MiB (plus GCM tags)."""
    data = os.urandom(130 * MIB)
    sink = io.BytesIO()
    progress = []
    result = engine.encrypt_stream(io.BytesIO(data), sink, "pw", progress=progress.append)
    blob = sink.getvalue()

    assert result.chunk_count == 3
    assert _frame_lengths(blob, 12) == [CHUNK_SIZE + 16, CHUNK_SIZE + 16, 2 * MIB + 16]
    assert progress[-1] == 100
    assert progress[:-1] == sorted(progress[:-1])

    out = io.BytesIO()
    verified = engine.decrypt_stream(io.BytesIO(blob), out, "pw")
    assert verified.aggregate_hash == result.aggregate_hash
    assert out.getvalue() == data


def test_keyfile_batch(engine, tmp_path: Path):
    keyfile = tmp_path / "holiday.jpg"
    keyfile.write_bytes(os.urandom(4096))
    other_keyfile = tmp_path / "other.jpg"
    other_keyfile.write_bytes(os.urandom(4096))
    key_hash = hash_keyfile(keyfile)

    sources = []
    for name in ("ledger.csv", "photo.raw"):
        path = tmp_path / name
        path.write_bytes(os.urandom(50_000))
        sources.append(path)

    vault = tmp_path / "vault"
    encrypted = run_batch(
        [
            TaskRequest(
                kind=TaskKind.ENCRYPT,
                source=s,
                password="correct horse",
                output_dir=vault,
                keyfile_hash=key_hash,
                compress=True,
            )
            for s in sources
        ],
        engine,
    )
    assert all(isinstance(r, TaskSuccess) for r in encrypted)

    def decrypt(keyfile_hash, out):
        return run_batch(
            [
                TaskRequest(
                    kind=TaskKind.DECRYPT,
                    source=r.output_path,
                    password="correct horse",
                    output_dir=tmp_path / out,
                    keyfile_hash=keyfile_hash,
                )
                for r in encrypted
            ],
            engine,
        )

    without = decrypt(None, "without")
    assert all(isinstance(r, TaskFailure) for r in without)
    assert without[0].reason.startswith(KeyfileRequiredError.__name__)

    wrong = decrypt(hash_keyfile(other_keyfile), "wrong")
    assert all(r.reason.startswith(AuthenticationFailure.__name__) for r in wrong)

    restored = decrypt(key_hash, "restored")
    for source, result in zip(sources, restored):
        assert result.file_name == source.name
        assert result.output_path.read_bytes() == source.read_bytes()
    assert [r.aggregate_hash for r in restored] == [r.aggregate_hash for r in encrypted]


def test_hide_in_jpeg_and_extract(engine, tmp_path: Path):
    cover = tmp_path / "beach.jpg"
    cover.write_bytes(b"\xff\xd8\xff\xe0" + os.urandom(200_000) + b"\xff\xd9")
    secret = tmp_path / "diary.txt"
    secret.write_text("dear diary\n" * 1000, encoding="utf-8")

    (hidden,) = run_batch(
        [
            TaskRequest(
                kind=TaskKind.ENCRYPT,
                source=secret,
                password="pw",
                output_dir=tmp_path / "out",
                cover=cover,
            )
        ],
        engine,
    )
    assert hidden.file_name == "camouflaged_beach.jpg"
    carrier = hidden.output_path.read_bytes()
    assert carrier[:2] == b"\xff\xd8"

    (revealed,) = run_batch(
        [
            TaskRequest(
                kind=TaskKind.DECRYPT,
                source=hidden.output_path,
                password="pw",
                output_dir=tmp_path / "out",
                stegano=True,
            )
        ],
        engine,
    )
    assert revealed.file_name == "revealed_payload"
    assert revealed.is_image is False
    assert revealed.output_path.read_text(encoding="utf-8") == secret.read_text(encoding="utf-8")
