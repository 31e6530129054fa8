"""Chunked streaming encryption / decryption over the Vortex container format.

Encrypt:  derive key -> for each chunk: read -> hash -> [gzip] -> encrypt -> frame -> finalize
Decrypt:  [stego scan] -> parse header -> check options -> derive key
          -> for each frame: read -> decrypt -> [gunzip] -> hash -> write -> finalize

At most one plaintext chunk (64 MiB) is held in memory at a time. Chunks are
processed strictly in order; each gets a fresh random nonce.

The stream-level methods write to the sink as they go, so on failure the sink
holds partial output that the caller must discard. The file and bytes helpers
do that for you: output only appears once the whole container has been
processed successfully.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from vortexshield.core.config import (
    ALGORITHM_AES_GCM,
    ALGORITHM_IDS,
    CHUNK_SIZE,
    HEADER_LENGTH_V2,
    SALT_LENGTH,
    VERSION_CURRENT,
)
from vortexshield.core.exceptions import KeyfileRequiredError
from vortexshield.core.hashing import aggregate_hash

from .compression import compress as gzip_compress
from .compression import decompress as gzip_decompress
from .container import (
    ContainerDescriptor,
    make_options,
    read_chunk_frame,
    read_header,
    write_chunk_frame,
    write_header,
)
from .primitives import CryptoProvider, nonce_length
from .stegano import locate, write_carrier_prefix

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int], None]
CoverSource = Union[bytes, BinaryIO]


@dataclass(frozen=True)
class EngineResult:
    """Outcome of one successful encrypt or decrypt pass."""

    aggregate_hash: str
    chunk_count: int
    bytes_in: int
    bytes_out: int
    descriptor: ContainerDescriptor

    @property
    def short_hash(self) -> str:
        return self.aggregate_hash[:8]


class _Progress:
    # Percentages only go up, and stay below 100 until complete() is called.

    def __init__(self, total: Optional[int], sink: Optional[ProgressSink]):
        self.total = total
        self.sink = sink
        self.last = 0

    def advance(self, done: int) -> None:
        if self.sink is None:
            return
        if self.total:
            percent = min(99, (done * 100) // self.total)
        else:
            percent = self.last
        self.last = max(self.last, percent)
        self.sink(self.last)

    def complete(self) -> None:
        self.last = 100
        if self.sink is not None:
            self.sink(100)


def _remaining_size(stream: BinaryIO) -> Optional[int]:
    # Bytes between the current position and the end, or None for unseekable streams.
    try:
        if not stream.seekable():
            return None
        position = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(position)
        return end - position
    except (AttributeError, OSError):
        return None


def _read_chunk(stream: BinaryIO, size: int) -> bytes:
    # read() may return short on pipes; keep going so only the last chunk is short
    parts = []
    remaining = size
    while remaining > 0:
        block = stream.read(remaining)
        if not block:
            break
        parts.append(block)
        remaining -= len(block)
    return b"".join(parts)


def _pause() -> None:
    # Let other threads (the UI) run between chunks.
    time.sleep(0)


class ChunkedCipherEngine:
    """
    Streams plaintext into a Vortex container and back.

    The engine holds no per-operation state, so one instance can serve many
    sequential tasks; unrelated tasks may also use separate instances in
    parallel.
    """

    def __init__(
        self,
        provider: Optional[CryptoProvider] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.provider = provider if provider is not None else CryptoProvider()
        self.chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def encrypt_stream(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        password: str,
        algorithm: str = ALGORITHM_AES_GCM,
        keyfile_hash: Optional[str] = None,
        compress: bool = False,
        cover: Optional[CoverSource] = None,
        progress: Optional[ProgressSink] = None,
    ) -> EngineResult:
        """Encrypt everything left in ``source`` into ``sink``."""
        if algorithm not in ALGORITHM_IDS:
            raise ValueError(f"Unsupported algorithm: {algorithm}")
        if not password:
            raise ValueError("A password is required")

        tracker = _Progress(_remaining_size(source), progress)

        logger.debug("encrypt: deriving key (%s)", algorithm)
        salt = self.provider.random_bytes(SALT_LENGTH)
        key = self.provider.derive_key(password, salt, algorithm, keyfile_hash)

        written = 0
        if cover is not None:
            cover_stream = io.BytesIO(cover) if isinstance(cover, (bytes, bytearray)) else cover
            written += write_carrier_prefix(sink, cover_stream)

        options = make_options(compressed=compress, keyfile_bound=bool(keyfile_hash))
        header = write_header(algorithm, options, salt, version=VERSION_CURRENT)
        sink.write(header)
        written += len(header)

        logger.debug("encrypt: streaming chunks of %d bytes", self.chunk_size)
        chunk_hashes = []
        consumed = 0
        while True:
            chunk = _read_chunk(source, self.chunk_size)
            if not chunk:
                break
            chunk_hashes.append(self.provider.hash(chunk).hex())
            payload = gzip_compress(chunk) if compress else chunk
            ciphertext, nonce = self.provider.encrypt_chunk(payload, key, algorithm)
            frame = write_chunk_frame(ciphertext, nonce)
            sink.write(frame)
            written += len(frame)
            consumed += len(chunk)
            tracker.advance(consumed)
            _pause()

        digest = aggregate_hash(chunk_hashes)
        descriptor = ContainerDescriptor(
            version=VERSION_CURRENT,
            algorithm=algorithm,
            nonce_length=nonce_length(algorithm),
            compressed=compress,
            keyfile_bound=bool(keyfile_hash),
            salt=salt,
            header_length=len(header),
        )
        tracker.complete()
        logger.info("INTEGRITY CHECK PASSED [HASH:%s] (%d chunks)", digest[:8], len(chunk_hashes))
        return EngineResult(
            aggregate_hash=digest,
            chunk_count=len(chunk_hashes),
            bytes_in=consumed,
            bytes_out=written,
            descriptor=descriptor,
        )

    def decrypt_stream(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        password: str,
        keyfile_hash: Optional[str] = None,
        stegano: bool = False,
        progress: Optional[ProgressSink] = None,
    ) -> EngineResult:
        """
        Decrypt a container from ``source`` into ``sink``.

        ``source`` must be seekable. Without ``stegano`` the container starts
        at the current position; with it, the whole stream is treated as a
        carrier and the container starts after the delimiter.
        """
        if stegano:
            logger.debug("decrypt: scanning carrier for payload")
            source.seek(locate(source))
        payload_offset = source.tell()
        tracker = _Progress(_remaining_size(source), progress)

        descriptor = read_header(source.read(HEADER_LENGTH_V2))
        source.seek(payload_offset + descriptor.header_length)
        logger.debug(
            "decrypt: v%d %s compressed=%s keyfile=%s",
            descriptor.version,
            descriptor.algorithm,
            descriptor.compressed,
            descriptor.keyfile_bound,
        )

        if descriptor.keyfile_bound and not keyfile_hash:
            raise KeyfileRequiredError("Key file required for decryption")

        key = self.provider.derive_key(password, descriptor.salt, descriptor.algorithm, keyfile_hash)

        chunk_hashes = []
        consumed = descriptor.header_length
        written = 0
        while True:
            frame = read_chunk_frame(source, descriptor.nonce_length)
            if frame is None:
                break
            plaintext = self.provider.decrypt_chunk(
                frame.ciphertext, key, frame.nonce, descriptor.algorithm
            )
            if descriptor.compressed:
                plaintext = gzip_decompress(plaintext)
            chunk_hashes.append(self.provider.hash(plaintext).hex())
            sink.write(plaintext)
            written += len(plaintext)
            consumed += frame.encoded_length
            tracker.advance(consumed)
            _pause()

        digest = aggregate_hash(chunk_hashes)
        tracker.complete()
        logger.info("INTEGRITY VERIFIED [HASH:%s] (%d chunks)", digest[:8], len(chunk_hashes))
        return EngineResult(
            aggregate_hash=digest,
            chunk_count=len(chunk_hashes),
            bytes_in=consumed,
            bytes_out=written,
            descriptor=descriptor,
        )

    # ------------------------------------------------------------------
    # Files (atomic: written to a temp file, moved into place on success)
    # ------------------------------------------------------------------

    def encrypt_file(
        self,
        in_path: Union[str, Path],
        out_path: Union[str, Path],
        password: str,
        algorithm: str = ALGORITHM_AES_GCM,
        keyfile_hash: Optional[str] = None,
        compress: bool = False,
        cover_path: Optional[Union[str, Path]] = None,
        progress: Optional[ProgressSink] = None,
    ) -> EngineResult:
        with open(in_path, "rb") as inf:
            if cover_path is None:
                return self._write_atomic(
                    out_path,
                    lambda outf: self.encrypt_stream(
                        inf, outf, password, algorithm, keyfile_hash, compress, None, progress
                    ),
                )
            with open(cover_path, "rb") as cover:
                return self._write_atomic(
                    out_path,
                    lambda outf: self.encrypt_stream(
                        inf, outf, password, algorithm, keyfile_hash, compress, cover, progress
                    ),
                )

    def decrypt_file(
        self,
        in_path: Union[str, Path],
        out_path: Union[str, Path],
        password: str,
        keyfile_hash: Optional[str] = None,
        stegano: bool = False,
        progress: Optional[ProgressSink] = None,
    ) -> EngineResult:
        with open(in_path, "rb") as inf:
            return self._write_atomic(
                out_path,
                lambda outf: self.decrypt_stream(
                    inf, outf, password, keyfile_hash, stegano, progress
                ),
            )

    @staticmethod
    def _write_atomic(out_path: Union[str, Path], write: Callable[[BinaryIO], EngineResult]) -> EngineResult:
        destination = Path(out_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".part", delete=False
        ) as tmpf:
            tmp_path = Path(tmpf.name)
            try:
                result = write(tmpf)
            except BaseException:
                tmpf.close()
                tmp_path.unlink(missing_ok=True)
                raise
        os.replace(tmp_path, destination)
        return result

    # ------------------------------------------------------------------
    # Bytes
    # ------------------------------------------------------------------

    def encrypt_bytes(
        self,
        data: bytes,
        password: str,
        algorithm: str = ALGORITHM_AES_GCM,
        keyfile_hash: Optional[str] = None,
        compress: bool = False,
        cover: Optional[bytes] = None,
        progress: Optional[ProgressSink] = None,
    ) -> bytes:
        sink = io.BytesIO()
        self.encrypt_stream(
            io.BytesIO(data), sink, password, algorithm, keyfile_hash, compress, cover, progress
        )
        return sink.getvalue()

    def decrypt_bytes(
        self,
        blob: bytes,
        password: str,
        keyfile_hash: Optional[str] = None,
        stegano: bool = False,
        progress: Optional[ProgressSink] = None,
    ) -> bytes:
        sink = io.BytesIO()
        self.decrypt_stream(io.BytesIO(blob), sink, password, keyfile_hash, stegano, progress)
        return sink.getvalue()
