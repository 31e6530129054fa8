""" Utility for hashing operations: keyfiles and chunk digests. """

import hashlib
import logging
from pathlib import Path
from typing import Iterable

from .config import KEYFILE_READ_LIMIT
from .exceptions import KeyfileError

logger = logging.getLogger(__name__)

READ_SIZE = 65536  # 64KB


def sha256_digest(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash_keyfile(file_path: Path, limit: int = KEYFILE_READ_LIMIT) -> str:
    """
    Fingerprint a keyfile for key derivation.

    Only the first ``limit`` bytes (64 MiB) take part; larger keyfiles are
    truncated with a warning. Returns the lowercase hex SHA-256.
    """
    path = Path(file_path)
    sha256 = hashlib.sha256()
    remaining = limit
    try:
        if path.stat().st_size > limit:
            logger.warning("key file %s is larger than %d bytes; truncating", path.name, limit)
        with open(path, 'rb') as f:
            while remaining > 0:
                data = f.read(min(READ_SIZE, remaining))
                if not data:
                    break
                sha256.update(data)
                remaining -= len(data)
    except OSError as e:
        raise KeyfileError(f"cannot read key file {path}: {e}") from e
    digest = sha256.hexdigest()
    logger.info("key file loaded: %s (hash %s...)", path.name, digest[:16])
    return digest


def aggregate_hash(chunk_hashes: Iterable[str]) -> str:
    """Hash-of-hashes over the ordered hex digests of plaintext chunks."""
    return hashlib.sha256("".join(chunk_hashes).encode("ascii")).hexdigest()
