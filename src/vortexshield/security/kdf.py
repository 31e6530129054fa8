import os
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from vortexshield.core.config import (
    ALGORITHM_IDS,
    KEY_LENGTH,
    KEYFILE_SEPARATOR,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
)


def generate_salt(length: int = SALT_LENGTH) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def key_material(password: bytes | str, keyfile_hash: Optional[str] = None) -> bytes:
    """
    Build the PBKDF2 input: the password, with ``::KEYFILE::<hash>`` appended
    when a keyfile takes part.
    """
    if isinstance(password, bytes):
        password = password.decode("utf-8")
    if keyfile_hash:
        password += f"{KEYFILE_SEPARATOR}{keyfile_hash}"
    return password.encode("utf-8")


def derive_key(
    password: bytes | str,
    salt: bytes,
    algorithm: str,
    keyfile_hash: Optional[str] = None,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """
    Derive an AES-256 key from a password (and optional keyfile hash) using
    PBKDF2-HMAC-SHA256. Returns raw derived key bytes.

    ``algorithm`` only has to name a supported cipher; both ciphers take the
    same 256-bit key so it does not change the output.
    """
    if algorithm not in ALGORITHM_IDS:
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(key_material(password, keyfile_hash))

