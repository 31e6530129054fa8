"""Per-chunk AES primitives and the crypto provider handed to the engine.

Two ciphers are supported, both with 256-bit keys:

- AES-GCM: 12-byte random nonce, 16-byte tag appended to the ciphertext.
  A tag mismatch raises :class:`AuthenticationFailure`.
- AES-CBC: 16-byte random IV, PKCS7 padding. There is no tag, so a wrong
  key or flipped bytes either produce garbage or fail the padding check
  (:class:`PaddingError`). Use AES-GCM where tampering must be detected.
"""

from __future__ import annotations

import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vortexshield.core.config import (
    ALGORITHM_AES_CBC,
    ALGORITHM_AES_GCM,
    NONCE_LENGTHS,
    PBKDF2_ITERATIONS,
)
from vortexshield.core.exceptions import AuthenticationFailure, PaddingError
from vortexshield.core.hashing import sha256_digest

from .kdf import derive_key

BLOCK_SIZE = 16


def nonce_length(algorithm: str) -> int:
    try:
        return NONCE_LENGTHS[algorithm]
    except KeyError:
        raise ValueError(f"Unsupported algorithm: {algorithm}") from None


def encrypt_chunk(plaintext: bytes, key: bytes, algorithm: str, nonce: bytes) -> bytes:
    if len(nonce) != nonce_length(algorithm):
        raise ValueError(f"{algorithm} needs a {nonce_length(algorithm)}-byte nonce")

    if algorithm == ALGORITHM_AES_GCM:
        return AESGCM(key).encrypt(nonce, plaintext, None)

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(nonce)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt_chunk(ciphertext: bytes, key: bytes, nonce: bytes, algorithm: str) -> bytes:
    if len(nonce) != nonce_length(algorithm):
        raise ValueError(f"{algorithm} needs a {nonce_length(algorithm)}-byte nonce")

    if algorithm == ALGORITHM_AES_GCM:
        try:
            return AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise AuthenticationFailure(
                "Authentication failed (wrong password, wrong key file or corrupted data)"
            ) from None

    if len(ciphertext) == 0 or len(ciphertext) % BLOCK_SIZE:
        raise PaddingError("CBC ciphertext is not a whole number of blocks")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(nonce)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise PaddingError(f"Invalid CBC padding: {e}") from None


class CryptoProvider:
    """
    Bundle of the primitives the engine needs.

    An instance is passed to :class:`ChunkedCipherEngine` explicitly so tests
    can swap in deterministic randomness or a cheaper KDF. The default
    implementation uses ``os.urandom`` and the ``cryptography`` package.
    """

    def __init__(self, iterations: int = PBKDF2_ITERATIONS):
        self.iterations = iterations

    def random_bytes(self, length: int) -> bytes:
        return os.urandom(length)

    def hash(self, data: bytes) -> bytes:
        return sha256_digest(data)

    def derive_key(
        self,
        password: bytes | str,
        salt: bytes,
        algorithm: str,
        keyfile_hash: Optional[str] = None,
    ) -> bytes:
        return derive_key(password, salt, algorithm, keyfile_hash, iterations=self.iterations)

    def encrypt_chunk(self, plaintext: bytes, key: bytes, algorithm: str) -> Tuple[bytes, bytes]:
        """Encrypt one chunk under a fresh nonce; returns ``(ciphertext, nonce)``."""
        nonce = self.random_bytes(nonce_length(algorithm))
        return encrypt_chunk(plaintext, key, algorithm, nonce), nonce

    def decrypt_chunk(self, ciphertext: bytes, key: bytes, nonce: bytes, algorithm: str) -> bytes:
        return decrypt_chunk(ciphertext, key, nonce, algorithm)


__all__ = [
    "ALGORITHM_AES_CBC",
    "ALGORITHM_AES_GCM",
    "CryptoProvider",
    "decrypt_chunk",
    "encrypt_chunk",
    "nonce_length",
]
