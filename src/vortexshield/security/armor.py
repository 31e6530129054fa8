"""Text vault: encrypt short text into a copy-pasteable data-URL armor string."""

from __future__ import annotations

import base64
import binascii
from typing import Optional

from vortexshield.core.config import ALGORITHM_AES_GCM, ARMOR_PREFIX
from vortexshield.core.exceptions import FormatError

from .engine import ChunkedCipherEngine


def armor(blob: bytes) -> str:
    return ARMOR_PREFIX + base64.b64encode(blob).decode("ascii")


def dearmor(text: str) -> bytes:
    """Decode an armor string; anything other than a base64 data URL is a FormatError."""
    text = text.strip()
    if not text.startswith("data:"):
        raise FormatError("Invalid format (expected data URL)")
    header, sep, payload = text.partition(",")
    if not sep or not header.endswith(";base64"):
        raise FormatError("Invalid format (expected base64 data URL)")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise FormatError(f"Invalid base64 payload: {e}") from None


def encrypt_text(
    text: str,
    password: str,
    engine: Optional[ChunkedCipherEngine] = None,
    algorithm: str = ALGORITHM_AES_GCM,
    keyfile_hash: Optional[str] = None,
    compress: bool = False,
) -> str:
    engine = engine or ChunkedCipherEngine()
    blob = engine.encrypt_bytes(
        text.encode("utf-8"),
        password,
        algorithm=algorithm,
        keyfile_hash=keyfile_hash,
        compress=compress,
    )
    return armor(blob)


def decrypt_text(
    armored: str,
    password: str,
    engine: Optional[ChunkedCipherEngine] = None,
    keyfile_hash: Optional[str] = None,
) -> str:
    engine = engine or ChunkedCipherEngine()
    plaintext = engine.decrypt_bytes(dearmor(armored), password, keyfile_hash=keyfile_hash)
    return plaintext.decode("utf-8")
