"""Security helpers: KDF, per-chunk primitives, container codec and streaming engine.

This package provides:
- PBKDF2-SHA256 key derivation over password + optional keyfile hash
- AES-256-GCM / AES-256-CBC chunk primitives behind an injectable CryptoProvider
- the VORTEX container codec (versions 1 and 2)
- the chunked streaming engine and the steganography locator
"""

from .kdf import generate_salt, derive_key
from .primitives import CryptoProvider, encrypt_chunk, decrypt_chunk
from .container import (
    ContainerDescriptor,
    ChunkFrame,
    write_header,
    read_header,
    write_chunk_frame,
    read_chunk_frame,
)
from .engine import ChunkedCipherEngine, EngineResult
from .stegano import embed, locate
from .armor import encrypt_text, decrypt_text

__all__ = [
    "generate_salt",
    "derive_key",
    "CryptoProvider",
    "encrypt_chunk",
    "decrypt_chunk",
    "ContainerDescriptor",
    "ChunkFrame",
    "write_header",
    "read_header",
    "write_chunk_frame",
    "read_chunk_frame",
    "ChunkedCipherEngine",
    "EngineResult",
    "embed",
    "locate",
    "encrypt_text",
    "decrypt_text",
]
