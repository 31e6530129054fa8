"""Format constants and runtime settings.

The constants below are part of the on-disk format; changing any of them
breaks existing containers. Runtime settings are read from the environment
so the front-end can be configured without extra prompts.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

# Container format
MAGIC = b"VORTEX"
VERSION_LEGACY = 1
VERSION_CURRENT = 2

ALGORITHM_AES_GCM = "AES-GCM"
ALGORITHM_AES_CBC = "AES-CBC"
ALGORITHM_IDS = {ALGORITHM_AES_GCM: 1, ALGORITHM_AES_CBC: 2}
ALGORITHMS_BY_ID = {v: k for k, v in ALGORITHM_IDS.items()}
NONCE_LENGTHS = {ALGORITHM_AES_GCM: 12, ALGORITHM_AES_CBC: 16}

OPTION_COMPRESSED = 0x01
OPTION_KEYFILE = 0x02

SALT_LENGTH = 16
KEY_LENGTH = 32  # AES-256
LENGTH_PREFIX_SIZE = 4

HEADER_LENGTH_V1 = len(MAGIC) + 1 + 1 + SALT_LENGTH
HEADER_LENGTH_V2 = HEADER_LENGTH_V1 + 1

CHUNK_SIZE = 64 * 1024 * 1024  # 64 MiB
KEYFILE_READ_LIMIT = CHUNK_SIZE

# Key derivation
PBKDF2_ITERATIONS = 100_000
KEYFILE_SEPARATOR = "::KEYFILE::"

# Steganography
STEGANO_DELIMITER = b"||VORTEX_SHIELD_PAYLOAD||"
STEGANO_SCAN_LIMIT = 50 * 1024 * 1024  # 50 MiB

# Naming
ENCRYPTED_SUFFIX = ".vortex"
CAMOUFLAGE_EXTENSIONS = (".dll", ".sys", ".dat", ".tmp", ".ini", ".bin")
DEFAULT_ENCRYPTED_NAME = "encrypted_data"
DEFAULT_DECRYPTED_NAME = "decrypted_data"
STEGANO_OUTPUT_NAME = "revealed_payload"

ARMOR_PREFIX = "data:application/octet-stream;base64,"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the front-end and task runner."""

    output_dir: Path
    algorithm: str = ALGORITHM_AES_GCM
    compress: bool = False
    log_level: int = logging.INFO


def load_settings(environ: dict | None = None) -> Settings:
    """
    Build Settings from ``VORTEX_*`` environment variables.

    - ``VORTEX_OUTPUT_DIR``: where results are written (default: current dir)
    - ``VORTEX_ALGORITHM``: ``AES-GCM`` or ``AES-CBC``
    - ``VORTEX_COMPRESS``: ``1``/``true``/``yes`` to enable gzip per chunk
    - ``VORTEX_LOG_LEVEL``: a logging level name such as ``DEBUG``

    Unknown values raise ``ValueError`` rather than silently falling back.
    """
    env = os.environ if environ is None else environ

    output_dir = Path(env.get("VORTEX_OUTPUT_DIR") or ".").expanduser()

    algorithm = (env.get("VORTEX_ALGORITHM") or ALGORITHM_AES_GCM).upper()
    if algorithm not in ALGORITHM_IDS:
        raise ValueError(f"Unsupported algorithm in VORTEX_ALGORITHM: {algorithm}")

    compress = (env.get("VORTEX_COMPRESS") or "").strip().lower() in _TRUTHY

    level_name = (env.get("VORTEX_LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level in VORTEX_LOG_LEVEL: {level_name}")

    return Settings(
        output_dir=output_dir,
        algorithm=algorithm,
        compress=compress,
        log_level=level,
    )
