"""Output file naming for encrypt / decrypt results."""

from __future__ import annotations

from typing import Optional

from .config import (
    CAMOUFLAGE_EXTENSIONS,
    DEFAULT_DECRYPTED_NAME,
    DEFAULT_ENCRYPTED_NAME,
    ENCRYPTED_SUFFIX,
    STEGANO_OUTPUT_NAME,
)


def encrypted_name(
    source_name: Optional[str],
    cover_name: Optional[str] = None,
    camouflage_ext: Optional[str] = None,
) -> str:
    """
    Derive the name of an encrypted output.

    - a cover image wins: ``camouflaged_<cover name>``
    - otherwise ``.vortex`` is appended (unless already present)
    - with ``camouflage_ext`` the last extension is swapped for the fake one
    """
    if cover_name:
        return f"camouflaged_{cover_name}"

    name = source_name or DEFAULT_ENCRYPTED_NAME
    if not name.endswith(ENCRYPTED_SUFFIX):
        name += ENCRYPTED_SUFFIX

    if camouflage_ext:
        base, dot, _ = name.rpartition(".")
        if not dot or not base:
            base = name
        ext = camouflage_ext if camouflage_ext.startswith(".") else "." + camouflage_ext
        name = f"{base}{ext}"
    return name


def decrypted_name(original_name: Optional[str], stegano: bool = False) -> str:
    """
    Recover a working name from the stored one.

    ``.vortex`` is stripped; failing that, one camouflage extension is
    (camouflage replaces ``.vortex`` rather than stacking on it). Stego
    payloads get a fixed name since the carrier does not record one.
    """
    if stegano:
        return STEGANO_OUTPUT_NAME

    name = original_name or ""
    for suffix in (ENCRYPTED_SUFFIX,) + CAMOUFLAGE_EXTENSIONS:
        if name.lower().endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    return name or DEFAULT_DECRYPTED_NAME
