"""Clipboard utilities for the CLI frontend.

Uses pyperclip for cross-platform clipboard access.
"""

from __future__ import annotations

import pyperclip


def copy_to_clipboard(text: str) -> bool:
    """Copy text to the system clipboard.

    Args:
        text: The text to copy (an output name or integrity line).

    Returns:
        False when no clipboard mechanism is available, True otherwise.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException:
        return False
    return True
