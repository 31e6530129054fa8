"""Convenience entry point to run the Vortex Shield TUI app.

Allows starting the application with `python main.py` from the project root
without installing the package first.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the src/ directory is on sys.path so `import vortexshield` works
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from vortexshield.frontend.cli.app import main


if __name__ == "__main__":
    main()
