"""Logging setup for the TUI, plus the in-app operation log."""

from __future__ import annotations

import logging
import sys
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Deque, List, Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, extra: Optional[logging.Handler] = None) -> None:
    # Configure root logger once; stderr so the terminal UI on stdout is not disturbed.
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    if extra is not None:
        extra.setLevel(level)
        logging.getLogger("vortexshield").addHandler(extra)


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    text: str

    def format(self) -> str:
        return f"[{self.timestamp}] {self.text}"


class OperationLog(logging.Handler):
    """
    Keeps the most recent log lines for display and audit export.

    Attach it with ``configure_logging(extra=...)``; ``listener`` (if set) is
    called with every new entry, from whichever thread emitted the record.
    """

    def __init__(self, capacity: int = 20, listener: Optional[Callable[[LogEntry], None]] = None):
        super().__init__()
        self.entries: Deque[LogEntry] = deque(maxlen=capacity)
        self.listener = listener

    def add(self, text: str) -> LogEntry:
        entry = LogEntry(timestamp=datetime.now().strftime("%H:%M:%S"), text=text)
        # appended from the worker thread while the UI reads lines()
        self.acquire()
        try:
            self.entries.append(entry)
        finally:
            self.release()
        if self.listener is not None:
            self.listener(entry)
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.add(record.getMessage())
        except Exception:
            self.handleError(record)

    def lines(self) -> List[str]:
        self.acquire()
        try:
            entries = list(self.entries)
        finally:
            self.release()
        return [entry.format() for entry in entries]

    def export(self, directory: Path) -> Path:
        """Write the log to ``vortex_audit_<timestamp>.log`` in ``directory``."""
        stamp = datetime.now().isoformat().replace(":", "-").replace(".", "-")
        path = Path(directory) / f"vortex_audit_{stamp}.log"
        path.write_text("\n".join(self.lines()) + "\n", encoding="utf-8")
        return path
