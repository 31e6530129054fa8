"""Small helper to build a Vortex Shield app context for the TUI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from vortexshield.core.config import Settings, load_settings
from vortexshield.core.hashing import hash_keyfile
from vortexshield.security.engine import ChunkedCipherEngine
from vortexshield.tasks.worker import TaskKind, TaskRequest, TaskRunner

from .logging_config import OperationLog


@dataclass
class AppContext:
    """Container for runtime objects the UI needs."""

    settings: Settings
    runner: TaskRunner
    log: OperationLog
    keyfile_hash: Optional[str] = None
    last_output: Optional[str] = None

    def load_keyfile(self, path: str | Path) -> str:
        self.keyfile_hash = hash_keyfile(Path(path).expanduser())
        return self.keyfile_hash

    def clear_keyfile(self) -> None:
        self.keyfile_hash = None

    def build_requests(
        self,
        kind: TaskKind,
        sources: List[Path],
        password: str,
        algorithm: Optional[str] = None,
        compress: Optional[bool] = None,
        cover: Optional[Path] = None,
        stegano: bool = False,
        camouflage_ext: Optional[str] = None,
    ) -> List[TaskRequest]:
        """One request per source, filling unset options from the settings."""
        return [
            TaskRequest(
                kind=kind,
                source=source,
                password=password,
                output_dir=self.settings.output_dir,
                algorithm=algorithm or self.settings.algorithm,
                cover=cover,
                keyfile_hash=self.keyfile_hash,
                compress=self.settings.compress if compress is None else compress,
                stegano=stegano,
                camouflage_ext=camouflage_ext or None,
            )
            for source in sources
        ]


def parse_paths(raw: str) -> List[Path]:
    # Comma- or newline-separated paths; blanks are dropped.
    parts = [p.strip() for chunk in raw.splitlines() for p in chunk.split(",")]
    return [Path(p).expanduser() for p in parts if p]


def build_context(settings: Optional[Settings] = None, log: Optional[OperationLog] = None) -> AppContext:
    """
    Create the worker and settings the UI runs against.

    Settings come from the ``VORTEX_*`` environment variables (see
    :func:`vortexshield.core.config.load_settings`) unless passed in.
    """
    settings = settings or load_settings()
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    return AppContext(
        settings=settings,
        runner=TaskRunner(ChunkedCipherEngine()),
        log=log or OperationLog(),
    )
