"""Textual front-end for Vortex Shield.

Start here with `python -m vortexshield.frontend.cli.app` (or `vortexshield`).

The UI only gathers inputs and shows results; every encrypt/decrypt runs on
the context's TaskRunner thread and reports back through task events.
"""

from __future__ import annotations

import logging
from typing import List

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    Checkbox,
    Footer,
    Header,
    Input,
    Label,
    Log,
    ProgressBar,
    Select,
    Static,
    TextArea,
)

from vortexshield.core.config import ALGORITHM_AES_CBC, ALGORITHM_AES_GCM
from vortexshield.core.exceptions import VortexShieldError
from vortexshield.frontend.cli.clipboard import copy_to_clipboard
from vortexshield.frontend.cli.context import AppContext, build_context, parse_paths
from vortexshield.frontend.cli.logging_config import OperationLog, configure_logging
from vortexshield.security.armor import decrypt_text, encrypt_text
from vortexshield.tasks.worker import (
    ProgressEvent,
    TaskEvent,
    TaskKind,
    TaskResult,
    TaskSuccess,
)

logger = logging.getLogger(__name__)


def _human_size(num: float) -> str:
    # Simple human-readable bytes formatter.
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if num < 1024:
            return f"{num:.1f} {unit}" if unit != "B" else f"{int(num)} B"
        num /= 1024
    return f"{num:.1f} PB"


# === Modal definitions ===


class TextVaultModal(ModalScreen[None]):
    """Encrypt a note into an armor string, or decrypt one back, in place."""

    def __init__(self, ctx: AppContext, password: str, algorithm: str, compress: bool):
        super().__init__()
        self.ctx = ctx
        self.password = password
        self.algorithm = algorithm
        self.compress = compress

    def compose(self) -> ComposeResult:  # pragma: no cover - UI only
        with Vertical(classes="dialog"):
            yield Static("Text Vault", classes="title")
            self.text = TextArea(id="vault-text")
            yield self.text
            self.status = Label("")
            yield self.status
            with Horizontal():
                yield Button("Close (Esc)", id="close")
                yield Button("Encrypt", id="encrypt", variant="primary")
                yield Button("Decrypt", id="decrypt")

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover - UI only
        if event.button.id == "close":
            self.dismiss(None)
            return
        if not self.password:
            self.status.update("Enter a password first")
            return
        try:
            if event.button.id == "encrypt":
                self.text.text = encrypt_text(
                    self.text.text,
                    self.password,
                    engine=self.ctx.runner.engine,
                    algorithm=self.algorithm,
                    keyfile_hash=self.ctx.keyfile_hash,
                    compress=self.compress,
                )
                self.ctx.log.add("TEXT ENCRYPTED TO ARMOR STRING")
            else:
                self.text.text = decrypt_text(
                    self.text.text,
                    self.password,
                    engine=self.ctx.runner.engine,
                    keyfile_hash=self.ctx.keyfile_hash,
                )
                self.ctx.log.add("ARMOR STRIPPED & DECRYPTED")
            self.status.update("")
        except (VortexShieldError, UnicodeDecodeError) as e:
            self.ctx.log.add(f"TEXT OP FAILED: {e}")
            self.status.update(f"Failed: {e}")

    def on_key(self, event) -> None:  # pragma: no cover
        if event.key == "escape":
            self.dismiss(None)


# === Main app ===


class VortexShieldApp(App):
    """Batch encrypt / decrypt / hide / extract over the task runner."""

    TITLE = "Vortex Shield"

    CSS = """
    #form { padding: 0 1; height: auto; }
    #actions { height: auto; padding: 0 1; }
    #log { border: heavy $surface; height: 1fr; }
    .title { padding: 1 1; text-style: bold; }
    ModalScreen { align: center middle; background: rgba(0,0,0,0.45); }
    .dialog { width: 75%; height: 75%; padding: 1; border: heavy $surface; background: $boost; }
    """

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        # function keys: Input already uses most ctrl+letter combinations
        ("f2", "encrypt", "Encrypt"),
        ("f3", "decrypt", "Decrypt"),
        ("f4", "hide", "Hide"),
        ("f5", "extract", "Extract"),
        ("f6", "load_keyfile", "Key File"),
        ("f7", "text_vault", "Text Vault"),
        ("f8", "copy_output", "Copy"),
        ("f9", "export_log", "Export Log"),
    ]

    def __init__(self, ctx: AppContext | None = None):
        super().__init__()
        self.ctx = ctx or build_context()
        self.processing = False
        self._shown: List[str] = []

    def compose(self) -> ComposeResult:  # pragma: no cover - UI only
        yield Header(show_clock=True)
        with Vertical(id="form"):
            yield Input(placeholder="files (comma-separated)", id="sources")
            yield Input(placeholder="password", password=True, id="password")
            yield Input(placeholder="key file (optional, F6 to load)", id="keyfile")
            yield Input(placeholder="cover image (for Hide)", id="cover")
            yield Input(placeholder="camouflage extension, e.g. .dll (optional)", id="camouflage")
            with Horizontal():
                yield Select(
                    [(ALGORITHM_AES_GCM, ALGORITHM_AES_GCM), (ALGORITHM_AES_CBC, ALGORITHM_AES_CBC)],
                    value=self.ctx.settings.algorithm,
                    allow_blank=False,
                    id="algorithm",
                )
                yield Checkbox("Compression", value=self.ctx.settings.compress, id="compress")
        with Horizontal(id="actions"):
            yield Button("Encrypt", id="encrypt", variant="primary")
            yield Button("Decrypt", id="decrypt")
            yield Button("Hide", id="hide")
            yield Button("Extract", id="extract")
        yield ProgressBar(total=100, show_eta=False, id="progress")
        yield Log(id="log")
        yield Footer()

    def on_mount(self) -> None:  # pragma: no cover - UI only
        self.ctx.log.add("SYSTEM INITIALIZED")
        self.set_interval(0.25, self._refresh_log)

    # --- helpers ---

    def _value(self, widget_id: str) -> str:
        return self.query_one(f"#{widget_id}", Input).value.strip()

    def _refresh_log(self) -> None:  # pragma: no cover - UI only
        # the operation log is appended from the worker thread too; poll it
        lines = self.ctx.log.lines()
        if lines == self._shown:
            return
        log = self.query_one("#log", Log)
        log.clear()
        log.write_lines(lines)
        self._shown = lines

    def _handle_event(self, event: TaskEvent) -> None:
        if isinstance(event, ProgressEvent):
            self.query_one("#progress", ProgressBar).update(progress=event.percent)
        elif isinstance(event, TaskSuccess):
            self.ctx.last_output = event.file_name

    def _on_batch_done(self, results: List[TaskResult]) -> None:
        self.processing = False
        self.query_one("#progress", ProgressBar).update(progress=100)
        failed = sum(1 for r in results if not isinstance(r, TaskSuccess))
        self.ctx.log.add(f"BATCH COMPLETE ({failed} failed)" if failed else "BATCH COMPLETE")

    def _start(self, kind: TaskKind, hide: bool = False, extract: bool = False) -> None:
        if self.processing:
            return
        sources = parse_paths(self._value("sources"))
        password = self._value("password")
        if not sources or not password:
            self.ctx.log.add("NEED FILES AND PASSWORD")
            return

        covers = parse_paths(self._value("cover")) if hide else []
        if hide and not covers:
            self.ctx.log.add("NEED COVER IMAGE")
            return

        requests = self.ctx.build_requests(
            kind,
            sources,
            password,
            algorithm=self.query_one("#algorithm", Select).value,
            compress=self.query_one("#compress", Checkbox).value,
            cover=covers[0] if covers else None,
            stegano=extract,
            camouflage_ext=None if hide else self._value("camouflage"),
        )
        self.processing = True
        self.query_one("#progress", ProgressBar).update(progress=0)
        self.ctx.log.add(f"BATCH {kind.value.upper()} STARTED: {len(requests)} FILE(S)")
        for source in sources:
            if source.is_file():
                self.ctx.log.add(f"QUEUED: {source.name} ({_human_size(source.stat().st_size)})")

        self.ctx.runner.submit_batch(
            requests,
            on_event=lambda event: self.call_from_thread(self._handle_event, event),
            on_done=lambda results: self.call_from_thread(self._on_batch_done, results),
        )

    # --- actions ---

    def on_button_pressed(self, event: Button.Pressed) -> None:  # pragma: no cover - UI only
        handler = {
            "encrypt": self.action_encrypt,
            "decrypt": self.action_decrypt,
            "hide": self.action_hide,
            "extract": self.action_extract,
        }.get(event.button.id or "")
        if handler is not None:
            handler()

    def action_encrypt(self) -> None:
        self._start(TaskKind.ENCRYPT)

    def action_decrypt(self) -> None:
        self._start(TaskKind.DECRYPT)

    def action_hide(self) -> None:
        self._start(TaskKind.ENCRYPT, hide=True)

    def action_extract(self) -> None:
        self._start(TaskKind.DECRYPT, extract=True)

    def action_load_keyfile(self) -> None:
        path = self._value("keyfile")
        if not path:
            self.ctx.clear_keyfile()
            self.ctx.log.add("KEY FILE CLEARED")
            return
        try:
            digest = self.ctx.load_keyfile(path)
        except VortexShieldError as e:
            self.ctx.log.add(f"ERROR PROCESSING KEY FILE: {e}")
            return
        self.ctx.log.add(f"KEY HASH: {digest[:16]}...")

    def action_text_vault(self) -> None:  # pragma: no cover - UI only
        self.push_screen(
            TextVaultModal(
                self.ctx,
                self._value("password"),
                self.query_one("#algorithm", Select).value,
                self.query_one("#compress", Checkbox).value,
            )
        )

    def action_copy_output(self) -> None:
        if not self.ctx.last_output:
            return
        if copy_to_clipboard(self.ctx.last_output):
            self.ctx.log.add("OUTPUT COPIED")
        else:
            self.ctx.log.add("ERROR: CLIPBOARD DENIED")

    def action_export_log(self) -> None:
        path = self.ctx.log.export(self.ctx.settings.output_dir)
        self.ctx.log.add(f"AUDIT LOG EXPORTED: {path.name}")

    def on_unmount(self) -> None:  # pragma: no cover - UI only
        self.ctx.runner.shutdown(wait=False)


def main() -> None:
    """Run the Vortex Shield Textual application."""
    log = OperationLog()
    ctx = build_context(log=log)
    configure_logging(ctx.settings.log_level, extra=log)
    logger.debug("writing results to %s", ctx.settings.output_dir.resolve())
    VortexShieldApp(ctx).run()


if __name__ == "__main__":
    main()
