"""
Task boundary between an interactive front-end and the cipher engine.

A caller builds a :class:`TaskRequest` and either runs it inline with
:func:`run_task` or hands it to a :class:`TaskRunner`, which executes tasks
one at a time on a background thread. Either way the caller receives zero or
more :class:`ProgressEvent` (0-99) followed by exactly one terminal event,
:class:`TaskSuccess` or :class:`TaskFailure`. The terminal event is also the
return value (or the Future's result), so nothing has to be threaded through
shared mutable closures.

Batches isolate failures: one file failing is logged and reported, and the
batch moves on to the next file.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from vortexshield.core.config import ALGORITHM_AES_GCM
from vortexshield.core.exceptions import VortexShieldError
from vortexshield.core.naming import decrypted_name, encrypted_name
from vortexshield.security.engine import ChunkedCipherEngine, EngineResult
from vortexshield.security.stegano import looks_like_image

logger = logging.getLogger(__name__)


class TaskKind(Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


@dataclass(frozen=True)
class TaskRequest:
    kind: TaskKind
    source: Path
    password: str
    output_dir: Path
    algorithm: str = ALGORITHM_AES_GCM  # encrypt only
    cover: Optional[Path] = None  # encrypt only
    keyfile_hash: Optional[str] = None
    compress: bool = False  # encrypt only
    stegano: bool = False  # decrypt only
    name_hint: Optional[str] = None
    camouflage_ext: Optional[str] = None  # encrypt only


@dataclass(frozen=True)
class ProgressEvent:
    percent: int


@dataclass(frozen=True)
class TaskSuccess:
    source: Path
    output_path: Path
    file_name: str
    log: str
    aggregate_hash: str
    is_image: bool = False


@dataclass(frozen=True)
class TaskFailure:
    source: Path
    reason: str


TaskResult = Union[TaskSuccess, TaskFailure]
TaskEvent = Union[ProgressEvent, TaskSuccess, TaskFailure]
EventSink = Callable[[TaskEvent], None]


def output_name(request: TaskRequest) -> str:
    """Name of the file a request will produce."""
    if request.kind is TaskKind.ENCRYPT:
        return encrypted_name(
            request.name_hint or request.source.name,
            cover_name=request.cover.name if request.cover else None,
            camouflage_ext=request.camouflage_ext,
        )
    return decrypted_name(request.name_hint or request.source.name, stegano=request.stegano)


def available_path(directory: Path, name: str, avoid: Optional[Path] = None) -> Path:
    """
    ``directory / name``, or ``name (1)``, ``name (2)``... when that is taken.

    ``avoid`` (usually the source) is never returned, so an output can not
    replace the file it is being read from.
    """
    candidate = directory / name
    stem, suffix = Path(name).stem, Path(name).suffix
    counter = 1
    avoid_resolved = avoid.resolve() if avoid is not None else None
    while candidate.exists() or (avoid_resolved is not None and candidate.resolve() == avoid_resolved):
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


def _reason(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _execute(request: TaskRequest, engine: ChunkedCipherEngine, on_progress) -> TaskSuccess:
    if not request.password:
        raise ValueError("A password is required")

    file_name = output_name(request)
    destination = available_path(Path(request.output_dir), file_name, avoid=request.source)

    if request.kind is TaskKind.ENCRYPT:
        result: EngineResult = engine.encrypt_file(
            request.source,
            destination,
            request.password,
            algorithm=request.algorithm,
            keyfile_hash=request.keyfile_hash,
            compress=request.compress,
            cover_path=request.cover,
            progress=on_progress,
        )
        log = f"INTEGRITY CHECK PASSED [HASH:{result.short_hash}]"
        is_image = False
    else:
        result = engine.decrypt_file(
            request.source,
            destination,
            request.password,
            keyfile_hash=request.keyfile_hash,
            stegano=request.stegano,
            progress=on_progress,
        )
        log = f"INTEGRITY VERIFIED [HASH:{result.short_hash}]"
        with open(destination, "rb") as f:
            is_image = looks_like_image(f.read(4))

    return TaskSuccess(
        source=request.source,
        output_path=destination,
        file_name=destination.name,
        log=log,
        aggregate_hash=result.aggregate_hash,
        is_image=is_image,
    )


def run_task(
    request: TaskRequest,
    engine: Optional[ChunkedCipherEngine] = None,
    on_event: Optional[EventSink] = None,
) -> TaskResult:
    """
    Run one request to completion on the calling thread.

    Never raises for a failed operation: the failure is logged and returned
    (and emitted) as a :class:`TaskFailure`.
    """
    engine = engine or ChunkedCipherEngine()

    def on_progress(percent: int) -> None:
        # 100 is implied by the terminal success event
        if on_event is not None and percent < 100:
            on_event(ProgressEvent(percent))

    logger.debug("%s: %s", request.kind.value, request.source.name)
    try:
        outcome: TaskResult = _execute(request, engine, on_progress)
        logger.info("%s -> %s", request.source.name, outcome.file_name)
        if outcome.is_image:
            logger.info("IMAGE PAYLOAD DETECTED: %s", outcome.file_name)
    except (VortexShieldError, OSError, ValueError) as e:
        logger.warning("FAILED: %s - %s", request.source.name, _reason(e))
        outcome = TaskFailure(source=request.source, reason=_reason(e))
    except Exception as e:
        logger.exception("FAILED: %s - unexpected error", request.source.name)
        outcome = TaskFailure(source=request.source, reason=_reason(e))

    if on_event is not None:
        on_event(outcome)
    return outcome


def run_batch(
    requests: Iterable[TaskRequest],
    engine: Optional[ChunkedCipherEngine] = None,
    on_event: Optional[EventSink] = None,
) -> List[TaskResult]:
    """Run requests one after another; a failure does not stop the batch."""
    engine = engine or ChunkedCipherEngine()
    requests = list(requests)
    logger.info("BATCH STARTED: %d file(s)", len(requests))
    results = [run_task(request, engine, on_event) for request in requests]
    failed = sum(1 for r in results if isinstance(r, TaskFailure))
    logger.info("BATCH COMPLETE: %d ok, %d failed", len(results) - failed, failed)
    return results


class TaskRunner:
    """
    Single background worker for encrypt/decrypt tasks.

    Tasks submitted to one runner execute sequentially, in submission order,
    on a dedicated thread. ``on_event`` is called from that thread; UI code
    must marshal it back to its own thread.
    """

    def __init__(self, engine: Optional[ChunkedCipherEngine] = None):
        self.engine = engine or ChunkedCipherEngine()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vortex-worker")

    def submit(self, request: TaskRequest, on_event: Optional[EventSink] = None) -> "Future[TaskResult]":
        return self._executor.submit(run_task, request, self.engine, on_event)

    def submit_batch(
        self,
        requests: Iterable[TaskRequest],
        on_event: Optional[EventSink] = None,
        on_done: Optional[Callable[[List[TaskResult]], None]] = None,
    ) -> "Future[List[TaskResult]]":
        """Queue a batch; ``on_done`` runs on the worker thread once every file is finished."""
        requests = list(requests)

        def batch() -> List[TaskResult]:
            results = run_batch(requests, self.engine, on_event)
            if on_done is not None:
                on_done(results)
            return results

        return self._executor.submit(batch)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "TaskRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
