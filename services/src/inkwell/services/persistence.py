"""Shared file write utilities for the storage modules."""

from __future__ import annotations

import errno
import json
import os
import time
from contextlib import contextmanager
from pathlib import Path
from threading import Lock, RLock
from typing import IO, Any, Iterator
from uuid import uuid4

_PATH_LOCKS: dict[str, RLock] = {}
_PATH_LOCKS_GUARD = Lock()

_TRANSIENT_ERRNOS = {errno.EACCES, errno.EPERM}
_TRANSIENT_WINERRORS = {5, 32}


@contextmanager
def locked_path(target: Path) -> Iterator[None]:
    """Serialise writers of ``target`` within this process."""

    key = str(target)
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.setdefault(key, RLock())
    with lock:
        yield


def flush_handle(handle: IO[Any], *, durable: bool) -> None:
    handle.flush()
    if durable:
        os.fsync(handle.fileno())


def replace_file(temp_path: Path, target_path: Path, *, attempts: int = 5, delay: float = 0.05) -> None:
    """Atomically replace ``target_path``, retrying transient Windows sharing errors."""

    for attempt in range(attempts):
        try:
            temp_path.replace(target_path)
            return
        except OSError as exc:
            winerror = getattr(exc, "winerror", None)
            if exc.errno not in _TRANSIENT_ERRNOS and winerror not in _TRANSIENT_WINERRORS:
                raise
            if attempt == attempts - 1:
                raise
            time.sleep(delay * (attempt + 1))


def write_json_atomic(path: Path, payload: dict[str, Any], *, durable: bool = True) -> None:
    """Write JSON to disk using an atomic rename."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with locked_path(path):
        temp_path = path.parent / f".{path.name}.{uuid4().hex}.tmp"
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
                flush_handle(handle, durable=durable)
            replace_file(temp_path, path)
        finally:
            temp_path.unlink(missing_ok=True)


def append_jsonl(path: Path, payload: dict[str, Any], *, durable: bool = True) -> None:
    """Append one JSON document as a line to ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(payload, ensure_ascii=False)
    with locked_path(path):
        with path.open("a", encoding="utf-8", newline="\n") as handle:
            handle.write(f"{line}\n")
            flush_handle(handle, durable=durable)


def dump_diagnostic(path: Path, payload: dict[str, Any]) -> None:
    """Write a JSON diagnostic payload to disk."""

    write_json_atomic(path, payload, durable=True)


__all__ = [
    "append_jsonl",
    "dump_diagnostic",
    "flush_handle",
    "locked_path",
    "replace_file",
    "write_json_atomic",
]
