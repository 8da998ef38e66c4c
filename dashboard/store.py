"""JSON document persistence.

Every piece of dashboard state is a JSON file on disk. Writes go through a
temp file and ``os.replace`` so readers never observe a half-written
document, and read-modify-write cycles on one path are serialized inside
this process. Across processes the last write wins.
"""

import copy
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any

from dashboard.errors import StoreError

logger = logging.getLogger("agile-dashboard.store")

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_key(path: Path) -> str:
    return str(Path(path).resolve())


def _lock_for(path: Path) -> threading.Lock:
    key = _lock_key(path)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


@contextmanager
def locked(*paths: Path) -> Iterator[None]:
    """Hold the locks of several documents for a multi-file read-modify-write.

    Locks are taken in sorted path order so two callers naming the same files
    cannot deadlock. Inside the block use ``read_json``/``write_json`` only;
    ``update_json`` on a held path would block.
    """
    keys = sorted({_lock_key(p) for p in paths})
    with ExitStack() as stack:
        for key in keys:
            stack.enter_context(_lock_for(Path(key)))
        yield


def read_json(path: Path) -> Any:
    """Parse a JSON document. Raises FileNotFoundError when it does not exist."""
    with open(path, encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Malformed JSON in {path}: {e}") from e


def read_json_or_default(path: Path, default: Any) -> Any:
    """Parse a JSON document, or return a copy of ``default`` if the file is missing."""
    try:
        return read_json(path)
    except FileNotFoundError:
        return copy.deepcopy(default)


def write_json(path: Path, data: Any) -> None:
    """Atomically write ``data`` as 2-space indented JSON, creating parent dirs."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except OSError as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreError(f"Failed to write {path}: {e}") from e


def update_json(path: Path, mutate: Callable[[Any], Any], default: Any = None) -> Any:
    """Read-modify-write ``path`` under its lock.

    ``mutate`` receives the current document (or a copy of ``default`` when the
    file is missing and a default was given) and may modify it in place or
    return a replacement. The saved document is returned.
    """
    with _lock_for(path):
        if default is None:
            current = read_json(path)
        else:
            current = read_json_or_default(path, default)
        result = mutate(current)
        document = current if result is None else result
        write_json(path, document)
        return document


def append_json_line(path: Path, entry: dict) -> None:
    """Append one JSON object as a line (JSON-lines log files)."""
    path = Path(path)
    with _lock_for(path):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")


def read_json_lines(path: Path) -> list[dict]:
    """Read a JSON-lines file, skipping blank and malformed lines."""
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        return []

    entries = []
    for line in lines:
        if not line.strip():
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed line in {path}")
    return entries
