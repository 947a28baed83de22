"""
Module: storage.file_locking

Purpose:
    Cross-platform file locking and atomic JSON writes for the JSON file
    store. Uses portalocker for Mac, Windows, and Linux compatibility.

    Writers serialize on a sidecar ``<name>.lock`` file and publish the
    new document with ``os.replace``, so readers (which take no lock)
    always see either the previous or the new complete document.

Key Functions:
    - locked_file: Context manager for locked file access
    - write_guard: Exclusive writer lock for a JSON document
    - atomic_write_json: Temp file + os.replace
    - read_json: Read a JSON document if present
    - locked_read_modify_write_json: Read-modify-write JSON with lock
    - locked_write_json: Replace a JSON document with lock

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - storage.json_store: JsonFileStore
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Optional

import portalocker

logger = logging.getLogger(__name__)


@contextmanager
def locked_file(
    path: Path,
    mode: str = 'r',
    lock_type: int = portalocker.LOCK_EX,
) -> Generator:
    """
    Context manager for cross-platform locked file access.

    Args:
        path: Path to file.
        mode: File open mode ('r', 'r+', 'a', etc.).
        lock_type: Lock type (LOCK_EX for exclusive, LOCK_SH for shared).

    Yields:
        Open file handle with lock held.

    Example:
        >>> with locked_file(path, 'a') as f:
        ...     f.write(line)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Ensure file exists for read modes
    if 'r' in mode and not path.exists():
        path.touch()

    with open(path, mode, encoding='utf-8') as f:
        portalocker.lock(f, lock_type)
        try:
            yield f
        finally:
            portalocker.unlock(f)


@contextmanager
def write_guard(path: Path) -> Generator[None, None, None]:
    """Hold the exclusive writer lock of a JSON document."""
    lock_path = path.with_name(path.name + ".lock")
    with locked_file(lock_path, 'a', portalocker.LOCK_EX):
        yield


def atomic_write_json(path: Path, data: Dict[str, Any]) -> None:
    """Write JSON to a temp file in the same directory, then os.replace it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    """
    Read a JSON document.

    Returns:
        Parsed document, or None if the file does not exist.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        return None


def locked_read_modify_write_json(
    path: Path,
    modifier: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Read JSON, apply modifier, write back - all under the writer lock.

    The modifier may raise to abort; the document is left untouched then.

    Args:
        path: Path to JSON file.
        modifier: Function taking the existing document (None if absent)
            and returning the document to write.

    Returns:
        The modified data that was written.

    Example:
        >>> def bump(existing):
        ...     data = existing or {"count": 0}
        ...     data["count"] += 1
        ...     return data
        >>> locked_read_modify_write_json(counter_path, bump)
    """
    with write_guard(path):
        existing = read_json(path)
        modified = modifier(existing)
        atomic_write_json(path, modified)

    logger.debug(f"Wrote {path.name}")
    return modified


def locked_write_json(path: Path, data: Dict[str, Any]) -> None:
    """Replace a JSON document under the writer lock."""
    locked_read_modify_write_json(path, lambda _existing: data)
