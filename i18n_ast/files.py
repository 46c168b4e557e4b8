"""File-system helpers: directory listing and atomic writes."""

from __future__ import annotations

import asyncio
import os
import pathlib
import tempfile
from typing import List

from .errors import SourceIOError
from .structures import DirectoryEntry


def _scan(directory: pathlib.Path) -> List[DirectoryEntry]:
    with os.scandir(directory) as iterator:
        return [
            DirectoryEntry(path=pathlib.Path(entry.path), is_dir=entry.is_dir())
            for entry in iterator
        ]


async def list_entries(directory: pathlib.Path) -> List[DirectoryEntry]:
    """List one directory level without blocking the event loop."""

    try:
        entries = await asyncio.to_thread(_scan, directory)
    except OSError as exc:
        raise SourceIOError(directory, f"Could not list directory ({exc})") from exc
    return sorted(entries, key=lambda entry: entry.path.name)


def read_text(path: pathlib.Path) -> str:
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceIOError(path, f"Could not read file ({exc})") from exc


def write_text_atomic(path: pathlib.Path, data: str) -> None:
    """Write through a temporary sibling file, then replace the target.

    Either the full content lands at ``path`` or the previous file stays.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    orig_mode = None
    try:
        orig_mode = path.stat().st_mode & 0o777
    except OSError:
        orig_mode = None

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            delete=False,
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            encoding="utf-8",
            newline="",
        ) as handle:
            tmp_name = handle.name
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if orig_mode is not None:
            os.chmod(tmp_name, orig_mode)
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, UnicodeEncodeError) as exc:
        raise SourceIOError(path, f"Could not write file ({exc})") from exc
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
