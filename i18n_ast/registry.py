"""Shared key → text registry and the resource module emitter."""

from __future__ import annotations

import json
import pathlib
import threading
from typing import Dict, Iterable, Iterator

from .errors import KeyCollisionError
from .files import write_text_atomic
from .structures import RegistryEntry
from .syntax import escape_surrogates

OUTPUT_FORMATS = ("cjs", "esm", "json")


class TranslationRegistry:
    """Insert-only mapping from generated keys to original text.

    File transforms run on worker threads, so every insertion takes the lock.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()

    def add(self, key: str, text: str) -> None:
        with self._lock:
            if key in self._entries:
                raise KeyCollisionError(key)
            self._entries[key] = text

    def add_all(self, entries: Iterable[RegistryEntry]) -> None:
        """Insert a batch; nothing is inserted when any key collides."""

        batch = list(entries)
        with self._lock:
            seen = set()
            for entry in batch:
                if entry.key in self._entries or entry.key in seen:
                    raise KeyCollisionError(entry.key)
                seen.add(entry.key)
            for entry in batch:
                self._entries[entry.key] = entry.text

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())


def output_path_for(
    output_dir: pathlib.Path, locale: str, output_format: str = "cjs"
) -> pathlib.Path:
    extension = "json" if output_format == "json" else "js"
    return output_dir / f"{locale}.{extension}"


def render_resource(entries: Dict[str, str], output_format: str = "cjs") -> str:
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format '{output_format}'.")
    body = escape_surrogates(
        json.dumps(dict(sorted(entries.items())), ensure_ascii=False, indent=2)
    )
    if output_format == "json":
        return body + "\n"
    if output_format == "esm":
        return f"export default {body};\n"
    return f"module.exports = {body};\n"


def emit(
    registry: TranslationRegistry,
    output_dir: pathlib.Path,
    locale: str,
    output_format: str = "cjs",
) -> pathlib.Path:
    """Write the whole registry to ``<output_dir>/<locale>.<ext>``.

    Any existing file is replaced; entries from earlier runs are not merged.
    """

    destination = output_path_for(output_dir, locale, output_format)
    write_text_atomic(destination, render_resource(registry.snapshot(), output_format))
    return destination
