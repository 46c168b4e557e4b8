"""High-level orchestration of a rewrite run over many files."""

from __future__ import annotations

import asyncio
import pathlib
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .configuration import I18nAstConfig
from .engine import TransformationEngine
from .errors import ConfigurationError, ErrorRecord
from .files import list_entries
from .formatting import Formatter
from .registry import TranslationRegistry, emit
from .structures import FileReport
from .syntax import SUPPORTED_EXTENSIONS


@dataclass
class ExtractionSummary:
    """Report returned after a run completes."""

    entry_paths: List[pathlib.Path]
    output_path: pathlib.Path
    locale: str
    files_processed: int
    files_skipped: int
    imports_added: int
    translated_nodes: int
    skipped_nodes: int
    elapsed_seconds: float
    notes: List[ErrorRecord] = field(default_factory=list)


def is_candidate(path: pathlib.Path, exclude: Sequence[str]) -> bool:
    """Supported extension and no excluded fragment anywhere in the path."""

    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        return False
    text = str(path)
    return not any(fragment and fragment in text for fragment in exclude)


def validate_entries(config: I18nAstConfig) -> List[pathlib.Path]:
    """Resolve entry paths, failing before any file is touched."""

    resolved: List[pathlib.Path] = []
    missing: List[str] = []
    for entry in config.entry:
        path = config.resolve(entry)
        if not path.exists():
            missing.append(str(path))
            continue
        resolved.append(path)
    if missing:
        raise ConfigurationError(
            "Entry paths not found:\n" + "\n".join(f"- {item}" for item in missing)
        )
    return resolved


class ExtractionRunner:
    """Coordinates discovery, per-file rewriting and resource emission."""

    def __init__(
        self,
        *,
        config: I18nAstConfig,
        formatter: Optional[Formatter] = None,
        engine: Optional[TransformationEngine] = None,
        verbose: bool = False,
    ) -> None:
        self.config = config
        self.engine = engine or TransformationEngine(config, formatter)
        self.verbose = verbose
        self.registry = TranslationRegistry()
        self.files_skipped = 0

    def run(self) -> ExtractionSummary:
        return asyncio.run(self.run_async())

    async def run_async(self) -> ExtractionSummary:
        start_time = time.time()
        entry_paths = validate_entries(self.config)
        self.registry = TranslationRegistry()
        self.files_skipped = 0

        files = await self.discover(entry_paths)
        if self.verbose:
            print(
                f"Found {len(files)} source files "
                f"({self.files_skipped} skipped by extension or exclude rules)."
            )

        reports = await self._process_all(files)
        output_path = await asyncio.to_thread(
            emit,
            self.registry,
            self.config.output_dir,
            self.config.locales,
            self.config.output_format,
        )
        if self.verbose:
            print(f"Wrote {len(self.registry)} entries to {output_path}.")

        notes = [record for report in reports for record in report.skipped]
        return ExtractionSummary(
            entry_paths=entry_paths,
            output_path=output_path,
            locale=self.config.locales,
            files_processed=len(reports),
            files_skipped=self.files_skipped,
            imports_added=sum(1 for report in reports if report.import_added),
            translated_nodes=sum(report.rewritten_nodes for report in reports),
            skipped_nodes=len(notes),
            elapsed_seconds=time.time() - start_time,
            notes=notes,
        )

    async def discover(self, entry_paths: Sequence[pathlib.Path]) -> List[pathlib.Path]:
        """Expand entry paths into the ordered, de-duplicated list of files."""

        found: List[pathlib.Path] = []
        for entry in entry_paths:
            if await asyncio.to_thread(entry.is_dir):
                found.extend(await self._walk(entry))
            elif self._accept(entry):
                found.append(entry)

        unique: List[pathlib.Path] = []
        seen = set()
        for path in found:
            key = path.resolve()
            if key in seen:
                continue
            seen.add(key)
            unique.append(path)
        return unique

    async def _walk(self, directory: pathlib.Path) -> List[pathlib.Path]:
        entries = await list_entries(directory)
        nested = await asyncio.gather(
            *(self._walk(entry.path) for entry in entries if entry.is_dir)
        )
        files = [
            entry.path for entry in entries if not entry.is_dir and self._accept(entry.path)
        ]
        for paths in nested:
            files.extend(paths)
        return files

    def _accept(self, path: pathlib.Path) -> bool:
        if is_candidate(path, self.config.exclude):
            return True
        self.files_skipped += 1
        return False

    async def _process_all(self, files: Sequence[pathlib.Path]) -> List[FileReport]:
        """Run every file through the engine with bounded concurrency.

        The first failure cancels the files still in flight; all tasks are
        joined before the error propagates.
        """

        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def guarded(path: pathlib.Path) -> FileReport:
            async with semaphore:
                report = await self.engine.process_file(path, self.registry)
            if self.verbose:
                print(
                    f"Rewrote {report.rewritten_nodes} strings in {path}"
                    + (" (import added)." if report.import_added else ".")
                )
                for record in report.skipped:
                    print(f"  Skipped: {record.message}")
            return report

        tasks = [asyncio.create_task(guarded(path)) for path in files]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
