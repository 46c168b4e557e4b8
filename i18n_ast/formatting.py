"""Formatter abstractions applied to rewritten sources."""

from __future__ import annotations

import asyncio
import json
import os
import pathlib
import shutil
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .configuration import I18nAstConfig
from .errors import FormatterError

DEFAULT_PARSER = "typescript"


class Formatter(ABC):
    """Abstract adapter for code formatters."""

    @abstractmethod
    async def format(self, text: str, path: pathlib.Path) -> str:
        """Return the formatted text for the file at ``path``."""


class PassthroughFormatter(Formatter):
    """Returns the printed text unchanged (useful for testing)."""

    async def format(self, text: str, path: pathlib.Path) -> str:
        return text


class PrettierFormatter(Formatter):
    """Formats sources with the ``prettier`` executable."""

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        *,
        command: Optional[Sequence[str]] = None,
        base_dir: Optional[pathlib.Path] = None,
    ) -> None:
        self.options: Dict[str, Any] = {"parser": DEFAULT_PARSER}
        self.options.update(options or {})
        self.base_dir = base_dir or pathlib.Path.cwd()
        self._command = list(command) if command else None

    def resolve_command(self) -> List[str]:
        if self._command:
            return list(self._command)
        local = self.base_dir / "node_modules" / ".bin" / "prettier"
        if local.exists():
            return [str(local)]
        found = shutil.which("prettier")
        if found:
            return [found]
        raise FormatterError(
            None,
            "prettier executable not found. Install it (npm i -D prettier), "
            "set prettier_command, or use `formatter: none`.",
        )

    async def format(self, text: str, path: pathlib.Path) -> str:
        command = self.resolve_command()
        config_file = self._write_options()
        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    "--config",
                    config_file,
                    "--stdin-filepath",
                    str(path),
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                raise FormatterError(path, f"Could not start prettier ({exc})") from exc
            stdout, stderr = await process.communicate(text.encode("utf-8"))
        finally:
            os.unlink(config_file)

        if process.returncode != 0:
            detail = stderr.decode("utf-8", "replace").strip()
            raise FormatterError(
                path,
                f"prettier exited with status {process.returncode}: {detail}",
            )
        return stdout.decode("utf-8")

    def _write_options(self) -> str:
        with tempfile.NamedTemporaryFile(
            "w",
            delete=False,
            suffix=".json",
            prefix="i18n-ast-prettierrc-",
            encoding="utf-8",
        ) as handle:
            json.dump(self.options, handle)
            return handle.name


def build_formatter(config: I18nAstConfig) -> Formatter:
    """Instantiate the formatter selected by configuration."""

    if config.formatter == "none":
        return PassthroughFormatter()
    return PrettierFormatter(
        config.prettierrc,
        command=config.prettier_command,
        base_dir=config.base_dir,
    )
