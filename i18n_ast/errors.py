"""Error definitions for the i18n-ast source rewriter."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises problems collected while processing a run."""

    TRANSFORM = auto()


class I18nAstError(Exception):
    """Base exception for all custom errors."""


class ConfigurationError(I18nAstError):
    """Raised when configuration is missing, unreadable or invalid."""


class ParseError(I18nAstError):
    """Raised when a source file is not valid for its dialect."""

    def __init__(
        self,
        path: pathlib.Path | str,
        line: int,
        column: int,
        message: str = "Syntax error",
    ) -> None:
        self.path = pathlib.Path(path)
        self.line = line
        self.column = column
        super().__init__(f"{self.path}:{line}:{column}: {message}")


class TransformInvariantViolation(I18nAstError):
    """Raised when a single node cannot be rewritten safely.

    The engine treats this as recoverable: the node stays untranslated and
    the file continues.
    """


class SourceIOError(I18nAstError):
    """Raised when reading or writing a file fails."""

    def __init__(self, path: pathlib.Path | str, message: str) -> None:
        self.path = pathlib.Path(path)
        super().__init__(f"{self.path}: {message}")


class FormatterError(I18nAstError):
    """Raised when the formatter cannot produce output for a file."""

    def __init__(self, path: pathlib.Path | str | None, message: str) -> None:
        self.path = pathlib.Path(path) if path is not None else None
        prefix = f"{self.path}: " if self.path is not None else ""
        super().__init__(f"{prefix}{message}")


class KeyCollisionError(I18nAstError):
    """Raised when a generated key is already present in the registry."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"Generated key '{key}' is already registered. "
            "Keys carry 32 bits of entropy; rerun to draw fresh keys."
        )


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
