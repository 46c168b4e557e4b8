"""Core data structures for the i18n-ast rewriter."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .errors import ErrorRecord


@dataclass(frozen=True)
class LiteralText:
    """A plain string literal (or a template without placeholders)."""

    value: str
    in_markup_attribute: bool = False


@dataclass(frozen=True)
class TemplateText:
    """A template literal split into its raw segments and placeholders.

    ``literal_parts`` always has one more element than
    ``placeholder_names``. A name is ``None`` when the placeholder is not a
    plain identifier.
    """

    literal_parts: Tuple[str, ...]
    placeholder_names: Tuple[Optional[str], ...]


@dataclass(frozen=True)
class MarkupText:
    """Raw text between JSX tags, surrounding whitespace included."""

    value: str


TranslatableNode = Union[LiteralText, TemplateText, MarkupText]


@dataclass(frozen=True)
class RegistryEntry:
    key: str
    text: str


@dataclass(frozen=True)
class DirectoryEntry:
    path: pathlib.Path
    is_dir: bool


@dataclass
class FileReport:
    """Outcome of processing one source file."""

    path: pathlib.Path
    entries: List[RegistryEntry] = field(default_factory=list)
    skipped: List[ErrorRecord] = field(default_factory=list)
    import_added: bool = False

    @property
    def rewritten_nodes(self) -> int:
        return len(self.entries)
