"""Per-file transformation: parse, rewrite, format and write back."""

from __future__ import annotations

import asyncio
import html
import json
import pathlib
import re
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional

from tree_sitter import Node

from .configuration import I18nAstConfig
from .errors import ErrorCategory, ErrorRecord, TransformInvariantViolation
from .files import read_text, write_text_atomic
from .formatting import Formatter, build_formatter
from .keys import generate_key
from .registry import TranslationRegistry
from .structures import (
    FileReport,
    LiteralText,
    MarkupText,
    RegistryEntry,
    TemplateText,
    TranslatableNode,
)
from .syntax import (
    Edit,
    Replace,
    SourceTree,
    Visit,
    VisitResult,
    cook_string,
    is_field,
    parse_source,
    render,
    string_value,
    walk,
)
from .transformers import (
    TRANSLATE_CALL,
    TRANSLATOR_IDENTIFIER,
    RewriteContext,
    rewrite_node,
)

# Calls whose arguments are never rewritten: the translator itself, the
# bare ``t`` helper, console logging and module loading.
BUILTIN_SKIPPED_CALLEES: FrozenSet[str] = frozenset(
    {TRANSLATE_CALL, "t", "console.log", "require", "import"}
)

# Subtrees that only describe types; a call expression is not valid there.
TYPE_ONLY_NODES: FrozenSet[str] = frozenset(
    {
        "type_annotation",
        "opting_type_annotation",
        "omitting_type_annotation",
        "asserts_annotation",
        "type_predicate_annotation",
        "type_alias_declaration",
        "interface_declaration",
        "type_arguments",
        "type_parameters",
        "literal_type",
        "enum_declaration",
        "ambient_declaration",
    }
)

# A string stored under one of these fields is a name, not a value.
NAME_FIELDS = ("key", "name", "alias", "source")

# JSX text is one value across character references; tree-sitter splits it,
# so adjacent pieces are rewritten as one run.
MARKUP_PARTS = ("jsx_text", "html_character_reference")
MARKUP_CONTAINERS = ("jsx_element", "jsx_fragment")

_WHITESPACE = re.compile(r"\s+")


@dataclass
class FileTransform:
    """Result of rewriting one source text, before formatting."""

    path: pathlib.Path
    text: str
    entries: List[RegistryEntry] = field(default_factory=list)
    skipped: List[ErrorRecord] = field(default_factory=list)
    import_added: bool = False


class TransformationEngine:
    """Rewrites translatable text in one file at a time."""

    def __init__(
        self,
        config: I18nAstConfig,
        formatter: Optional[Formatter] = None,
        *,
        key_factory: Callable[[str], str] = generate_key,
    ) -> None:
        self.config = config
        self.formatter = formatter or build_formatter(config)
        self.key_factory = key_factory
        self.skipped_callees = BUILTIN_SKIPPED_CALLEES | frozenset(config.ignore_functions)

    def transform(self, source: str, path: pathlib.Path | str) -> FileTransform:
        """Rewrite ``source``; registry entries are returned, not committed."""

        tree = parse_source(source, path)
        context = RewriteContext(
            locale=self.config.locales,
            key_prefix=self.config.key_prefix,
            key_factory=self.key_factory,
        )
        visitor = _RewriteVisitor(tree, context, self.skipped_callees)
        edits = walk(tree.root, visitor)

        import_added = False
        if not self.has_translator_import(tree):
            edits.append(self._import_edit(tree))
            import_added = True

        return FileTransform(
            path=tree.path,
            text=render(tree, edits),
            entries=list(context.entries),
            skipped=visitor.skipped,
            import_added=import_added,
        )

    async def process_file(
        self, path: pathlib.Path, registry: TranslationRegistry
    ) -> FileReport:
        """Read, rewrite, format and overwrite one file.

        Staged entries reach the registry only once formatting has succeeded,
        and the file is written only after they are committed.
        """

        source = await asyncio.to_thread(read_text, path)
        result = await asyncio.to_thread(self.transform, source, path)
        formatted = await self.formatter.format(result.text, path)
        registry.add_all(result.entries)
        await asyncio.to_thread(write_text_atomic, path, formatted)
        return FileReport(
            path=path,
            entries=result.entries,
            skipped=result.skipped,
            import_added=result.import_added,
        )

    # --- Import management -------------------------------------------------

    def has_translator_import(self, tree: SourceTree) -> bool:
        for node in tree.root.named_children:
            if node.type != "import_statement":
                continue
            source = node.child_by_field_name("source")
            if source is None:
                continue
            if string_value(tree, source) == self.config.i18n_config_file_path:
                return True
        return False

    def _import_edit(self, tree: SourceTree) -> Edit:
        statement = (
            f"import {TRANSLATOR_IDENTIFIER} from "
            f"{json.dumps(self.config.i18n_config_file_path)};"
        )
        anchor = _prologue_end(tree.root)
        if anchor is None:
            return Edit(0, 0, statement + "\n")
        return Edit(anchor, anchor, "\n" + statement)


class _RewriteVisitor:
    """Decides, node by node, what the traversal does."""

    def __init__(
        self,
        tree: SourceTree,
        context: RewriteContext,
        skipped_callees: FrozenSet[str],
    ) -> None:
        self.tree = tree
        self.context = context
        self.skipped_callees = skipped_callees
        self.skipped: List[ErrorRecord] = []

    def __call__(self, node: Node) -> VisitResult:
        kind = node.type
        if kind == "import_statement" or kind in TYPE_ONLY_NODES:
            return Visit.SKIP_SUBTREE
        if kind == "call_expression":
            return self._call(node)
        if kind == "string":
            return self._string(node)
        if kind == "template_string":
            return self._template(node)
        if kind in MARKUP_PARTS:
            return self._markup(node)
        return Visit.CONTINUE

    def _call(self, node: Node) -> VisitResult:
        callee = node.child_by_field_name("function")
        if callee is None:
            return Visit.CONTINUE
        name = _WHITESPACE.sub("", self.tree.text(callee))
        if name in self.skipped_callees:
            return Visit.SKIP_SUBTREE
        return Visit.CONTINUE

    def _string(self, node: Node) -> VisitResult:
        parent = node.parent
        if parent is None:
            return Visit.CONTINUE
        if any(is_field(parent, name, node) for name in NAME_FIELDS):
            return Visit.SKIP_SUBTREE
        if _is_directive(node):
            return Visit.SKIP_SUBTREE
        candidate = LiteralText(
            value=string_value(self.tree, node),
            in_markup_attribute=parent.type == "jsx_attribute",
        )
        return self._apply(node, candidate)

    def _template(self, node: Node) -> VisitResult:
        if is_field(node.parent, "arguments", node):
            # Tagged template: the tag owns the raw text.
            return Visit.CONTINUE

        source = self.tree.source
        substitutions = [
            child for child in node.named_children if child.type == "template_substitution"
        ]
        parts: List[str] = []
        names: List[Optional[str]] = []
        cursor = node.start_byte + 1
        for substitution in substitutions:
            parts.append(source[cursor:substitution.start_byte].decode("utf-8"))
            names.append(self._placeholder_name(substitution))
            cursor = substitution.end_byte
        parts.append(source[cursor:node.end_byte - 1].decode("utf-8"))

        candidate: TranslatableNode
        if substitutions:
            candidate = TemplateText(tuple(parts), tuple(names))
        else:
            candidate = LiteralText(cook_string(parts[0]))
        return self._apply(node, candidate)

    def _markup(self, node: Node) -> VisitResult:
        parent = node.parent
        if parent is None or parent.type not in MARKUP_CONTAINERS:
            return Visit.CONTINUE
        previous = node.prev_sibling
        if previous is not None and previous.type in MARKUP_PARTS:
            # Covered by the run that starts at an earlier sibling.
            return Visit.SKIP_SUBTREE
        last = node
        while last.next_sibling is not None and last.next_sibling.type in MARKUP_PARTS:
            last = last.next_sibling
        raw = self.tree.source[node.start_byte:last.end_byte].decode("utf-8")
        return self._apply(node, MarkupText(html.unescape(raw)), end=last.end_byte)

    def _placeholder_name(self, substitution: Node) -> Optional[str]:
        expressions = [
            child for child in substitution.named_children if child.type != "comment"
        ]
        if len(expressions) == 1 and expressions[0].type == "identifier":
            return self.tree.text(expressions[0])
        return None

    def _apply(
        self,
        node: Node,
        candidate: TranslatableNode,
        end: Optional[int] = None,
    ) -> VisitResult:
        try:
            replacement = rewrite_node(candidate, self.context)
        except TransformInvariantViolation as exc:
            line = node.start_point[0] + 1
            self.skipped.append(
                ErrorRecord(
                    category=ErrorCategory.TRANSFORM,
                    message=f"{self.tree.path}:{line}: {exc}",
                    details=self.tree.text(node),
                )
            )
            return Visit.CONTINUE
        if replacement is None:
            return Visit.CONTINUE
        return Replace(replacement, end)


def _is_directive_statement(node: Node) -> bool:
    if node.type != "expression_statement":
        return False
    named = [child for child in node.named_children if child.type != "comment"]
    return len(named) == 1 and named[0].type == "string"


def _is_directive(string_node: Node) -> bool:
    """True for strings such as ``"use client"`` in a directive prologue."""

    statement = string_node.parent
    if statement is None or not _is_directive_statement(statement):
        return False
    body = statement.parent
    if body is None or body.type not in ("program", "statement_block"):
        return False
    for child in body.named_children:
        if child.type in ("comment", "hash_bang_line"):
            continue
        if not _is_directive_statement(child):
            return False
        if child.start_byte == statement.start_byte and child.end_byte == statement.end_byte:
            return True
    return False


def _prologue_end(program: Node) -> Optional[int]:
    """Byte offset after the hashbang line and directive prologue, if any."""

    anchor: Optional[int] = None
    for child in program.named_children:
        if child.type == "comment":
            continue
        if child.type == "hash_bang_line" or _is_directive_statement(child):
            anchor = child.end_byte
            continue
        break
    return anchor
