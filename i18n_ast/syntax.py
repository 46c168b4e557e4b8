"""Parsing, traversal and printing of JavaScript/TypeScript sources.

Parsing is delegated to tree-sitter. Printing splices replacement text into
the original bytes, so every untouched region keeps its exact layout and
line position.
"""

from __future__ import annotations

import html
import pathlib
import re
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import Callable, Iterator, List, Optional, Sequence, Union

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from .errors import ParseError

SUPPORTED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")


@dataclass
class SourceTree:
    """One parsed file: the tree plus the bytes it was parsed from."""

    path: pathlib.Path
    source: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8")


@dataclass(frozen=True)
class Edit:
    """Replace ``source[start:end]`` with ``text``; ``start == end`` inserts."""

    start: int
    end: int
    text: str


class Visit(Enum):
    CONTINUE = auto()
    SKIP_SUBTREE = auto()


@dataclass(frozen=True)
class Replace:
    """Replace the visited node, or everything up to ``end`` when it is given."""

    text: str
    end: Optional[int] = None


VisitResult = Union[Visit, Replace]
Visitor = Callable[[Node], VisitResult]


@lru_cache(maxsize=None)
def _language(dialect: str) -> Language:
    if dialect == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    return Language(tree_sitter_typescript.language_tsx())


def dialect_for(path: pathlib.Path) -> str:
    """The plain TypeScript grammar rejects JSX but accepts ``<T>x`` casts."""

    return "typescript" if path.suffix.lower() == ".ts" else "tsx"


def parse_source(text: str, path: pathlib.Path | str) -> SourceTree:
    """Parse source text, raising ParseError on any syntax error."""

    path = pathlib.Path(path)
    source = text.encode("utf-8")
    parser = Parser(_language(dialect_for(path)))
    tree = parser.parse(source)
    if tree.root_node.has_error:
        bad = _first_error(tree.root_node) or tree.root_node
        row, column = bad.start_point
        message = f"Missing {bad.type}" if bad.is_missing else "Syntax error"
        raise ParseError(path, row + 1, column + 1, message)
    return SourceTree(path=path, source=source, tree=tree)


def _first_error(node: Node) -> Optional[Node]:
    if node.is_error or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def iter_nodes(root: Node) -> Iterator[Node]:
    """Pre-order iteration over every node below (and including) root."""

    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def walk(root: Node, visitor: Visitor) -> List[Edit]:
    """Traverse the tree once and collect the replacements the visitor asks for.

    A replaced node's subtree is not visited, so edits never overlap. A
    visitor that widens a replacement with ``Replace.end`` must skip the
    siblings it covered.
    """

    edits: List[Edit] = []
    stack = [root]
    while stack:
        node = stack.pop()
        result = visitor(node)
        if isinstance(result, Replace):
            end = node.end_byte if result.end is None else result.end
            edits.append(Edit(node.start_byte, end, result.text))
            continue
        if result is Visit.SKIP_SUBTREE:
            continue
        stack.extend(reversed(node.children))
    return edits


def render(tree: SourceTree, edits: Sequence[Edit]) -> str:
    """Apply edits to the original bytes and decode the result."""

    output = tree.source
    last_start: Optional[int] = None
    for edit in sorted(edits, key=lambda item: (item.start, item.end), reverse=True):
        if last_start is not None and edit.end > last_start:
            raise ValueError(
                f"Overlapping edits at bytes {edit.start}-{edit.end} in {tree.path}"
            )
        output = output[:edit.start] + edit.text.encode("utf-8") + output[edit.end:]
        last_start = edit.start
    return output.decode("utf-8")


def is_field(parent: Optional[Node], field_name: str, node: Node) -> bool:
    """True when ``node`` is the child stored under ``field_name`` of ``parent``."""

    if parent is None:
        return False
    child = parent.child_by_field_name(field_name)
    return (
        child is not None
        and child.start_byte == node.start_byte
        and child.end_byte == node.end_byte
        and child.type == node.type
    )


# --- Literal decoding ------------------------------------------------------

_ESCAPE_PATTERN = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[0-7]{1,3}|\r\n|.)",
    re.DOTALL,
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}
_LINE_CONTINUATIONS = {"\n", "\r", "\r\n", "\u2028", "\u2029"}


def _decode_escape(match: re.Match[str]) -> str:
    token = match.group(1)
    if token in _LINE_CONTINUATIONS:
        return ""
    if token.startswith("u{"):
        return chr(int(token[2:-1], 16))
    if token.startswith("u") and len(token) == 5:
        return chr(int(token[1:], 16))
    if token.startswith("x") and len(token) == 3:
        return chr(int(token[1:], 16))
    if token.isdigit():
        return chr(int(token, 8))
    return _SIMPLE_ESCAPES.get(token, token)


def cook_string(raw: str) -> str:
    """Decode the escapes of a JS string body (quotes already removed)."""

    decoded = _ESCAPE_PATTERN.sub(_decode_escape, raw)
    # \uD83D\uDE00 style pairs decode to two surrogates; join them.
    return decoded.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def string_value(tree: SourceTree, node: Node) -> str:
    """The runtime value of a ``string`` node."""

    raw = tree.source[node.start_byte + 1:node.end_byte - 1].decode("utf-8")
    parent = node.parent
    if parent is not None and parent.type == "jsx_attribute":
        return html.unescape(raw)
    return cook_string(raw)


_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def escape_surrogates(text: str) -> str:
    """Spell unpaired surrogates as ``\\uXXXX`` so the text can be UTF-8 encoded.

    ``"\\uD800"`` is a valid JS literal whose value cannot be stored in a
    UTF-8 file; the escaped form is valid inside JS and JSON strings.
    """

    return _LONE_SURROGATE.sub(lambda match: f"\\u{ord(match.group()):04x}", text)
