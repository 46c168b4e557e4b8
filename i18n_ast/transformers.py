"""Rewriters for the three kinds of translatable nodes.

Each rewriter returns the replacement source text for its node, or ``None``
when the node is not translatable, and stages exactly one registry entry per
replacement.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable, List, Optional, assert_never, cast

from .errors import TransformInvariantViolation
from .keys import DEFAULT_PREFIX, generate_key
from .locales import should_translate
from .structures import (
    LiteralText,
    MarkupText,
    RegistryEntry,
    TemplateText,
    TranslatableNode,
)
from .syntax import escape_surrogates

TRANSLATOR_IDENTIFIER = "i18next"
TRANSLATE_CALL = f"{TRANSLATOR_IDENTIFIER}.t"


@dataclass
class RewriteContext:
    """Per-file state shared by the rewriters."""

    locale: str
    key_prefix: str = DEFAULT_PREFIX
    key_factory: Callable[[str], str] = generate_key
    entries: List[RegistryEntry] = field(default_factory=list)

    def stage(self, text: str) -> str:
        key = self.key_factory(self.key_prefix)
        self.entries.append(RegistryEntry(key=key, text=text))
        return key


def annotated_key(key: str, text: str) -> str:
    """The key literal followed by the original text as a block comment."""

    comment = escape_surrogates(text).replace("*/", "*\\/")
    return f"{json.dumps(key)} /* {comment} */"


def translate_call(key: str, text: str, placeholders: Optional[List[str]] = None) -> str:
    arguments = annotated_key(key, text)
    if placeholders:
        arguments += ", { " + ", ".join(placeholders) + " }"
    return f"{TRANSLATE_CALL}({arguments})"


def rewrite_literal(node: LiteralText, context: RewriteContext) -> Optional[str]:
    if not should_translate(node.value, context.locale):
        return None
    key = context.stage(node.value)
    call = translate_call(key, node.value)
    if node.in_markup_attribute:
        return "{" + call + "}"
    return call


def rewrite_template(node: TemplateText, context: RewriteContext) -> Optional[str]:
    """Rewrite an interpolated template when every segment is translatable."""

    if not node.placeholder_names:
        raise TransformInvariantViolation(
            "Templates without placeholders are rewritten as literal text."
        )
    if not all(should_translate(part, context.locale) for part in node.literal_parts):
        return None
    if any(name is None for name in node.placeholder_names):
        raise TransformInvariantViolation(
            "Template placeholder is not a plain identifier; left untranslated."
        )

    pieces: List[str] = []
    bindings: List[str] = []
    for index, part in enumerate(node.literal_parts):
        pieces.append(part)
        if index < len(node.placeholder_names):
            name = cast(str, node.placeholder_names[index])
            pieces.append(f"{{{{{name}}}}}")
            if name not in bindings:
                bindings.append(name)
    text = "".join(pieces)

    key = context.stage(text)
    return translate_call(key, text, bindings)


def rewrite_markup(node: MarkupText, context: RewriteContext) -> Optional[str]:
    value = node.value.strip()
    if not should_translate(value, context.locale):
        return None
    start = node.value.index(value)
    leading = node.value[:start]
    trailing = node.value[start + len(value):]
    key = context.stage(value)
    return leading + "{" + translate_call(key, value) + "}" + trailing


def rewrite_node(node: TranslatableNode, context: RewriteContext) -> Optional[str]:
    if isinstance(node, LiteralText):
        return rewrite_literal(node, context)
    if isinstance(node, TemplateText):
        return rewrite_template(node, context)
    if isinstance(node, MarkupText):
        return rewrite_markup(node, context)
    assert_never(node)
