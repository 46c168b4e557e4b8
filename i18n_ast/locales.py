"""Locale detection for translatable text."""

from __future__ import annotations

import re
from typing import Dict

LOCALE_PATTERNS: Dict[str, re.Pattern[str]] = {
    "zh": re.compile(r"[一-龥]"),
    "en": re.compile(r"[A-Za-z]"),
    "fr": re.compile(r"[A-Za-zÀ-ÖØ-öø-ÿœç]", re.IGNORECASE),
    "es": re.compile(r"[A-Za-zÁÉÍÓÚÜÑáéíóúüñ]", re.IGNORECASE),
}

SUPPORTED_LOCALES = tuple(LOCALE_PATTERNS)


def should_translate(text: str, locale: str) -> bool:
    """Return True when the text carries script content for the locale."""

    pattern = LOCALE_PATTERNS.get(locale)
    if pattern is None:
        return False
    if not text or not text.strip():
        return False
    return pattern.search(text) is not None
