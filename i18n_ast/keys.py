"""Translation key generation."""

from __future__ import annotations

import math
import uuid

DEFAULT_PREFIX = "prefix"
KEY_HEX_LENGTH = 8


def generate_key(prefix: str = DEFAULT_PREFIX) -> str:
    """Return ``<prefix>.<8 hex chars>`` drawn from a fresh UUID4.

    Uniqueness is probabilistic; the registry reports duplicates.
    """

    return f"{prefix}.{uuid.uuid4().hex[:KEY_HEX_LENGTH]}"


def collision_probability(count: int) -> float:
    """Birthday-bound estimate of any collision among ``count`` keys."""

    if count < 2:
        return 0.0
    space = 16 ** KEY_HEX_LENGTH
    return -math.expm1(-count * (count - 1) / (2 * space))
