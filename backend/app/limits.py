"""The unlimited sentinel and comparisons that respect it."""
from __future__ import annotations

from enum import Enum
from typing import Union


class Unlimited(str, Enum):
    """Sentinel standing in for "no numeric ceiling"."""

    UNLIMITED = "unlimited"


UNLIMITED = Unlimited.UNLIMITED

Limit = Union[int, Unlimited]


def is_unlimited(limit: Limit) -> bool:
    return limit is UNLIMITED


def limit_exceeds(limit: Limit, other: Limit) -> bool:
    """Return whether ``limit`` is strictly greater than ``other``."""

    if is_unlimited(other):
        return False
    if is_unlimited(limit):
        return True
    return limit > other


def limit_allows(limit: Limit, count: int) -> bool:
    """Return whether one more unit fits when ``count`` units are already used."""

    if is_unlimited(limit):
        return True
    return count < limit
