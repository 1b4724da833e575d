from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Callable, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CacheKey(str, Enum):
    MIN_MAX = "min-max"
    TOTAL_PER_INDEX = "total-per-index"
    TOTAL_SUM = "total-sum"


@dataclass
class _Entry:
    generation: int
    value: Any


@dataclass
class DerivedCache:
    """Derived values stamped with the data generation they were built from.

    An entry is only returned while ``generation()`` still matches its stamp,
    so a bumped generation invalidates every entry at once.
    """

    generation: Callable[[], int]
    _entries: dict[CacheKey, _Entry] = field(default_factory=dict)

    def get(self, key: CacheKey) -> Any | None:
        entry = self._entries.get(key)
        if entry is None or entry.generation != self.generation():
            return None
        return entry.value

    def add(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = _Entry(generation=self.generation(), value=value)

    def get_or_build(self, key: CacheKey, build: Callable[[], T]) -> T:
        value = self.get(key)
        if value is None:
            value = build()
            self.add(key, value)
            LOGGER.debug("rebuilt derived value %s at generation %d", key.value, self.generation())
        return value

    def invalidate(self) -> None:
        self._entries.clear()
