"""Tag filters with AND semantics, parsed from KEY=VALUE tokens."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..exceptions import MalformedFilter, UnsafeFilterValue

logger = logging.getLogger(__name__)

# Characters that could break out of a quoted query expression.
UNSAFE_CHARACTERS = frozenset("\"'`\\$")


@dataclass(frozen=True)
class TagFilter:
    key: str
    value: str

    @classmethod
    def parse(cls, token: str) -> TagFilter:
        """Split ``token`` on its first ``=``; the value may itself contain ``=``."""
        key, sep, value = token.partition("=")
        if not sep:
            raise MalformedFilter(f"Invalid tag format '{token}': must contain '=' character")

        key = key.strip()
        if not key:
            raise MalformedFilter(f"Invalid tag format '{token}': key cannot be empty")
        if UNSAFE_CHARACTERS.intersection(key):
            raise UnsafeFilterValue(f"Invalid tag format '{token}': key contains unsafe characters")

        value = value.strip()
        if not value:
            raise MalformedFilter(f"Invalid tag format '{token}': value cannot be empty")
        if UNSAFE_CHARACTERS.intersection(value):
            raise UnsafeFilterValue(f"Invalid tag format '{token}': value contains unsafe characters")

        return cls(key, value)

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


class TagFilterSet:
    """Ordered, immutable collection of tag filters. A resource matches only if it carries every tag.

    Insertion order is kept for display; matching does not depend on it.
    """

    def __init__(self, filters: Iterable[TagFilter] = ()):
        self._filters: tuple[TagFilter, ...] = tuple(filters)

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> TagFilterSet:
        return cls(TagFilter.parse(token) for token in tokens)

    def add_filter(self, token: str) -> TagFilterSet:
        """Return a new set with the filter parsed from ``token`` appended."""
        return TagFilterSet((*self._filters, TagFilter.parse(token)))

    @property
    def filters(self) -> tuple[TagFilter, ...]:
        return self._filters

    def count(self) -> int:
        return len(self._filters)

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self):
        return iter(self._filters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagFilterSet):
            return NotImplemented
        return set(self._filters) == set(other._filters)

    def __hash__(self) -> int:
        return hash(frozenset(self._filters))

    def __repr__(self) -> str:
        return f"TagFilterSet({[str(f) for f in self._filters]!r})"

    def matches(self, tags: Mapping[str, str]) -> bool:
        """True if ``tags`` contains every (key, value) pair of this set."""
        for tag_filter in self._filters:
            if tags.get(tag_filter.key) != tag_filter.value:
                return False
        return True

    def apply(self, resources: list[dict], tags_of) -> list[dict]:
        """Keep the raw resources whose projected tag mapping matches every filter."""
        result = [raw for raw in resources if self.matches(tags_of(raw))]
        filtered = len(resources) - len(result)
        if filtered:
            logger.debug("Tag filter removed %d of %d resources", filtered, len(resources))
        return result

    def describe(self, noun: str = "databases") -> str:
        """Human-readable summary used in progress messages."""
        if not self._filters:
            return f"all {noun}"
        if len(self._filters) == 1:
            return f"{noun} with {self._filters[0]}"
        return f"{noun} with {len(self._filters)} tag filters"
