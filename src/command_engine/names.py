"""Normalized identifiers and the ordered registry built on them.

Field descriptors and command tables are keyed by a *normalized* name so that
``"Tier"``, ``" tier "`` and ``"TIER"`` all refer to the same entry.  A
:class:`NormalizedMap` enforces uniqueness at insertion time instead of
silently shadowing an existing entry.

Normalization rules:
- leading/trailing whitespace is stripped;
- the result is lower-cased;
- every non-word character is removed (``"zone-of-interest"`` →
  ``"zoneofinterest"``);
- an empty name, before or after normalization, is rejected.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Generic, TypeVar

from command_engine.errors import FailureKind
from command_engine.result import Result, fail, succeed

T = TypeVar("T")

_NON_WORD = re.compile(r"\W")


def normalize_name(name: str) -> Result[str]:
    """Return the normalized form of ``name`` or a failure for unusable input."""
    if not isinstance(name, str):
        return fail(f"Cannot normalize a name of type {type(name).__name__}.")
    normalized = _NON_WORD.sub("", name.strip().lower())
    if not normalized:
        return fail(f"Cannot normalize empty name {name!r}.")
    return succeed(normalized)


class NormalizedMap(Generic[T]):
    """Insertion-ordered mapping keyed by normalized names.

    The original spelling of each key is kept for display purposes;
    lookups use the normalized form.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, T]] = {}

    def add(self, name: str, value: T) -> Result[T]:
        """Insert ``value`` under ``name``; fail if the name is already taken."""
        normalized = normalize_name(name)
        if normalized.is_failure():
            return fail(normalized.message, FailureKind.CONFIGURATION)
        key = normalized.value
        if key in self._entries:
            existing = self._entries[key][0]
            return fail(
                f"Duplicate name {name!r} (already registered as {existing!r}).",
                FailureKind.DUPLICATE_NAME,
            )
        self._entries[key] = (name, value)
        return succeed(value)

    def get(self, name: str) -> T | None:
        normalized = normalize_name(name)
        if normalized.is_failure():
            return None
        entry = self._entries.get(normalized.value)
        return entry[1] if entry is not None else None

    def get_strict(self, name: str) -> Result[T]:
        """Like :meth:`get` but fails when ``name`` is unknown."""
        value = self.get(name)
        if value is None:
            return fail(f"Element {name!r} does not exist.")
        return succeed(value)

    def names(self) -> list[str]:
        """Original spellings in insertion order."""
        return [original for original, _ in self._entries.values()]

    def values(self) -> list[T]:
        return [value for _, value in self._entries.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
