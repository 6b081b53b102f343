"""Field descriptors and the registry the grammar compiler resolves them from.

A field descriptor is a named, reusable fragment of a regular expression plus
two pieces of metadata:

- ``optional``: the field (with its trailing separator) may be skipped;
- ``embedded_captures``: how many capture groups the fragment *itself*
  introduces beyond the wrapping group the compiler adds.  The count is
  declared, not inferred; :meth:`CompiledGrammar.parse
  <command_engine.grammar.compiler.CompiledGrammar.parse>` verifies the total
  and refuses to mis-assign captures when a declaration is wrong.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from command_engine.errors import FailureKind
from command_engine.names import NormalizedMap
from command_engine.result import Result, all_succeed, fail, succeed


@dataclass(frozen=True)
class FieldDescriptor:
    """One named pattern fragment.

    Attributes:
        name:              Field name, unique (case-insensitively) per registry.
        pattern:           Regular-expression fragment matched for the field.
        optional:          Default optionality; a template reference may force
                           it on with ``{{name?}}``.
        embedded_captures: Extra capture groups contained in ``pattern``.  When
                           non-zero the first of them supplies the field's text.
    """

    name: str
    pattern: str
    optional: bool = False
    embedded_captures: int = 0

    @classmethod
    def create(
        cls, name: str, pattern: str, *, optional: bool = False, embedded_captures: int = 0
    ) -> Result[FieldDescriptor]:
        """Validate and build a descriptor."""
        if not isinstance(name, str) or not name.strip():
            problem = f"Field name must be a non-empty string, got {name!r}."
        elif not isinstance(pattern, str) or not pattern:
            problem = f"Field {name}: pattern must be a non-empty string."
        elif isinstance(embedded_captures, bool) or not isinstance(embedded_captures, int):
            problem = f"Field {name}: embedded_captures must be an integer."
        elif embedded_captures < 0:
            problem = f"Field {name}: embedded_captures must be >= 0, got {embedded_captures}."
        else:
            problem = None
        if problem is not None:
            return fail(problem, FailureKind.CONFIGURATION)
        return succeed(
            cls(
                name=name.strip(),
                pattern=pattern,
                optional=bool(optional),
                embedded_captures=embedded_captures,
            )
        )

    @property
    def capture_count(self) -> int:
        """Groups this field contributes to a compiled expression."""
        return 1 + self.embedded_captures


class FieldRegistry:
    """Ordered, name-unique collection of :class:`FieldDescriptor`.

    Lookups are case-insensitive.  Adding a second descriptor under an
    existing name fails instead of replacing the first.
    """

    def __init__(self, fields: Iterable[FieldDescriptor] = ()) -> None:
        self._fields: NormalizedMap[FieldDescriptor] = NormalizedMap()
        for descriptor in fields:
            self.add(descriptor).get_value_or_throw()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, Any]]) -> Result[FieldRegistry]:
        """Build a registry from ``{name: {pattern, optional?, embedded_captures?}}``.

        Every entry is checked before reporting, so one failure lists every
        malformed field.
        """
        registry = cls()
        results: list[Result[Any]] = []
        for name, spec in raw.items():
            if not isinstance(spec, Mapping):
                results.append(fail(f"Field {name}: definition must be a mapping."))
                continue
            created = FieldDescriptor.create(
                str(name),
                spec.get("pattern"),
                optional=spec.get("optional", False),
                embedded_captures=spec.get("embedded_captures", 0),
            )
            results.append(created.on_success(registry.add))
        return all_succeed(results, registry).on_failure(
            lambda message: fail(message, FailureKind.CONFIGURATION)
        )

    def add(self, descriptor: FieldDescriptor) -> Result[FieldDescriptor]:
        """Register ``descriptor``; duplicate names fail and leave the registry unchanged."""
        return self._fields.add(descriptor.name, descriptor)

    def get(self, name: str) -> FieldDescriptor | None:
        return self._fields.get(name)

    @property
    def names(self) -> list[str]:
        return self._fields.names()

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self):
        return iter(self._fields.values())
