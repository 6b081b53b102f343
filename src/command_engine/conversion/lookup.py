"""Converters that resolve names through an external search directory.

The engine does not own a search index.  Place and entity names are resolved
through any object satisfying :class:`SearchDirectory`, and the result of the
lookup is exposed as an ordinary converter so it composes with the rest of the
conversion engine (e.g. inside :func:`~command_engine.conversion.converters.object_of`).

Resolution order:
1. Exact lookup.  One hit wins; several hits are ambiguous.
2. Fuzzy lookup (unless disabled).  The best-scoring item at or above
   ``min_score`` wins; a tie for the best score is ambiguous.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from command_engine.conversion.converter import Converter, describe
from command_engine.errors import FailureKind
from command_engine.result import Result, fail, succeed

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class SearchDirectory(Protocol[T_co]):
    """Exact and fuzzy lookup by name.

    ``lookup_fuzzy`` returns ``(item, score)`` pairs ordered best-first with
    ``score`` in ``[0.0, 1.0]``.
    """

    def lookup_exact(self, name: str) -> Sequence[T_co]: ...

    def lookup_fuzzy(self, name: str) -> Sequence[tuple[T_co, float]]: ...


@dataclass(frozen=True)
class LookupOptions:
    """Tuning for :func:`lookup`.

    Attributes:
        min_score:   Lowest fuzzy score accepted as a match.
        allow_fuzzy: When ``False`` only exact hits resolve.
        description: Noun used in failure messages (``"gym"``, ``"boss"``).
    """

    min_score: float = 0.5
    allow_fuzzy: bool = True
    description: str = "item"


def lookup(directory: SearchDirectory[T], options: LookupOptions | None = None) -> Converter[T]:
    """Return a converter from a name string to exactly one directory item."""
    opts = options or LookupOptions()

    def _lookup(value: Any) -> Result[T]:
        if not isinstance(value, str) or not value.strip():
            return fail(f"Not a {opts.description} name: {describe(value)}", FailureKind.CONVERSION)
        name = value.strip()

        exact = list(directory.lookup_exact(name))
        if len(exact) == 1:
            return succeed(exact[0])
        if len(exact) > 1:
            return fail(
                f'Ambiguous {opts.description} "{name}" matches {len(exact)} entries.',
                FailureKind.AMBIGUOUS,
            )

        if not opts.allow_fuzzy:
            return fail(f'No {opts.description} named "{name}".', FailureKind.CONVERSION)

        matches = [(item, score) for item, score in directory.lookup_fuzzy(name)]
        matches = [match for match in matches if match[1] >= opts.min_score]
        if not matches:
            return fail(f'No {opts.description} matches "{name}".', FailureKind.CONVERSION)

        matches.sort(key=lambda match: match[1], reverse=True)
        best_item, best_score = matches[0]
        if len(matches) > 1 and matches[1][1] == best_score:
            return fail(
                f'Ambiguous {opts.description} "{name}": several entries score {best_score:.2f}.',
                FailureKind.AMBIGUOUS,
            )
        logger.debug(
            "Fuzzy %s lookup %r resolved with score %.2f", opts.description, name, best_score
        )
        return succeed(best_item)

    return Converter(_lookup)
