"""The :class:`Converter` wrapper and its chaining methods.

A converter is a pure function from an untyped value to a
:data:`~command_engine.result.Result` of a specific type.  Wrapping the
function in :class:`Converter` gives it the composition methods that every
converter shares (:meth:`~Converter.optional`, :meth:`~Converter.map`,
:meth:`~Converter.with_constraint`); the free-standing combinators live in
:mod:`command_engine.conversion.converters`.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from command_engine.errors import FailureKind
from command_engine.result import Failure, Result, Success, fail, succeed

T = TypeVar("T")
T2 = TypeVar("T2")


class OnError(str, Enum):
    """How a combinator treats an element or alternative that fails to convert."""

    FAIL_ON_ERROR = "failOnError"
    IGNORE_ERRORS = "ignoreErrors"


def describe(value: Any) -> str:
    """Render ``value`` for inclusion in a failure message."""
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)


class Converter(Generic[T]):
    """Callable-backed converter from ``Any`` to ``Result[T]``.

    Args:
        converter: Function that performs the conversion.  It must return a
                   :data:`~command_engine.result.Result` and must not raise.
    """

    def __init__(self, converter: Callable[[Any], Result[T]]) -> None:
        self._converter = converter

    def convert(self, value: Any) -> Result[T]:
        """Convert ``value``."""
        return self._converter(value)

    def __call__(self, value: Any) -> Result[T]:
        return self._converter(value)

    def convert_optional(
        self, value: Any, on_error: OnError = OnError.IGNORE_ERRORS
    ) -> Result[T | None]:
        """Convert ``value`` treating ``None`` and (optionally) bad input as absent.

        ``None`` always succeeds with ``None``.  A value that cannot be
        converted succeeds with ``None`` under ``IGNORE_ERRORS`` and propagates
        the original failure under ``FAIL_ON_ERROR``.
        """
        if value is None:
            return succeed(None)
        result = self._converter(value)
        if result.is_failure() and on_error == OnError.IGNORE_ERRORS:
            return succeed(None)
        return result

    def optional(self, on_error: OnError = OnError.IGNORE_ERRORS) -> Converter[T | None]:
        """Return a converter for an optional value; see :meth:`convert_optional`."""
        return Converter(lambda value: self.convert_optional(value, on_error))

    def map(self, mapper: Callable[[T], Result[T2]]) -> Converter[T2]:
        """Feed a successful value to ``mapper``; upstream failures short-circuit."""

        def _map(value: Any) -> Result[T2]:
            inner = self._converter(value)
            if inner.is_success():
                return mapper(inner.value)
            return fail(inner.message, inner.detail)

        return Converter(_map)

    def with_constraint(self, constraint: Callable[[T], bool | Result[T]]) -> Converter[T]:
        """Apply ``constraint`` to a successful value.

        A ``False`` return fails with a generic message; a returned
        :data:`~command_engine.result.Result` is used verbatim, allowing custom
        messages.  Any other return value fails the conversion.  The constraint
        is never evaluated after a failed conversion.
        """

        def _constrained(value: Any) -> Result[T]:
            result = self._converter(value)
            if result.is_failure():
                return result
            verdict = constraint(result.value)
            if isinstance(verdict, bool):
                if verdict:
                    return result
                return fail(f"Value {describe(result.value)} does not meet constraint.")
            if not isinstance(verdict, (Success, Failure)):
                return fail(
                    f"Constraint on {describe(result.value)} returned {describe(verdict)}, "
                    "expected a bool or a Result.",
                    FailureKind.CONVERSION,
                )
            return verdict

        return Converter(_constrained)
