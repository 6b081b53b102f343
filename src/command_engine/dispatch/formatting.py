"""Output targets and per-target formatter sets.

A formatter is a pure function from a command's typed result to a rendered
string.  Which formatter runs is selected by a :class:`FormatTarget`; a
:class:`FormatterSet` falls back to the plain-text formatter when a command
has nothing specific for the requested target.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from command_engine.errors import FailureKind
from command_engine.result import Result, capture_result, fail, succeed

Formatter = Callable[[Any], str]


class FormatTarget(str, Enum):
    """Rendering destinations."""

    TEXT = "text"
    MARKDOWN = "markdown"
    EMBED = "embed"


def resolve_target(target: FormatTarget | str) -> Result[FormatTarget]:
    """Look up ``target`` by value; an unknown name is a ``FORMAT`` failure."""
    try:
        return succeed(FormatTarget(target))
    except ValueError:
        expected = ", ".join(member.value for member in FormatTarget)
        return fail(
            f"Unknown format target {target!r}; expected one of {expected}.", FailureKind.FORMAT
        )


class FormatterSet:
    """Formatters keyed by :class:`FormatTarget`, with ``TEXT`` as the fallback."""

    def __init__(self, formatters: Mapping[FormatTarget | str, Formatter] | None = None) -> None:
        self._formatters: dict[FormatTarget, Formatter] = {}
        for target, formatter in (formatters or {}).items():
            if not callable(formatter):
                raise TypeError(f"Formatter for {target!r} is not callable.")
            self._formatters[FormatTarget(target)] = formatter

    @classmethod
    def create(
        cls, formatters: Mapping[FormatTarget | str, Formatter] | None = None
    ) -> Result[FormatterSet]:
        return capture_result(lambda: cls(formatters)).on_failure(
            lambda message: fail(message, FailureKind.CONFIGURATION)
        )

    @property
    def targets(self) -> list[FormatTarget]:
        return list(self._formatters)

    def get(self, target: FormatTarget | str) -> Formatter | None:
        """Formatter for ``target``, else the ``TEXT`` formatter, else ``None``.

        An unknown target name also yields ``None``.
        """
        resolved = resolve_target(target)
        if resolved.is_failure():
            return None
        return self._formatters.get(resolved.value, self._formatters.get(FormatTarget.TEXT))

    def format(self, value: Any, target: FormatTarget | str = FormatTarget.TEXT) -> Result[str]:
        """Render ``value``; a formatter that raises becomes a ``FORMAT`` failure.

        With no formatter at all the value's ``str()`` is used.  An unknown
        target name is a ``FORMAT`` failure.
        """
        resolved = resolve_target(target)
        if resolved.is_failure():
            return resolved
        formatter = self.get(resolved.value) or str
        rendered = capture_result(lambda: formatter(value))
        if rendered.is_failure():
            return fail(f"Cannot format result: {rendered.message}", FailureKind.FORMAT)
        if not isinstance(rendered.value, str):
            return fail(
                f"Formatter for {resolved.value.value} returned "
                f"{type(rendered.value).__name__}, not str.",
                FailureKind.FORMAT,
            )
        return succeed(rendered.value)

    def __contains__(self, target: object) -> bool:
        try:
            return FormatTarget(target) in self._formatters
        except ValueError:
            return False
