"""Two-variant outcome type used as the engine's only error-signalling convention.

Every converter, compiler step and dispatch policy returns a :data:`Result`:
either a :class:`Success` carrying a value or a :class:`Failure` carrying a
human-readable message.  Exceptions do not cross component boundaries except
at :func:`capture_result`, which exists to turn foreign faults (an executor
that raises, a formatter that blows up) back into the same vocabulary.

Design notes:
- Both variants are frozen dataclasses.
- Failure messages compose: aggregating helpers join sub-messages with a
  newline so one report can cite every broken field at once.
- ``Failure.detail`` optionally carries a
  :class:`~command_engine.errors.FailureKind` so callers can branch on the
  reason without parsing text.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
T2 = TypeVar("T2")


class ResultError(Exception):
    """Raised by :meth:`Failure.get_value_or_throw`.

    Attributes:
        detail: The ``detail`` of the failure that was unwrapped.
    """

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail


@dataclass(frozen=True)
class Success(Generic[T]):
    """A successful outcome carrying ``value``."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def get_value_or_throw(self) -> T:
        return self.value

    def get_value_or_default(self, default: T | None = None) -> T | None:
        return self.value if self.value is not None else default

    def on_success(self, callback: Callable[[T], Result[Any] | None]) -> Result[Any]:
        """Chain ``callback`` onto the value; a ``None`` return keeps ``self``."""
        chained = callback(self.value)
        return self if chained is None else chained

    def on_failure(self, callback: Callable[[str], Result[T] | None]) -> Result[T]:
        return self


@dataclass(frozen=True)
class Failure(Generic[T]):
    """A failed outcome carrying a human-readable ``message``.

    Attributes:
        message: Description of what went wrong.  Never empty in practice.
        detail:  Optional machine-readable reason, normally a
                 :class:`~command_engine.errors.FailureKind`.
    """

    message: str
    detail: Any = None

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def get_value_or_throw(self) -> T:
        """Raise :class:`ResultError`.  Only for trusted call sites."""
        raise ResultError(self.message, self.detail)

    def get_value_or_default(self, default: T | None = None) -> T | None:
        return default

    def on_success(self, callback: Callable[[Any], Result[Any] | None]) -> Result[Any]:
        return self

    def on_failure(self, callback: Callable[[str], Result[T] | None]) -> Result[T]:
        """Chain ``callback`` onto the message; a ``None`` return keeps ``self``."""
        chained = callback(self.message)
        return self if chained is None else chained

    def __str__(self) -> str:
        return self.message


Result = Union[Success[T], Failure[T]]


def succeed(value: T) -> Success[T]:
    """Return a :class:`Success` wrapping ``value``."""
    return Success(value)


def fail(message: str, detail: Any = None) -> Failure[Any]:
    """Return a :class:`Failure` with ``message`` and optional ``detail``."""
    return Failure(message, detail)


def capture_result(func: Callable[[], T]) -> Result[T]:
    """Run ``func`` and convert any raised exception into a :class:`Failure`.

    Args:
        func: Zero-argument callable that returns a value or raises.

    Returns:
        ``Success(func())`` or ``Failure(str(exc))``.
    """
    try:
        return succeed(func())
    except Exception as exc:  # noqa: BLE001
        return fail(str(exc) or exc.__class__.__name__)


def map_results(results: Iterable[Result[T]]) -> Result[list[T]]:
    """Collect every value, or fail with all failure messages joined."""
    errors: list[str] = []
    values: list[T] = []
    for result in results:
        if result.is_success():
            values.append(result.value)
        else:
            errors.append(result.message)
    if errors:
        return fail("\n".join(errors))
    return succeed(values)


def map_success(results: Iterable[Result[T]]) -> Result[list[T]]:
    """Collect the successful values; fail only if nothing succeeded.

    An empty input succeeds with an empty list.
    """
    errors: list[str] = []
    values: list[T] = []
    for result in results:
        if result.is_success():
            values.append(result.value)
        else:
            errors.append(result.message)
    if not values and errors:
        return fail("\n".join(errors))
    return succeed(values)


def all_succeed(results: Iterable[Result[Any]], value: T) -> Result[T]:
    """Succeed with ``value`` if every result succeeded, else join the failures."""
    errors = [result.message for result in results if result.is_failure()]
    if errors:
        return fail("\n".join(errors))
    return succeed(value)
