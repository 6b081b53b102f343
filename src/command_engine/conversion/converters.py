"""Primitive converters and the combinators that compose them.

Everything here returns a :class:`~command_engine.conversion.converter.Converter`
and reports problems as :class:`~command_engine.result.Failure` values; nothing
raises on bad input.

Composition rules shared by the combinators:
- a sub-conversion that *succeeds with* ``None`` means "absent" and is dropped
  from arrays, records and objects without failing the whole conversion;
- object-shaped conversions attempt every field before reporting, so a single
  failure lists every broken field (messages joined with newlines);
- ``OnError`` selects whether a failing element aborts (``FAIL_ON_ERROR``) or
  is skipped (``IGNORE_ERRORS``).
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from command_engine.conversion.converter import Converter, OnError, describe
from command_engine.errors import FailureKind
from command_engine.result import Result, fail, succeed

T = TypeVar("T")

#: Values that ``field``/``optional_field`` refuse to project members out of.
_NON_OBJECT_TYPES = (str, bytes, int, float, bool, list, tuple, set, frozenset)

#: Canonical numeric text: ASCII digits, optional sign, fraction and exponent.
_INTEGER = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


# ---------------------------------------------------------------------------
# Primitive converters
# ---------------------------------------------------------------------------


def _to_string(value: Any) -> Result[str]:
    if isinstance(value, str):
        return succeed(value)
    return fail(f"Not a string: {describe(value)}", FailureKind.CONVERSION)


def _to_number(value: Any) -> Result[int | float]:
    # bool is an int subclass but never a number here.
    if isinstance(value, bool):
        return fail(f"Not a number: {describe(value)}", FailureKind.CONVERSION)
    if isinstance(value, (int, float)):
        return succeed(value)
    if isinstance(value, str):
        text = value.strip()
        if _INTEGER.fullmatch(text):
            return succeed(int(text))
        if _DECIMAL.fullmatch(text):
            number_value = float(text)
            if math.isfinite(number_value):
                return succeed(number_value)
    return fail(f"Not a number: {describe(value)}", FailureKind.CONVERSION)


def _to_boolean(value: Any) -> Result[bool]:
    if isinstance(value, bool):
        return succeed(value)
    if isinstance(value, str):
        lowered = value.lower()
        if lowered == "true":
            return succeed(True)
        if lowered == "false":
            return succeed(False)
    return fail(f"Not a boolean: {describe(value)}", FailureKind.CONVERSION)


#: Accepts ``str`` only.
string: Converter[str] = Converter(_to_string)

#: Accepts ``int``/``float`` (not ``bool``) and numeric strings.
number: Converter[int | float] = Converter(_to_number)

#: Accepts ``bool`` and case-insensitive ``"true"``/``"false"``.
boolean: Converter[bool] = Converter(_to_boolean)

optional_string = string.optional()
optional_number = number.optional()
optional_boolean = boolean.optional()


def enumerated_value(values: Sequence[T]) -> Converter[T]:
    """Accept only members of ``values``."""

    def _enumerated(value: Any) -> Result[T]:
        for candidate in values:
            if candidate == value and type(candidate) is type(value):
                return succeed(candidate)
        return fail(f"Invalid enumerated value {describe(value)}", FailureKind.CONVERSION)

    return Converter(_enumerated)


def delimited_string(delimiter: str, *, keep_empty: bool = False) -> Converter[list[str]]:
    """Split a string at ``delimiter``; blank pieces are dropped unless ``keep_empty``."""

    def _split(value: Any) -> Result[list[str]]:
        result = string.convert(value)
        if result.is_failure():
            return fail(result.message, result.detail)
        pieces = result.value.split(delimiter)
        if not keep_empty:
            pieces = [piece for piece in pieces if piece.strip()]
        return succeed(pieces)

    return Converter(_split)


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------


def one_of(
    converters: Iterable[Converter[Any]], on_error: OnError = OnError.IGNORE_ERRORS
) -> Converter[Any]:
    """Polymorphic conversion: the first converter to produce a non-``None`` value wins.

    With ``IGNORE_ERRORS`` individual failures are collected and only reported
    if no converter succeeds.  With ``FAIL_ON_ERROR`` the first failure aborts.
    """
    candidates = list(converters)

    def _one_of(value: Any) -> Result[Any]:
        errors: list[str] = []
        for converter in candidates:
            result = converter.convert(value)
            if result.is_success():
                if result.value is not None:
                    return result
                continue
            if on_error == OnError.FAIL_ON_ERROR:
                return result
            errors.append(result.message)
        detail = "\n".join(errors)
        message = f"No matching decoder for {describe(value)}"
        return fail(f"{message}:\n{detail}" if detail else message, FailureKind.CONVERSION)

    return Converter(_one_of)


def array_of(
    converter: Converter[T], on_error: OnError = OnError.FAIL_ON_ERROR
) -> Converter[list[T]]:
    """Convert each element of a list or tuple independently."""

    def _array(value: Any) -> Result[list[T]]:
        if not isinstance(value, (list, tuple)):
            return fail(f"Not an array: {describe(value)}", FailureKind.CONVERSION)
        converted: list[T] = []
        errors: list[str] = []
        for item in value:
            result = converter.convert(item)
            if result.is_success():
                if result.value is not None:
                    converted.append(result.value)
            else:
                errors.append(result.message)
        if errors and on_error == OnError.FAIL_ON_ERROR:
            return fail("\n".join(errors), FailureKind.CONVERSION)
        return succeed(converted)

    return Converter(_array)


def record_of(
    converter: Converter[T], on_error: OnError = OnError.FAIL_ON_ERROR
) -> Converter[dict[str, T]]:
    """Convert every value of a string-keyed mapping."""

    def _record(value: Any) -> Result[dict[str, T]]:
        if not isinstance(value, Mapping):
            return fail(f"Not a string-keyed object: {describe(value)}", FailureKind.CONVERSION)
        converted: dict[str, T] = {}
        errors: list[str] = []
        for key, item in value.items():
            if not isinstance(key, str):
                errors.append(f"Key {describe(key)} is not a string")
                continue
            result = converter.convert(item)
            if result.is_success():
                if result.value is not None:
                    converted[key] = result.value
            else:
                errors.append(f"{key}: {result.message}")
        if errors and on_error == OnError.FAIL_ON_ERROR:
            return fail("\n".join(errors), FailureKind.CONVERSION)
        return succeed(converted)

    return Converter(_record)


_MISSING = object()


def _get_member(value: Any, name: str) -> Any:
    """Return ``value[name]`` / ``value.name``, or ``_MISSING`` when absent."""
    if isinstance(value, Mapping):
        return value[name] if name in value else _MISSING
    return getattr(value, name, _MISSING)


def _is_object_like(value: Any) -> bool:
    return value is not None and not isinstance(value, _NON_OBJECT_TYPES)


def field(name: str, converter: Converter[T]) -> Converter[T]:
    """Project member ``name`` out of an object-like value, then convert it."""

    def _field(value: Any) -> Result[T]:
        if not _is_object_like(value):
            return fail(
                f'Cannot convert field "{name}" from non-object {describe(value)}',
                FailureKind.CONVERSION,
            )
        member = _get_member(value, name)
        if member is _MISSING:
            return fail(f"Field {name} not found in: {describe(value)}", FailureKind.CONVERSION)
        result = converter.convert(member)
        if result.is_failure():
            return fail(f"Field {name}: {result.message}", result.detail)
        return result

    return Converter(_field)


def optional_field(name: str, converter: Converter[T]) -> Converter[T | None]:
    """Like :func:`field` but an absent (or ``None``) member succeeds with ``None``.

    The input itself must still be object-like.
    """

    def _optional_field(value: Any) -> Result[T | None]:
        if not _is_object_like(value):
            return fail(
                f'Cannot convert field "{name}" from non-object {describe(value)}',
                FailureKind.CONVERSION,
            )
        member = _get_member(value, name)
        if member is _MISSING:
            return succeed(None)
        result = converter.convert(member)
        if result.is_failure():
            if member is None:
                return succeed(None)
            return fail(f"Field {name}: {result.message}", result.detail)
        return result

    return Converter(_optional_field)


def _build_object(value: Any, converters: Mapping[str, Converter[Any]]) -> Result[dict[str, Any]]:
    converted: dict[str, Any] = {}
    errors: list[str] = []
    for key, converter in converters.items():
        result = converter.convert(value)
        if result.is_success():
            if result.value is not None:
                converted[key] = result.value
        else:
            errors.append(result.message)
    if errors:
        return fail("\n".join(errors), FailureKind.CONVERSION)
    return succeed(converted)


class ObjectConverter(Converter[dict[str, Any]]):
    """Converter that builds a dict by extracting each key by the same name.

    Attributes:
        fields:          Per-key converters applied to the same-named member.
        optional_fields: Keys extracted with :func:`optional_field`.
    """

    def __init__(
        self, fields: Mapping[str, Converter[Any]], optional: Iterable[str] | None = None
    ) -> None:
        self.fields: dict[str, Converter[Any]] = dict(fields)
        self.optional_fields: tuple[str, ...] = tuple(optional or ())
        extractors = {
            key: (
                optional_field(key, converter)
                if key in self.optional_fields
                else field(key, converter)
            )
            for key, converter in self.fields.items()
        }
        super().__init__(lambda value: _build_object(value, extractors))

    def partial(self, optional: Iterable[str] | None = None) -> ObjectConverter:
        """Same fields with a replacement set of optional keys."""
        return ObjectConverter(self.fields, optional)

    def add_partial(self, names: Iterable[str]) -> ObjectConverter:
        """Same fields with ``names`` added to the optional keys."""
        return self.partial([*self.optional_fields, *names])


def object_of(
    fields: Mapping[str, Converter[Any]], optional: Iterable[str] | None = None
) -> ObjectConverter:
    """Convert an object without changing its shape; see :class:`ObjectConverter`."""
    return ObjectConverter(fields, optional)


def transform(fields: Mapping[str, Converter[Any]]) -> Converter[dict[str, Any]]:
    """Build a differently-shaped dict; each entry is a converter of the whole input.

    Entries are typically built with :func:`field` so the source name may
    differ from the target key.
    """
    converters = dict(fields)
    return Converter(lambda value: _build_object(value, converters))
