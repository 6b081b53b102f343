"""Grammar compiler: templates to anchored regular expressions.

:class:`GrammarBuilder` walks a template token by token and produces one
anchored expression plus the ordered capture slots that say which groups
belong to which field.  The compiled grammar is built once at startup and
reused for every input line.

Layout rules:
- the expression is ``^\\s*`` … ``\\s*$`` so leading/trailing whitespace is
  tolerated;
- consecutive tokens are separated by a mandatory ``\\s+``; nothing follows
  the final token;
- a required field is spliced as ``(fragment)``;
- an optional field is skippable together with its separator: it is spliced
  as ``(?:\\s+(fragment))?`` when a separator is pending (so the separator
  travels with the field) and as ``(?:(fragment)(?:\\s+|(?=\\s*$)))?`` at the
  start of a template, where the field is followed by a separator or by the
  end of the line.

Capture bookkeeping:
    Each field contributes ``1 + embedded_captures`` groups: the wrapping
    group added here plus whatever its fragment declares.  The declaration is
    trusted at compile time and verified at parse time; a mismatch fails the
    parse with :attr:`~command_engine.errors.FailureKind.MISMATCHED_CAPTURES`
    rather than shifting every later field's text.

Unknown field references:
    ``UnknownFieldPolicy.STRICT`` (default) fails the build with
    "Unrecognized property".  ``UnknownFieldPolicy.LENIENT`` is the legacy
    behaviour: the raw token is spliced as a literal fragment.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from command_engine.errors import FailureKind
from command_engine.grammar.fields import FieldDescriptor, FieldRegistry
from command_engine.grammar.template import FieldReference, TemplateToken, parse_template
from command_engine.names import normalize_name
from command_engine.result import Result, capture_result, fail, succeed

logger = logging.getLogger(__name__)

#: Parsed field text keyed by field name; ``None`` for skipped optional fields.
ParsedFields = dict[str, "str | None"]

_SEPARATOR = r"\s+"


class UnknownFieldPolicy(str, Enum):
    """What the builder does with a ``{{name}}`` that names no descriptor."""

    STRICT = "strict"
    LENIENT = "lenient"


@dataclass(frozen=True)
class CaptureSlot:
    """The groups one referenced field occupies in a compiled expression."""

    name: str
    embedded_captures: int = 0

    @property
    def capture_count(self) -> int:
        return 1 + self.embedded_captures


@dataclass(frozen=True)
class CompiledGrammar:
    """An anchored expression plus its field-to-capture map.

    Attributes:
        pattern:  The compiled, anchored expression.
        slots:    One :class:`CaptureSlot` per referenced field, in group order.
        template: Template text the grammar was built from (for diagnostics).
    """

    pattern: re.Pattern[str]
    slots: tuple[CaptureSlot, ...]
    template: str = ""

    @property
    def fields(self) -> tuple[str, ...]:
        """Referenced field names in capture order."""
        return tuple(slot.name for slot in self.slots)

    @property
    def expected_captures(self) -> int:
        return sum(slot.capture_count for slot in self.slots)

    def parse(self, text: str) -> Result[ParsedFields | None]:
        """Match ``text`` and extract every field's text.

        Returns:
            ``Success(None)`` when the line does not match, ``Success(fields)``
            on a match, or a ``MISMATCHED_CAPTURES`` failure when the number of
            groups disagrees with the declared slots.
        """
        if not isinstance(text, str):
            return fail(f"Cannot parse non-string input {text!r}.", FailureKind.CONVERSION)

        match = self.pattern.match(text)
        if match is None:
            return succeed(None)

        captures = match.groups()
        expected = self.expected_captures
        if len(captures) != expected:
            logger.error(
                "Grammar %r produced %d captures but its fields declare %d",
                self.template,
                len(captures),
                expected,
            )
            return fail(
                f"Mismatched capture count: got {len(captures)}, expected {expected}",
                FailureKind.MISMATCHED_CAPTURES,
            )

        parsed: ParsedFields = {}
        index = 0
        for slot in self.slots:
            groups = captures[index : index + slot.capture_count]
            index += slot.capture_count
            value = next((g for g in groups[1:] if g is not None), groups[0])
            parsed[slot.name] = value.strip() if value is not None else None
        return succeed(parsed)


class GrammarBuilder:
    """Compiles templates against a registry of field descriptors.

    Args:
        fields:         A :class:`FieldRegistry` or an iterable of descriptors.
        unknown_fields: Policy for references to unregistered fields.
        flags:          ``re`` flags applied to every compiled expression.

    Raises:
        ValueError: If ``fields`` is empty.  Use :meth:`create` to get a
                    :class:`~command_engine.result.Failure` instead.
    """

    def __init__(
        self,
        fields: FieldRegistry | Iterable[FieldDescriptor],
        *,
        unknown_fields: UnknownFieldPolicy = UnknownFieldPolicy.STRICT,
        flags: int = 0,
    ) -> None:
        registry = fields if isinstance(fields, FieldRegistry) else FieldRegistry(fields)
        if len(registry) < 1:
            raise ValueError("GrammarBuilder needs at least one field descriptor.")
        self._fields = registry
        self._unknown_fields = UnknownFieldPolicy(unknown_fields)
        self._flags = flags

    @classmethod
    def create(
        cls,
        fields: FieldRegistry | Iterable[FieldDescriptor],
        *,
        unknown_fields: UnknownFieldPolicy = UnknownFieldPolicy.STRICT,
        flags: int = 0,
    ) -> Result[GrammarBuilder]:
        """Construct a builder, reporting configuration errors as a failure."""
        return capture_result(
            lambda: cls(fields, unknown_fields=unknown_fields, flags=flags)
        ).on_failure(lambda message: fail(message, FailureKind.CONFIGURATION))

    @property
    def fields(self) -> FieldRegistry:
        return self._fields

    @property
    def unknown_fields(self) -> UnknownFieldPolicy:
        return self._unknown_fields

    def build_string(self, template: str | Sequence[str | TemplateToken]) -> Result[str]:
        """Return the expression source for ``template`` without compiling it."""
        return self._assemble(template).on_success(lambda assembled: succeed(assembled[0]))

    def build(self, template: str | Sequence[str | TemplateToken]) -> Result[CompiledGrammar]:
        """Compile ``template`` into a :class:`CompiledGrammar`."""
        assembled = self._assemble(template)
        if assembled.is_failure():
            return fail(assembled.message, assembled.detail)
        source, slots = assembled.value

        compiled = capture_result(lambda: re.compile(source, self._flags))
        if compiled.is_failure():
            return fail(
                f"Template {_template_text(template)!r} is not a valid expression: "
                f"{compiled.message}",
                FailureKind.CONFIGURATION,
            )
        logger.debug("Compiled %r -> %s", _template_text(template), source)
        return succeed(
            CompiledGrammar(
                pattern=compiled.value,
                slots=tuple(slots),
                template=_template_text(template),
            )
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _assemble(
        self, template: str | Sequence[str | TemplateToken]
    ) -> Result[tuple[str, list[CaptureSlot]]]:
        tokens = parse_template(template)
        if not tokens:
            return fail("Cannot build a grammar from an empty template.", FailureKind.CONFIGURATION)

        source = r"^\s*"
        separator_pending = False
        slots: list[CaptureSlot] = []
        seen: set[str] = set()

        for token in tokens:
            resolved = self._resolve(token)
            if resolved.is_failure():
                return fail(resolved.message, resolved.detail)
            fragment, descriptor, optional = resolved.value
            separator = _SEPARATOR if separator_pending else ""

            if descriptor is None:
                source += f"{separator}{fragment}"
                separator_pending = True
                continue

            key = normalize_name(descriptor.name).get_value_or_throw()
            if key in seen:
                return fail(
                    f"Field {descriptor.name} is referenced more than once in "
                    f"{_template_text(template)!r}",
                    FailureKind.CONFIGURATION,
                )
            seen.add(key)

            if not optional:
                source += f"{separator}({fragment})"
                separator_pending = True
            elif separator_pending:
                source += f"(?:{separator}({fragment}))?"
            else:
                source += rf"(?:({fragment})(?:\s+|(?=\s*$)))?"
            slots.append(CaptureSlot(descriptor.name, descriptor.embedded_captures))

        if not slots:
            return fail(
                f"Template {_template_text(template)!r} does not reference any fields.",
                FailureKind.CONFIGURATION,
            )
        source += r"\s*$"
        return succeed((source, slots))

    def _resolve(
        self, token: TemplateToken
    ) -> Result[tuple[str, FieldDescriptor | None, bool]]:
        if not isinstance(token, FieldReference):
            return succeed((token.text, None, False))

        descriptor = self._fields.get(token.name)
        if descriptor is not None:
            return succeed((descriptor.pattern, descriptor, descriptor.optional or token.optional))

        if self._unknown_fields == UnknownFieldPolicy.STRICT:
            return fail(f"Unrecognized property {token.name}", FailureKind.UNRECOGNIZED_FIELD)

        logger.warning("Unknown field %r treated as a literal fragment", token.name)
        return succeed((token.raw or token.name, None, False))


def _template_text(template: str | Sequence[str | TemplateToken]) -> str:
    if isinstance(template, str):
        return " ".join(template.split())
    parts = []
    for item in template:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, FieldReference):
            parts.append(item.raw or f"{{{{{item.name}}}}}")
        else:
            parts.append(item.text)
    return " ".join(parts)
