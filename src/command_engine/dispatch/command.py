"""Command definitions: grammar, converter, executor and formatters in one unit.

A :class:`CommandDefinition` takes a raw input line through four stages:

1. **parse**: the compiled grammar matches the line and yields field text;
2. **convert**: the converter turns the field text into typed parameters;
3. **execute**: the executor turns the parameters into a typed result;
4. **format**: a formatter renders the result for a :class:`FormatTarget`.

A line the grammar does not match is not an error; :meth:`validate` and
:meth:`execute` return ``Success(None)`` for it.  Every later stage reports
problems as a :class:`~command_engine.result.Failure` tagged with the
matching :class:`~command_engine.errors.FailureKind`.  Executors and
formatters are user code, so both are run under
:func:`~command_engine.result.capture_result`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from command_engine.conversion.converter import Converter
from command_engine.dispatch.formatting import (
    Formatter,
    FormatterSet,
    FormatTarget,
    resolve_target,
)
from command_engine.errors import FailureKind
from command_engine.grammar.compiler import CompiledGrammar, GrammarBuilder
from command_engine.grammar.template import TemplateToken
from command_engine.names import normalize_name
from command_engine.result import Failure, Result, Success, capture_result, fail, succeed

logger = logging.getLogger(__name__)

Executor = Callable[[Any], Result[Any]]


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running one command.

    Attributes:
        command: Name of the command that ran.
        result:  The executor's typed result.
        message: The result rendered for the requested target.
    """

    command: str
    result: Any
    message: str


@dataclass(frozen=True)
class ValidatedCommand:
    """A command whose line has been matched and converted but not yet executed."""

    command: str
    params: Any
    definition: CommandDefinition = field(repr=False, compare=False)

    def execute(self, target: FormatTarget | str = FormatTarget.TEXT) -> Result[ExecutionResult]:
        return self.definition.run(self.params, target)


@dataclass(frozen=True)
class CommandDefinition:
    """One named command.

    Build instances through :meth:`create` or :meth:`from_template`, which
    validate every part and report problems as a ``CONFIGURATION`` failure.

    Attributes:
        name:        Command name, unique (case-insensitively) per dispatcher.
        description: One-line summary shown in help output.
        grammar:     Compiled grammar the input line must match.
        converter:   Field text to typed parameters.
        executor:    Typed parameters to ``Result`` of a typed result.
        formatters:  Renderers for the typed result, per target.
        examples:    Sample lines shown in help output.
    """

    name: str
    description: str
    grammar: CompiledGrammar
    converter: Converter[Any]
    executor: Executor
    formatters: FormatterSet = field(default_factory=FormatterSet)
    examples: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        *,
        name: str,
        description: str,
        grammar: CompiledGrammar,
        converter: Converter[Any] | Callable[[Any], Result[Any]],
        executor: Executor,
        formatters: FormatterSet | Mapping[FormatTarget | str, Formatter] | None = None,
        examples: Sequence[str] = (),
    ) -> Result[CommandDefinition]:
        """Validate the parts and build a definition."""
        normalized = normalize_name(name)
        if normalized.is_failure():
            return fail(f"Command name: {normalized.message}", FailureKind.CONFIGURATION)
        if not isinstance(grammar, CompiledGrammar):
            return fail(f"Command {name}: grammar is not compiled.", FailureKind.CONFIGURATION)
        if not callable(converter):
            return fail(f"Command {name}: converter is not callable.", FailureKind.CONFIGURATION)
        if not callable(executor):
            return fail(f"Command {name}: executor is not callable.", FailureKind.CONFIGURATION)

        if not isinstance(formatters, FormatterSet):
            created = FormatterSet.create(formatters)
            if created.is_failure():
                return fail(f"Command {name}: {created.message}", FailureKind.CONFIGURATION)
            formatters = created.value

        return succeed(
            cls(
                name=name.strip(),
                description=description or "",
                grammar=grammar,
                converter=converter if isinstance(converter, Converter) else Converter(converter),
                executor=executor,
                formatters=formatters,
                examples=tuple(examples),
            )
        )

    @classmethod
    def from_template(
        cls,
        builder: GrammarBuilder,
        template: str | Sequence[str | TemplateToken],
        **parts: Any,
    ) -> Result[CommandDefinition]:
        """Compile ``template`` with ``builder`` then :meth:`create` the command."""
        grammar = builder.build(template)
        if grammar.is_failure():
            return fail(f"Command {parts.get('name')}: {grammar.message}", grammar.detail)
        return cls.create(grammar=grammar.value, **parts)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def validate(self, line: str) -> Result[ValidatedCommand | None]:
        """Parse and convert ``line``.

        Returns:
            ``Success(None)`` if the grammar does not match, ``Success`` of a
            :class:`ValidatedCommand` if it matches and converts, otherwise the
            parse or conversion failure.
        """
        parsed = self.grammar.parse(line)
        if parsed.is_failure():
            return parsed
        if parsed.value is None:
            return succeed(None)

        converted = self.converter.convert(parsed.value)
        if converted.is_failure():
            logger.debug("Command %s matched %r but conversion failed", self.name, line)
            return fail(converted.message, converted.detail or FailureKind.CONVERSION)
        return succeed(ValidatedCommand(self.name, converted.value, self))

    def run(
        self, params: Any, target: FormatTarget | str = FormatTarget.TEXT
    ) -> Result[ExecutionResult]:
        """Execute with already-converted ``params`` and format the outcome."""
        executed = capture_result(lambda: self.executor(params))
        if executed.is_failure():
            logger.warning("Executor for %s raised: %s", self.name, executed.message)
            return fail(f"{self.name}: {executed.message}", FailureKind.EXECUTION)

        outcome = executed.value
        if not isinstance(outcome, (Success, Failure)):
            return fail(
                f"{self.name}: executor returned {type(outcome).__name__}, not a Result.",
                FailureKind.EXECUTION,
            )
        if outcome.is_failure():
            return fail(outcome.message, outcome.detail or FailureKind.EXECUTION)

        message = self.format(outcome.value, target)
        if message.is_failure():
            return fail(f"{self.name}: {message.message}", message.detail)
        return succeed(ExecutionResult(self.name, outcome.value, message.value))

    def execute(
        self, line: str, target: FormatTarget | str = FormatTarget.TEXT
    ) -> Result[ExecutionResult | None]:
        """Run every stage on ``line``; ``Success(None)`` if it does not match."""
        validated = self.validate(line)
        if validated.is_failure() or validated.value is None:
            return validated
        return validated.value.execute(target)

    def format(self, result: Any, target: FormatTarget | str = FormatTarget.TEXT) -> Result[str]:
        return self.formatters.format(result, target)

    def get_default_formatter(
        self, target: FormatTarget | str = FormatTarget.TEXT
    ) -> Result[Formatter]:
        resolved = resolve_target(target)
        if resolved.is_failure():
            return resolved
        formatter = self.formatters.get(resolved.value)
        if formatter is None:
            return fail(
                f"Command {self.name} has no formatter for {resolved.value.value}.",
                FailureKind.FORMAT,
            )
        return succeed(formatter)

    def get_help_lines(self) -> list[str]:
        """Help text: the description followed by one line per example."""
        lines = [f"{self.name}: {self.description}" if self.description else self.name]
        lines.extend(f"  {example}" for example in self.examples)
        return lines
