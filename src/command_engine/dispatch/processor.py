"""Flat command dispatcher and its selection policies.

Every command is tried against the input line in registration order.  Each
attempt ends in one of four states:

- ``NOT_MATCHED``: the grammar did not match; the command is skipped.
- ``ACCEPTED``: parse, convert, execute and (optional) validation succeeded.
- ``REJECTED``: the validator turned the execution result down.  This only
  filters the command out; the most recent rejection is kept so it can be
  reported if nothing else is accepted.
- ``FAILED``: a parse, conversion, execution or formatting failure.  This
  aborts the whole dispatch and the failure is returned.

The three policies differ in how they combine accepted results:

- :meth:`CommandProcessor.process_all` returns every accepted result (an
  empty list when nothing matched);
- :meth:`CommandProcessor.process_first` returns the first accepted result;
- :meth:`CommandProcessor.process_one` requires exactly one accepted result
  and names every candidate when more than one is accepted.

Thread safety:
    A processor is mutated only while commands are being registered.
    Dispatch reads the command table and never writes it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from command_engine.dispatch.command import CommandDefinition, ExecutionResult, ValidatedCommand
from command_engine.dispatch.formatting import Formatter, FormatTarget, resolve_target
from command_engine.errors import FailureKind
from command_engine.names import NormalizedMap
from command_engine.result import Failure, Result, Success, capture_result, fail, succeed

logger = logging.getLogger(__name__)

Validator = Callable[[ExecutionResult], Result[ExecutionResult]]


class EvaluationState(str, Enum):
    """Terminal state of one command's attempt at one line."""

    NOT_MATCHED = "not_matched"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class Evaluation:
    """One command's attempt at one line."""

    command: str
    state: EvaluationState
    result: ExecutionResult | None = None
    failure: Failure[Any] | None = None


class CommandProcessor:
    """Dispatches input lines across a flat table of commands.

    Args:
        commands:  Initial commands, registered in order.
        validator: Optional post-execution filter.  It receives each
                   :class:`ExecutionResult` and returns ``Success`` to accept
                   it or ``Failure`` to reject it.
        target:    Default :class:`FormatTarget` for execution messages.

    Raises:
        ValueError: If two commands normalize to the same name, or ``target``
                    is not a :class:`FormatTarget` value.
    """

    def __init__(
        self,
        commands: Iterable[CommandDefinition] = (),
        *,
        validator: Validator | None = None,
        target: FormatTarget | str = FormatTarget.TEXT,
    ) -> None:
        self._commands: NormalizedMap[CommandDefinition] = NormalizedMap()
        self._validator = validator
        self._target = FormatTarget(target)
        for command in commands:
            self.add_command(command)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_command(self, command: CommandDefinition) -> CommandDefinition:
        """Register ``command``.

        Raises:
            TypeError:  If ``command`` is not a :class:`CommandDefinition`.
            ValueError: If its name collides with a registered command.
        """
        if not isinstance(command, CommandDefinition):
            raise TypeError(f"Expected CommandDefinition, got {type(command).__name__}.")
        added = self._commands.add(command.name, command)
        if added.is_failure():
            raise ValueError(added.message)
        logger.debug("Registered command %s", command.name)
        return command

    @property
    def commands(self) -> list[CommandDefinition]:
        return self._commands.values()

    @property
    def num_commands(self) -> int:
        return len(self._commands)

    @property
    def target(self) -> FormatTarget:
        return self._target

    def get_command(self, name: str) -> CommandDefinition | None:
        return self._commands.get(name)

    # ------------------------------------------------------------------
    # Validation only (no execution)
    # ------------------------------------------------------------------

    def validate_all(self, line: str) -> Result[list[ValidatedCommand]]:
        """Parse and convert ``line`` against every command without executing.

        Conversion failures are tolerated while at least one command
        validates; if none does, the failures are reported together.
        """
        validated: list[ValidatedCommand] = []
        errors: list[str] = []
        for command in self.commands:
            result = command.validate(line)
            if result.is_failure():
                errors.append(f"{command.name}: {result.message}")
            elif result.value is not None:
                validated.append(result.value)
        if not validated and errors:
            return fail("\n".join(errors), FailureKind.CONVERSION)
        return succeed(validated)

    def validate_one(self, line: str) -> Result[ValidatedCommand]:
        """Like :meth:`validate_all` but exactly one command must validate."""
        validated = self.validate_all(line)
        if validated.is_failure():
            return fail(f'No command matched "{line}"\n{validated.message}', validated.detail)
        if not validated.value:
            return fail(f'No command matched "{line}"', FailureKind.NO_MATCH)
        if len(validated.value) > 1:
            return _ambiguous(line, [candidate.command for candidate in validated.value])
        return succeed(validated.value[0])

    # ------------------------------------------------------------------
    # Dispatch policies
    # ------------------------------------------------------------------

    def process_all(
        self, line: str, target: FormatTarget | str | None = None
    ) -> Result[list[ExecutionResult]]:
        """Run every command that accepts ``line``.

        Returns:
            ``Success`` of every accepted result in registration order (empty
            when nothing matched), the last rejection when matches were all
            rejected, or the first failure encountered.
        """
        resolved = self._resolve_target(target)
        if resolved.is_failure():
            return resolved
        accepted: list[ExecutionResult] = []
        last_rejection: Failure[Any] | None = None
        for command in self.commands:
            evaluation = self.evaluate(command, line, resolved.value)
            if evaluation.state == EvaluationState.FAILED:
                return evaluation.failure
            if evaluation.state == EvaluationState.REJECTED:
                last_rejection = evaluation.failure
            elif evaluation.state == EvaluationState.ACCEPTED:
                accepted.append(evaluation.result)

        if not accepted and last_rejection is not None:
            return last_rejection
        return succeed(accepted)

    def process_first(
        self, line: str, target: FormatTarget | str | None = None
    ) -> Result[ExecutionResult]:
        """Return the first command, in registration order, that accepts ``line``."""
        resolved = self._resolve_target(target)
        if resolved.is_failure():
            return resolved
        last_rejection: Failure[Any] | None = None
        for command in self.commands:
            evaluation = self.evaluate(command, line, resolved.value)
            if evaluation.state == EvaluationState.FAILED:
                return evaluation.failure
            if evaluation.state == EvaluationState.REJECTED:
                last_rejection = evaluation.failure
            elif evaluation.state == EvaluationState.ACCEPTED:
                return succeed(evaluation.result)

        if last_rejection is not None:
            return last_rejection
        return fail(f'No command matched "{line}"', FailureKind.NO_MATCH)

    def process_one(
        self, line: str, target: FormatTarget | str | None = None
    ) -> Result[ExecutionResult]:
        """Require exactly one command to accept ``line``.

        Without a validator, ambiguity is decided after conversion so no
        executor runs for an ambiguous line.  With a validator every matching
        command has to execute before it can be accepted or rejected.
        """
        resolved = self._resolve_target(target)
        if resolved.is_failure():
            return resolved
        if self._validator is None:
            validated = self._validate_strict(line)
            if validated.is_failure():
                return validated
            if len(validated.value) > 1:
                return _ambiguous(line, [candidate.command for candidate in validated.value])
            if not validated.value:
                return fail(f'No command matched "{line}"', FailureKind.NO_MATCH)
            return validated.value[0].execute(resolved.value)

        accepted: list[ExecutionResult] = []
        last_rejection: Failure[Any] | None = None
        for command in self.commands:
            evaluation = self.evaluate(command, line, resolved.value)
            if evaluation.state == EvaluationState.FAILED:
                return evaluation.failure
            if evaluation.state == EvaluationState.REJECTED:
                last_rejection = evaluation.failure
            elif evaluation.state == EvaluationState.ACCEPTED:
                accepted.append(evaluation.result)

        if len(accepted) > 1:
            return _ambiguous(line, [result.command for result in accepted])
        if accepted:
            return succeed(accepted[0])
        if last_rejection is not None:
            return fail(
                f'No command matched "{line}"\n{last_rejection.message}',
                FailureKind.VALIDATION,
            )
        return fail(f'No command matched "{line}"', FailureKind.NO_MATCH)

    def evaluate(
        self, command: CommandDefinition, line: str, target: FormatTarget | str | None = None
    ) -> Evaluation:
        """Take one command through every stage for ``line``."""
        resolved = self._resolve_target(target)
        if resolved.is_failure():
            return Evaluation(command.name, EvaluationState.FAILED, failure=resolved)
        executed = command.execute(line, resolved.value)
        if executed.is_failure():
            logger.debug("Command %s failed on %r: %s", command.name, line, executed.message)
            return Evaluation(command.name, EvaluationState.FAILED, failure=executed)
        if executed.value is None:
            return Evaluation(command.name, EvaluationState.NOT_MATCHED)

        if self._validator is None:
            return Evaluation(command.name, EvaluationState.ACCEPTED, result=executed.value)

        checked = capture_result(lambda: self._validator(executed.value))
        if checked.is_failure():
            return Evaluation(
                command.name,
                EvaluationState.FAILED,
                failure=fail(f"Validator raised: {checked.message}", FailureKind.VALIDATION),
            )
        verdict = checked.value
        if not isinstance(verdict, (Success, Failure)):
            return Evaluation(
                command.name,
                EvaluationState.FAILED,
                failure=fail("Validator did not return a Result.", FailureKind.VALIDATION),
            )
        if verdict.is_failure():
            logger.debug("Validator rejected %s: %s", command.name, verdict.message)
            return Evaluation(
                command.name,
                EvaluationState.REJECTED,
                failure=fail(verdict.message, verdict.detail or FailureKind.VALIDATION),
            )
        accepted = verdict.value if verdict.value is not None else executed.value
        return Evaluation(command.name, EvaluationState.ACCEPTED, result=accepted)

    # ------------------------------------------------------------------
    # Formatting and help
    # ------------------------------------------------------------------

    def format(
        self, result: ExecutionResult, target: FormatTarget | str | None = None
    ) -> Result[str]:
        """Re-render ``result`` with its command's formatter for ``target``."""
        command = self._commands.get(result.command)
        if command is None:
            return fail(f"Unknown command {result.command}", FailureKind.FORMAT)
        resolved = self._resolve_target(target)
        if resolved.is_failure():
            return resolved
        return command.format(result.result, resolved.value)

    def get_default_formatters(
        self, target: FormatTarget | str | None = None
    ) -> Result[dict[str, Formatter]]:
        """Each command's formatter for ``target``, keyed by command name."""
        resolved = self._resolve_target(target)
        if resolved.is_failure():
            return resolved
        formatters: dict[str, Formatter] = {}
        errors: list[str] = []
        for command in self.commands:
            formatter = command.get_default_formatter(resolved.value)
            if formatter.is_failure():
                errors.append(formatter.message)
            else:
                formatters[command.name] = formatter.value
        if errors:
            return fail("\n".join(errors), FailureKind.FORMAT)
        return succeed(formatters)

    def get_help(self) -> list[str]:
        lines: list[str] = []
        for command in self.commands:
            lines.extend(command.get_help_lines())
        return lines

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_target(self, target: FormatTarget | str | None) -> Result[FormatTarget]:
        return succeed(self._target) if target is None else resolve_target(target)

    def _validate_strict(self, line: str) -> Result[list[ValidatedCommand]]:
        validated: list[ValidatedCommand] = []
        for command in self.commands:
            result = command.validate(line)
            if result.is_failure():
                return result
            if result.value is not None:
                validated.append(result.value)
        return succeed(validated)


def _ambiguous(line: str, names: list[str]) -> Failure[Any]:
    logger.warning("Ambiguous command %r matched %s", line, ", ".join(names))
    return fail(
        f'Ambiguous command "{line}" could be any of: [{", ".join(names)}]',
        FailureKind.AMBIGUOUS,
    )
