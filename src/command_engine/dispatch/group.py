"""Prefix-scoped command groups.

A :class:`CommandGroup` wraps a :class:`CommandProcessor` with an optional
prefix word such as ``"!raid"`` or ``"admin"``.  A line belongs to the group
when it equals the prefix or continues it after whitespace; other lines are
rejected before any grammar runs.  Registration failures are reported as a
:class:`~command_engine.result.Failure` rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from command_engine.dispatch.command import CommandDefinition, ExecutionResult, ValidatedCommand
from command_engine.dispatch.formatting import Formatter, FormatTarget
from command_engine.dispatch.processor import CommandProcessor, Validator
from command_engine.errors import FailureKind
from command_engine.result import Result, all_succeed, capture_result, fail, succeed

logger = logging.getLogger(__name__)


class CommandGroup:
    """A named set of commands sharing an optional prefix.

    Args:
        commands:  Initial commands.
        prefix:    Leading word the line must start with.  ``None`` or an
                   empty string accepts every line.
        validator: Post-execution filter passed to the inner processor.
        target:    Default :class:`FormatTarget`.

    Raises:
        ValueError: If the initial commands contain a duplicate name.
    """

    def __init__(
        self,
        commands: Iterable[CommandDefinition] = (),
        *,
        prefix: str | None = None,
        validator: Validator | None = None,
        target: FormatTarget | str = FormatTarget.TEXT,
    ) -> None:
        self._prefix = prefix.strip() if prefix else None
        self._processor = CommandProcessor(validator=validator, target=target)
        added = all_succeed([self.add_command(command) for command in commands], self)
        if added.is_failure():
            raise ValueError(added.message)

    @property
    def prefix(self) -> str | None:
        return self._prefix

    @property
    def processor(self) -> CommandProcessor:
        return self._processor

    @property
    def num_commands(self) -> int:
        return self._processor.num_commands

    def could_be_command(self, line: str) -> bool:
        """``True`` if ``line`` is equal to the prefix or starts with prefix plus whitespace."""
        if not isinstance(line, str):
            return False
        if not self._prefix:
            return True
        stripped = line.strip()
        if stripped == self._prefix:
            return True
        return stripped.startswith(self._prefix) and stripped[len(self._prefix) :][:1].isspace()

    def add_command(self, command: CommandDefinition) -> Result[CommandDefinition]:
        """Register ``command``; a duplicate name is a ``DUPLICATE_NAME`` failure."""
        added = capture_result(lambda: self._processor.add_command(command))
        if added.is_failure():
            detail = (
                FailureKind.DUPLICATE_NAME
                if isinstance(command, CommandDefinition)
                else FailureKind.CONFIGURATION
            )
            logger.warning("Cannot add command to group %r: %s", self._prefix, added.message)
            return fail(added.message, detail)
        return added

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def validate_all(self, line: str) -> Result[list[ValidatedCommand]]:
        if not self.could_be_command(line):
            return succeed([])
        return self._processor.validate_all(line)

    def process_all(
        self, line: str, target: FormatTarget | str | None = None
    ) -> Result[list[ExecutionResult]]:
        if not self.could_be_command(line):
            return succeed([])
        return self._processor.process_all(line, target)

    def process_first(
        self, line: str, target: FormatTarget | str | None = None
    ) -> Result[ExecutionResult]:
        if not self.could_be_command(line):
            return self._not_in_group(line)
        return self._processor.process_first(line, target)

    def process_one(
        self, line: str, target: FormatTarget | str | None = None
    ) -> Result[ExecutionResult]:
        if not self.could_be_command(line):
            return self._not_in_group(line)
        return self._processor.process_one(line, target)

    def format(
        self, result: ExecutionResult, target: FormatTarget | str | None = None
    ) -> Result[str]:
        return self._processor.format(result, target)

    def get_default_formatters(
        self, target: FormatTarget | str | None = None
    ) -> Result[dict[str, Formatter]]:
        return self._processor.get_default_formatters(target)

    def get_help(self) -> list[str]:
        return self._processor.get_help()

    def _not_in_group(self, line: str) -> Result[ExecutionResult]:
        return fail(
            f'No command matched "{line}": expected prefix "{self._prefix}"',
            FailureKind.NO_MATCH,
        )
