"""Command dispatch: definitions, processors, groups and output formatting."""

from command_engine.dispatch.command import (
    CommandDefinition,
    ExecutionResult,
    Executor,
    ValidatedCommand,
)
from command_engine.dispatch.formatting import (
    Formatter,
    FormatterSet,
    FormatTarget,
    resolve_target,
)
from command_engine.dispatch.group import CommandGroup
from command_engine.dispatch.processor import (
    CommandProcessor,
    Evaluation,
    EvaluationState,
    Validator,
)

__all__ = [
    "CommandDefinition",
    "CommandGroup",
    "CommandProcessor",
    "Evaluation",
    "EvaluationState",
    "ExecutionResult",
    "Executor",
    "FormatTarget",
    "Formatter",
    "FormatterSet",
    "ValidatedCommand",
    "Validator",
    "resolve_target",
]
