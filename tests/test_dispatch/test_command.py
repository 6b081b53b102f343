"""Unit tests for CommandDefinition: create, validate, execute and format."""

from __future__ import annotations

import json

import pytest

from command_engine.conversion import converters as cv
from command_engine.dispatch import (
    CommandDefinition,
    ExecutionResult,
    FormatterSet,
    FormatTarget,
    ValidatedCommand,
    resolve_target,
)
from command_engine.errors import FailureKind
from command_engine.result import fail, succeed

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def beast_params():
    return cv.object_of({"tier": cv.number, "words": cv.string}, optional=["tier"])


@pytest.fixture
def beast_command(make_command, beast_params):
    def describe(params):
        return succeed(f"{params['words']} (tier {params.get('tier', 'any')})")

    return make_command(
        "beast",
        "!beast {{tier?}} {{words}}",
        converter=beast_params,
        executor=describe,
        formatters={
            FormatTarget.TEXT: lambda text: text,
            FormatTarget.MARKDOWN: lambda text: f"**{text}**",
        },
        examples=["!beast T5 horned serpent"],
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestCreate:
    def test_from_template(self, beast_command):
        assert beast_command.name == "beast"
        assert beast_command.grammar.fields == ("tier", "words")
        assert beast_command.examples == ("!beast T5 horned serpent",)

    def test_plain_function_converter_is_wrapped(self, builder):
        grammar = builder.build("!roll {{count}}").value
        created = CommandDefinition.create(
            name="roll", description="", grammar=grammar, converter=succeed, executor=succeed
        )
        assert created.value.converter.convert({"count": "2"}).value == {"count": "2"}

    def test_rejects_uncompiled_grammar(self):
        created = CommandDefinition.create(
            name="roll", description="", grammar="!roll", converter=succeed, executor=succeed
        )
        assert created.detail == FailureKind.CONFIGURATION

    def test_rejects_non_callable_executor(self, builder):
        grammar = builder.build("!roll {{count}}").value
        created = CommandDefinition.create(
            name="roll", description="", grammar=grammar, converter=succeed, executor=None
        )
        assert created.is_failure()
        assert "executor" in created.message

    def test_rejects_blank_name(self, builder):
        grammar = builder.build("!roll {{count}}").value
        created = CommandDefinition.create(
            name=" ", description="", grammar=grammar, converter=succeed, executor=succeed
        )
        assert created.detail == FailureKind.CONFIGURATION

    def test_rejects_non_callable_formatter(self, builder):
        grammar = builder.build("!roll {{count}}").value
        created = CommandDefinition.create(
            name="roll",
            description="",
            grammar=grammar,
            converter=succeed,
            executor=succeed,
            formatters={"text": "not callable"},
        )
        assert created.detail == FailureKind.CONFIGURATION

    def test_from_template_reports_grammar_failure(self, builder):
        created = CommandDefinition.from_template(
            builder,
            "!give {{target}}",
            name="give",
            description="",
            converter=succeed,
            executor=succeed,
        )
        assert created.message == "Command give: Unrecognized property target"
        assert created.detail == FailureKind.UNRECOGNIZED_FIELD


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestValidate:
    def test_non_matching_line(self, beast_command):
        assert beast_command.validate("!roll 3").value is None

    def test_converts_parsed_fields(self, beast_command):
        validated = beast_command.validate("!beast T5 horned serpent").value
        assert isinstance(validated, ValidatedCommand)
        assert validated.command == "beast"
        assert validated.params == {"tier": 5, "words": "horned serpent"}

    def test_skipped_optional_field_is_omitted(self, beast_command):
        validated = beast_command.validate("!beast ron weasley").value
        assert validated.params == {"words": "ron weasley"}

    def test_conversion_failure_propagates(self, make_command):
        command = make_command(
            "roll",
            "!roll {{count}}",
            converter=cv.object_of({"count": cv.number.with_constraint(lambda n: n < 10)}),
        )
        result = command.validate("!roll 12")
        assert result.is_failure()
        assert result.detail == FailureKind.CONVERSION
        assert "does not meet constraint" in result.message


@pytest.mark.unit
class TestExecute:
    def test_returns_execution_result(self, beast_command):
        result = beast_command.execute("!beast T5 horned serpent").value
        expected = "horned serpent (tier 5)"
        assert result == ExecutionResult("beast", expected, expected)

    def test_non_matching_line(self, beast_command):
        assert beast_command.execute("!roll 3").value is None

    def test_target_selects_formatter(self, beast_command):
        result = beast_command.execute("!beast imp", FormatTarget.MARKDOWN).value
        assert result.message == "**imp (tier any)**"

    def test_missing_target_falls_back_to_text(self, beast_command):
        assert beast_command.execute("!beast imp", "embed").value.message == "imp (tier any)"

    def test_validated_command_execute(self, beast_command):
        validated = beast_command.validate("!beast imp").value
        assert validated.execute().value.result == "imp (tier any)"

    def test_executor_exception_is_captured(self, make_command):
        def explode(params):
            raise RuntimeError("boom")

        result = make_command("roll", "!roll {{count}}", executor=explode).execute("!roll 3")
        assert result.is_failure()
        assert result.message == "roll: boom"
        assert result.detail == FailureKind.EXECUTION

    def test_executor_failure_is_propagated(self, make_command):
        command = make_command("roll", "!roll {{count}}", executor=lambda p: fail("no dice"))
        result = command.execute("!roll 3")
        assert result.message == "no dice"
        assert result.detail == FailureKind.EXECUTION

    def test_executor_must_return_result(self, make_command):
        command = make_command("roll", "!roll {{count}}", executor=lambda p: 3)
        assert command.execute("!roll 3").detail == FailureKind.EXECUTION

    def test_formatter_exception_is_captured(self, make_command):
        command = make_command("roll", "!roll {{count}}", formatters={"text": lambda r: 1 / 0})
        result = command.execute("!roll 3")
        assert result.is_failure()
        assert result.detail == FailureKind.FORMAT

    def test_formatter_must_return_string(self, make_command):
        command = make_command("roll", "!roll {{count}}", formatters={"text": lambda r: r})
        assert command.execute("!roll 3").detail == FailureKind.FORMAT


@pytest.mark.unit
class TestFormatting:
    def test_format(self, beast_command):
        assert beast_command.format("x", "markdown").value == "**x**"

    def test_no_formatters_uses_str(self, make_command):
        command = make_command("roll", "!roll {{count}}", formatters=None)
        assert command.execute("!roll 3").value.message == str({"count": "3"})

    def test_get_default_formatter(self, beast_command):
        assert beast_command.get_default_formatter("text").value("x") == "x"

    def test_get_default_formatter_missing(self, make_command):
        command = make_command("roll", "!roll {{count}}", formatters=FormatterSet())
        assert command.get_default_formatter().detail == FailureKind.FORMAT

    def test_unknown_target_is_format_failure(self, beast_command):
        assert beast_command.format("x", "html").detail == FailureKind.FORMAT
        assert beast_command.get_default_formatter("html").detail == FailureKind.FORMAT

    def test_resolve_target(self):
        assert resolve_target("Markdown").is_failure()
        assert resolve_target("markdown").value == FormatTarget.MARKDOWN

    def test_embed_formatter(self, make_command):
        command = make_command(
            "roll", "!roll {{count}}", formatters={"embed": lambda r: json.dumps(r)}
        )
        message = command.execute("!roll 3", FormatTarget.EMBED).value.message
        assert json.loads(message) == {"count": "3"}

    def test_help_lines(self, beast_command):
        assert beast_command.get_help_lines() == [
            "beast: beast command",
            "  !beast T5 horned serpent",
        ]
