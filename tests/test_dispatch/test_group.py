"""Unit tests for prefix-scoped command groups."""

from __future__ import annotations

import pytest

from command_engine.dispatch import CommandGroup
from command_engine.errors import FailureKind
from command_engine.result import fail, succeed


@pytest.fixture
def group(make_command) -> CommandGroup:
    return CommandGroup(
        [
            make_command("beast", "!beast {{tier?}} {{words}}"),
            make_command("roll", "!roll {{count}}"),
        ],
        prefix="!beast",
    )


@pytest.mark.unit
class TestCouldBeCommand:
    @pytest.mark.parametrize("line", ["!beast", "  !beast  ", "!beast imp", "!beast\tT5 imp"])
    def test_accepts_prefixed_lines(self, group, line):
        assert group.could_be_command(line) is True

    @pytest.mark.parametrize("line", ["!beastly imp", "!roll 3", "", "beast imp"])
    def test_rejects_other_lines(self, group, line):
        assert group.could_be_command(line) is False

    @pytest.mark.parametrize("prefix", [None, ""])
    def test_no_prefix_accepts_everything(self, prefix):
        assert CommandGroup(prefix=prefix).could_be_command("anything at all") is True

    def test_non_string_line(self, group):
        assert group.could_be_command(None) is False


@pytest.mark.unit
class TestAddCommand:
    def test_duplicate_is_recoverable_failure(self, group, make_command):
        result = group.add_command(make_command("Roll", "!roll {{words}}"))
        assert result.is_failure()
        assert result.detail == FailureKind.DUPLICATE_NAME
        assert group.num_commands == 2

    def test_new_command_is_added(self, group, make_command):
        command = make_command("lookup", "!beast {{words}}")
        assert group.add_command(command) == succeed(command)
        assert group.num_commands == 3

    def test_non_command_is_configuration_failure(self, group):
        assert group.add_command(object()).detail == FailureKind.CONFIGURATION

    def test_duplicate_in_constructor_raises(self, make_command):
        with pytest.raises(ValueError):
            CommandGroup([make_command("a", "!a {{words}}"), make_command("A", "!b {{words}}")])


@pytest.mark.unit
class TestDispatch:
    def test_process_one(self, group):
        result = group.process_one("!beast T5 horned serpent")
        assert result.value.result == {"tier": "5", "words": "horned serpent"}

    def test_prefix_mismatch_skips_every_grammar(self, group):
        # "roll" would match, but the line is outside the group
        result = group.process_one("!roll 3")
        assert result.detail == FailureKind.NO_MATCH
        assert 'expected prefix "!beast"' in result.message

    def test_process_first_prefix_mismatch(self, group):
        assert group.process_first("!roll 3").detail == FailureKind.NO_MATCH

    def test_process_all_prefix_mismatch_is_empty(self, group):
        assert group.process_all("!roll 3").value == []

    def test_validate_all_prefix_mismatch_is_empty(self, group):
        assert group.validate_all("!roll 3").value == []

    def test_validate_all(self, group):
        assert [v.command for v in group.validate_all("!beast imp").value] == ["beast"]

    def test_process_all_in_group(self, group):
        assert [r.command for r in group.process_all("!beast imp").value] == ["beast"]

    def test_validator_is_applied(self, make_command):
        group = CommandGroup(
            [make_command("beast", "!beast {{words}}")],
            validator=lambda result: fail("closed"),
        )
        result = group.process_one("!beast imp")
        assert result.detail == FailureKind.VALIDATION

    def test_format_and_formatters(self, group):
        result = group.process_one("!beast imp").value
        assert group.format(result).value == result.message
        assert sorted(group.get_default_formatters().value) == ["beast", "roll"]

    def test_unknown_target_is_format_failure(self, group):
        assert group.process_one("!beast imp", "html").detail == FailureKind.FORMAT

    def test_help(self, group):
        assert group.get_help() == ["beast: beast command", "roll: roll command"]
