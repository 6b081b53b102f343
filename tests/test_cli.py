"""
Unit tests for CLI module (command_engine/cli.py).

Tests cover:
- Command parsing and help output
- check command (compile errors, example mismatches)
- grammar command
- parse command under each selection policy and output format
- Logging configuration
"""

import json
import logging

import pytest
import yaml

from command_engine import cli
from command_engine.catalog import load_catalog
from command_engine.config import LoggingSettings


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep main() from replacing the root handlers installed by pytest."""
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)


@pytest.fixture
def broken_catalog(tmp_path, catalog_dict):
    catalog_dict["commands"]["roll"]["template"] = "!roll {{dice}}"
    path = tmp_path / "broken.yaml"
    path.write_text(yaml.safe_dump(catalog_dict, sort_keys=False))
    return path


# ============================================================================
# ARGUMENT PARSING
# ============================================================================


@pytest.mark.unit
def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage: command-engine" in capsys.readouterr().out


@pytest.mark.unit
def test_invalid_policy_exits():
    with pytest.raises(SystemExit):
        cli.main(["parse", "!roll 3", "--policy", "best"])


# ============================================================================
# CHECK COMMAND
# ============================================================================


@pytest.mark.unit
def test_check_ok(catalog_file, capsys):
    assert cli.main(["check", "--catalog", str(catalog_file)]) == 0
    assert capsys.readouterr().out.strip() == "OK: 2 commands, 3 fields"


@pytest.mark.unit
def test_check_reports_broken_template(broken_catalog, capsys):
    assert cli.main(["check", "-c", str(broken_catalog)]) == 1

    err = capsys.readouterr().err
    assert "Catalog has errors:" in err
    assert "  - roll: Unrecognized property dice" in err


@pytest.mark.unit
def test_check_reports_bad_example(tmp_path, catalog_dict, capsys):
    catalog_dict["commands"]["roll"]["examples"] = ["!roll many"]
    path = tmp_path / "commands.yaml"
    path.write_text(yaml.safe_dump(catalog_dict, sort_keys=False))

    assert cli.main(["check", "-c", str(path)]) == 1
    assert "roll: example '!roll many' does not match" in capsys.readouterr().err


@pytest.mark.unit
def test_missing_catalog(tmp_path, capsys):
    assert cli.main(["check", "-c", str(tmp_path / "missing.yaml")]) == 1
    assert "Error loading catalog" in capsys.readouterr().err


# ============================================================================
# GRAMMAR COMMAND
# ============================================================================


@pytest.mark.unit
def test_grammar_prints_expression(catalog_file, capsys):
    catalog = load_catalog(catalog_file)
    expected = catalog.builder().value.build_string("!roll {{count}}").value

    assert cli.main(["grammar", "roll", "-c", str(catalog_file)]) == 0
    assert capsys.readouterr().out.strip() == expected


@pytest.mark.unit
def test_grammar_unknown_command(catalog_file, capsys):
    assert cli.main(["grammar", "fly", "-c", str(catalog_file)]) == 1
    assert "Unknown command: fly" in capsys.readouterr().err


# ============================================================================
# PARSE COMMAND
# ============================================================================


@pytest.mark.unit
def test_parse_text(catalog_file, capsys):
    argv = ["parse", "!beast T5 horned serpent", "-c", str(catalog_file)]
    assert cli.main([*argv, "--policy", "one", "--target", "text"]) == 0
    assert capsys.readouterr().out.strip() == "beast: tier=5, words=horned serpent"


@pytest.mark.unit
def test_parse_markdown(catalog_file, capsys):
    argv = ["parse", "!roll 4", "-c", str(catalog_file), "--target", "markdown"]
    assert cli.main([*argv, "--policy", "first"]) == 0
    assert capsys.readouterr().out.strip() == "**roll**\n- `count`: 4"


@pytest.mark.unit
def test_parse_embed_all(catalog_file, capsys):
    argv = ["parse", "!roll 4", "-c", str(catalog_file), "--target", "embed"]
    assert cli.main([*argv, "--policy", "all"]) == 0
    assert json.loads(capsys.readouterr().out) == {"command": "roll", "fields": {"count": "4"}}


@pytest.mark.unit
def test_parse_no_match(catalog_file, capsys):
    argv = ["parse", "!fly away", "-c", str(catalog_file), "--policy", "one"]
    assert cli.main(argv) == 1
    assert 'Error: No command matched "!fly away"' in capsys.readouterr().err


@pytest.mark.unit
def test_parse_all_with_no_match_prints_nothing(catalog_file, capsys):
    argv = ["parse", "!fly away", "-c", str(catalog_file), "--policy", "all"]
    assert cli.main(argv) == 0
    assert capsys.readouterr().out == ""


@pytest.mark.unit
def test_parse_broken_catalog(broken_catalog, capsys):
    assert cli.main(["parse", "!roll 3", "-c", str(broken_catalog), "--policy", "one"]) == 1
    assert "Error:" in capsys.readouterr().err


# ============================================================================
# CONFIG COMMAND
# ============================================================================


@pytest.mark.unit
def test_config_command(capsys):
    assert cli.main(["config"]) == 0
    assert "ENGINE CONFIGURATION" in capsys.readouterr().out


# ============================================================================
# LOGGING
# ============================================================================


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.mark.unit
def test_configure_logging_sets_level_and_handler(restore_root_logger, monkeypatch):
    monkeypatch.undo()
    cli.configure_logging(LoggingSettings(level="DEBUG", format="simple"))

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.handlers[0].formatter._fmt == cli.LOG_FORMATS["simple"]


@pytest.mark.unit
def test_configure_logging_json(restore_root_logger, monkeypatch):
    monkeypatch.undo()
    cli.configure_logging(LoggingSettings(format="json"))

    assert isinstance(restore_root_logger.handlers[0].formatter, cli.JsonFormatter)


@pytest.mark.unit
def test_json_formatter_output():
    record = logging.LogRecord(
        "command_engine.test", logging.WARNING, __file__, 1, "hi %s", ("x",), None
    )
    payload = json.loads(cli.JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "command_engine.test"
    assert payload["message"] == "hi x"
