"""
Command-line interface for command-engine.

Provides CLI commands for working with a command catalog:
- check: Compile every template in the catalog and verify its examples
- grammar: Print the compiled expression for one command
- parse: Dispatch one input line against the catalog's commands
- config: Print the effective configuration

Usage:
    command-engine check [--catalog PATH]
    command-engine grammar NAME [--catalog PATH]
    command-engine parse LINE [--catalog PATH] [--policy all|first|one]
                              [--target text|markdown|embed]
    command-engine config

Environment Variables:
    CMD_CATALOG_PATH: Catalog used when --catalog is not given
    CMD_STRICT_FIELDS: Reject undeclared field references (default: true)
    CMD_MATCH_POLICY: Default --policy (default: one)
    CMD_FORMAT_TARGET: Default --target (default: text)
    CMD_LOG_LEVEL: Log level (default: INFO)
    CMD_LOG_FORMAT: simple, detailed or json (default: detailed)
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from command_engine.catalog import Catalog, check_examples, load_catalog
from command_engine.config import LoggingSettings, config, print_config_summary
from command_engine.dispatch.formatting import FormatTarget

LOG_FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


class JsonFormatter(logging.Formatter):
    """Render each log record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%d %H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(settings: LoggingSettings) -> None:
    """Attach a stderr handler to the root logger using ``settings``."""
    handler = logging.StreamHandler(sys.stderr)
    if settings.format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        fmt = LOG_FORMATS.get(settings.format, LOG_FORMATS["detailed"])
        handler.setFormatter(logging.Formatter(fmt))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.level.upper(), logging.INFO))


def _load(args: argparse.Namespace) -> Catalog | None:
    """Load the catalog named on the command line, or the configured one."""
    path = Path(args.catalog) if getattr(args, "catalog", None) else config.catalog.absolute_path
    try:
        return load_catalog(path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading catalog: {e}", file=sys.stderr)
        return None


def cmd_check(args: argparse.Namespace) -> int:
    """
    Compile every template in the catalog and check each example line.

    Returns:
        0 if every template compiles and every example matches, 1 otherwise
    """
    catalog = _load(args)
    if catalog is None:
        return 1

    grammars = catalog.compile(config.grammar.unknown_field_policy)
    if grammars.is_failure():
        print("Catalog has errors:", file=sys.stderr)
        for line in grammars.message.splitlines():
            print(f"  - {line}", file=sys.stderr)
        return 1

    problems = check_examples(catalog, grammars.value)
    if problems:
        print("Examples that do not match their command:", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return 1

    print(f"OK: {len(grammars.value)} commands, {len(catalog.fields)} fields")
    return 0


def cmd_grammar(args: argparse.Namespace) -> int:
    """
    Print the compiled expression for one command.

    Returns:
        0 on success, 1 if the command is unknown or does not compile
    """
    catalog = _load(args)
    if catalog is None:
        return 1

    spec = catalog.get_command(args.name)
    if spec is None:
        print(f"Unknown command: {args.name}", file=sys.stderr)
        return 1

    builder = catalog.builder(config.grammar.unknown_field_policy)
    source = builder.on_success(lambda b: b.build_string(spec.template))
    if source.is_failure():
        print(f"Error: {source.message}", file=sys.stderr)
        return 1

    print(source.value)
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """
    Dispatch one line against the catalog and print the rendered result.

    Returns:
        0 if the line was dispatched under the selected policy, 1 otherwise
    """
    catalog = _load(args)
    if catalog is None:
        return 1

    target = FormatTarget(args.target or config.dispatch.format_target)
    policy = args.policy or config.dispatch.match_policy

    group = catalog.build_group(
        unknown_fields=config.grammar.unknown_field_policy,
        target=target,
    )
    if group.is_failure():
        print(f"Error: {group.message}", file=sys.stderr)
        return 1

    if policy == "all":
        outcome = group.value.process_all(args.line)
        results = outcome.value if outcome.is_success() else []
    elif policy == "first":
        outcome = group.value.process_first(args.line)
        results = [outcome.value] if outcome.is_success() else []
    else:
        outcome = group.value.process_one(args.line)
        results = [outcome.value] if outcome.is_success() else []

    if outcome.is_failure():
        print(f"Error: {outcome.message}", file=sys.stderr)
        return 1

    for result in results:
        print(result.message)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective configuration."""
    print_config_summary()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="command-engine",
        description="command-engine - declarative command grammars and typed dispatch",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Compile every template in a catalog",
        description="Compile every template and verify that each example matches its command.",
    )
    check_parser.add_argument("--catalog", "-c", type=str, help="Catalog file (YAML)")
    check_parser.set_defaults(func=cmd_check)

    # grammar command
    grammar_parser = subparsers.add_parser(
        "grammar",
        help="Print a command's compiled expression",
        description="Print the anchored regular expression compiled from a command template.",
    )
    grammar_parser.add_argument("name", help="Command name")
    grammar_parser.add_argument("--catalog", "-c", type=str, help="Catalog file (YAML)")
    grammar_parser.set_defaults(func=cmd_grammar)

    # parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Dispatch a line against the catalog",
        description=(
            "Match a line against every command in the catalog and print the "
            "rendered result of each accepted command."
        ),
    )
    parse_parser.add_argument("line", help="Input line, e.g. '!beast T5 horned serpent'")
    parse_parser.add_argument("--catalog", "-c", type=str, help="Catalog file (YAML)")
    parse_parser.add_argument(
        "--policy",
        choices=["all", "first", "one"],
        help="Selection policy (default: one, or CMD_MATCH_POLICY env var)",
    )
    parse_parser.add_argument(
        "--target",
        choices=[target.value for target in FormatTarget],
        help="Output format (default: text, or CMD_FORMAT_TARGET env var)",
    )
    parse_parser.set_defaults(func=cmd_parse)

    # config command
    config_parser = subparsers.add_parser("config", help="Show the effective configuration")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(config.logging)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
