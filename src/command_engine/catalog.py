"""Command catalog: YAML loader and typed catalog dataclasses.

A catalog is a declarative description of a family of text commands: the
reusable field fragments, an optional group prefix, and one template per
command.  It is loaded once at startup and compiled into a
:class:`~command_engine.dispatch.group.CommandGroup`.

Example ``commands.yaml``::

    version: "1.0"
    fields:
      tier:
        pattern: "(?:L|T|l|t)?(\\\\d+)"
        optional: true
        embedded_captures: 1
      words:
        pattern: "\\\\w+(?:\\\\s|\\\\w|`|'|-|\\\\.)*"
    commands:
      beast:
        description: Look up a beast by name
        template: "!beast {{tier?}} {{words}}"
        examples: ["!beast T5 horned serpent"]

Design notes:
- All dataclasses are frozen (immutable after load).
- :func:`load_catalog` raises :exc:`FileNotFoundError` if the file is absent
  and :exc:`ValueError` on schema violations.  Template compilation is a
  separate step (:meth:`Catalog.compile`) that reports every broken template
  in one :class:`~command_engine.result.Failure`.
- Commands built by :meth:`Catalog.build_group` have no domain executor: the
  result of each command is its parsed fields, rendered per
  :class:`~command_engine.dispatch.formatting.FormatTarget`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from command_engine.dispatch.command import CommandDefinition
from command_engine.dispatch.formatting import FormatTarget, FormatterSet
from command_engine.dispatch.group import CommandGroup
from command_engine.dispatch.processor import Validator
from command_engine.errors import FailureKind
from command_engine.grammar.compiler import CompiledGrammar, GrammarBuilder, UnknownFieldPolicy
from command_engine.grammar.fields import FieldRegistry
from command_engine.result import Result, fail, succeed

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typed dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandSpec:
    """One command entry from the catalog.

    Attributes:
        name:        Command name (the YAML key).
        description: One-line help text.
        template:    Template text, e.g. ``"!beast {{tier?}} {{words}}"``.
        examples:    Sample input lines.  :func:`check_examples` verifies that
                     each one matches the command's grammar.
    """

    name: str
    description: str
    template: str
    examples: tuple[str, ...] = ()


@dataclass(frozen=True)
class Catalog:
    """A loaded catalog.

    Attributes:
        version:  Schema version string read from the YAML file.
        fields:   Registry of every declared field descriptor.
        commands: Command entries in file order.
        prefix:   Optional group prefix.
        source:   File the catalog was read from, if any.
    """

    version: str
    fields: FieldRegistry
    commands: tuple[CommandSpec, ...]
    prefix: str | None = None
    source: Path | None = None

    def builder(
        self, unknown_fields: UnknownFieldPolicy = UnknownFieldPolicy.STRICT
    ) -> Result[GrammarBuilder]:
        return GrammarBuilder.create(self.fields, unknown_fields=unknown_fields)

    def get_command(self, name: str) -> CommandSpec | None:
        wanted = name.strip().lower()
        return next((spec for spec in self.commands if spec.name.lower() == wanted), None)

    def compile(
        self, unknown_fields: UnknownFieldPolicy = UnknownFieldPolicy.STRICT
    ) -> Result[dict[str, CompiledGrammar]]:
        """Compile every command template.

        Returns:
            Grammars keyed by command name, or one failure listing every
            template that did not compile.
        """
        builder = self.builder(unknown_fields)
        if builder.is_failure():
            return fail(builder.message, builder.detail)

        grammars: dict[str, CompiledGrammar] = {}
        errors: list[str] = []
        for spec in self.commands:
            built = builder.value.build(spec.template)
            if built.is_failure():
                errors.append(f"{spec.name}: {built.message}")
            else:
                grammars[spec.name] = built.value
        if errors:
            return fail("\n".join(errors), FailureKind.CONFIGURATION)
        return succeed(grammars)

    def build_group(
        self,
        *,
        unknown_fields: UnknownFieldPolicy = UnknownFieldPolicy.STRICT,
        validator: Validator | None = None,
        target: FormatTarget | str = FormatTarget.TEXT,
    ) -> Result[CommandGroup]:
        """Compile the catalog into a :class:`CommandGroup` of field-echo commands."""
        grammars = self.compile(unknown_fields)
        if grammars.is_failure():
            return grammars

        group = CommandGroup(prefix=self.prefix, validator=validator, target=target)
        for spec in self.commands:
            created = CommandDefinition.create(
                name=spec.name,
                description=spec.description,
                grammar=grammars.value[spec.name],
                converter=succeed,
                executor=succeed,
                formatters=_echo_formatters(spec.name),
                examples=spec.examples,
            )
            if created.is_failure():
                return created
            added = group.add_command(created.value)
            if added.is_failure():
                return added
        logger.info("Built command group with %d commands", group.num_commands)
        return succeed(group)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_catalog(path: Path | str) -> Catalog:
    """Load and validate a command catalog from *path*.

    Args:
        path: Location of the YAML catalog file.

    Returns:
        A fully-constructed, immutable :class:`Catalog`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError:        On schema validation failure: missing required keys,
                           malformed field definitions, or duplicate names.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Command catalog not found: {catalog_path}")

    with catalog_path.open() as fh:
        raw = yaml.safe_load(fh)

    catalog = parse_catalog(raw, source=catalog_path)
    logger.debug(
        "Loaded catalog %s: %d fields, %d commands",
        catalog_path,
        len(catalog.fields),
        len(catalog.commands),
    )
    return catalog


def parse_catalog(raw: Any, source: Path | None = None) -> Catalog:
    """Validate an already-parsed catalog mapping.

    Raises:
        ValueError: On schema validation failure.
    """
    name = source.name if source is not None else "catalog"
    if not isinstance(raw, dict):
        raise ValueError(f"{name} must be a YAML mapping at the top level.")

    version = raw.get("version")
    if not version:
        raise ValueError(f"{name}: missing required field 'version'.")

    prefix = raw.get("prefix")
    if prefix is not None and not isinstance(prefix, str):
        raise ValueError(f"{name}: 'prefix' must be a string.")

    fields = _parse_fields(raw.get("fields"), name)
    commands = _parse_commands(raw.get("commands"), name)
    return Catalog(
        version=str(version),
        fields=fields,
        commands=commands,
        prefix=prefix or None,
        source=source,
    )


def check_examples(catalog: Catalog, grammars: dict[str, CompiledGrammar]) -> list[str]:
    """Return one problem line per example that its own grammar does not match."""
    problems: list[str] = []
    for spec in catalog.commands:
        grammar = grammars.get(spec.name)
        if grammar is None:
            continue
        for example in spec.examples:
            parsed = grammar.parse(example)
            if parsed.is_failure():
                problems.append(f"{spec.name}: {example!r}: {parsed.message}")
            elif parsed.value is None:
                problems.append(f"{spec.name}: example {example!r} does not match")
    return problems


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _parse_fields(raw: Any, name: str) -> FieldRegistry:
    if not isinstance(raw, dict) or not raw:
        raise ValueError(f"{name}: 'fields' must be a non-empty mapping.")
    registry = FieldRegistry.from_mapping(raw)
    if registry.is_failure():
        raise ValueError(f"{name}: {registry.message}")
    return registry.value


def _parse_commands(raw: Any, name: str) -> tuple[CommandSpec, ...]:
    if not isinstance(raw, dict) or not raw:
        raise ValueError(f"{name}: 'commands' must be a non-empty mapping.")

    commands: list[CommandSpec] = []
    for command_name, entry in raw.items():
        if not isinstance(entry, dict):
            raise ValueError(f"{name}: commands.{command_name} must be a mapping.")
        template = entry.get("template")
        if not isinstance(template, str) or not template.strip():
            raise ValueError(f"{name}: commands.{command_name}.template is required.")
        examples = entry.get("examples", [])
        if not isinstance(examples, list) or not all(isinstance(e, str) for e in examples):
            raise ValueError(f"{name}: commands.{command_name}.examples must be a list of strings.")
        commands.append(
            CommandSpec(
                name=str(command_name),
                description=str(entry.get("description", "")),
                template=template,
                examples=tuple(examples),
            )
        )
    return tuple(commands)


def _echo_formatters(command: str) -> FormatterSet:
    def _text(fields: dict[str, str | None]) -> str:
        parts = [f"{key}={value}" for key, value in fields.items() if value is not None]
        return f"{command}: {', '.join(parts)}" if parts else command

    def _markdown(fields: dict[str, str | None]) -> str:
        lines = [f"**{command}**"]
        lines.extend(f"- `{key}`: {value}" for key, value in fields.items() if value is not None)
        return "\n".join(lines)

    def _embed(fields: dict[str, str | None]) -> str:
        return json.dumps({"command": command, "fields": fields})

    return FormatterSet(
        {
            FormatTarget.TEXT: _text,
            FormatTarget.MARKDOWN: _markdown,
            FormatTarget.EMBED: _embed,
        }
    )
