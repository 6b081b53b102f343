"""
Shared pytest fixtures for the command-engine test suite.

This module provides fixtures that are automatically available to all test files:
- The "beast" field registry used throughout the grammar and dispatch tests
- A GrammarBuilder over that registry
- A factory for small CommandDefinition instances
- A catalog YAML file written into a temporary directory
"""

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from command_engine.dispatch import CommandDefinition
from command_engine.grammar import FieldDescriptor, FieldRegistry, GrammarBuilder
from command_engine.result import succeed

# ============================================================================
# GRAMMAR FIXTURES
# ============================================================================

TIER_PATTERN = r"(?:L|T|l|t)?(\d+)"
WORDS_PATTERN = r"\w+(?:\s|\w|`|'|-|\.)*"


@pytest.fixture
def beast_fields() -> FieldRegistry:
    """Registry with an optional ``tier`` (one embedded capture) and ``words``."""
    return FieldRegistry(
        [
            FieldDescriptor("tier", TIER_PATTERN, optional=True, embedded_captures=1),
            FieldDescriptor("words", WORDS_PATTERN),
            FieldDescriptor("count", r"\d+"),
        ]
    )


@pytest.fixture
def builder(beast_fields: FieldRegistry) -> GrammarBuilder:
    return GrammarBuilder(beast_fields)


# ============================================================================
# DISPATCH FIXTURES
# ============================================================================


@pytest.fixture
def make_command(builder: GrammarBuilder) -> Callable[..., CommandDefinition]:
    """
    Build a CommandDefinition from a template.

    The default converter passes parsed fields through unchanged and the
    default executor echoes its parameters, so the execution result of a
    command is the dict of parsed fields.
    """

    def _make(name: str, template: str, **parts: Any) -> CommandDefinition:
        parts.setdefault("description", f"{name} command")
        parts.setdefault("converter", succeed)
        parts.setdefault("executor", succeed)
        parts.setdefault("formatters", {"text": lambda fields: f"{name}:{fields}"})
        return CommandDefinition.from_template(
            builder, template, name=name, **parts
        ).get_value_or_throw()

    return _make


# ============================================================================
# CATALOG FIXTURES
# ============================================================================

CATALOG_DICT: dict = {
    "version": "1.0",
    "fields": {
        "tier": {"pattern": TIER_PATTERN, "optional": True, "embedded_captures": 1},
        "words": {"pattern": WORDS_PATTERN},
        "count": {"pattern": r"\d+"},
    },
    "commands": {
        "beast": {
            "description": "Look up a beast",
            "template": "!beast {{tier?}} {{words}}",
            "examples": ["!beast T5 horned serpent", "!beast ron weasley"],
        },
        "roll": {
            "description": "Roll dice",
            "template": "!roll {{count}}",
            "examples": ["!roll 3"],
        },
    },
}


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """Write the sample catalog to a temporary file and return its path."""
    path = tmp_path / "commands.yaml"
    path.write_text(yaml.safe_dump(CATALOG_DICT, sort_keys=False))
    return path


@pytest.fixture
def catalog_dict() -> dict:
    """A fresh copy of the sample catalog mapping, safe to mutate."""
    return copy.deepcopy(CATALOG_DICT)
