"""Grammar compiler package.

Typical usage::

    from command_engine.grammar import FieldDescriptor, GrammarBuilder

    builder = GrammarBuilder([
        FieldDescriptor("tier", r"(?:L|T|l|t)?(\\d+)", optional=True, embedded_captures=1),
        FieldDescriptor("words", r"\\w+(?:\\s|\\w|`|'|-|\\.)*"),
    ])
    grammar = builder.build("!beast {{tier?}} {{words}}").get_value_or_throw()
    grammar.parse("!beast T5 horned serpent")  # Success({"tier": "5", "words": ...})
"""

from command_engine.grammar.compiler import (
    CaptureSlot,
    CompiledGrammar,
    GrammarBuilder,
    ParsedFields,
    UnknownFieldPolicy,
)
from command_engine.grammar.fields import FieldDescriptor, FieldRegistry
from command_engine.grammar.template import FieldReference, Literal, parse_template

__all__ = [
    "CaptureSlot",
    "CompiledGrammar",
    "FieldDescriptor",
    "FieldReference",
    "FieldRegistry",
    "GrammarBuilder",
    "Literal",
    "ParsedFields",
    "UnknownFieldPolicy",
    "parse_template",
]
