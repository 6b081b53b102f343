"""Command templates: ordered literal tokens and field references.

Template text is split on whitespace.  A token written ``{{name}}`` refers to
a field descriptor; ``{{name?}}`` refers to it and forces it optional at this
reference site.  Every other token is a literal regular-expression fragment
(``!beast``, ``@``, ``(?:add|new)``).

Example::

    parse_template("!beast {{tier?}} {{words}}")
    # [Literal("!beast"), FieldReference("tier", optional=True),
    #  FieldReference("words", optional=False)]
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

_REFERENCE = re.compile(r"^\{\{\s*(?P<name>[^{}?\s]+)\s*(?P<optional>\?)?\s*\}\}$")


@dataclass(frozen=True)
class Literal:
    """A literal regular-expression fragment."""

    text: str


@dataclass(frozen=True)
class FieldReference:
    """A reference to a named field.

    Attributes:
        name:     Field name as written in the template.
        optional: ``True`` when the reference was written ``{{name?}}``.
        raw:      The token exactly as written.
    """

    name: str
    optional: bool = False
    raw: str = ""


TemplateToken = Union[Literal, FieldReference]


def parse_token(token: str) -> TemplateToken:
    match = _REFERENCE.match(token)
    if match is None:
        return Literal(token)
    return FieldReference(
        name=match.group("name"),
        optional=match.group("optional") is not None,
        raw=token,
    )


def parse_template(template: str | Sequence[str | TemplateToken]) -> list[TemplateToken]:
    """Split ``template`` into tokens.

    Args:
        template: Template text, or an already-split sequence whose items are
                  token strings or token objects.

    Returns:
        Tokens in template order.  Empty tokens are discarded.
    """
    raw = template.split() if isinstance(template, str) else template
    tokens: list[TemplateToken] = []
    for item in raw:
        if isinstance(item, (Literal, FieldReference)):
            tokens.append(item)
        elif item:
            tokens.append(parse_token(item))
    return tokens
