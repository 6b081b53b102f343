"""Failure kinds attached to :class:`~command_engine.result.Failure` details.

The engine never raises across the conversion/dispatch boundary; instead every
failure is a :class:`~command_engine.result.Failure` whose ``detail`` names
one of the kinds below so callers can branch without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Closed set of reasons a compile, parse or dispatch step can fail."""

    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"
    MISMATCHED_CAPTURES = "mismatched_captures"
    UNRECOGNIZED_FIELD = "unrecognized_field"
    CONVERSION = "conversion"
    EXECUTION = "execution"
    VALIDATION = "validation"
    DUPLICATE_NAME = "duplicate_name"
    FORMAT = "format"
    CONFIGURATION = "configuration"
