"""Conversion engine package.

Typical usage::

    from command_engine.conversion import converters as cv

    params = cv.object_of({"tier": cv.number, "words": cv.string}, optional=["tier"])
    result = params.convert({"tier": "5", "words": "horned serpent"})
"""

from command_engine.conversion.converter import Converter, OnError
from command_engine.conversion.lookup import LookupOptions, SearchDirectory, lookup

__all__ = ["Converter", "LookupOptions", "OnError", "SearchDirectory", "lookup"]
