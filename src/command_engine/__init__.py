"""Command Engine: declarative command grammars with typed dispatch.

A family of text commands is described as named field templates.  Each
template compiles into one anchored regular expression; matched fragments are
converted into typed values and dispatched to exactly one unambiguous handler.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version, read from pyproject.toml via importlib.metadata.
#
# If the package is imported without being installed (e.g. straight from a
# source checkout on sys.path) we fall back to the literal below so the
# engine can still start.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("command-engine")
except PackageNotFoundError:
    __version__ = "0.3.0"
