"""
chapbook-analyzer - language analysis for Chapbook, the Twine story format.

Parses Chapbook passages into semantic tokens, references, definitions and
diagnostics, and answers completion, hover, definition and reference queries
for editors.
"""

from __future__ import annotations

from ._version import get_version
from .core.errors import ChapbookError, ConfigError
from .core.parser import parse_passage_text

__version__ = get_version()

__all__ = [
    "__version__",
    "ChapbookError",
    "ConfigError",
    "parse_passage_text",
]
