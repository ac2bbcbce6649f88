"""
cosmopolint - Error types.

Configuration problems are raised before any traversal starts. Resolution
gaps are never errors; see ``engine`` for how they are treated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class CosmopolintError(Exception):
    """Base class for all cosmopolint errors."""


class ConfigError(CosmopolintError):
    """Settings could not be loaded or contain invalid values."""

    def __init__(self, message: str, source: Optional[Path] = None):
        self.source = source
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class PassInputError(CosmopolintError):
    """A pass was started without a syntax tree or without a resolver."""


class SourceLoadError(CosmopolintError):
    """A source file could not be read or parsed."""

    def __init__(self, path: Path, message: str, line: int = 0, col: int = 0):
        self.path = path
        self.line = line
        self.col = col
        self.reason = message
        super().__init__(f"{path}:{line}:{col}: {message}")
