"""
cosmopolint - Configuration.

LintConfig is built once per run and never mutated afterwards. It can be
shared read-only between threads that check different files.
For loading settings from files, see settings.py.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Iterable, Optional, Union

from .errors import ConfigError
from .scripts import DEFAULT_SCRIPTS, ScriptClass, get_script
from .symbols import FullyQualifiedName, ResolvedSymbol

logger = logging.getLogger(__name__)


DEFAULT_WATCHED_SYMBOLS: tuple[str, ...] = ("(time).localtime",)

# Directory exclusions for the file walker
DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (
    ".git",
    ".venv",
    "venv",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
    "node_modules",
    "dist",
    "build",
)


# =============================================================================
# Escape hatches
# =============================================================================

@dataclass(frozen=True)
class EscapeHatchRegistry:
    """Callables whose call expressions exempt their arguments from the script check."""

    names: frozenset[FullyQualifiedName] = frozenset()

    @classmethod
    def from_strings(cls, entries: Iterable[str]) -> "EscapeHatchRegistry":
        names: set[FullyQualifiedName] = set()
        for entry in entries:
            if not entry.strip():
                continue
            try:
                names.add(FullyQualifiedName.parse(entry))
            except ValueError:
                logger.warning("ignoring malformed escape hatch %r", entry)
        return cls(frozenset(names))

    @property
    def bare_names(self) -> frozenset[str]:
        """Package-less entries, such as the ``_`` installed by ``gettext.install()``."""
        return frozenset(n.name for n in self.names if n.package is None)

    def is_escape_hatch(self, callee: Optional[ResolvedSymbol]) -> bool:
        if callee is None:
            return False
        return callee.fqn in self.names

    def __len__(self) -> int:
        return len(self.names)


# =============================================================================
# Watched symbols
# =============================================================================

@dataclass(frozen=True)
class WatchedSymbol:
    """A locale-dependent declaration whose every use is reported."""

    fqn: FullyQualifiedName
    message: str = ""

    @classmethod
    def parse(cls, text: str) -> "WatchedSymbol":
        fqn = FullyQualifiedName.parse(text)
        if fqn.package is None:
            raise ValueError(f"watched symbol needs a package: {text!r}")
        return cls(fqn=fqn, message=f"usage of {fqn.dotted}")


# =============================================================================
# Test files
# =============================================================================

@dataclass(frozen=True)
class FileFilter:
    """Decides whether a whole file is skipped as test code."""

    include_test_files: bool = False
    prefixes: tuple[str, ...] = ("test_",)
    suffixes: tuple[str, ...] = ("_test.py",)
    names: tuple[str, ...] = ("conftest.py",)

    def is_test_file(self, path: Union[str, PurePath]) -> bool:
        name = PurePath(path).name
        if name in self.names:
            return True
        if not name.endswith(".py"):
            return False
        return name.startswith(self.prefixes) or name.endswith(self.suffixes)

    def should_skip(self, path: Union[str, PurePath]) -> bool:
        if self.include_test_files:
            return False
        return self.is_test_file(path)


# =============================================================================
# Run configuration
# =============================================================================

@dataclass(frozen=True)
class LintConfig:
    """Immutable configuration for one analysis run."""

    include_test_files: bool = False
    escape_hatches: EscapeHatchRegistry = field(default_factory=EscapeHatchRegistry)
    scripts: tuple[ScriptClass, ...] = DEFAULT_SCRIPTS
    watched_symbols: tuple[WatchedSymbol, ...] = field(
        default_factory=lambda: tuple(WatchedSymbol.parse(s) for s in DEFAULT_WATCHED_SYMBOLS)
    )
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS

    @property
    def file_filter(self) -> FileFilter:
        return FileFilter(include_test_files=self.include_test_files)

    @classmethod
    def build(
        cls,
        look_at_tests: bool = False,
        escape_hatches: Iterable[str] = (),
        scripts: Optional[Iterable[str]] = None,
        watched_symbols: Optional[Iterable[str]] = None,
    ) -> "LintConfig":
        """Build a config from the textual option values.

        Unknown script names and malformed watched symbols raise ConfigError;
        malformed escape hatches are only logged.
        """
        script_classes = DEFAULT_SCRIPTS
        if scripts is not None:
            try:
                script_classes = tuple(get_script(s) for s in scripts if s.strip())
            except KeyError as e:
                raise ConfigError(f"unknown script {e.args[0]!r}") from None
            if not script_classes:
                raise ConfigError("at least one script must be configured")

        watched = watched_symbols if watched_symbols is not None else DEFAULT_WATCHED_SYMBOLS
        try:
            watched_parsed = tuple(WatchedSymbol.parse(s) for s in watched if s.strip())
        except ValueError as e:
            raise ConfigError(str(e)) from None

        return cls(
            include_test_files=look_at_tests,
            escape_hatches=EscapeHatchRegistry.from_strings(escape_hatches),
            scripts=script_classes,
            watched_symbols=watched_parsed,
        )


def should_exclude_path(cfg: LintConfig, path: Path) -> bool:
    """Check if path lies under an excluded directory."""
    return any(d in path.parts for d in cfg.exclude_dirs)
