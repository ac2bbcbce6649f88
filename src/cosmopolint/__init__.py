"""
cosmopolint - i18n hazard linter for Python code.

Detects:
- String literals containing characters of a disallowed script (Han by default)
- Uses of locale-dependent standard-library symbols (time.localtime by default)

Usage:
    python -m cosmopolint [paths ...]
    python -m cosmopolint --look-at-tests --escape-hatches "(gettext).gettext" src/
"""

__version__ = "0.1.0"

from cosmopolint.config import EscapeHatchRegistry, FileFilter, LintConfig, WatchedSymbol
from cosmopolint.engine import ScriptLiteralChecker, WatchedSymbolChecker, run_pass
from cosmopolint.frontend import ImportResolver, SourceFile, load_source, parse_source
from cosmopolint.reporting import Finding, Reporter
from cosmopolint.symbols import FullyQualifiedName, ResolvedSymbol
