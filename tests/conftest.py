"""
Pytest configuration and shared fixtures.
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cosmopolint.config import LintConfig
from cosmopolint.engine import run_pass
from cosmopolint.frontend import ImportResolver, parse_source


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def pkg_foo_main(fixtures_dir):
    """The sample module exercising every check."""
    return fixtures_dir / "pkg_foo" / "main.py"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def check_source(text: str, path: str = "app.py", module: str = "app", **options):
    """Parse dedented source and run the pass with LintConfig.build(**options)."""
    cfg = LintConfig.build(**options)
    src = parse_source(textwrap.dedent(text), path=path, module=module)
    resolver = ImportResolver.for_source(src, cfg.escape_hatches.bare_names)
    return run_pass(src, resolver, cfg)


def resolver_for(text: str, module: str = "app", is_package: bool = False):
    """Return (tree, resolver) for dedented source."""
    src = parse_source(textwrap.dedent(text), module=module, is_package=is_package)
    return src.tree, ImportResolver.for_source(src)


def byte_col(line: str, needle: str, offset: int = 0) -> int:
    """1-based byte column of *needle* within *line*."""
    return line.encode("utf-8").index(needle.encode("utf-8")) + offset + 1


@pytest.fixture
def check():
    return check_source
