"""
cosmopolint - Main runner and CLI.

Usage:
    cosmopolint [paths ...]
    cosmopolint --look-at-tests src/
    cosmopolint --escape-hatches "(gettext).gettext,(myapp.i18n).tr" .
    cosmopolint --json --jobs 8 .

Exit codes: 0 when clean, 1 when there are findings, 2 on configuration or
input errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from . import __version__
from .config import LintConfig, should_exclude_path
from .engine import run_pass
from .errors import ConfigError, SourceLoadError
from .frontend import ImportResolver, load_source
from .reporting import SEVERITY_WARN, Finding, Reporter
from .settings import discover_settings

logger = logging.getLogger(__name__)

RULE_PARSE_ERROR = "PARSE-ERROR"


def iter_files(cfg: LintConfig, paths: Iterable[Path]) -> Iterator[Path]:
    """Python files named directly, plus those found under directories."""
    seen: set[Path] = set()
    for root in paths:
        if root.is_file():
            candidates: Iterable[Path] = [root]
        elif root.is_dir():
            candidates = sorted(root.rglob("*.py"))
        else:
            logger.warning("%s: no such file or directory", root)
            continue
        for path in candidates:
            if path in seen or not path.is_file():
                continue
            if root.is_dir() and should_exclude_path(cfg, path.relative_to(root)):
                continue
            seen.add(path)
            yield path


def _parse_error(path: Path, message: str, line: int = 0, col: int = 0) -> Finding:
    return Finding(
        rule_id=RULE_PARSE_ERROR,
        path=str(path),
        line=line,
        col=col,
        end_line=line,
        end_col=col,
        message=message,
        severity=SEVERITY_WARN,
    )


def check_file(path: Path, cfg: LintConfig) -> list[Finding]:
    """Load, resolve and check one file."""
    try:
        source = load_source(path)
    except SourceLoadError as e:
        logger.warning("%s", e)
        return [_parse_error(path, e.reason, e.line, e.col)]
    try:
        resolver = ImportResolver.for_source(source, cfg.escape_hatches.bare_names)
        return run_pass(source, resolver, cfg)
    except RecursionError:
        logger.warning("%s: too deeply nested to analyse", path)
        return [_parse_error(path, "too deeply nested to analyse")]


def run(paths: Sequence[Path], cfg: LintConfig, jobs: int = 1) -> Reporter:
    """Check every file under *paths* and collect the findings."""
    reporter = Reporter()
    files = list(iter_files(cfg, paths))
    logger.info("checking %d file(s)", len(files))

    if jobs > 1 and len(files) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            for findings in pool.map(lambda p: check_file(p, cfg), files):
                reporter.extend(findings)
    else:
        for path in files:
            reporter.extend(check_file(path, cfg))

    logger.info(
        "%d error(s), %d warning(s) in %d file(s)",
        len(reporter.errors), len(reporter.warnings), len(files),
    )
    return reporter


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cosmopolint",
        description="cosmopolint checks Python code for possible hurdles to i18n/l10n",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Files or directories to check (default: current directory)",
    )
    parser.add_argument(
        "--look-at-tests", "--lookattests",
        dest="look_at_tests",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also check the test files (--no-look-at-tests overrides a settings file)",
    )
    parser.add_argument(
        "--escape-hatches", "--escapehatches",
        dest="escape_hatches",
        metavar="NAMES",
        help="Comma-separated list of fully qualified names, like (gettext).gettext, "
             "to act as i18n escape hatches",
    )
    parser.add_argument(
        "--scripts",
        metavar="NAMES",
        help="Comma-separated list of disallowed scripts (default: Han)",
    )
    parser.add_argument(
        "--watched-symbols",
        dest="watched_symbols",
        metavar="NAMES",
        help="Comma-separated list of fully qualified names whose uses are reported "
             "(default: (time).localtime)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        metavar="FILE",
        help="Settings file (.toml or .yaml); default: pyproject.toml or .cosmopolint.yaml",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=1,
        help="Number of files to check in parallel (default: 1)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="More logging (-v info, -vv debug)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    # Findings quote non-ASCII literals; the Windows console may not cope
    if sys.platform == "win32" and hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")  # type: ignore[union-attr]

    args = _build_parser().parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = discover_settings(Path.cwd(), args.config).with_overrides(
            look_at_tests=args.look_at_tests,
            escape_hatches=args.escape_hatches,
            scripts=args.scripts,
            watched_symbols=args.watched_symbols,
        )
        cfg = settings.to_config()
    except ConfigError as e:
        print(f"cosmopolint: {e}", file=sys.stderr)
        return 2

    reporter = run([Path(p) for p in args.paths], cfg, jobs=max(1, args.jobs))

    if args.json:
        print(reporter.render_json())
    elif reporter.findings:
        print(reporter.render_human())

    return 1 if reporter.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
