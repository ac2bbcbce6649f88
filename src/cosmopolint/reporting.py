"""
cosmopolint - Reporting and output formatting.

Handles:
- Finding dataclass
- Human-readable output, one ``<file>:<line>:<col>: <message>`` per finding
- JSON output
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from typing import Iterable


SEVERITY_ERROR = "ERROR"
SEVERITY_WARN = "WARN"


@dataclass(frozen=True)
class Finding:
    """A single diagnostic. Lines and columns are 1-based."""
    rule_id: str
    path: str
    line: int
    col: int
    end_line: int
    end_col: int
    message: str
    severity: str = SEVERITY_ERROR
    evidence: str = ""

    @property
    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.path, self.line, self.col, self.rule_id)

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.col}: {self.message}"


class Reporter:
    """Collects findings from many files and renders them in a stable order."""

    def __init__(self) -> None:
        self.findings: list[Finding] = []

    def extend(self, findings: Iterable[Finding]) -> None:
        self.findings.extend(findings)

    def sorted(self) -> list[Finding]:
        return sorted(self.findings, key=lambda f: f.sort_key)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == SEVERITY_ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == SEVERITY_WARN]

    def render_human(self) -> str:
        """Render findings as text, one line each."""
        return "\n".join(str(f) for f in self.sorted())

    def render_json(self) -> str:
        """Render findings as a JSON array."""
        return json.dumps(
            [asdict(f) for f in self.sorted()],
            indent=2,
            ensure_ascii=False,
        )
