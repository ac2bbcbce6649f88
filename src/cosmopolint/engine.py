"""
cosmopolint - Traversal engine.

Two checks run over each syntax tree:

- I18N-SCRIPT: string literals containing characters of a disallowed script.
  Import statements and calls to escape hatches are pruned together with
  their whole subtree. An f-string is matched on its literal text only; its
  replacement fields are walked like any other expression.
- I18N-SYMBOL: every identifier that resolves to a watched symbol. Escape
  hatches do NOT exempt these; only the test-file filter applies.

Identifiers the resolver cannot resolve never match and never raise.
"""

from __future__ import annotations

import ast
import logging
from typing import Iterator, Optional

from .config import LintConfig
from .errors import PassInputError
from .frontend import Resolver, SourceFile
from .nodes import NodeKind, callee_of, classify, fstring_fields, identifier_span, span
from .reporting import Finding
from .scripts import matching_scripts

logger = logging.getLogger(__name__)

RULE_SCRIPT = "I18N-SCRIPT"
RULE_SYMBOL = "I18N-SYMBOL"


def iter_preorder(root: ast.AST) -> Iterator[ast.AST]:
    """Yield every node of *root* once, parents before children, in source order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(ast.iter_child_nodes(node))))


def _quote(text: str) -> str:
    first, sep, _ = text.partition("\n")
    return first + " ..." if sep else first


class _Checker:
    rule_id = ""

    def __init__(self, source: SourceFile, resolver: Resolver, cfg: LintConfig):
        self.source = source
        self.resolver = resolver
        self.cfg = cfg
        self.findings: list[Finding] = []

    def _skipped(self) -> bool:
        if self.cfg.file_filter.should_skip(self.source.path):
            logger.debug("%s: skipping test file for %s", self.source.path, self.rule_id)
            return True
        return False

    def _emit(self, where: tuple[int, int, int, int], message: str, evidence: str = "") -> None:
        line, col, end_line, end_col = where
        self.findings.append(Finding(
            rule_id=self.rule_id,
            path=str(self.source.path),
            line=line,
            col=col + 1,
            end_line=end_line,
            end_col=end_col + 1,
            message=message,
            evidence=evidence,
        ))


class ScriptLiteralChecker(_Checker):
    """Flags string literals containing disallowed script characters."""

    rule_id = RULE_SCRIPT

    def run(self) -> list[Finding]:
        if self._skipped():
            return self.findings
        stack: list[ast.AST] = [self.source.tree]
        while stack:
            node = stack.pop()
            if not self._should_descend(node):
                continue
            if isinstance(node, ast.JoinedStr):
                # only the replacement fields; the literal parts were matched with the f-string
                children: list[ast.AST] = list(fstring_fields(node))
            else:
                children = list(ast.iter_child_nodes(node))
            stack.extend(reversed(children))
        return self.findings

    def _should_descend(self, node: ast.AST) -> bool:
        kind = classify(node)
        if kind is NodeKind.IMPORT:
            return False
        if kind is NodeKind.CALL:
            return not self._is_escape_hatch_call(node)  # type: ignore[arg-type]
        if kind is NodeKind.LITERAL:
            self._check_literal(node)
        return True

    def _is_escape_hatch_call(self, node: ast.Call) -> bool:
        callee = callee_of(node)
        if callee is None:
            return False
        return self.cfg.escape_hatches.is_escape_hatch(self.resolver.resolve(callee))

    def _check_literal(self, node: ast.AST) -> None:
        text = self.source.segment(node)
        if not text and isinstance(node, ast.Constant):
            text = node.value
        literal_text = text
        if isinstance(node, ast.JoinedStr):
            literal_text = self.source.segment_without(node, fstring_fields(node))
        scripts = matching_scripts(self.cfg.scripts, literal_text)
        if not scripts:
            return
        names = ", ".join(s.name for s in scripts)
        self._emit(
            span(node),
            f"string literal contains {names} script char(s): {_quote(text)}",
            evidence=text,
        )


class WatchedSymbolChecker(_Checker):
    """Flags every use of a watched locale-dependent symbol."""

    rule_id = RULE_SYMBOL

    def run(self) -> list[Finding]:
        if self._skipped():
            return self.findings
        watched = {w.fqn: w for w in self.cfg.watched_symbols}
        if not watched:
            return self.findings
        for node in iter_preorder(self.source.tree):
            if classify(node) is not NodeKind.IDENTIFIER:
                continue
            sym = self.resolver.resolve(node)
            if sym is None or sym.is_builtin:
                continue
            hit = watched.get(sym.fqn)
            if hit is not None:
                self._emit(identifier_span(node), hit.message, evidence=self.source.segment(node))
        return self.findings


def run_pass(
    source: Optional[SourceFile],
    resolver: Optional[Resolver],
    cfg: Optional[LintConfig] = None,
) -> list[Finding]:
    """Run both checks over one file and return findings in source order."""
    if source is None or getattr(source, "tree", None) is None:
        raise PassInputError("no syntax tree to check")
    if resolver is None:
        raise PassInputError(f"{source.path}: no resolver")
    cfg = cfg or LintConfig()

    findings = ScriptLiteralChecker(source, resolver, cfg).run()
    findings += WatchedSymbolChecker(source, resolver, cfg).run()
    findings.sort(key=lambda f: (f.line, f.col, f.rule_id))
    return findings
