"""
cosmopolint - Front-end: source loading and name resolution.

Handles:
- Reading and parsing Python source files
- Deriving dotted module names from file locations
- Resolving identifiers to the declaration they refer to

The resolver is deliberately approximate. It follows imports and scoping
rules, not types: ``obj.method`` on an instance is unresolved. Anything it
cannot resolve comes back as None, never as an error.
"""

from __future__ import annotations

import ast
import builtins
import logging
import re
import tokenize
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from .errors import SourceLoadError
from .symbols import ResolvedSymbol

logger = logging.getLogger(__name__)

_NEWLINE = re.compile(rb"\r\n|\r|\n")


# =============================================================================
# Source files
# =============================================================================

@dataclass(frozen=True)
class SourceFile:
    """A parsed Python source file."""
    path: Path
    text: str
    tree: ast.Module
    module: str
    is_package: bool = False
    lines: list[str] = field(default_factory=list, repr=False, compare=False)

    def segment(self, node: ast.AST) -> str:
        """Source text of *node*, exactly as written."""
        return ast.get_source_segment(self.text, node) or ""

    def segment_without(self, node: ast.AST, holes: Iterable[ast.AST]) -> str:
        """Source text of *node* with the text of each node in *holes* blanked.

        Blanked characters become spaces byte for byte, so the result keeps
        the layout of the original segment.
        """
        holes = list(holes)
        if not holes:
            return self.segment(node)
        data = self.text.encode("utf-8")
        starts = [0] + [m.end() for m in _NEWLINE.finditer(data)]

        def offset(line: int, col: int) -> int:
            return starts[line - 1] + col

        begin = offset(node.lineno, node.col_offset)  # type: ignore[attr-defined]
        end = offset(node.end_lineno, node.end_col_offset)  # type: ignore[attr-defined]
        out = bytearray(data[begin:end])
        for hole in holes:
            lo = offset(hole.lineno, hole.col_offset) - begin  # type: ignore[attr-defined]
            hi = offset(hole.end_lineno, hole.end_col_offset) - begin  # type: ignore[attr-defined]
            if 0 <= lo <= hi <= len(out):
                out[lo:hi] = b" " * (hi - lo)
        return out.decode("utf-8", errors="replace")


def module_name_for(path: Path) -> str:
    """Dotted module name, walking up through directories with ``__init__.py``."""
    path = path.resolve()
    parts: list[str] = [] if path.stem == "__init__" else [path.stem]
    parent = path.parent
    while (parent / "__init__.py").is_file():
        parts.append(parent.name)
        parent = parent.parent
    if not parts:
        return path.parent.name
    return ".".join(reversed(parts))


def parse_source(
    text: str,
    path: Union[str, Path] = "<string>",
    module: str = "__main__",
    is_package: bool = False,
) -> SourceFile:
    """Parse source text that is already in memory."""
    path = Path(path)
    try:
        tree = ast.parse(text, filename=str(path))
    except SyntaxError as e:
        raise SourceLoadError(path, e.msg or "invalid syntax", e.lineno or 0, e.offset or 0) from e
    except (RecursionError, MemoryError, ValueError) as e:
        # too deeply nested for the parser; ValueError covers NUL bytes
        raise SourceLoadError(path, f"cannot parse: {e}") from e
    return SourceFile(
        path=path,
        text=text,
        tree=tree,
        module=module,
        is_package=is_package,
        lines=text.splitlines(),
    )


def load_source(path: Path, module: Optional[str] = None) -> SourceFile:
    """Read and parse a single source file, honouring its coding cookie."""
    try:
        with tokenize.open(path) as f:
            text = f.read()
    except (OSError, SyntaxError, UnicodeDecodeError) as e:
        raise SourceLoadError(path, f"cannot read: {e}") from e
    module = module or module_name_for(path)
    logger.debug("%s: parsing as module %s", path, module)
    return parse_source(
        text,
        path=path,
        module=module,
        is_package=path.name == "__init__.py",
    )


# =============================================================================
# Resolution
# =============================================================================

class Resolver(Protocol):
    """Maps an identifier node to the declaration it refers to."""

    def resolve(self, node: ast.AST) -> Optional[ResolvedSymbol]:
        ...


_BUILTIN_NAMES = frozenset(dir(builtins))

_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


def module_symbol(dotted: str) -> ResolvedSymbol:
    """The symbol naming module *dotted*: ``os.path`` -> ``(os).path``."""
    pkg, _, name = dotted.rpartition(".")
    return ResolvedSymbol(package=pkg or None, name=name)


class _Scope:
    def __init__(self, kind: str, parent: Optional["_Scope"]):
        self.kind = kind  # "module", "function", "class"
        self.parent = parent
        self.imports: dict[str, Optional[ResolvedSymbol]] = {}
        self.locals: set[str] = set()
        self.declared_global: set[str] = set()
        self.declared_nonlocal: set[str] = set()


class ImportResolver(ast.NodeVisitor):
    """Scope-aware resolver driven by the import statements of one module.

    Bindings made by imports resolve to the imported declaration. Every other
    binding in the file resolves to ``(module).name``. Unbound names that
    are builtins resolve to a package-less symbol. *extra_builtins* adds
    names installed into builtins at runtime, such as the ``_`` that
    ``gettext.install()`` provides.
    """

    def __init__(
        self,
        tree: ast.Module,
        module: str,
        is_package: bool = False,
        extra_builtins: Iterable[str] = (),
    ):
        self.module = module
        self.is_package = is_package
        self._builtins = _BUILTIN_NAMES | frozenset(extra_builtins)
        self._names: dict[ast.Name, Optional[ResolvedSymbol]] = {}
        self._module_scope = self._new_scope("module", None, tree.body)
        self._scope = self._module_scope
        for stmt in tree.body:
            self.visit(stmt)

    @classmethod
    def for_source(cls, source: "SourceFile", extra_builtins: Iterable[str] = ()) -> "ImportResolver":
        return cls(source.tree, source.module, source.is_package, extra_builtins)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def resolve(self, node: ast.AST) -> Optional[ResolvedSymbol]:
        attrs: list[str] = []
        while isinstance(node, ast.Attribute):
            attrs.append(node.attr)
            node = node.value
        if not isinstance(node, ast.Name):
            return None
        sym = self._names.get(node)
        for attr in reversed(attrs):
            if sym is None:
                return None
            sym = sym.member(attr)
        return sym

    # -------------------------------------------------------------------------
    # Binding collection
    # -------------------------------------------------------------------------

    def _new_scope(self, kind: str, parent: Optional[_Scope], nodes: Iterable[ast.AST]) -> _Scope:
        scope = _Scope(kind, parent)
        stack = list(reversed(list(nodes)))
        while stack:
            n = stack.pop()
            if isinstance(n, ast.Import):
                for alias in n.names:
                    if alias.asname:
                        scope.imports.setdefault(alias.asname, module_symbol(alias.name))
                    else:
                        top = alias.name.split(".")[0]
                        scope.imports.setdefault(top, module_symbol(top))
                continue
            if isinstance(n, ast.ImportFrom):
                base = self._import_base(n)
                for alias in n.names:
                    if alias.name == "*":
                        continue
                    target = ResolvedSymbol(base, alias.name) if base else None
                    scope.imports.setdefault(alias.asname or alias.name, target)
                continue
            if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                scope.locals.add(n.name)
                continue
            if isinstance(n, (ast.Lambda,) + _COMPREHENSIONS):
                continue
            if isinstance(n, ast.Global):
                scope.declared_global.update(n.names)
            elif isinstance(n, ast.Nonlocal):
                scope.declared_nonlocal.update(n.names)
            elif isinstance(n, ast.Name) and not isinstance(n.ctx, ast.Load):
                scope.locals.add(n.id)
            elif isinstance(n, ast.arg):
                scope.locals.add(n.arg)
            elif isinstance(n, ast.ExceptHandler) and n.name:
                scope.locals.add(n.name)
            stack.extend(reversed(list(ast.iter_child_nodes(n))))
        return scope

    def _import_base(self, node: ast.ImportFrom) -> Optional[str]:
        if not node.level:
            return node.module
        parts = self.module.split(".")
        if not self.is_package:
            parts = parts[:-1]
        drop = node.level - 1
        if drop > len(parts):
            return None
        if drop:
            parts = parts[:-drop]
        if node.module:
            parts.append(node.module)
        return ".".join(parts) or None

    def _lookup(self, name: str) -> Optional[ResolvedSymbol]:
        current: Optional[_Scope] = self._scope
        nested = False
        while current is not None:
            if name in current.declared_global and current is not self._module_scope:
                current = self._module_scope
                nested = True
                continue
            visible = not (nested and current.kind == "class")
            if visible and name not in current.declared_nonlocal:
                if name in current.imports:
                    return current.imports[name]
                if name in current.locals:
                    return ResolvedSymbol(self.module, name)
            nested = True
            current = current.parent
        if name in self._builtins:
            return ResolvedSymbol(None, name)
        return None

    # -------------------------------------------------------------------------
    # Visiting
    # -------------------------------------------------------------------------

    def _visit_in(self, scope: _Scope, nodes: Iterable[ast.AST]) -> None:
        saved = self._scope
        self._scope = scope
        try:
            for n in nodes:
                self.visit(n)
        finally:
            self._scope = saved

    def _visit_signature(self, args: ast.arguments) -> None:
        """Defaults and annotations are evaluated in the enclosing scope."""
        for d in list(args.defaults) + [d for d in args.kw_defaults if d is not None]:
            self.visit(d)
        all_args = args.posonlyargs + args.args + args.kwonlyargs
        all_args += [a for a in (args.vararg, args.kwarg) if a is not None]
        for a in all_args:
            if a.annotation is not None:
                self.visit(a.annotation)

    def generic_visit(self, node: ast.AST) -> None:
        """Walk plain expressions and statements without recursing.

        Only nodes with a ``visit_*`` handler (names and scope-opening
        nodes) are dispatched, so long operator chains do not exhaust the
        interpreter stack.
        """
        stack = list(reversed(list(ast.iter_child_nodes(node))))
        while stack:
            n = stack.pop()
            handler = getattr(self, "visit_" + n.__class__.__name__, None)
            if handler is not None:
                handler(n)
            else:
                stack.extend(reversed(list(ast.iter_child_nodes(n))))

    def visit_Name(self, node: ast.Name) -> None:
        self._names[node] = self._lookup(node.id)

    def visit_Constant(self, node: ast.Constant) -> None:
        pass

    def _visit_function(self, node: Union[ast.FunctionDef, ast.AsyncFunctionDef]) -> None:
        for d in node.decorator_list:
            self.visit(d)
        self._visit_signature(node.args)
        if node.returns is not None:
            self.visit(node.returns)
        scope = self._new_scope("function", self._scope, [node.args, *node.body])
        self._visit_in(scope, node.body)

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_signature(node.args)
        scope = self._new_scope("function", self._scope, [node.args, node.body])
        self._visit_in(scope, [node.body])

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        for n in [*node.decorator_list, *node.bases, *node.keywords]:
            self.visit(n)
        scope = self._new_scope("class", self._scope, node.body)
        self._visit_in(scope, node.body)

    def _visit_comprehension(self, node: ast.AST) -> None:
        generators: list[ast.comprehension] = node.generators  # type: ignore[attr-defined]
        # the outermost iterable is evaluated in the enclosing scope
        self.visit(generators[0].iter)
        scope = self._new_scope("function", self._scope, [g.target for g in generators])
        body: list[ast.AST] = []
        for i, g in enumerate(generators):
            if i:
                body.append(g.iter)
            body.extend([g.target, *g.ifs])
        if isinstance(node, ast.DictComp):
            body.extend([node.key, node.value])
        else:
            body.append(node.elt)  # type: ignore[attr-defined]
        self._visit_in(scope, body)

    visit_ListComp = _visit_comprehension
    visit_SetComp = _visit_comprehension
    visit_DictComp = _visit_comprehension
    visit_GeneratorExp = _visit_comprehension
