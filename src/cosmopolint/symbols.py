"""
cosmopolint - Qualified names.

A FullyQualifiedName is the pair (defining package, declared name). Its text
form is ``(pkg.path).name``, or a bare ``name`` for builtins, which have no
defining package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


def _is_dotted_path(text: str) -> bool:
    parts = text.replace("/", ".").split(".")
    return all(p.isidentifier() for p in parts)


@dataclass(frozen=True)
class FullyQualifiedName:
    package: Optional[str]
    name: str

    @classmethod
    def parse(cls, text: str) -> "FullyQualifiedName":
        """Parse ``(pkg.path).name`` or a bare builtin ``name``.

        Raises ValueError on anything else.
        """
        s = text.strip()
        if s.isidentifier():
            return cls(package=None, name=s)
        if s.startswith("(") and ")." in s:
            pkg, _, name = s[1:].rpartition(").")
            if pkg and _is_dotted_path(pkg) and name.isidentifier():
                return cls(package=pkg.replace("/", "."), name=name)
        raise ValueError(f"not a fully qualified name: {text!r}")

    @property
    def dotted(self) -> str:
        """Human-readable form, e.g. ``time.localtime``."""
        if self.package is None:
            return self.name
        return f"{self.package}.{self.name}"

    def __str__(self) -> str:
        if self.package is None:
            return self.name
        return f"({self.package}).{self.name}"


@dataclass(frozen=True)
class ResolvedSymbol:
    """What the resolver says an identifier refers to."""

    package: Optional[str]
    name: str

    @property
    def fqn(self) -> FullyQualifiedName:
        return FullyQualifiedName(self.package, self.name)

    @property
    def is_builtin(self) -> bool:
        return self.package is None

    def member(self, attr: str) -> "ResolvedSymbol":
        """The symbol reached by ``.attr`` on this one."""
        return ResolvedSymbol(package=self.fqn.dotted, name=attr)
