"""
cosmopolint - Script (writing system) matching.

A ScriptClass is a named set of code point ranges. Matching runs on the
literal's source text exactly as written, so escape sequences such as
``\\u4e2d`` are NOT decoded and do not match.

Python's ``re`` has no ``\\p{Script=...}`` support, so each class compiles
its ranges into a plain character class.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable


CodeRange = tuple[int, int]


def _char_class(ranges: Iterable[CodeRange]) -> re.Pattern[str]:
    parts = []
    for lo, hi in ranges:
        if lo == hi:
            parts.append(re.escape(chr(lo)))
        else:
            parts.append(f"{re.escape(chr(lo))}-{re.escape(chr(hi))}")
    return re.compile("[" + "".join(parts) + "]")


@dataclass(frozen=True)
class ScriptClass:
    """A writing system that string literals must not contain."""

    name: str
    ranges: tuple[CodeRange, ...]
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_pattern", _char_class(self.ranges))

    def matches(self, text: str) -> bool:
        """True if any code point of *text* belongs to this script."""
        return self._pattern.search(text) is not None


# =============================================================================
# Known scripts
# =============================================================================

HAN = ScriptClass("Han", (
    (0x2E80, 0x2E99),
    (0x2E9B, 0x2EF3),
    (0x2F00, 0x2FD5),
    (0x3005, 0x3005),
    (0x3007, 0x3007),
    (0x3021, 0x3029),
    (0x3038, 0x303B),
    (0x3400, 0x4DBF),
    (0x4E00, 0x9FFF),
    (0xF900, 0xFA6D),
    (0xFA70, 0xFAD9),
    (0x16FE2, 0x16FE3),
    (0x16FF0, 0x16FF1),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B739),
    (0x2B740, 0x2B81D),
    (0x2B820, 0x2CEA1),
    (0x2CEB0, 0x2EBE0),
    (0x2EBF0, 0x2EE5D),
    (0x2F800, 0x2FA1D),
    (0x30000, 0x3134A),
    (0x31350, 0x323AF),
))

HIRAGANA = ScriptClass("Hiragana", (
    (0x3041, 0x3096),
    (0x309D, 0x309F),
    (0x1B001, 0x1B11F),
    (0x1B132, 0x1B132),
    (0x1B150, 0x1B152),
    (0x1F200, 0x1F200),
))

KATAKANA = ScriptClass("Katakana", (
    (0x30A1, 0x30FA),
    (0x30FD, 0x30FF),
    (0x31F0, 0x31FF),
    (0x32D0, 0x32FE),
    (0x3300, 0x3357),
    (0xFF66, 0xFF6F),
    (0xFF71, 0xFF9D),
    (0x1B000, 0x1B000),
    (0x1B120, 0x1B122),
    (0x1B155, 0x1B155),
    (0x1B164, 0x1B167),
))

HANGUL = ScriptClass("Hangul", (
    (0x1100, 0x11FF),
    (0x302E, 0x302F),
    (0x3131, 0x318E),
    (0x3200, 0x321E),
    (0x3260, 0x327E),
    (0xA960, 0xA97C),
    (0xAC00, 0xD7A3),
    (0xD7B0, 0xD7C6),
    (0xD7CB, 0xD7FB),
    (0xFFA0, 0xFFBE),
    (0xFFC2, 0xFFC7),
    (0xFFCA, 0xFFCF),
    (0xFFD2, 0xFFD7),
    (0xFFDA, 0xFFDC),
))

CYRILLIC = ScriptClass("Cyrillic", (
    (0x0400, 0x0484),
    (0x0487, 0x052F),
    (0x1C80, 0x1C88),
    (0x1D2B, 0x1D2B),
    (0x1D78, 0x1D78),
    (0x2DE0, 0x2DFF),
    (0xA640, 0xA69F),
    (0xFE2E, 0xFE2F),
))

SCRIPTS: dict[str, ScriptClass] = {
    s.name.lower(): s for s in (HAN, HIRAGANA, KATAKANA, HANGUL, CYRILLIC)
}

DEFAULT_SCRIPTS: tuple[ScriptClass, ...] = (HAN,)


def get_script(name: str) -> ScriptClass:
    """Look up a known script by case-insensitive name (KeyError if unknown)."""
    return SCRIPTS[name.strip().lower()]


def matching_scripts(scripts: Iterable[ScriptClass], text: str) -> list[ScriptClass]:
    """All scripts in *scripts* that occur in *text*, in configured order."""
    return [s for s in scripts if s.matches(text)]
