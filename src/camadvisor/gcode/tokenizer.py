"""Line tokenizer for G-code text.

Each physical line becomes a ``GCodeLine``: the comment text is split off
(``;`` to end of line and ``(...)`` blocks), and the remaining code is read
as letter-prefixed words.  Words whose value is not a plain decimal number
are kept but flagged as malformed, so that rules can report them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

_PAREN_COMMENT = re.compile(r"\([^)]*\)?")
_WORD = re.compile(r"([A-Za-z])\s*([^A-Za-z\s;(]*)")
_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)")

MOTION_COMMANDS = ("G0", "G1", "G2", "G3")
FEED_COMMANDS = ("G1", "G2", "G3")
AXES = ("X", "Y", "Z")


@dataclass(frozen=True)
class Word:
    """One letter-prefixed word, e.g. ``X10.5``.  ``value`` is None if malformed."""
    letter: str
    text: str
    value: Optional[float]

    @property
    def malformed(self) -> bool:
        return self.value is None

    @property
    def command(self) -> Optional[str]:
        """Canonical command name for G/M/T words (``G01`` -> ``G1``)."""
        if self.letter not in "GMT" or self.value is None:
            return None
        return f"{self.letter}{self.value:g}"

    def __str__(self) -> str:
        if self.command is not None and self.letter != "T":
            return self.command
        return f"{self.letter}{self.text}"


@dataclass(frozen=True)
class GCodeLine:
    number: int  # 1-based
    raw: str
    code: str
    words: tuple[Word, ...]
    comment: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()

    @property
    def is_comment_only(self) -> bool:
        return not self.code and bool(self.comment)

    @property
    def commands(self) -> tuple[str, ...]:
        """All G and M commands on the line, in order."""
        return tuple(w.command for w in self.words if w.letter in "GM" and w.command)

    @property
    def g_commands(self) -> tuple[str, ...]:
        return tuple(c for c in self.commands if c.startswith("G"))

    @property
    def m_commands(self) -> tuple[str, ...]:
        return tuple(c for c in self.commands if c.startswith("M"))

    @property
    def command(self) -> Optional[str]:
        """First G or M command, used for the command histogram."""
        commands = self.commands
        return commands[0] if commands else None

    @property
    def malformed(self) -> tuple[Word, ...]:
        return tuple(w for w in self.words if w.malformed)

    def has(self, letter: str) -> bool:
        return any(w.letter == letter for w in self.words)

    def count(self, letter: str) -> int:
        return sum(1 for w in self.words if w.letter == letter)

    def get(self, letter: str) -> Optional[float]:
        """Value of the first well-formed *letter* word, if any."""
        for w in self.words:
            if w.letter == letter and w.value is not None:
                return w.value
        return None

    def has_command(self, *names: str) -> bool:
        return any(c in names for c in self.commands)

    @property
    def has_axis_words(self) -> bool:
        return any(w.letter in AXES for w in self.words)


def _split_comment(raw: str) -> tuple[str, str]:
    parts = []

    def keep(match: re.Match) -> str:
        parts.append(match.group(0).strip("()").strip())
        return " "

    code = _PAREN_COMMENT.sub(keep, raw)
    if ";" in code:
        code, tail = code.split(";", 1)
        parts.append(tail.strip())
    return code.strip(), " ".join(p for p in parts if p)


def parse_value(text: str) -> Optional[float]:
    if not _NUMBER.fullmatch(text):
        return None
    return float(text)


def tokenize_line(raw: str, number: int = 1) -> GCodeLine:
    code, comment = _split_comment(raw)
    words = tuple(
        Word(m.group(1).upper(), m.group(2), parse_value(m.group(2)))
        for m in _WORD.finditer(code)
    )
    return GCodeLine(number=number, raw=raw, code=code, words=words, comment=comment)


def tokenize(text: str) -> list[GCodeLine]:
    """Tokenize *text*; a trailing newline does not produce an extra line."""
    if not isinstance(text, str):
        raise ValueError(f"G-code must be text, got {type(text).__name__}")
    return [tokenize_line(raw, i) for i, raw in enumerate(text.splitlines(), start=1)]


def tokenize_lines(raws: Iterable[str]) -> list[GCodeLine]:
    return [tokenize_line(raw, i) for i, raw in enumerate(raws, start=1)]
