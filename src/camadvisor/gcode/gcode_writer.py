"""Low-level G-code line formatting helpers."""

from __future__ import annotations

from typing import Iterable, Optional

from .tokenizer import GCodeLine, Word


def fmt(value: float, decimals: int = 4) -> str:
    """Format a float for G-code, stripping trailing zeros."""
    text = f"{value:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def make_word(letter: str, value: float, decimals: int = 4) -> Word:
    text = fmt(value, decimals)
    return Word(letter, text, float(text))


def rapid(
    x: Optional[float] = None,
    y: Optional[float] = None,
    z: Optional[float] = None,
) -> str:
    """G0 rapid traverse."""
    parts = ["G0"]
    if x is not None:
        parts.append(f"X{fmt(x)}")
    if y is not None:
        parts.append(f"Y{fmt(y)}")
    if z is not None:
        parts.append(f"Z{fmt(z)}")
    return " ".join(parts)


def spindle_on(speed: float) -> str:
    """M3 clockwise spindle start."""
    return f"M3 S{fmt(speed, 0)}"


def comment(text: str) -> str:
    """Wrap *text* in a parenthetical comment."""
    # Nested parentheses would end the comment early
    cleaned = text.replace("(", "").replace(")", "")
    return f"({cleaned})"


def format_words(words: Iterable[Word]) -> str:
    """Canonical text of *words*: single spaces, short command numbers."""
    return " ".join(str(w) for w in words)


def render(words: Iterable[Word], note: str = "") -> str:
    """Line text for *words*, keeping *note* as a trailing comment."""
    text = format_words(words)
    if note:
        return f"{text} {comment(note)}" if text else comment(note)
    return text


def format_line(line: GCodeLine) -> str:
    """Canonical text of *line* without its comment."""
    return format_words(line.words)


def needs_formatting(line: GCodeLine) -> bool:
    return bool(line.words) and line.code != format_line(line)
