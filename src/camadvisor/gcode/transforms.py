"""Text-level G-code rewrites.

Every stage takes tokenized lines and returns new line texts; nothing is
modified in place.  The predicates used to decide what a stage rewrites
are shared with the analyzer, so that a recommendation is only made when
a stage can act on it.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..core.knowledge import FeedPolicy, policy_feed_rate, safe_max_feed_rate
from ..core.material import Material
from ..core.tool import Tool
from ..core.units import Units
from ..config.defaults import GCODE_DEFAULT_SPINDLE_SPEED, GCODE_SAFE_Z
from .gcode_writer import format_words, make_word, rapid, render, spindle_on
from .state import MachineState
from .tokenizer import AXES, MOTION_COMMANDS, GCodeLine, Word, tokenize_line
from .validate import has_bare_g53, has_g28_with_trailing_command, has_multiple_g_commands

Lines = Sequence[GCodeLine]

SPINDLE_STOPS = ("M5", "M2", "M30")


def _rewrite(line: GCodeLine, words: Sequence[Word]) -> str:
    if tuple(words) == line.words:
        return line.raw
    return render(words, line.comment)


def is_pure_motion(line: GCodeLine) -> bool:
    """A line with at most one G0/G1 command and well-formed X/Y/Z words only."""
    if not line.has_axis_words or line.malformed:
        return False
    commands = line.commands
    if len(commands) > 1 or (commands and commands[0] not in ("G0", "G1")):
        return False
    return all(w.letter in AXES or w.letter == "G" for w in line.words)


# ----------------------------------------------------------------------
# Predicates shared with the analyzer
# ----------------------------------------------------------------------

def coincident_moves(lines: Lines) -> set[int]:
    """Indices of pure motion lines that do not move and do not change the motion mode."""
    found = set()
    state = MachineState()
    for i, line in enumerate(lines):
        motion = state.motion
        move = state.apply(line)
        if move is None or not move.is_coincident or not is_pure_motion(line):
            continue
        if not line.commands or line.commands[0] == motion:
            found.add(i)
    return found


def feed_word_counts(lines: Lines) -> tuple[int, int]:
    """Number of (redundant, rapid) F words.

    A redundant F repeats the modal feed rate or is a second F on one line.
    A rapid F sits on a G0 line, where it has no effect on the move.
    """
    redundant = rapid_feeds = 0
    modal = None
    for line in lines:
        feeds = [w.value for w in line.words if w.letter == "F" and w.value is not None]
        if not feeds:
            continue
        if line.has_command("G0"):
            rapid_feeds += 1
        else:
            redundant += len(feeds) - 1
            if feeds[0] == modal:
                redundant += 1
        modal = feeds[0]
    return redundant, rapid_feeds


def _can_merge_rapids(first: GCodeLine, second: GCodeLine) -> bool:
    if not (first.has_command("G0") and second.has_command("G0")):
        return False
    if not (is_pure_motion(first) and is_pure_motion(second)):
        return False
    first_z, second_z = first.get("Z"), second.get("Z")
    if first_z is None or second_z is None:
        return False
    if second.has("X") or second.has("Y"):
        return False
    # Only a climb can be folded into the previous rapid
    return second_z >= first_z


def mergeable_rapids(lines: Lines) -> int:
    """Number of Z-only rapid climbs that can be folded into the preceding rapid."""
    count = 0
    state = MachineState()
    previous: Optional[GCodeLine] = None
    for line in lines:
        if not line.words:
            continue
        if previous is not None and state.absolute and _can_merge_rapids(previous, line):
            count += 1
        state.apply(line)
        previous = line
    return count


def feeds_above(lines: Lines, limit_mm: float) -> int:
    """Number of F words above *limit_mm* (mm/min) taking the active units into account."""
    count = 0
    state = MachineState()
    for line in lines:
        state.apply(line)
        feed = line.get("F")
        if feed is not None and state.units.to_mm(feed) > limit_mm + 1e-9:
            count += 1
    return count


def feed_ceiling(
    tool: Optional[Tool],
    material: Optional[Material],
    moderate: Optional[FeedPolicy] = None,
) -> Optional[float]:
    """Highest feed rate (mm/min) the feed-rate stage leaves in place.

    Without a tool or material there is no safe maximum; a moderating
    policy (quality or tool life) always applies its own target.
    """
    ceiling = None
    if tool is not None or material is not None:
        ceiling = safe_max_feed_rate(tool, material)
    if moderate is not None:
        target = policy_feed_rate(moderate, tool, material)
        ceiling = target if ceiling is None else min(ceiling, target)
    return ceiling


# ----------------------------------------------------------------------
# Stages
# ----------------------------------------------------------------------

def remove_comments(lines: Lines) -> list[str]:
    """Drop blank and comment-only lines and strip trailing comments."""
    out = []
    for line in lines:
        if not line.code:
            continue
        out.append(line.code if line.comment else line.raw)
    return out


def format_lines(lines: Lines) -> list[str]:
    out = []
    for line in lines:
        if line.words:
            out.append(render(line.words, line.comment))
        elif line.code:
            out.append(line.code)
        elif line.comment:
            out.append(line.raw.strip())
    return out


def normalize_feed_words(lines: Lines) -> list[str]:
    """Keep one F word per change of feed rate, on the line where it takes effect.

    F words are removed from G0 lines and wherever they repeat the modal
    feed.  When that removal would change the feed of a later feed move,
    the F is written onto that move instead.
    """
    out = []
    state = MachineState()
    source_feed = None
    written_feed = None
    for line in lines:
        move = state.apply(line)
        feeds = [w.value for w in line.words if w.letter == "F" and w.value is not None]
        if feeds:
            source_feed = feeds[0]
        is_rapid_line = line.has_command("G0")

        kept = []
        wrote_feed = False
        for w in line.words:
            if w.letter != "F" or w.value is None:
                kept.append(w)
            elif not (is_rapid_line or wrote_feed or w.value == written_feed):
                kept.append(w)
                wrote_feed = True
                written_feed = w.value
        if move is not None and move.is_feed and not wrote_feed and source_feed is not None \
                and source_feed != written_feed:
            kept.append(make_word("F", source_feed))
            written_feed = source_feed
        if line.words and not kept:
            continue
        out.append(_rewrite(line, kept))
    return out


def drop_coincident_moves(lines: Lines) -> list[str]:
    skip = coincident_moves(lines)
    return [line.raw for i, line in enumerate(lines) if i not in skip]


def cap_feed_rates(lines: Lines, ceiling: float) -> list[str]:
    """Lower every F word above *ceiling* (mm/min) to the ceiling."""
    out = []
    state = MachineState()
    for line in lines:
        state.apply(line)
        words = list(line.words)
        for i, w in enumerate(words):
            if w.letter == "F" and w.value is not None and state.units.to_mm(w.value) > ceiling + 1e-9:
                words[i] = make_word("F", state.units.from_mm(ceiling), 1)
        out.append(_rewrite(line, words))
    return out


def merge_rapids(lines: Lines) -> list[str]:
    """Fold a Z-only rapid climb into the preceding rapid (absolute mode only)."""
    out: list[str] = []
    state = MachineState()
    previous: Optional[GCodeLine] = None
    previous_index = -1
    for line in lines:
        if not line.words:
            out.append(line.raw)
            continue
        if previous is not None and state.absolute and _can_merge_rapids(previous, line):
            words = [w for w in previous.words if w.letter != "Z"] + [w for w in line.words if w.letter == "Z"]
            merged = render(words, previous.comment)
            out[previous_index] = merged
            state.apply(line)
            previous = tokenize_line(merged, previous.number)
            continue
        state.apply(line)
        out.append(line.raw)
        previous = line
        previous_index = len(out) - 1
    return out


def _split_g28(line: GCodeLine) -> list[str]:
    """G28 keeps the axis words up to the next G command; what surrounds it gets its own lines."""
    words = list(line.words)
    start = next(i for i, w in enumerate(words) if w.command == "G28")
    end = next(i for i in range(start + 1, len(words)) if words[i].letter == "G" and words[i].command)
    out = []
    for part, note in ((words[:start], ""), (words[start:end], ""), (words[end:], line.comment)):
        if part:
            out.extend(split_multiple_g_commands([tokenize_line(render(part, note), line.number)]))
    return out


def split_multiple_g_commands(lines: Lines) -> list[str]:
    """Put each G command of a multi-command line on its own line.

    The motion command (or the last G command) keeps every other word; a
    G53 stays with the G0/G1 it qualifies.  A G28 keeps its intermediate
    point.
    """
    out = []
    for line in lines:
        if has_g28_with_trailing_command(line):
            out.extend(_split_g28(line))
            continue
        if not has_multiple_g_commands(line):
            out.append(line.raw)
            continue
        g_words = [w for w in line.words if w.letter == "G" and w.command]
        motion = [w for w in g_words if w.command in MOTION_COMMANDS]
        carrier = motion[-1] if motion else g_words[-1]
        keep_g53 = carrier.command in ("G0", "G1")
        for w in g_words:
            if w is carrier or (keep_g53 and w.command == "G53"):
                continue
            out.append(str(w))
        head = [w for w in g_words if keep_g53 and w.command == "G53"] + [carrier]
        rest = [w for w in line.words if not (w.letter == "G" and w.command)]
        out.append(render(head + rest, line.comment))
    return out


def add_motion_to_g53(lines: Lines) -> list[str]:
    """Give a bare G53 the G0 it needs."""
    out = []
    for line in lines:
        if not has_bare_g53(line):
            out.append(line.raw)
            continue
        words = []
        for w in line.words:
            words.append(w)
            if w.command == "G53":
                words.append(Word("G", "0", 0.0))
        out.append(render(words, line.comment))
    return out


def start_spindle_before_cuts(lines: Lines, surface_z: float = 0.0) -> list[str]:
    """Insert a spindle start before each cut made with the spindle off.

    A spindle stop (M5, M2, M30) on the cutting line takes effect before the
    move, so it goes on its own line after the cut.
    """
    out = []
    state = MachineState()
    for line in lines:
        stops = [w for w in line.words if w.command in SPINDLE_STOPS]
        cut = line
        if stops:
            kept = [w for w in line.words if w.command not in SPINDLE_STOPS]
            cut = tokenize_line(render(kept, line.comment), line.number)
        move = state.apply(cut)
        if move is not None and move.is_feed and move.lowest_z < surface_z and not state.spindle_on:
            out.append(spindle_on(state.spindle_speed or GCODE_DEFAULT_SPINDLE_SPEED))
            state.spindle_on = True
            if stops:
                out.append(cut.raw)
                out.extend(str(w) for w in stops)
            else:
                out.append(line.raw)
        else:
            out.append(line.raw)
        if stops:
            state.apply(tokenize_line(format_words(stops), line.number))
    return out


def _has_any(lines: Lines, *commands: str) -> bool:
    return any(line.has_command(*commands) for line in lines)


def add_safety_preamble(lines: Lines) -> list[str]:
    """Add missing modal setup lines, plus spindle and coolant before the first move."""
    out = []
    if not _has_any(lines, "G20", "G21"):
        out.append(Units.MM.gcode_modal)
    if not _has_any(lines, "G90", "G91"):
        out.append("G90")
    if not _has_any(lines, "G17", "G18", "G19"):
        out.append("G17")
    if not _has_any(lines, "G54", "G55", "G56", "G57", "G58", "G59"):
        out.append("G54")

    needs_spindle = not _has_any(lines, "M3", "M4")
    needs_coolant = not _has_any(lines, "M7", "M8")
    state = MachineState()
    for line in lines:
        move = state.apply(line)
        if move is not None and (needs_spindle or needs_coolant):
            if needs_spindle:
                out.append(spindle_on(state.spindle_speed or GCODE_DEFAULT_SPINDLE_SPEED))
            if needs_coolant:
                out.append("M8")
            needs_spindle = needs_coolant = False
        out.append(line.raw)
    return out


def add_safety_footer(lines: Lines) -> list[str]:
    """Retract, stop spindle and coolant, and end the program where missing.

    The footer goes before the first M2/M30, or at the end without one.
    """
    end = next((i for i, line in enumerate(lines) if line.has_command("M2", "M30")), None)
    body = lines if end is None else lines[:end]

    state = MachineState()
    moved = retracted = False
    for line in body:
        move = state.apply(line)
        if move is None:
            continue
        moved = True
        if move.is_feed:
            retracted = False
        elif move.is_rapid and line.has("Z") and move.end[2] > 0:
            retracted = True

    footer = []
    if moved and not retracted and state.absolute:
        footer.append(rapid(z=state.units.from_mm(GCODE_SAFE_Z)))
    if state.spindle_on:
        footer.append("M5")
    if state.coolant_on:
        footer.append("M9")
    if end is None:
        footer.append("M30")

    raws = [line.raw for line in lines]
    at = len(raws) if end is None else end
    return raws[:at] + footer + raws[at:]
