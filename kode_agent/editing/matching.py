"""
Match locator — literal occurrence search plus line-number disambiguation,
and the text preparation helpers the edit orchestrator runs before it.
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass

_TRAILING_WS = re.compile(r"\s+$")


@dataclass(frozen=True)
class Match:
    """Where a literal string occurs (0-based, inclusive line range)."""
    start_line: int
    end_line: int


# ---------------------------------------------------------------------------
# Text preparation
# ---------------------------------------------------------------------------

def detect_line_ending(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n")


def restore_line_endings(text: str, line_ending: str) -> str:
    if line_ending == "\r\n":
        return text.replace("\n", "\r\n")
    return text


def split_line_endings(text: str) -> tuple[list[str], list[str]]:
    """Split *text* into lines and the terminator of each line.

    Terminators are ``"\\r\\n"``, ``"\\n"``, or ``""`` for the last line, so
    ``join_line_endings(*split_line_endings(text)) == text``.
    """
    lines = text.split("\n")
    endings = []
    for idx, line in enumerate(lines[:-1]):
        if line.endswith("\r"):
            lines[idx] = line[:-1]
            endings.append("\r\n")
        else:
            endings.append("\n")
    endings.append("")
    return lines, endings


def join_line_endings(lines: list[str], endings: list[str]) -> str:
    return "".join(line + ending for line, ending in zip(lines, endings))


def line_ending_at(endings: list[str], line: int) -> str:
    """Terminator to use for line breaks inserted at *line*.

    The last line has none of its own and borrows the previous line's.
    """
    if endings[line]:
        return endings[line]
    if line > 0:
        return endings[line - 1]
    return "\n"


def remove_trailing_whitespace(text: str) -> str:
    """Strip trailing whitespace from every line, keeping the line endings."""
    line_ending = detect_line_ending(text)
    return line_ending.join(
        _TRAILING_WS.sub("", line) for line in text.split(line_ending)
    )


def prepare_text_for_editing(text: str) -> tuple[str, str]:
    """Return ``(content, original_line_ending)`` ready for matching."""
    line_ending = detect_line_ending(text)
    return normalize_line_endings(remove_trailing_whitespace(text)), line_ending


# ---------------------------------------------------------------------------
# Locating
# ---------------------------------------------------------------------------

def find_matches(content: str, search: str) -> list[Match]:
    """Find every occurrence of *search* in *content*.

    A single-line *search* matches each line containing it.  A multi-line
    *search* is looked up in the whole text; occurrences may overlap.
    """
    content_lines = content.split("\n")
    search_lines = search.split("\n")

    if not search.strip() or len(search_lines) > len(content_lines):
        return []

    if len(search_lines) == 1:
        return [
            Match(idx, idx)
            for idx, line in enumerate(content_lines)
            if search in line
        ]

    matches: list[Match] = []
    newline_count = search.count("\n")
    found = content.find(search)
    while found != -1:
        start_line = content.count("\n", 0, found)
        matches.append(Match(start_line, start_line + newline_count))
        found = content.find(search, found + 1)
    return matches


def find_closest_match(
    matches: list[Match],
    target_start_line: int,
    target_end_line: int,
    line_number_error_tolerance: float,
) -> int | None:
    """Pick the match a line-number hint refers to.

    An exact line-range match always wins.  With a tolerance of 0 nothing
    else is accepted; with 1 the nearest match is.  In between, the nearest
    match is accepted only if the hint is decisively closer to it than to
    the runner-up: ``distance <= floor(gap / 2 * tolerance)``.

    Returns the index into *matches*, or ``None``.
    """
    if not matches:
        return None
    if len(matches) == 1:
        return 0

    for idx, match in enumerate(matches):
        if match.start_line == target_start_line and match.end_line == target_end_line:
            return idx

    if line_number_error_tolerance == 0:
        return None

    closest = -1
    min_distance = sys.maxsize
    for idx, match in enumerate(matches):
        distance = abs(match.start_line - target_start_line)
        if distance < min_distance:
            min_distance = distance
            closest = idx

    if line_number_error_tolerance == 1:
        return closest

    runner_up = -1
    runner_up_distance = sys.maxsize
    for idx, match in enumerate(matches):
        if idx == closest:
            continue
        distance = abs(match.start_line - target_start_line)
        if distance < runner_up_distance:
            runner_up_distance = distance
            runner_up = idx

    gap = abs(matches[runner_up].start_line - matches[closest].start_line)
    threshold = int(gap / 2 * line_number_error_tolerance)
    return closest if min_distance <= threshold else None


# ---------------------------------------------------------------------------
# Snippets
# ---------------------------------------------------------------------------

def create_snippet(
    content: str,
    start_line: int,
    num_lines: int,
    context_lines: int,
) -> tuple[str, int]:
    """Cut *num_lines* lines from *start_line* plus surrounding context.

    Returns ``(snippet, first_line_of_snippet)``.
    """
    first = max(0, start_line - context_lines)
    last = start_line + num_lines - 1 + context_lines
    lines = normalize_line_endings(content).split("\n")
    return "\n".join(lines[first:last + 1]), first


def create_snippet_str(
    content: str,
    start_line: int,
    num_lines: int,
    context_lines: int,
) -> str:
    """Like :func:`create_snippet`, rendered with 1-based line numbers."""
    snippet, first = create_snippet(content, start_line, num_lines, context_lines)
    return "\n".join(
        f"{idx + first + 1:>6}\t{line}"
        for idx, line in enumerate(snippet.split("\n"))
    )
