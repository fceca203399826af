"""
Indentation repair — undo a one-level indent shift in a proposed edit.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .matching import Match, detect_line_ending, find_matches

logger = logging.getLogger(__name__)

_LEADING_SPACES = re.compile(r"^( +)")
_LEADING_TABS = re.compile(r"^(\t+)")


@dataclass(frozen=True)
class IndentInfo:
    kind: str  # "space" | "tab"
    size: int

    @property
    def pattern(self) -> re.Pattern:
        if self.kind == "tab":
            return re.compile(r"^\t")
        return re.compile(rf"^ {{1,{self.size}}}")


@dataclass
class TabIndentFix:
    """Outcome of :func:`try_tab_indent_fix`; empty matches mean no fix."""
    old_str: str
    new_str: str
    matches: list[Match] = field(default_factory=list)


def detect_indentation(text: str) -> IndentInfo:
    """Detect whether *text* is dominantly tab or space indented."""
    space_indents = 0
    tab_indents = 0
    space_size = 0

    for line in text.split("\n"):
        if not line.strip():
            continue
        spaces = _LEADING_SPACES.match(line)
        if spaces:
            space_indents += 1
            if space_size == 0:
                space_size = len(spaces.group(1))
        elif _LEADING_TABS.match(line):
            tab_indents += 1

    if tab_indents > space_indents:
        return IndentInfo("tab", 1)
    return IndentInfo("space", space_size or 2)


def remove_one_indent_level(text: str, indentation: IndentInfo) -> str:
    pattern = indentation.pattern
    return "\n".join(pattern.sub("", line, count=1) for line in text.split("\n"))


def all_lines_have_indent(text: str, indentation: IndentInfo) -> bool:
    pattern = indentation.pattern
    return all(
        not line.strip() or pattern.match(line)
        for line in text.split("\n")
    )


def remove_all_indents(text: str) -> str:
    line_ending = detect_line_ending(text)
    return line_ending.join(line.strip() for line in text.split(line_ending))


def try_tab_indent_fix(content: str, old_str: str, new_str: str) -> TabIndentFix:
    """Strip one leading tab from *old_str*/*new_str* if that makes them match.

    Applies only when the document and both strings are tab indented and
    every non-blank line of both strings carries at least one leading tab.
    """
    content_indent = detect_indentation(content)
    if content_indent.kind != "tab":
        return TabIndentFix(old_str, new_str)
    if detect_indentation(old_str).kind != "tab":
        return TabIndentFix(old_str, new_str)
    if new_str.strip() and detect_indentation(new_str).kind != "tab":
        return TabIndentFix(old_str, new_str)
    if not (
        all_lines_have_indent(old_str, content_indent)
        and all_lines_have_indent(new_str, content_indent)
    ):
        return TabIndentFix(old_str, new_str)

    shifted_old = remove_one_indent_level(old_str, content_indent)
    shifted_new = remove_one_indent_level(new_str, content_indent)
    matches = find_matches(content, shifted_old)
    if not matches:
        return TabIndentFix(old_str, new_str)

    logger.debug("[FuzzyEdit] Tab indent fix matched %d location(s)", len(matches))
    return TabIndentFix(shifted_old, shifted_new, matches)
