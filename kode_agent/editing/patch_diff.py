"""
Patch generation — turns two versions of a file into chunks or into
context-diff patch text that :mod:`.apply_patch` accepts.
"""

from __future__ import annotations

import logging
from difflib import SequenceMatcher

from .apply_patch import (
    END_OF_FILE_PREFIX,
    MOVE_FILE_TO_PREFIX,
    PATCH_PREFIX,
    PATCH_SUFFIX,
    UPDATE_FILE_PREFIX,
    Chunk,
    DiffError,
    UpdateFile,
    get_updated_file,
    text_to_patch,
)

logger = logging.getLogger(__name__)


def compute_chunks(old_text: str, new_text: str) -> list[Chunk]:
    """Diff *old_text* against *new_text* line by line.

    The chunks are ordered by ``orig_index`` and, applied to *old_text*
    with :func:`get_updated_file`, reproduce *new_text* exactly.
    """
    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    return [
        Chunk(i1, old_lines[i1:i2], new_lines[j1:j2])
        for tag, i1, i2, j1, j2 in matcher.get_opcodes()
        if tag != "equal"
    ]


def _render_hunks(old_lines: list[str], new_lines: list[str], context: int) -> list[str]:
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    out: list[str] = []
    for group in matcher.get_grouped_opcodes(context):
        out.append("@@")
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                out.extend(" " + line for line in old_lines[i1:i2])
                continue
            out.extend("-" + line for line in old_lines[i1:i2])
            out.extend("+" + line for line in new_lines[j1:j2])
        if group[-1][2] == len(old_lines):
            out.append(END_OF_FILE_PREFIX)
    return out


def make_update_patch(
    path: str,
    old_text: str,
    new_text: str,
    context: int = 3,
    move_path: str | None = None,
) -> str:
    """Render an ``*** Update File`` patch turning *old_text* into *new_text*.

    Hunks carry no line numbers, so repeated context can make a hunk land
    on an earlier copy of itself.  Every rendering is parsed back and
    checked; the context widens until the patch reproduces *new_text*.
    """
    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")

    header = [PATCH_PREFIX, UPDATE_FILE_PREFIX + path]
    if move_path:
        header.append(MOVE_FILE_TO_PREFIX + move_path)

    width = max(0, context)
    while True:
        text = "\n".join(header + _render_hunks(old_lines, new_lines, width) + [PATCH_SUFFIX])
        try:
            patch, _ = text_to_patch(text, {path: old_text})
            action = patch.actions[path]
            if isinstance(action, UpdateFile) and get_updated_file(old_text, action, path) == new_text:
                return text
        except DiffError as exc:
            logger.debug("[ApplyPatch] Rendered patch for %s does not parse back: %s", path, exc)

        if width >= len(old_lines):
            raise DiffError(f"{path}: could not render a patch that reproduces the new text")
        logger.debug("[ApplyPatch] Context of %d line(s) is ambiguous for %s, widening", width, path)
        width = min(len(old_lines), max(1, width * 2))
