"""
Context-diff patch parser and applier.

Patches carry no line numbers: every hunk is located by its unchanged
context lines, optionally narrowed by an ``@@ <class or function>`` locator.
The format::

    *** Begin Patch
    *** Update File: path/to/file.py
    *** Move to: path/to/renamed.py        (optional)
    @@ class Widget
     context line
    -deleted line
    +inserted line
    *** End of File                        (optional, anchors to the tail)
    *** Add File: path/to/new.py
    +first line
    *** Delete File: path/to/old.py
    *** End Patch

Context lookups get progressively looser (exact, trailing whitespace
ignored, surrounding whitespace ignored); each looser pass raises the
patch's fuzz score.  Any structural problem raises :class:`DiffError` and
nothing from the patch is applied.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from typing import Callable, Mapping, Union

logger = logging.getLogger(__name__)

PATCH_PREFIX = "*** Begin Patch"
PATCH_SUFFIX = "*** End Patch"
ADD_FILE_PREFIX = "*** Add File: "
DELETE_FILE_PREFIX = "*** Delete File: "
UPDATE_FILE_PREFIX = "*** Update File: "
MOVE_FILE_TO_PREFIX = "*** Move to: "
END_OF_FILE_PREFIX = "*** End of File"
HUNK_ADD_LINE_PREFIX = "+"

# Fuzz penalties; only their ordering matters.
FUZZ_RSTRIP = 1
FUZZ_STRIP = 100
FUZZ_EOF_FALLBACK = 10000

_SECTION_BREAKS = (
    "@@",
    PATCH_SUFFIX,
    UPDATE_FILE_PREFIX.strip(),
    DELETE_FILE_PREFIX.strip(),
    ADD_FILE_PREFIX.strip(),
    END_OF_FILE_PREFIX,
)


class DiffError(ValueError):
    """Raised when a patch cannot be parsed or applied exactly."""


# ---------------------------------------------------------------------------
# Patch model
# ---------------------------------------------------------------------------

@dataclass
class Chunk:
    """One contiguous change inside an updated file."""
    orig_index: int                 # 0-based line in the original file
    del_lines: list[str] = field(default_factory=list)
    ins_lines: list[str] = field(default_factory=list)


@dataclass
class AddFile:
    content: str


@dataclass
class DeleteFile:
    pass


@dataclass
class UpdateFile:
    chunks: list[Chunk] = field(default_factory=list)
    move_path: str | None = None


PatchAction = Union[AddFile, DeleteFile, UpdateFile]


@dataclass
class Patch:
    actions: dict[str, PatchAction] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Unicode canonicalization
# ---------------------------------------------------------------------------

_PUNCT_EQUIV = str.maketrans({
    # dashes
    "\u2010": "-",  # HYPHEN
    "\u2011": "-",  # NO-BREAK HYPHEN
    "\u2012": "-",  # FIGURE DASH
    "\u2013": "-",  # EN DASH
    "\u2014": "-",  # EM DASH
    "\u2212": "-",  # MINUS SIGN
    # double quotes
    "\u201c": '"',  # LEFT DOUBLE QUOTATION MARK
    "\u201d": '"',  # RIGHT DOUBLE QUOTATION MARK
    "\u201e": '"',  # DOUBLE LOW-9 QUOTATION MARK
    "\u00ab": '"',  # LEFT-POINTING DOUBLE ANGLE QUOTATION MARK
    "\u00bb": '"',  # RIGHT-POINTING DOUBLE ANGLE QUOTATION MARK
    # single quotes
    "\u2018": "'",  # LEFT SINGLE QUOTATION MARK
    "\u2019": "'",  # RIGHT SINGLE QUOTATION MARK
    "\u201b": "'",  # SINGLE HIGH-REVERSED-9 QUOTATION MARK
    # spaces
    "\u00a0": " ",  # NO-BREAK SPACE
    "\u202f": " ",  # NARROW NO-BREAK SPACE
})


def canonicalize(text: str) -> str:
    """NFC-normalize *text* and fold look-alike punctuation to ASCII."""
    return unicodedata.normalize("NFC", text).translate(_PUNCT_EQUIV)


# ---------------------------------------------------------------------------
# Context search
# ---------------------------------------------------------------------------

_PASSES: tuple[tuple[Callable[[str], str], int], ...] = (
    (lambda s: s, 0),
    (str.rstrip, FUZZ_RSTRIP),
    (str.strip, FUZZ_STRIP),
)


def _find_context_core(
    lines: list[str],
    context: list[str],
    start: int,
) -> tuple[int, int]:
    if not context:
        return start, 0

    start = max(0, start)
    for normalize, fuzz in _PASSES:
        target = canonicalize("\n".join(normalize(s) for s in context))
        for i in range(start, len(lines)):
            segment = lines[i:i + len(context)]
            if canonicalize("\n".join(normalize(s) for s in segment)) == target:
                return i, fuzz
    return -1, 0


def find_context(
    lines: list[str],
    context: list[str],
    start: int,
    eof: bool,
) -> tuple[int, int]:
    """Locate *context* in *lines* at or after *start*.

    Returns ``(index, fuzz)``; index is -1 when nothing matched.
    End-of-file hunks are looked up at the tail first; for text ending in a
    newline the tail is also tried without the empty last element.
    """
    if eof:
        tails = [len(lines) - len(context)]
        if lines and lines[-1] == "" and len(lines) - 1 - len(context) >= 0:
            tails.append(len(lines) - 1 - len(context))
        for tail in tails:
            index, fuzz = _find_context_core(lines, context, tail)
            if index != -1:
                return index, fuzz
        index, fuzz = _find_context_core(lines, context, start)
        return index, fuzz + FUZZ_EOF_FALLBACK
    return _find_context_core(lines, context, start)


def peek_next_section(
    lines: list[str],
    index: int,
) -> tuple[list[str], list[Chunk], int, bool]:
    """Read one hunk body starting at *index*.

    Returns ``(old_lines, chunks, next_index, is_eof)``.  ``old_lines`` is
    the hunk as it should appear in the original file (context plus deleted
    lines); chunk ``orig_index`` values are relative to it.
    """
    old: list[str] = []
    del_lines: list[str] = []
    ins_lines: list[str] = []
    chunks: list[Chunk] = []
    mode = "keep"

    while index < len(lines):
        s = lines[index]
        if s.startswith(_SECTION_BREAKS) or s == "***":
            break
        if s.startswith("***"):
            raise DiffError(f"Invalid Line: {s}")

        index += 1
        last_mode = mode
        if s.startswith(HUNK_ADD_LINE_PREFIX):
            mode = "add"
        elif s.startswith("-"):
            mode = "delete"
        elif s.startswith(" "):
            mode = "keep"
        else:
            # Tolerate context lines that lost their leading space.
            mode = "keep"
            s = " " + s
        line = s[1:]

        if mode == "keep" and last_mode != mode:
            if ins_lines or del_lines:
                chunks.append(Chunk(len(old) - len(del_lines), del_lines, ins_lines))
            del_lines = []
            ins_lines = []

        if mode == "delete":
            del_lines.append(line)
            old.append(line)
        elif mode == "add":
            ins_lines.append(line)
        else:
            old.append(line)

    if ins_lines or del_lines:
        chunks.append(Chunk(len(old) - len(del_lines), del_lines, ins_lines))

    if index < len(lines) and lines[index] == END_OF_FILE_PREFIX:
        return old, chunks, index + 1, True
    return old, chunks, index, False


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class Parser:
    """Turns patch lines into a :class:`Patch` against known file contents."""

    def __init__(self, current_files: Mapping[str, str], lines: list[str]) -> None:
        self.current_files = current_files
        self.lines = lines
        self.index = 0
        self.patch = Patch()
        self.fuzz = 0

    def _is_done(self, prefixes: tuple[str, ...] = ()) -> bool:
        if self.index >= len(self.lines):
            return True
        return bool(prefixes) and self.lines[self.index].startswith(
            tuple(p.strip() for p in prefixes)
        )

    def _read_str(self, prefix: str = "", return_everything: bool = False) -> str:
        if self.index >= len(self.lines):
            raise DiffError(f"Index: {self.index} >= {len(self.lines)}")
        line = self.lines[self.index]
        if line.startswith(prefix):
            self.index += 1
            return line if return_everything else line[len(prefix):]
        return ""

    def parse(self) -> None:
        while not self._is_done((PATCH_SUFFIX,)):
            path = self._read_str(UPDATE_FILE_PREFIX)
            if path:
                if path in self.patch.actions:
                    raise DiffError(f"Update File Error: Duplicate Path: {path}")
                move_to = self._read_str(MOVE_FILE_TO_PREFIX)
                if path not in self.current_files:
                    raise DiffError(f"Update File Error: Missing File: {path}")
                action = self._parse_update_file(self.current_files[path])
                action.move_path = move_to or None
                self.patch.actions[path] = action
                continue

            path = self._read_str(DELETE_FILE_PREFIX)
            if path:
                if path in self.patch.actions:
                    raise DiffError(f"Delete File Error: Duplicate Path: {path}")
                if path not in self.current_files:
                    raise DiffError(f"Delete File Error: Missing File: {path}")
                self.patch.actions[path] = DeleteFile()
                continue

            path = self._read_str(ADD_FILE_PREFIX)
            if path:
                if path in self.patch.actions:
                    raise DiffError(f"Add File Error: Duplicate Path: {path}")
                if path in self.current_files:
                    raise DiffError(f"Add File Error: File already exists: {path}")
                self.patch.actions[path] = self._parse_add_file()
                continue

            raise DiffError(f"Unknown Line: {self.lines[self.index]}")

        if self.index >= len(self.lines) or not self.lines[self.index].startswith(PATCH_SUFFIX):
            raise DiffError("Missing End Patch")
        self.index += 1

    def _parse_update_file(self, text: str) -> UpdateFile:
        action = UpdateFile()
        file_lines = text.split("\n")
        index = 0

        while not self._is_done((
            PATCH_SUFFIX,
            UPDATE_FILE_PREFIX,
            DELETE_FILE_PREFIX,
            ADD_FILE_PREFIX,
            END_OF_FILE_PREFIX,
        )):
            section_start = self.index
            line = self.lines[self.index]
            if line.startswith("@@") and line != "@@" and not line.startswith("@@ "):
                raise DiffError(f"Invalid Line:\n{line}")

            def_str = self._read_str("@@ ")
            section_str = ""
            if not def_str and self.lines[self.index] == "@@":
                section_str = self.lines[self.index]
                self.index += 1

            if not (def_str or section_str or index == 0):
                raise DiffError(f"Invalid Line:\n{self.lines[self.index]}")

            if def_str.strip():
                index = self._seek_locator(file_lines, def_str, index)

            context, chunks, end_index, eof = peek_next_section(self.lines, self.index)
            if end_index == section_start:
                raise DiffError(f"Invalid Line:\n{self.lines[self.index]}")
            new_index, fuzz = find_context(file_lines, context, index, eof)
            if new_index == -1:
                ctx_text = "\n".join(context)
                if eof:
                    raise DiffError(f"Invalid EOF Context {index}:\n{ctx_text}")
                raise DiffError(f"Invalid Context {index}:\n{ctx_text}")

            if fuzz:
                logger.debug(
                    "[ApplyPatch] Hunk context matched at line %d with fuzz %d",
                    new_index, fuzz,
                )
            self.fuzz += fuzz
            for chunk in chunks:
                chunk.orig_index += new_index
                action.chunks.append(chunk)
            index = new_index + len(context)
            self.index = end_index

        return action

    def _seek_locator(self, file_lines: list[str], def_str: str, index: int) -> int:
        """Advance past the ``@@`` locator line, trying looser passes in turn.

        A locator already seen before the cursor leaves it where it is.
        """
        for normalize, fuzz in _PASSES:
            wanted = canonicalize(normalize(def_str))
            if any(canonicalize(normalize(s)) == wanted for s in file_lines[:index]):
                return index
            for i in range(index, len(file_lines)):
                if canonicalize(normalize(file_lines[i])) == wanted:
                    self.fuzz += fuzz
                    return i + 1

        logger.debug("[ApplyPatch] Locator %r not found; relying on hunk context", def_str)
        return index

    def _parse_add_file(self) -> AddFile:
        lines: list[str] = []
        while not self._is_done((
            PATCH_SUFFIX,
            UPDATE_FILE_PREFIX,
            DELETE_FILE_PREFIX,
            ADD_FILE_PREFIX,
        )):
            s = self._read_str()
            if not s.startswith(HUNK_ADD_LINE_PREFIX):
                raise DiffError(f"Invalid Add File Line: {s}")
            lines.append(s[1:])
        return AddFile("\n".join(lines))


# ---------------------------------------------------------------------------
# High-level API
# ---------------------------------------------------------------------------

def text_to_patch(text: str, current_files: Mapping[str, str]) -> tuple[Patch, int]:
    """Parse *text* against *current_files*; returns ``(patch, fuzz)``."""
    lines = text.strip().split("\n")
    if len(lines) < 2:
        raise DiffError("Invalid patch text: Patch text must have at least two lines.")
    if not lines[0].startswith(PATCH_PREFIX):
        raise DiffError("Invalid patch text: Patch text must start with the correct patch prefix.")
    if lines[-1] != PATCH_SUFFIX:
        raise DiffError("Invalid patch text: Patch text must end with the correct patch suffix.")

    parser = Parser(current_files, lines)
    parser.index = 1
    parser.parse()
    if parser.fuzz:
        logger.info("[ApplyPatch] Patch parsed with fuzz score %d", parser.fuzz)
    return parser.patch, parser.fuzz


def extract_file_paths(text: str) -> dict[str, list[str]]:
    """Collect the paths a patch adds, updates and deletes."""
    found: dict[str, dict[str, None]] = {"added": {}, "updated": {}, "deleted": {}}
    for line in text.strip().split("\n"):
        if line.startswith(ADD_FILE_PREFIX):
            found["added"][line[len(ADD_FILE_PREFIX):]] = None
        elif line.startswith(UPDATE_FILE_PREFIX):
            found["updated"][line[len(UPDATE_FILE_PREFIX):]] = None
        elif line.startswith(DELETE_FILE_PREFIX):
            found["deleted"][line[len(DELETE_FILE_PREFIX):]] = None
    return {kind: list(paths) for kind, paths in found.items()}


def identify_files_needed(text: str) -> list[str]:
    """Paths whose current content must be supplied to parse *text*."""
    paths = extract_file_paths(text)
    return list(dict.fromkeys(paths["updated"] + paths["deleted"]))


def identify_files_affected(text: str) -> list[str]:
    paths = extract_file_paths(text)
    return list(dict.fromkeys(paths["added"] + paths["updated"] + paths["deleted"]))


def get_updated_file(text: str, action: UpdateFile, path: str) -> str:
    """Apply the chunks of *action* to *text*."""
    if not isinstance(action, UpdateFile):
        raise DiffError(f"{path}: expected an update action, got {type(action).__name__}")

    orig_lines = text.split("\n")
    dest_lines: list[str] = []
    orig_index = 0

    for chunk in action.chunks:
        if chunk.orig_index > len(orig_lines):
            raise DiffError(
                f"{path}: chunk.orig_index {chunk.orig_index} > len(lines) {len(orig_lines)}"
            )
        if orig_index > chunk.orig_index:
            raise DiffError(
                f"{path}: orig_index {orig_index} > chunk.orig_index {chunk.orig_index}"
            )
        chunk_end = chunk.orig_index + len(chunk.del_lines)
        if chunk_end > len(orig_lines):
            raise DiffError(
                f"{path}: chunk at {chunk.orig_index} deletes past the end of the file "
                f"({chunk_end} > {len(orig_lines)})"
            )
        for offset, expected in enumerate(chunk.del_lines):
            actual = orig_lines[chunk.orig_index + offset]
            if canonicalize(actual.strip()) != canonicalize(expected.strip()):
                raise DiffError(
                    f"{path}: line {chunk.orig_index + offset + 1} does not match the "
                    f"line to delete:\n{expected}"
                )

        dest_lines.extend(orig_lines[orig_index:chunk.orig_index])
        dest_lines.extend(chunk.ins_lines)
        orig_index = chunk_end

    dest_lines.extend(orig_lines[orig_index:])
    return "\n".join(dest_lines)


def apply_patch(
    patch: Patch,
    current_files: Mapping[str, str],
) -> dict[str, str | None]:
    """Compute new contents for every path *patch* touches.

    ``None`` marks a deleted path.  A move deletes the old path and writes
    the new one.  Nothing is returned unless every action applies.
    A move onto an existing path, or onto a path another action already
    writes, raises :class:`DiffError`.
    """
    claimed = set(patch.actions)
    for path, action in patch.actions.items():
        if isinstance(action, UpdateFile) and action.move_path:
            if action.move_path in current_files or action.move_path in claimed:
                raise DiffError(
                    f"Update File Error: Move destination already exists: "
                    f"{path} -> {action.move_path}"
                )
            claimed.add(action.move_path)

    results: dict[str, str | None] = {}

    for path, action in patch.actions.items():
        if isinstance(action, AddFile):
            results[path] = action.content
        elif isinstance(action, DeleteFile):
            results[path] = None
        elif isinstance(action, UpdateFile):
            if path not in current_files:
                raise DiffError(f"Update File Error: Missing File: {path}")
            new_content = get_updated_file(current_files[path], action, path)
            if action.move_path:
                results[path] = None
                results[action.move_path] = new_content
            else:
                results[path] = new_content
        else:
            raise DiffError(f"{path}: unknown patch action {action!r}")

    return results


def process_patch(
    text: str,
    current_files: Mapping[str, str],
) -> tuple[dict[str, str | None], int]:
    """Parse and apply *text* in one step; returns ``(results, fuzz)``."""
    patch, fuzz = text_to_patch(text, current_files)
    return apply_patch(patch, current_files), fuzz
