"""Tests for the context-diff patch parser and applier."""

import pytest

from kode_agent.editing.apply_patch import (
    FUZZ_EOF_FALLBACK,
    AddFile,
    Chunk,
    DeleteFile,
    DiffError,
    Patch,
    UpdateFile,
    apply_patch,
    canonicalize,
    extract_file_paths,
    find_context,
    get_updated_file,
    identify_files_affected,
    identify_files_needed,
    process_patch,
    text_to_patch,
)


def _patch(*body: str) -> str:
    return "\n".join(("*** Begin Patch",) + body + ("*** End Patch",))


TWO_CLASSES = """\
class A:
    def f(self):
        return 1
class B:
    def f(self):
        return 1
"""


class TestUpdateFile:
    def test_simple_replacement(self):
        text = "*** Begin Patch\n*** Update File: a.txt\n@@\n-foo\n+bar\n*** End Patch"
        results, fuzz = process_patch(text, {"a.txt": "foo\n"})
        assert results == {"a.txt": "bar\n"}
        assert fuzz == 0

    def test_context_and_multiple_hunks(self):
        original = "one\ntwo\nthree\nfour\nfive\nsix\n"
        text = _patch(
            "*** Update File: n.txt",
            "@@",
            " one",
            "-two",
            "+2",
            " three",
            "@@",
            " five",
            "-six",
            "+6",
        )
        results, _ = process_patch(text, {"n.txt": original})
        assert results["n.txt"] == "one\n2\nthree\nfour\nfive\n6\n"

    def test_locator_narrows_search(self):
        text = _patch(
            "*** Update File: m.py",
            "@@ class B:",
            "     def f(self):",
            "-        return 1",
            "+        return 2",
        )
        results, fuzz = process_patch(text, {"m.py": TWO_CLASSES})
        assert results["m.py"] == TWO_CLASSES.replace(
            "class B:\n    def f(self):\n        return 1",
            "class B:\n    def f(self):\n        return 2",
        )
        assert fuzz == 0

    def test_unknown_locator_falls_back_to_context(self):
        text = _patch(
            "*** Update File: a.txt",
            "@@ def missing():",
            "-foo",
            "+bar",
        )
        results, _ = process_patch(text, {"a.txt": "foo\n"})
        assert results["a.txt"] == "bar\n"

    def test_context_line_without_leading_space(self):
        text = _patch("*** Update File: a.txt", "@@", "foo", "-bar", "+baz")
        results, _ = process_patch(text, {"a.txt": "foo\nbar\n"})
        assert results["a.txt"] == "foo\nbaz\n"

    def test_pure_insertion(self):
        text = _patch("*** Update File: a.txt", "@@", " foo", "+inserted")
        results, _ = process_patch(text, {"a.txt": "foo\nbar\n"})
        assert results["a.txt"] == "foo\ninserted\nbar\n"

    def test_move(self):
        text = _patch("*** Update File: a.txt", "*** Move to: b.txt", "@@", "-foo", "+bar")
        results, _ = process_patch(text, {"a.txt": "foo\n"})
        assert results == {"a.txt": None, "b.txt": "bar\n"}


class TestEndOfFile:
    def test_eof_hunk_anchors_to_tail(self):
        text = _patch("*** Update File: a.txt", "@@", " x", "-y", "+z", "*** End of File")
        results, fuzz = process_patch(text, {"a.txt": "x\ny\nx\ny"})
        assert results["a.txt"] == "x\ny\nx\nz"
        assert fuzz == 0

    def test_eof_fallback_is_penalized(self):
        text = _patch("*** Update File: a.txt", "@@", " x", "-y", "+z", "*** End of File")
        results, fuzz = process_patch(text, {"a.txt": "x\ny\nend"})
        assert results["a.txt"] == "x\nz\nend"
        assert fuzz >= FUZZ_EOF_FALLBACK

    def test_eof_hunk_on_text_ending_in_newline(self):
        text = _patch("*** Update File: a.txt", "@@", " x", "-y", "+z", "*** End of File")
        results, fuzz = process_patch(text, {"a.txt": "x\ny\nx\ny\n"})
        assert results["a.txt"] == "x\ny\nx\nz\n"
        assert fuzz == 0


class TestFuzz:
    def test_exact_beats_rstrip_beats_strip(self):
        patch = _patch("*** Update File: a.txt", "@@", "-foo", "+bar")
        _, exact = process_patch(patch, {"a.txt": "foo\n"})
        _, rstripped = process_patch(patch, {"a.txt": "foo   \n"})
        _, stripped = process_patch(patch, {"a.txt": "   foo\n"})
        assert exact == 0
        assert 0 < rstripped < stripped < FUZZ_EOF_FALLBACK

    def test_exact_match_preferred_over_later_fuzzy(self):
        patch = _patch("*** Update File: a.txt", "@@", "-foo", "+bar")
        results, fuzz = process_patch(patch, {"a.txt": "  foo\nfoo\n"})
        assert results["a.txt"] == "  foo\nbar\n"
        assert fuzz == 0

    def test_unicode_punctuation_is_canonical(self):
        patch = _patch("*** Update File: q.py", "@@", '-msg = "it\'s - ok"', '+msg = "fine"')
        original = "msg = \u201cit\u2019s \u2013 ok\u201d\n"
        results, fuzz = process_patch(patch, {"q.py": original})
        assert results["q.py"] == 'msg = "fine"\n'
        assert fuzz == 0

    def test_canonicalize(self):
        assert canonicalize("\u201ca\u201d\u00a0\u2014") == '"a" -'
        assert canonicalize("e\u0301") == "\u00e9"


class TestAddDelete:
    def test_add_file(self):
        text = _patch("*** Add File: new.py", "+print('hi')", "+")
        results, _ = process_patch(text, {})
        assert results == {"new.py": "print('hi')\n"}

    def test_delete_file(self):
        results, _ = process_patch(_patch("*** Delete File: old.py"), {"old.py": "x"})
        assert results == {"old.py": None}

    def test_mixed_actions(self):
        text = _patch(
            "*** Add File: c.txt",
            "+c",
            "*** Delete File: b.txt",
            "*** Update File: a.txt",
            "@@",
            "-a",
            "+A",
        )
        patch, _ = text_to_patch(text, {"a.txt": "a", "b.txt": "b"})
        assert isinstance(patch.actions["c.txt"], AddFile)
        assert isinstance(patch.actions["b.txt"], DeleteFile)
        assert isinstance(patch.actions["a.txt"], UpdateFile)
        assert apply_patch(patch, {"a.txt": "a", "b.txt": "b"}) == {
            "c.txt": "c",
            "b.txt": None,
            "a.txt": "A",
        }


class TestParseErrors:
    def test_missing_prefix(self):
        with pytest.raises(DiffError, match="prefix"):
            text_to_patch("*** Update File: a\n*** End Patch", {})

    def test_missing_suffix(self):
        with pytest.raises(DiffError, match="suffix"):
            text_to_patch("*** Begin Patch\n*** Delete File: a", {"a": ""})

    def test_too_short(self):
        with pytest.raises(DiffError, match="at least two lines"):
            text_to_patch("*** Begin Patch", {})

    def test_duplicate_path(self):
        text = _patch(
            "*** Update File: a.txt", "@@", "-foo", "+bar",
            "*** Update File: a.txt", "@@", "-bar", "+baz",
        )
        with pytest.raises(DiffError, match="Duplicate Path"):
            text_to_patch(text, {"a.txt": "foo\n"})

    def test_update_missing_file(self):
        with pytest.raises(DiffError, match="Missing File"):
            text_to_patch(_patch("*** Update File: nope.txt", "@@", "-a", "+b"), {})

    def test_delete_missing_file(self):
        with pytest.raises(DiffError, match="Missing File"):
            text_to_patch(_patch("*** Delete File: nope.txt"), {})

    def test_add_existing_file(self):
        with pytest.raises(DiffError, match="already exists"):
            text_to_patch(_patch("*** Add File: a.txt", "+x"), {"a.txt": ""})

    def test_add_file_line_without_plus(self):
        with pytest.raises(DiffError, match="Invalid Add File Line"):
            text_to_patch(_patch("*** Add File: a.txt", "x"), {})

    def test_unknown_line(self):
        with pytest.raises(DiffError, match="Unknown Line"):
            text_to_patch(_patch("garbage"), {})

    def test_invalid_line_inside_hunk(self):
        text = _patch("*** Update File: a.txt", "@@", "-foo", "*** Weird", "+bar")
        with pytest.raises(DiffError, match="Invalid Line"):
            text_to_patch(text, {"a.txt": "foo\n"})

    def test_locator_without_space(self):
        text = _patch("*** Update File: a.txt", "@@class Foo", "-foo", "+bar")
        with pytest.raises(DiffError, match="Invalid Line"):
            text_to_patch(text, {"a.txt": "foo\n"})

    def test_bare_stars_open_update_section(self):
        text = _patch("*** Update File: a.txt", "***", "-foo", "+bar")
        with pytest.raises(DiffError, match="Invalid Line"):
            text_to_patch(text, {"a.txt": "foo\n"})

    def test_context_not_found(self):
        text = _patch("*** Update File: a.txt", "@@", "-nothere", "+x")
        with pytest.raises(DiffError, match="Invalid Context"):
            text_to_patch(text, {"a.txt": "foo\n"})

    def test_nothing_applied_on_error(self):
        text = _patch(
            "*** Delete File: b.txt",
            "*** Update File: a.txt", "@@", "-nothere", "+x",
        )
        with pytest.raises(DiffError):
            process_patch(text, {"a.txt": "foo\n", "b.txt": "b"})


class TestMoveCollisions:
    def test_move_onto_existing_file(self):
        text = _patch("*** Update File: a.txt", "*** Move to: b.txt", "@@", "-foo", "+bar")
        with pytest.raises(DiffError, match="Move destination already exists"):
            process_patch(text, {"a.txt": "foo\n", "b.txt": "keep\n"})

    def test_move_onto_added_file(self):
        text = _patch(
            "*** Add File: b.txt",
            "+new",
            "*** Update File: a.txt",
            "*** Move to: b.txt",
            "@@",
            "-foo",
            "+bar",
        )
        with pytest.raises(DiffError, match="Move destination already exists"):
            process_patch(text, {"a.txt": "foo\n"})

    def test_two_moves_onto_same_path(self):
        text = _patch(
            "*** Update File: a.txt", "*** Move to: c.txt", "@@", "-a", "+A",
            "*** Update File: b.txt", "*** Move to: c.txt", "@@", "-b", "+B",
        )
        with pytest.raises(DiffError, match="Move destination already exists"):
            process_patch(text, {"a.txt": "a", "b.txt": "b"})


class TestGetUpdatedFile:
    def test_chunks_applied_in_order(self):
        action = UpdateFile(chunks=[Chunk(0, ["a"], ["A"]), Chunk(2, [], ["X"])])
        assert get_updated_file("a\nb\nc", action, "f") == "A\nb\nX\nc"

    def test_non_monotonic_chunks(self):
        action = UpdateFile(chunks=[Chunk(2, [], ["x"]), Chunk(1, [], ["y"])])
        with pytest.raises(DiffError, match="orig_index"):
            get_updated_file("a\nb\nc", action, "f")

    def test_chunk_past_end(self):
        action = UpdateFile(chunks=[Chunk(5, [], ["x"])])
        with pytest.raises(DiffError, match="len\\(lines\\)"):
            get_updated_file("a\nb", action, "f")

    def test_delete_past_end(self):
        action = UpdateFile(chunks=[Chunk(1, ["b", "c"], [])])
        with pytest.raises(DiffError, match="past the end"):
            get_updated_file("a\nb", action, "f")

    def test_deleted_line_must_match(self):
        action = UpdateFile(chunks=[Chunk(0, ["zzz"], [])])
        with pytest.raises(DiffError, match="does not match"):
            get_updated_file("a", action, "f")

    def test_rejects_other_actions(self):
        with pytest.raises(DiffError):
            get_updated_file("a", DeleteFile(), "f")

    def test_apply_patch_missing_update_target(self):
        with pytest.raises(DiffError, match="Missing File"):
            apply_patch(Patch(actions={"a.txt": UpdateFile()}), {})


class TestFindContext:
    LINES = ["a", "b", "c", "a", "b"]

    def test_empty_context_matches_at_start(self):
        assert find_context(self.LINES, [], 2, False) == (2, 0)

    def test_search_starts_at_cursor(self):
        assert find_context(self.LINES, ["a", "b"], 1, False) == (3, 0)

    def test_not_found(self):
        assert find_context(self.LINES, ["z"], 0, False) == (-1, 0)


class TestIdentifyFiles:
    TEXT = _patch(
        "*** Add File: new.txt",
        "+x",
        "*** Update File: a.txt",
        "@@",
        "-a",
        "+b",
        "*** Delete File: old.txt",
    )

    def test_files_needed(self):
        assert identify_files_needed(self.TEXT) == ["a.txt", "old.txt"]

    def test_files_affected(self):
        assert identify_files_affected(self.TEXT) == ["new.txt", "a.txt", "old.txt"]

    def test_extract_file_paths(self):
        assert extract_file_paths(self.TEXT) == {
            "added": ["new.txt"],
            "updated": ["a.txt"],
            "deleted": ["old.txt"],
        }
