"""Tests for the symbol tokenizer and line mapper."""

from kode_agent.editing.cache import SymbolCache
from kode_agent.editing.symbols import fuzzy_match_lines, tokenize


class TestTokenize:
    def test_identifier_runs_and_punctuation(self):
        assert tokenize("foo_bar(x1, y)") == ["foo_bar", "(", "x1", ",", "y", ")"]

    def test_whitespace_dropped_by_default(self):
        assert tokenize("a  +\tb\n") == ["a", "+", "b"]

    def test_whitespace_kept_one_char_per_symbol(self):
        assert tokenize("a  b", ignore_whitespace=False) == ["a", " ", " ", "b"]

    def test_join_reproduces_text(self):
        text = "def f(x):\n\treturn x ** 2  # sq\r\n"
        assert "".join(tokenize(text, ignore_whitespace=False)) == text

    def test_non_ascii_is_single_symbols(self):
        assert tokenize("naïve") == ["na", "ï", "ve"]

    def test_empty(self):
        assert tokenize("") == []
        assert tokenize("   ") == []

    def test_cache_is_used(self):
        cache = SymbolCache()
        first = tokenize("x = 1", cache=cache)
        second = tokenize("x = 1", cache=cache)
        assert first == second == ["x", "=", "1"]
        assert cache.hits == 1
        assert cache.misses == 1

    def test_cache_keys_on_whitespace_mode(self):
        cache = SymbolCache()
        tokenize("a b", cache=cache)
        assert tokenize("a b", ignore_whitespace=False, cache=cache) == ["a", " ", "b"]
        assert len(cache) == 2

    def test_cached_result_is_a_fresh_list(self):
        cache = SymbolCache()
        result = tokenize("a b", cache=cache)
        result.append("zzz")
        assert tokenize("a b", cache=cache) == ["a", "b"]


class TestFuzzyMatchLines:
    def test_identical_lines_map_one_to_one(self):
        lines = ["a = 1", "b = 2"]
        assert fuzzy_match_lines(lines, lines) == [[0], [1]]

    def test_reflowed_line_maps_to_several(self):
        a = ["call(alpha, beta)"]
        b = ["call(", "    alpha,", "    beta)"]
        assert fuzzy_match_lines(a, b) == [[0, 1, 2]]

    def test_joined_lines_map_to_same_target(self):
        a = ["x = [", "1, 2]"]
        b = ["x = [1, 2]"]
        assert fuzzy_match_lines(a, b) == [[0], [0]]

    def test_unmatched_line_is_empty(self):
        a = ["keep()", "@@@"]
        b = ["keep()"]
        assert fuzzy_match_lines(a, b) == [[0], []]

    def test_empty_inputs(self):
        assert fuzzy_match_lines([], ["a"]) == []
        assert fuzzy_match_lines(["a"], []) == [[]]
