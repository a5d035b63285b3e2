# tests/bolt_search/test_config.py

"""Tests for `bolt_search.config`."""

import pytest

from bolt_search import config
from bolt_search.config import SearchOptions, normalize_extensions
from bolt_search.models import MatchMode


class TestEnvHelpers:
    def test_int_and_float(self, monkeypatch):
        monkeypatch.setenv("BOLT_SEARCH_TEST_INT", "7")
        monkeypatch.setenv("BOLT_SEARCH_TEST_FLOAT", "0.5")
        assert config._get_env_int("BOLT_SEARCH_TEST_INT", 1) == 7
        assert config._get_env_float("BOLT_SEARCH_TEST_FLOAT", 1.0) == 0.5

    def test_defaults_when_unset(self, monkeypatch):
        monkeypatch.delenv("BOLT_SEARCH_TEST_INT", raising=False)
        assert config._get_env_int("BOLT_SEARCH_TEST_INT", 3) == 3
        assert config._get_env_bool("BOLT_SEARCH_TEST_BOOL", True) is True

    @pytest.mark.parametrize("value, expected", [("yes", True), ("1", True), ("off", False), ("false", False)])
    def test_bool(self, monkeypatch, value, expected):
        monkeypatch.setenv("BOLT_SEARCH_TEST_BOOL", value)
        assert config._get_env_bool("BOLT_SEARCH_TEST_BOOL", not expected) is expected


class TestSearchOptions:
    """Construction-time normalization and validation."""

    def test_defaults(self):
        options = SearchOptions()
        assert options.mode is MatchMode.ANY
        assert options.extensions is None
        assert options.context_lines == config.DEFAULT_CONTEXT_LINES
        assert options.whole_file_threshold == config.DEFAULT_WHOLE_FILE_THRESHOLD

    def test_normalizes_inputs(self):
        options = SearchOptions(mode="all", extensions=["py", ".JS"], ignore_patterns=["*.log"], stopwords=["The"])
        assert options.mode is MatchMode.ALL
        assert options.extensions == frozenset({".py", ".js"})
        assert options.ignore_patterns == ("*.log",)
        assert options.stopwords == frozenset({"the"})

    @pytest.mark.parametrize(
        "field, value",
        [
            ("context_lines", -1),
            ("whole_file_threshold", 0.0),
            ("whole_file_threshold", 1.5),
            ("b", 2.0),
            ("bm25_weight", -0.1),
            ("filename_boost", -1.0),
            ("workers", 0),
            ("max_results", 0),
            ("max_files", 0),
            ("timeout", 0),
        ],
    )
    def test_rejects_bad_values(self, field, value):
        with pytest.raises(ValueError):
            SearchOptions(**{field: value})

    def test_replace(self):
        options = SearchOptions(workers=2)
        changed = options.replace(debug=True)
        assert changed.debug and changed.workers == 2
        assert not options.debug

    def test_bad_mode(self):
        with pytest.raises(ValueError):
            SearchOptions(mode="some")


class TestNormalizeExtensions:
    def test_forms(self):
        assert normalize_extensions(["py", ".PY", "*.py", " js ", ""]) == frozenset({".py", ".js"})
