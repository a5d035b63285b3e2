# tests/bolt_search/test_grammars.py

"""Tests for language detection and grammar backends in `bolt_search.grammars`."""

import textwrap

import pytest

from bolt_search.errors import ParseError
from bolt_search.grammars import (
    CodeUnit,
    GrammarRegistry,
    LanguageKind,
    NoGrammar,
    PythonAstGrammar,
    default_registry,
    language_for_path,
)

PY_SOURCE = textwrap.dedent(
    """\
    import os


    class UserStore:
        def __init__(self):
            self.items = {}

        @staticmethod
        def load_user(name):
            return os.environ.get(name)
    """
)

JS_SOURCE = textwrap.dedent(
    """\
    function userAuthenticate(user) {
      const token = user.token;
      return token;
    }

    const handler = () => {
      return 42;
    };
    """
)


class TestLanguageForPath:
    @pytest.mark.parametrize(
        "path, kind",
        [
            ("a/b.py", LanguageKind.PYTHON),
            ("A.PY", LanguageKind.PYTHON),
            ("x.tsx", LanguageKind.TSX),
            ("main.rs", LanguageKind.RUST),
            ("notes.unknown", LanguageKind.NONE),
            ("Makefile", LanguageKind.NONE),
        ],
    )
    def test_extension_map(self, path, kind):
        assert language_for_path(path) is kind


class TestPythonAstGrammar:
    """The stdlib-ast backend."""

    def test_units(self):
        units = PythonAstGrammar(LanguageKind.PYTHON).parse(PY_SOURCE)
        assert units == [
            CodeUnit("class", "UserStore", 4, 10),
            CodeUnit("function", "__init__", 5, 6),
            CodeUnit("function", "load_user", 8, 10),
        ]

    def test_innermost_unit_wins(self):
        grammar = PythonAstGrammar(LanguageKind.PYTHON)
        units = grammar.parse(PY_SOURCE)
        assert grammar.enclosing_unit(units, 6, 0, "").name == "__init__"
        assert grammar.enclosing_unit(units, 10, 0, "").label == "function:load_user"
        assert grammar.enclosing_unit(units, 4, 0, "").label == "class:UserStore"
        assert grammar.enclosing_unit(units, 1, 0, "") is None

    def test_syntax_error(self):
        with pytest.raises(ParseError) as excinfo:
            PythonAstGrammar(LanguageKind.PYTHON).parse("def broken(:\n", "broken.py")
        assert excinfo.value.kind == "parse"
        assert excinfo.value.path == "broken.py"

    def test_deep_nesting_is_a_parse_error(self):
        source = "y = " + "+".join(["1"] * 200000) + "\n"
        with pytest.raises(ParseError) as excinfo:
            PythonAstGrammar(LanguageKind.PYTHON).parse(source, "chain.py")
        assert excinfo.value.path == "chain.py"


class TestTreeSitterGrammar:
    """tree-sitter backends; skipped if a grammar package is missing."""

    @pytest.fixture
    def js_grammar(self):
        pytest.importorskip("tree_sitter_javascript")
        grammar = default_registry().get(LanguageKind.JAVASCRIPT)
        assert grammar.available
        return grammar

    def test_enclosing_function(self, js_grammar):
        tree = js_grammar.parse(JS_SOURCE)
        line_text = JS_SOURCE.splitlines()[1]
        unit = js_grammar.enclosing_unit(tree, 2, line_text.index("user"), line_text)
        assert unit.unit_type == "function_declaration"
        assert unit.name == "userAuthenticate"
        assert (unit.start_line, unit.end_line) == (1, 4)

    def test_top_level_arrow_function(self, js_grammar):
        tree = js_grammar.parse(JS_SOURCE)
        unit = js_grammar.enclosing_unit(tree, 7, 2, JS_SOURCE.splitlines()[6])
        assert unit.unit_type == "lexical_declaration"
        assert unit.name == "handler"
        assert (unit.start_line, unit.end_line) == (6, 8)

    def test_syntax_error(self, js_grammar):
        with pytest.raises(ParseError):
            js_grammar.parse("function ( {\n", "broken.js")


class TestGrammarRegistry:
    def test_missing_kind_gets_no_grammar(self):
        grammar = GrammarRegistry({}).get(LanguageKind.RUBY)
        assert isinstance(grammar, NoGrammar)
        assert not grammar.available
        with pytest.raises(ParseError):
            grammar.parse("puts 1")

    def test_for_path(self):
        registry = GrammarRegistry({LanguageKind.PYTHON: PythonAstGrammar(LanguageKind.PYTHON)})
        assert isinstance(registry.for_path("x.py"), PythonAstGrammar)
        assert isinstance(registry.for_path("x.txt"), NoGrammar)

    def test_describe_lists_every_kind(self):
        infos = GrammarRegistry({}).describe()
        assert [i.name for i in infos] == [k.value for k in LanguageKind]
        assert all(i.parser == "none" and not i.grammar_available for i in infos)

    def test_default_registry_has_python(self):
        infos = {i.name: i for i in default_registry().describe()}
        assert infos["python"].grammar_available
        assert infos["python"].parser == "ast"
        assert ".py" in infos["python"].extensions
        assert not infos["text"].grammar_available
