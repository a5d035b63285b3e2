# tests/bolt_search/test_block_blast.py

"""Tests for block extraction in `bolt_search.block_blast`."""

import pathlib

import pytest

from bolt_search.block_blast import extract_blocks
from bolt_search.errors import ParseError
from bolt_search.file_sweep import scan_file
from bolt_search.grammars import default_registry, language_for_path
from bolt_search.models import Provenance
from bolt_search.pattern_forge import generate_patterns
from bolt_search.term_splinter import process_terms

JS_AUTH = """\
function userAuthenticate(user) {
  const token = user.token;
  return token;
}

function formatDate(d) {
  return d.toISOString();
}

function addOne(n) {
  return n + 1;
}

function double(n) {
  return n * 2;
}

function square(n) {
  return n * n;
}

const answer = () => {
  return 42;
};
"""

FILLER = "".join(f"value_{i} = {i}\n" for i in range(28))


def _extract(root: pathlib.Path, rel_path: str, raw: str, **kwargs):
    path = root / rel_path
    query = process_terms(raw)
    file_match = scan_file(
        path, root, query, generate_patterns(query), language_for_path(path).value
    )
    assert file_match is not None
    source = path.read_text(encoding="utf-8")
    return extract_blocks(file_match, source, default_registry().for_path(path), **kwargs)


class TestAstBlocks:
    """Matches expand to their enclosing unit."""

    def test_js_function(self, make_repo):
        pytest.importorskip("tree_sitter_javascript")
        root = make_repo({"auth.js": JS_AUTH})
        blocks, parse_error = _extract(root, "auth.js", "user auth")
        assert parse_error is None
        (block,) = blocks
        assert block.provenance is Provenance.AST
        assert (block.start_line, block.end_line) == (1, 4)
        assert block.unit_names == ("function_declaration:userAuthenticate",)
        assert block.text.startswith("function userAuthenticate(user) {")
        assert block.language == "javascript"

    def test_nested_python_units_merge(self, make_repo):
        source = (
            "class UserStore:\n"
            "    user_limit = 10\n"
            "\n"
            "    def load_user(self, name):\n"
            "        return name\n"
        ) + FILLER
        root = make_repo({"store.py": source})
        blocks, parse_error = _extract(root, "store.py", "user")
        assert parse_error is None
        (block,) = blocks
        assert (block.start_line, block.end_line) == (1, 5)
        assert block.provenance is Provenance.AST
        assert block.unit_names == ("class:UserStore", "function:load_user")
        assert block.match_lines == (1, 2, 4)


class TestLineBlocks:
    def test_text_file_gets_windows(self, make_repo):
        lines = [f"line {i}" for i in range(1, 41)]
        lines[19] = "the parser lives here"
        root = make_repo({"notes.txt": "\n".join(lines) + "\n"})
        (block,), _ = _extract(root, "notes.txt", "parser", context_lines=2)
        assert block.provenance is Provenance.LINE
        assert (block.start_line, block.end_line) == (18, 22)
        assert block.match_lines == (20,)

    def test_syntax_error_falls_back(self, make_repo):
        root = make_repo({"broken.py": "def broken(:\n    user_auth = 1\n" + FILLER})
        blocks, parse_error = _extract(root, "broken.py", "user auth")
        assert isinstance(parse_error, ParseError)
        (block,) = blocks
        assert block.provenance is Provenance.LINE
        assert (block.start_line, block.end_line) == (1, 7)

    def test_max_blocks(self, make_repo):
        lines = [f"line {i}" for i in range(1, 61)]
        for n in (1, 20, 40):
            lines[n - 1] = "parser"
        root = make_repo({"notes.txt": "\n".join(lines) + "\n"})
        blocks, _ = _extract(root, "notes.txt", "parser", context_lines=1)
        assert len(blocks) == 3
        capped, _ = _extract(root, "notes.txt", "parser", context_lines=1, max_blocks=2)
        assert [b.start_line for b in capped] == [1, 19]


class TestWholeFile:
    """The whole-file rule and its special cases."""

    def test_small_file_returned_whole(self, make_repo):
        lines = [f"line {i}" for i in range(1, 11)]
        lines[4] = "parser"
        root = make_repo({"short.txt": "\n".join(lines) + "\n"})
        (block,), _ = _extract(root, "short.txt", "parser", context_lines=5)
        assert block.provenance is Provenance.WHOLE_FILE
        assert (block.start_line, block.end_line) == (1, 10)

    def test_exactly_at_threshold_is_not_whole(self, make_repo):
        lines = [f"line {i}" for i in range(1, 11)]
        lines[3] = "parser"
        root = make_repo({"short.txt": "\n".join(lines) + "\n"})
        (block,), _ = _extract(root, "short.txt", "parser", context_lines=4)
        assert block.provenance is Provenance.LINE
        assert (block.start_line, block.end_line) == (1, 8)

    def test_filename_only_match(self, make_repo):
        root = make_repo({"parser.txt": "alpha\nbeta\n"})
        (block,), _ = _extract(root, "parser.txt", "parser")
        assert block.provenance is Provenance.WHOLE_FILE
        assert block.text == "alpha\nbeta"

    def test_empty_file_yields_nothing(self, make_repo):
        root = make_repo({"parser.txt": ""})
        blocks, parse_error = _extract(root, "parser.txt", "parser")
        assert blocks == []
        assert parse_error is None
