# tests/bolt_search/test_file_sweep.py

"""Tests for discovery and matching in `bolt_search.file_sweep`."""

import pathlib

import pytest

from bolt_search.errors import FileReadError
from bolt_search.file_sweep import (
    is_binary,
    iter_candidate_files,
    line_starts,
    match_content,
    match_filename,
    offset_to_line,
    read_source,
    scan_file,
    split_lines,
    token_count,
)
from bolt_search.ignore_rules import IgnoreRules
from bolt_search.pattern_forge import generate_patterns
from bolt_search.term_splinter import process_terms


def _scan(root: pathlib.Path, rel_path: str, raw: str, mode: str = "any"):
    query = process_terms(raw, mode=mode)
    return scan_file(root / rel_path, root, query, generate_patterns(query))


class TestTextHelpers:
    def test_split_lines(self):
        assert split_lines("a\nb\n") == ["a", "b"]
        assert split_lines("a\r\nb") == ["a", "b"]
        assert split_lines("") == []

    def test_offset_to_line(self):
        starts = line_starts("ab\ncd")
        assert starts == [0, 3]
        assert offset_to_line(starts, 0) == 1
        assert offset_to_line(starts, 2) == 1
        assert offset_to_line(starts, 3) == 2

    def test_token_count(self):
        assert token_count("def user_auth(x): return x + 1") == 6
        assert token_count("") == 0

    def test_is_binary(self):
        assert is_binary(b"abc\x00def")
        assert not is_binary(b"plain text")


class TestIterCandidateFiles:
    """Traversal order and pruning."""

    def test_prunes_and_respects_ignore_files(self, make_repo):
        root = make_repo(
            {
                "a.py": "x = 1\n",
                "b.tmp": "x\n",
                "secret.txt": "x\n",
                ".gitignore": "secret.txt\n",
                "node_modules/lib.js": "x\n",
                "pkg.egg-info/PKG-INFO": "x\n",
                "sub/.gitignore": "*.tmp\n",
                "sub/c.tmp": "x\n",
                "sub/d.py": "x\n",
            }
        )
        found = [
            p.relative_to(root).as_posix()
            for p in iter_candidate_files(root, ignore=IgnoreRules.from_root(root))
        ]
        assert "a.py" in found
        assert "b.tmp" in found
        assert "sub/d.py" in found
        assert "secret.txt" not in found
        assert "sub/c.tmp" not in found
        assert not any(p.startswith(("node_modules/", "pkg.egg-info/")) for p in found)
        assert found.index("a.py") < found.index("sub/d.py")

    def test_extension_filter(self, make_repo):
        root = make_repo({"a.py": "x\n", "b.js": "x\n", "c.txt": "x\n"})
        found = [p.name for p in iter_candidate_files(root, extensions=frozenset({".py", ".js"}))]
        assert found == ["a.py", "b.js"]

    def test_max_file_size(self, make_repo):
        root = make_repo({"big.txt": "x" * 100, "small.txt": "x"})
        found = [p.name for p in iter_candidate_files(root, max_file_size=10)]
        assert found == ["small.txt"]

    def test_gitignore_can_be_disabled(self, make_repo):
        root = make_repo({"sub/.gitignore": "*.tmp\n", "sub/c.tmp": "x\n"})
        found = [p.name for p in iter_candidate_files(root, respect_gitignore=False)]
        assert "c.tmp" in found

    def test_nested_negation_does_not_undo_caller_pattern(self, make_repo):
        root = make_repo(
            {
                "sub/.gitignore": "!keep.log\n",
                "sub/keep.log": "x\n",
                "sub/d.py": "x\n",
            }
        )
        ignore = IgnoreRules.from_root(root, ["*.log"])
        found = [p.relative_to(root).as_posix() for p in iter_candidate_files(root, ignore=ignore)]
        assert "sub/d.py" in found
        assert "sub/keep.log" not in found


class TestReadSource:
    def test_binary_is_skipped(self, make_repo):
        root = make_repo({"blob.bin": b"auth\x00\x01\x02"})
        assert read_source(root / "blob.bin") is None

    def test_undecodable_raises(self, make_repo):
        root = make_repo({"latin.txt": b"caf\xe9 auth\n"})
        with pytest.raises(FileReadError) as excinfo:
            read_source(root / "latin.txt")
        assert excinfo.value.kind == "read"

    def test_bom_is_stripped(self, make_repo):
        root = make_repo({"bom.txt": b"\xef\xbb\xbfauth\n"})
        assert read_source(root / "bom.txt") == "auth\n"


class TestMatchContent:
    def test_boundary_variants_count_once(self):
        query = process_terms("auth")
        hits, term_lines, combination_hits = match_content("auth\n", generate_patterns(query))
        assert term_lines == {"auth": (1,)}
        assert combination_hits == 0
        assert {(h.start, h.line) for h in hits} == {(0, 1)}

    def test_combination_hits_are_separate(self):
        query = process_terms("user auth", mode="all")
        text = "userAuth = 1\nuser_auth = 2\n"
        _, term_lines, combination_hits = match_content(text, generate_patterns(query))
        assert term_lines == {"user": (1, 2), "auth": (1, 2)}
        assert combination_hits == 2

    def test_hit_lines(self):
        query = process_terms("token")
        hits, term_lines, _ = match_content("a\nb\nmake_token()\n", generate_patterns(query))
        assert term_lines["token"] == (3,)
        assert all(h.line == 3 for h in hits)

    def test_match_filename(self):
        query = process_terms("auth")
        assert match_filename("auth_service.py", generate_patterns(query)) == {"auth": 1}


class TestScanFile:
    """Per-file match decisions."""

    def test_any_mode(self, make_repo):
        root = make_repo({"a.txt": "only user here\n"})
        file_match = _scan(root, "a.txt", "user auth")
        assert file_match is not None
        assert file_match.term_counts == {"user": 1}
        assert file_match.relative_path == "a.txt"
        assert file_match.total_lines == 1

    def test_all_mode_needs_every_term(self, make_repo):
        root = make_repo({"a.txt": "only user here\n", "b.txt": "user then auth\n"})
        assert _scan(root, "a.txt", "user auth", mode="all") is None
        assert _scan(root, "b.txt", "user auth", mode="all") is not None

    def test_all_mode_counts_filename(self, make_repo):
        root = make_repo({"auth.txt": "the user table\n"})
        file_match = _scan(root, "auth.txt", "user auth", mode="all")
        assert file_match is not None
        assert file_match.filename_hits == {"auth": 1}

    def test_filename_only_match(self, make_repo):
        root = make_repo({"auth.py": "x = 1\n"})
        file_match = _scan(root, "auth.py", "auth")
        assert file_match is not None
        assert not file_match.has_content_hits
        assert file_match.has_filename_hits

    def test_stopword_alone_does_not_match(self, make_repo):
        root = make_repo({"a.txt": "the end\n"})
        assert _scan(root, "a.txt", "the parser") is None

    def test_plus_term_is_needed_in_any_mode(self, make_repo):
        root = make_repo({"a.txt": "auth only\n", "b.txt": "user and auth\n"})
        assert _scan(root, "a.txt", "+user auth") is None
        file_match = _scan(root, "b.txt", "+user auth")
        assert file_match is not None
        assert file_match.term_counts == {"user": 1, "auth": 1}

    def test_no_match(self, make_repo):
        root = make_repo({"a.txt": "nothing to see\n"})
        assert _scan(root, "a.txt", "parser") is None

    def test_binary_file(self, make_repo):
        root = make_repo({"blob.bin": b"parser\x00"})
        assert _scan(root, "blob.bin", "parser") is None
