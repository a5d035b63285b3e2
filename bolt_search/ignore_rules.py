"""
ignore_rules.py - .gitignore-style path filtering.

Each ignore file becomes one pathspec GitIgnoreSpec layer, scoped to the
directory that holds it. Layers are checked in order and the last one with
an opinion wins, so a nested .gitignore can refine its parent's rules.
Caller patterns (-i/--ignore) sit in a separate override layer that is
always checked last, whatever nested files get stacked on later.

Paths are POSIX-style and relative to the search root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pathspec import GitIgnoreSpec

logger = logging.getLogger(__name__)

IGNORE_FILENAMES = (".gitignore", ".ignore")

# (base directory relative to root, "" for root; compiled spec)
Layer = tuple[str, GitIgnoreSpec]


def _compile(lines) -> GitIgnoreSpec | None:
    spec = GitIgnoreSpec.from_lines(list(lines))
    if not any(p.include is not None for p in spec.patterns):
        return None
    return spec


def _verdict(spec: GitIgnoreSpec, rel_path: str, is_dir: bool) -> bool | None:
    """True: ignored, False: re-included by a negation, None: no pattern matched."""
    return spec.check_file(rel_path + "/" if is_dir else rel_path).include


class IgnoreRules:
    """An immutable, ordered stack of ignore layers. extended() returns a new instance."""

    def __init__(self, layers: tuple[Layer, ...] = (), overrides: GitIgnoreSpec | None = None):
        self._layers = tuple(layers)
        self._overrides = overrides

    def __len__(self) -> int:
        specs = [spec for _, spec in self._layers]
        if self._overrides is not None:
            specs.append(self._overrides)
        return sum(1 for spec in specs for p in spec.patterns if p.include is not None)

    def __bool__(self) -> bool:
        return bool(self._layers) or self._overrides is not None

    @property
    def layers(self) -> tuple[Layer, ...]:
        return self._layers

    @classmethod
    def from_lines(cls, lines, base: str = "") -> IgnoreRules:
        """One layer from ignore-file lines; base scopes it to a subdirectory."""
        spec = _compile(lines)
        if spec is None:
            return cls()
        return cls(((base.strip("/"), spec),))

    @classmethod
    def from_file(cls, path: Path, base: str = "") -> IgnoreRules:
        """Load an ignore file. Unreadable files count as empty."""
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            return cls()
        return cls.from_lines(text.splitlines(), base)

    @classmethod
    def from_root(
        cls,
        root: Path,
        extra_patterns: tuple[str, ...] | list[str] = (),
        respect_gitignore: bool = True,
    ) -> IgnoreRules:
        """Root ignore files as layers, caller patterns as the override layer."""
        rules = cls()
        if respect_gitignore:
            for name in IGNORE_FILENAMES:
                candidate = root / name
                if candidate.is_file():
                    rules = rules.extended(cls.from_file(candidate))
        return cls(rules.layers, _compile(extra_patterns))

    def extended(self, other: IgnoreRules) -> IgnoreRules:
        """Stack other's layers on top. Overrides stay last."""
        if not other.layers:
            return self
        return IgnoreRules(self._layers + other.layers, self._overrides)

    def is_ignored(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        Decide whether rel_path is ignored.

        Parent directories are checked first: once a directory is excluded
        nothing below it can be re-included, as in git.
        """
        rel_path = rel_path.replace("\\", "/").strip("/")
        if not rel_path or not self:
            return False
        parts = rel_path.split("/")
        for depth in range(1, len(parts)):
            if self._decide("/".join(parts[:depth]), is_dir=True):
                return True
        return self._decide(rel_path, is_dir)

    def _decide(self, rel_path: str, is_dir: bool) -> bool:
        ignored = False
        for base, spec in self._layers:
            if base:
                if not rel_path.startswith(base + "/"):
                    continue
                local = rel_path[len(base) + 1:]
            else:
                local = rel_path
            verdict = _verdict(spec, local, is_dir)
            if verdict is not None:
                ignored = verdict
        if self._overrides is not None:
            verdict = _verdict(self._overrides, rel_path, is_dir)
            if verdict is not None:
                ignored = verdict
        return ignored
