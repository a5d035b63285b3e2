"""
bolt_cli.py - The bolt that fires when you type bolt.

Thin CLI over search() and describe_languages(), with smart argument order
detection. Results go to stdout; logs go to stderr behind --verbose.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import SearchOptions
from .errors import SearchError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bolt",
        description="Bolt: code-aware search with ranked, block-level results",
        epilog="Examples:\n"
        "  bolt 'user auth' src/             # Ranked search in src/\n"
        "  bolt src/ 'user auth' --all       # Old arg order, every term required\n"
        "  bolt 'getUserName' --exact        # Literal, case-sensitive\n"
        "  bolt '+user auth' src/            # Files must mention user; auth adds score\n"
        "  bolt 'parse config' -e py -e toml # Only .py and .toml files\n"
        "  bolt --languages                  # Grammar support table\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("first", nargs="?", default=None, help="Query or path")
    parser.add_argument("second", nargs="?", default=None, help="Path or query")
    parser.add_argument("--all", action="store_true", help="Require every term (default: any)")
    parser.add_argument("--exact", action="store_true", help="Literal terms: no stemming, no stopwords")
    parser.add_argument("-e", "--ext", action="append", default=None, help="File extension filter (repeatable)")
    parser.add_argument("-i", "--ignore", action="append", default=[], help="Extra ignore pattern (repeatable)")
    parser.add_argument("-n", "--max-results", type=int, default=None, help="Max results")
    parser.add_argument("--max-files", type=int, default=None, help="Stop after this many matching files")
    parser.add_argument("-C", "--context", type=int, default=None, help="Context lines for non-AST files")
    parser.add_argument("--no-gitignore", action="store_true", help="Do not read .gitignore files")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument("--debug", action="store_true", help="Include patterns, term counts and raw scores")
    parser.add_argument("--languages", action="store_true", help="List languages and grammar support")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser


def _split_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> tuple[str, str]:
    """
    Smart argument order detection.

    bolt <query> [path] is the normal form; bolt <path> <query> works too
    when the first argument is an existing directory.
    """
    if args.first is None:
        parser.error("Search query required")
    if args.second and Path(args.first).is_dir() and not Path(args.second).exists():
        return args.second, args.first
    return args.first, args.second or "."


def main(argv: list[str] | None = None) -> int:
    """Bolt CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.debug else logging.INFO,
            format="%(asctime)s - %(levelname)s - [%(module)s:%(lineno)d] - %(message)s",
            stream=sys.stderr,
        )

    from .blitz_hunt import describe_languages, search

    if args.languages:
        infos = describe_languages()
        if args.json:
            print(json.dumps([info.to_dict() for info in infos], indent=2))
        else:
            for info in infos:
                exts = " ".join(info.extensions) or "-"
                print(f"{info.name:<12} {info.parser:<12} {exts}")
        return 0

    query, path = _split_args(parser, args)

    overrides = {
        "mode": "all" if args.all else "any",
        "exact": args.exact,
        "extensions": args.ext,
        "ignore_patterns": tuple(args.ignore),
        "debug": args.debug,
        "respect_gitignore": not args.no_gitignore,
    }
    if args.max_results is not None:
        overrides["max_results"] = args.max_results
    if args.max_files is not None:
        overrides["max_files"] = args.max_files
    if args.context is not None:
        overrides["context_lines"] = args.context

    try:
        options = SearchOptions(**overrides)
        result = search(query, path, options)
    except (SearchError, ValueError) as e:
        print(f"bolt: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.to_markdown())
    return 0


if __name__ == "__main__":
    sys.exit(main())
