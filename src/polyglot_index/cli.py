"""CLI entry point for polyglot-index."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .discover import language_for_path
from .errors import IoFailure
from .extract import parse_file
from .grammars import default_registry
from .indexer import WorkspaceIndexer, read_source
from .models import FileAnalysis, IndexConfig
from .query import enclosing_function_in_buffer, find_function_locations

log = logging.getLogger(__name__)


def _config_from_args(args: argparse.Namespace) -> IndexConfig:
    return IndexConfig(
        project_root=str(Path(args.path).resolve()),
        workers=getattr(args, "workers", 1),
        strict=getattr(args, "strict", False),
        respect_gitignore=not getattr(args, "no_gitignore", False),
    )


def _read_buffer(path: str, language: str | None) -> tuple[str, str] | None:
    language = language or language_for_path(path)
    if language is None:
        print(f"Cannot tell the language of {path}; pass --language", file=sys.stderr)
        return None
    try:
        text, _ = read_source(path)
    except IoFailure as e:
        print(str(e), file=sys.stderr)
        return None
    return text, language


def _print_outline(analysis: FileAnalysis) -> None:
    print(f"{analysis.file_name}  ({analysis.language})")
    if analysis.imports:
        print(f"  imports: {len(analysis.imports)}")
        for imp in analysis.imports:
            print(f"    {imp.splitlines()[0]}")
    if analysis.classes:
        print(f"  classes: {', '.join(analysis.classes)}")
    print(f"  functions: {len(analysis.functions)}")
    for f in analysis.functions:
        params = ", ".join(f"{p.name}: {p.type}" for p in f.params)
        print(f"    {f.line_start:>5}–{f.line_end:<5} {f.visibility:<9} "
              f"{f.name}({params}) -> {f.return_type}  cc={f.complexity}")


def cmd_index(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    indexer = WorkspaceIndexer(config)

    print(f"Indexing {config.project_root}", file=sys.stderr)
    index = indexer.index_workspace()
    stats = indexer.last_stats

    if args.json:
        print(json.dumps(index.to_dict(), indent=2))
        return 0

    print(f"  files:     {len(index)}")
    print(f"  functions: {index.total_functions}")
    print(f"  classes:   {index.total_classes}")
    for lang, count in sorted(stats.by_language.items()):
        print(f"    {lang}: {count} files")
    if stats.skipped:
        print(f"  skipped:   {stats.skipped}", file=sys.stderr)
    if stats.seen and not stats.indexed:
        print("  warning: no files could be indexed", file=sys.stderr)
    return 0


def cmd_outline(args: argparse.Namespace) -> int:
    buffer = _read_buffer(args.file, args.language)
    if buffer is None:
        return 1
    text, language = buffer

    analysis = parse_file(text, language, file_name=Path(args.file).name)
    if analysis is None:
        print(f"Cannot analyze {args.file} as {language}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        _print_outline(analysis)
    return 0


def cmd_find(args: argparse.Namespace) -> int:
    indexer = WorkspaceIndexer(_config_from_args(args))
    index = indexer.index_workspace()

    locations = find_function_locations(index, args.name)
    if not locations:
        print(f"Function not found: {args.name}")
        return 1
    for path, f in locations:
        print(f"{path}:{f.line_start}  {f.signature}")
    return 0


def cmd_at(args: argparse.Namespace) -> int:
    buffer = _read_buffer(args.file, args.language)
    if buffer is None:
        return 1
    text, language = buffer

    context = enclosing_function_in_buffer(text, args.line, language, file_name=Path(args.file).name)
    if context is None:
        print(f"Cannot analyze {args.file} as {language}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(context.to_dict(), indent=2))
        return 0 if context.function else 1

    if context.function is None:
        print(f"No function encloses line {args.line}")
        return 1
    f = context.function
    print(f"{f.name}  lines {f.line_start}–{f.line_end}  complexity {f.complexity}")
    print(f"  {f.signature}")
    return 0


def cmd_languages(args: argparse.Namespace) -> int:
    registry = default_registry()
    for language_id in registry.languages():
        grammar = registry.get_grammar(language_id)
        print(f"{language_id:<18} {grammar.name if grammar else '?'}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .server import run_server
    run_server(http=args.http, port=args.port)
    return 0


def main() -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(
        prog="polyglot-index",
        description="Multi-language function/class metadata indexer",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    # index
    p = sub.add_parser("index", help="Index a workspace directory")
    p.add_argument("path", nargs="?", default=".", help="Workspace root (default: .)")
    p.add_argument("--json", action="store_true", help="Print the full index as JSON")
    p.add_argument("--workers", type=int, default=1, help="Parser threads (default: 1)")
    p.add_argument("--strict", action="store_true", help="Skip files with syntax errors")
    p.add_argument("--no-gitignore", action="store_true", help="Index .gitignore'd files too")

    # outline
    p = sub.add_parser("outline", help="Show functions, classes and imports of one file")
    p.add_argument("file", help="Source file")
    p.add_argument("--language", help="Language id (default: from extension)")
    p.add_argument("--json", action="store_true", help="JSON output")

    # find
    p = sub.add_parser("find", help="Find which file defines a function")
    p.add_argument("name", help="Function name")
    p.add_argument("--path", default=".", help="Workspace root")

    # at
    p = sub.add_parser("at", help="Show the function enclosing a line")
    p.add_argument("file", help="Source file")
    p.add_argument("line", type=int, help="1-based line number")
    p.add_argument("--language", help="Language id (default: from extension)")
    p.add_argument("--json", action="store_true", help="JSON output")

    # languages
    sub.add_parser("languages", help="List language ids with a loaded grammar")

    # serve
    p = sub.add_parser("serve", help="Start MCP server")
    p.add_argument("--http", action="store_true", help="HTTP transport instead of stdio")
    p.add_argument("--port", type=int, default=8000, help="HTTP port (default: 8000)")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger("polyglot_index").setLevel(logging.DEBUG)

    handlers = {
        "index": cmd_index,
        "outline": cmd_outline,
        "find": cmd_find,
        "at": cmd_at,
        "languages": cmd_languages,
        "serve": cmd_serve,
    }

    sys.exit(handlers[args.command](args))


if __name__ == "__main__":
    main()
