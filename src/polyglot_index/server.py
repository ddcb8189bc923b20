"""
MCP server for polyglot-index — exposes function/class metadata lookups to Claude.

IMPORTANT: Uses stdio transport. Never print to stdout — all logging goes to stderr.

Workspace indexes live in memory for the lifetime of the server process,
one per project root.
"""

import functools
import inspect
import json
import logging
import sys
import threading
import time
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .discover import language_for_path
from .errors import IoFailure
from .extract import parse_file
from .indexer import WorkspaceIndexer, read_source
from .models import IndexConfig
from .query import find_function_locations

# stdout carries the MCP protocol
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)

REQUEST_LOG_PATH = Path.home() / ".local" / "log" / "polyglot-index-mcp.log"


def _request_logger() -> logging.Logger:
    """One line per tool call, appended to REQUEST_LOG_PATH and kept off stderr."""
    logger = logging.getLogger("polyglot_index.requests")
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        REQUEST_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(REQUEST_LOG_PATH)
    except OSError as e:
        log.debug("Request log disabled (%s): %s", REQUEST_LOG_PATH, e)
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(message)s"))
    logger.addHandler(handler)
    return logger


_requests = _request_logger()


def _log_tool(fn):
    sig = inspect.signature(fn)

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        call = sig.bind(*args, **kwargs)
        call.apply_defaults()
        arg_text = " ".join(f"{name}={value!r}" for name, value in call.arguments.items())
        start = time.perf_counter()
        try:
            result = fn(*args, **kwargs)
        except Exception:
            elapsed_ms = (time.perf_counter() - start) * 1000
            _requests.exception("%s %s failed after %.0fms", fn.__name__, arg_text, elapsed_ms)
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000
        summary = result.partition("\n")[0][:120]
        _requests.info("%s %s %.0fms %s", fn.__name__, arg_text, elapsed_ms, summary)
        return result

    return wrapper


mcp = FastMCP(
    "polyglot-index",
    instructions=(
        "polyglot-index extracts functions (signature, parameters, return type, "
        "line span, visibility, cyclomatic complexity), classes and imports from "
        "Java, Python, JavaScript and TypeScript files. Run index_workspace first, "
        "then use find_function and enclosing_function to navigate."
    ),
)

_indexers: dict[str, WorkspaceIndexer] = {}
_indexers_lock = threading.Lock()


def _indexer_for(project: str) -> WorkspaceIndexer:
    root = str(Path(project).resolve())
    with _indexers_lock:
        indexer = _indexers.get(root)
        if indexer is None:
            indexer = WorkspaceIndexer(IndexConfig(project_root=root))
            _indexers[root] = indexer
        return indexer


def _not_indexed(project: str) -> str:
    return (
        f"Workspace {Path(project).resolve()} has not been indexed in this session. "
        f"Run index_workspace first."
    )


# ── Tools ────────────────────────────────────────────────────────────────────

@mcp.tool()
@_log_tool
def index_workspace(path: str = ".") -> str:
    """
    Index (or rebuild the index of) a workspace directory.
    Run this first before using find_function or workspace_overview.

    Args:
        path: Absolute or relative path to the workspace root.
    """
    indexer = _indexer_for(path)
    index = indexer.index_workspace()
    stats = indexer.last_stats
    return (
        f"Indexed {indexer.config.project_root}\n"
        f"  files:     {len(index)}\n"
        f"  functions: {index.total_functions}\n"
        f"  classes:   {index.total_classes}\n"
        + (f"  skipped:   {stats.skipped}\n" if stats.skipped else "")
    )


@mcp.tool()
@_log_tool
def analyze_file(path: str, language: str = "") -> str:
    """
    Extract functions, classes and imports from a single source file as JSON.

    Args:
        path: Path to the source file.
        language: Language id (java, python, javascript, javascriptreact,
            typescript, typescriptreact). Inferred from the extension if empty.
    """
    language = language or language_for_path(path) or ""
    if not language:
        return f"Cannot tell the language of {path}"
    try:
        text, _ = read_source(path)
    except IoFailure as e:
        return str(e)

    analysis = parse_file(text, language, file_name=Path(path).name)
    if analysis is None:
        return f"Cannot analyze {path} as {language}"
    return json.dumps(analysis.to_dict(), indent=2)


@mcp.tool()
@_log_tool
def find_function(name: str, project: str = ".") -> str:
    """
    Find which indexed file(s) define a function with exactly this name.

    Args:
        name: The function or method name.
        project: Path to the workspace root (must have been indexed).
    """
    root = str(Path(project).resolve())
    indexer = _indexers.get(root)
    if indexer is None:
        return _not_indexed(project)

    locations = find_function_locations(indexer.get_index(), name)
    if not locations:
        return f"Function not found: {name}"
    lines = []
    for path, f in locations:
        lines.append(f"{path}:{f.line_start}–{f.line_end}")
        lines.append(f"  signature:  {f.signature}")
        lines.append(f"  complexity: {f.complexity}  visibility: {f.visibility}")
    return "\n".join(lines)


@mcp.tool()
@_log_tool
def enclosing_function(path: str, line: int, project: str = ".") -> str:
    """
    Return the function that contains a line of a file, as JSON.
    With nested functions the outermost one is returned.

    Args:
        path: Path to the source file.
        line: 1-based line number.
        project: Workspace root whose index should be consulted first.
    """
    func = _indexer_for(project).find_enclosing_function(path, line)
    if func is None:
        return f"No function encloses {path}:{line}"
    return json.dumps(func.to_dict(), indent=2)


@mcp.tool()
@_log_tool
def workspace_overview(project: str = ".") -> str:
    """
    Summary of an indexed workspace: file and function counts per language
    and the most complex functions.

    Args:
        project: Path to the workspace root.
    """
    root = str(Path(project).resolve())
    indexer = _indexers.get(root)
    if indexer is None:
        return _not_indexed(project)

    index = indexer.get_index()
    lines = [
        f"Workspace: {root}",
        f"Files:     {len(index)}",
    ]
    for lang, count in sorted(indexer.last_stats.by_language.items()):
        lines.append(f"  {lang}: {count}")
    lines.append(f"Functions: {index.total_functions}")
    lines.append(f"Classes:   {index.total_classes}")

    ranked = sorted(
        ((f.complexity, path, f) for path, a in index.files.items() for f in a.functions),
        key=lambda item: item[0],
        reverse=True,
    )
    if ranked:
        lines.append("\nMost complex functions:")
        for complexity, path, f in ranked[:10]:
            lines.append(f"  {f.name:<40} cc={complexity:<3} ({path}:{f.line_start})")
    return "\n".join(lines)


# ── Entry point ───────────────────────────────────────────────────────────────

def run_server(http: bool = False, port: int = 8000) -> None:
    if http:
        mcp.settings.host = "127.0.0.1"
        mcp.settings.port = port
        mcp.run(transport="streamable-http")
    else:
        mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
