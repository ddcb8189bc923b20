"""Multi-language function/class/import metadata extraction and workspace indexing."""

from .extract import analyze_source, parse_file
from .indexer import WorkspaceIndexer
from .models import CodebaseIndex, FileAnalysis, FunctionMetadata, IndexConfig, Param
from .query import enclosing_function_in_buffer, find_enclosing_function, find_function_owner

__all__ = [
    "CodebaseIndex",
    "FileAnalysis",
    "FunctionMetadata",
    "IndexConfig",
    "Param",
    "WorkspaceIndexer",
    "analyze_source",
    "enclosing_function_in_buffer",
    "find_enclosing_function",
    "find_function_owner",
    "parse_file",
]
