"""Lookups over a CodebaseIndex or a single FileAnalysis."""

from dataclasses import dataclass

from .extract import parse_file
from .grammars import GrammarRegistry
from .models import CodebaseIndex, FileAnalysis, FunctionMetadata


@dataclass(frozen=True)
class EnclosingContext:
    """What a prompt builder needs about the cursor position in a buffer."""
    function: FunctionMetadata | None
    analysis: FileAnalysis

    def to_dict(self) -> dict:
        return {
            "function": self.function.to_dict() if self.function else None,
            "fileAnalysis": self.analysis.to_dict(),
        }


def find_function_owner(index: CodebaseIndex, name: str) -> FileAnalysis | None:
    """
    First file, in index order, that defines a function with exactly this name.

    When several files define it, which one is returned is unspecified.
    """
    for analysis in index.files.values():
        if any(f.name == name for f in analysis.functions):
            return analysis
    return None


def find_function_locations(index: CodebaseIndex, name: str) -> list[tuple[str, FunctionMetadata]]:
    """Every (path, function) pair with this name, in index order."""
    return [
        (path, f)
        for path, analysis in index.files.items()
        for f in analysis.functions
        if f.name == name
    ]


def find_enclosing_function(analysis: FileAnalysis, line: int) -> FunctionMetadata | None:
    """
    First function whose inclusive line range contains line.

    Functions are stored in pre-order, so with nesting the outermost
    enclosing function wins.
    """
    for f in analysis.functions:
        if f.contains_line(line):
            return f
    return None


def enclosing_function_in_buffer(
    source_text: str,
    line: int,
    language: str,
    file_name: str = "",
    registry: GrammarRegistry | None = None,
) -> EnclosingContext | None:
    """Analyze an open buffer and locate the function around the cursor line."""
    analysis = parse_file(source_text, language, file_name=file_name, registry=registry)
    if analysis is None:
        return None
    return EnclosingContext(function=find_enclosing_function(analysis, line), analysis=analysis)
