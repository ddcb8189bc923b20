"""Core data structures for polyglot-index."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Param:
    type: str                   # declared type text, or "unknown"
    name: str                   # parameter name, or "unknown"

    def to_dict(self) -> dict:
        return {"type": self.type, "name": self.name}


@dataclass(frozen=True)
class FunctionMetadata:
    name: str                   # identifier text, e.g. "normalize_gene"
    signature: str              # declaration text up to the body delimiter
    params: tuple[Param, ...]
    return_type: str            # declared return type text, or "void"
    line_start: int             # 1-based, inclusive
    line_end: int               # 1-based, inclusive
    visibility: str             # "public" | "private" | "protected" | "package"
    complexity: int             # branching constructs + 1

    def contains_line(self, line: int) -> bool:
        return self.line_start <= line <= self.line_end

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "signature": self.signature,
            "params": [p.to_dict() for p in self.params],
            "returnType": self.return_type,
            "lineStart": self.line_start,
            "lineEnd": self.line_end,
            "visibility": self.visibility,
            "complexity": self.complexity,
        }


@dataclass(frozen=True)
class FileAnalysis:
    """Metadata for one source file, produced by a single tree walk."""
    file_name: str
    language: str               # language id, e.g. "java" | "typescriptreact"
    functions: tuple[FunctionMetadata, ...] = ()    # tree pre-order
    classes: tuple[str, ...] = ()                   # source order, not deduplicated
    imports: tuple[str, ...] = ()                   # verbatim statement text

    def to_dict(self) -> dict:
        return {
            "fileName": self.file_name,
            "language": self.language,
            "functions": [f.to_dict() for f in self.functions],
            "classes": list(self.classes),
            "imports": list(self.imports),
        }


@dataclass
class CodebaseIndex:
    """
    Workspace-wide aggregate keyed by absolute file path.

    Totals are kept as running sums. Inserting a path that is already present
    replaces the entry and subtracts its old contribution first.
    """
    files: dict[str, FileAnalysis] = field(default_factory=dict)
    total_functions: int = 0
    total_classes: int = 0

    def add(self, path: str, analysis: FileAnalysis) -> None:
        self.remove(path)
        self.files[path] = analysis
        self.total_functions += len(analysis.functions)
        self.total_classes += len(analysis.classes)

    def remove(self, path: str) -> FileAnalysis | None:
        old = self.files.pop(path, None)
        if old is not None:
            self.total_functions -= len(old.functions)
            self.total_classes -= len(old.classes)
        return old

    def __len__(self) -> int:
        return len(self.files)

    def to_dict(self) -> dict:
        return {
            "files": {p: a.to_dict() for p, a in self.files.items()},
            "totalFunctions": self.total_functions,
            "totalClasses": self.total_classes,
        }


@dataclass
class ScanStats:
    seen: int = 0               # files enumerated
    indexed: int = 0            # files accepted into the index
    skipped: int = 0            # unsupported / unreadable / unparsable
    cancelled: bool = False
    by_language: dict[str, int] = field(default_factory=dict)


DEFAULT_LANGUAGES = [
    "java", "python", "javascript", "javascriptreact", "typescript", "typescriptreact",
]


@dataclass
class IndexConfig:
    project_root: str
    languages: list[str] = field(default_factory=lambda: list(DEFAULT_LANGUAGES))
    exclude: list[str] = field(default_factory=lambda: [
        "node_modules/", ".git/", "__pycache__/", ".venv/", "venv/",
        "dist/", "build/", "target/", ".mypy_cache/", ".pytest_cache/",
    ])
    respect_gitignore: bool = True
    max_file_bytes: int = 1024 * 1024
    workers: int = 1
    strict: bool = False        # treat trees containing syntax errors as ParseFailure
