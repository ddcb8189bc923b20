"""
Metadata extraction from tree-sitter trees.

Uses tree-walking (child_by_field_name, node.children) rather than the
Query API, and resolves every node type through the LanguageSpec of the
grammar, so the same walk serves Java, Python, JavaScript and TypeScript.
"""

import logging

from .classify import Category, LanguageSpec
from .complexity import score
from .errors import ParseFailure, UnsupportedLanguage
from .grammars import GrammarRegistry, default_registry
from .models import FileAnalysis, FunctionMetadata, Param
from .parse import SyntaxNode, node_text, parse_tree, walk_tree

log = logging.getLogger(__name__)

UNKNOWN = "unknown"
VOID = "void"
DEFAULT_VISIBILITY = "package"
_VISIBILITY_KEYWORDS = ("public", "private", "protected")

# fields that carry a parameter's name, tried in order
_PARAM_NAME_FIELDS = ("name", "pattern", "left")


def _strip_annotation(text: str) -> str:
    """': string' → 'string' (TypeScript type annotations include the colon)."""
    return text.strip().lstrip(":").strip()


def _type_text(node: SyntaxNode | None, source: bytes, spec: LanguageSpec) -> str:
    if node is None:
        return ""
    text = node_text(node, source)
    if spec.is_a(node.type, Category.TYPE_ANNOTATION):
        return _strip_annotation(text)
    return text.strip()


# ── parameters ───────────────────────────────────────────────────────────────

def _param_name(node: SyntaxNode, source: bytes, spec: LanguageSpec) -> str:
    if node.type in spec.name_like:
        return node_text(node, source)

    for field_name in _PARAM_NAME_FIELDS:
        child = node.child_by_field_name(field_name)
        if child is not None:
            return node_text(child, source) or UNKNOWN

    for child in node.children:
        if child.type in spec.name_like:
            return node_text(child, source)
        # Java varargs: `String... args` keeps its name in a variable_declarator
        if child.type == "variable_declarator":
            return node_text(child.child_by_field_name("name"), source) or UNKNOWN

    return UNKNOWN


def _extract_params(
    params_node: SyntaxNode | None, source: bytes, spec: LanguageSpec
) -> tuple[Param, ...]:
    if params_node is None:
        return ()

    params: list[Param] = []
    for child in params_node.children:
        if not spec.is_a(child.type, Category.PARAMETER):
            continue
        type_str = _type_text(child.child_by_field_name("type"), source, spec)
        params.append(Param(
            type=type_str or UNKNOWN,
            name=_param_name(child, source, spec),
        ))
    return tuple(params)


# ── declaration pieces ───────────────────────────────────────────────────────

def _signature(node: SyntaxNode, source: bytes, spec: LanguageSpec) -> str:
    """
    Declaration text up to the body delimiter, trimmed.

    The delimiter is found by plain text search, starting after the
    parameter list so braces or colons inside parameters and annotations
    are not mistaken for the body.
    """
    text = source[node.start_byte:node.end_byte]
    anchor = node.child_by_field_name("parameters")
    if anchor is None:
        anchor = node.child_by_field_name("name")
    offset = anchor.end_byte - node.start_byte if anchor is not None else 0

    cut = text.find(spec.body_delimiter.encode("utf-8"), offset)
    if cut != -1:
        text = text[:cut]
    signature = text.decode("utf-8", errors="replace").strip()
    # abstract and interface methods end in ';' instead of a body
    if cut == -1 and signature.endswith(";"):
        signature = signature[:-1].rstrip()
    return signature


def _visibility(node: SyntaxNode, source: bytes, spec: LanguageSpec) -> str:
    for child in node.children:
        if not spec.is_a(child.type, Category.VISIBILITY):
            continue
        text = node_text(child, source)
        hits = [(text.find(kw), kw) for kw in _VISIBILITY_KEYWORDS if kw in text]
        if hits:
            return min(hits)[1]
    return DEFAULT_VISIBILITY


def _function_metadata(
    node: SyntaxNode, source: bytes, spec: LanguageSpec
) -> FunctionMetadata | None:
    name = node_text(node.child_by_field_name("name"), source)
    if not name:
        log.debug("Dropping unnamed %s at line %d", node.type, node.start_point[0] + 1)
        return None

    return_type = _type_text(node.child_by_field_name(spec.return_type_field), source, spec)

    return FunctionMetadata(
        name=name,
        signature=_signature(node, source, spec),
        params=_extract_params(node.child_by_field_name("parameters"), source, spec),
        return_type=return_type or VOID,
        line_start=node.start_point[0] + 1,
        line_end=node.end_point[0] + 1,
        visibility=_visibility(node, source, spec),
        complexity=score(node, spec),
    )


# ── walk ─────────────────────────────────────────────────────────────────────

def extract(
    root: SyntaxNode,
    source: bytes,
    spec: LanguageSpec,
    language: str,
    file_name: str = "",
) -> FileAnalysis:
    """
    Walk the whole tree in pre-order and collect functions, classes and imports.

    Nothing is skipped once a function is found: nested and local functions
    are recorded in their own right. Unnamed functions and classes are dropped
    but their bodies are still walked.
    """
    functions: list[FunctionMetadata] = []
    classes: list[str] = []
    imports: list[str] = []

    for node in walk_tree(root):
        category = spec.classify(node.type)
        if category is Category.FUNCTION:
            meta = _function_metadata(node, source, spec)
            if meta is not None:
                functions.append(meta)
        elif category is Category.CLASS:
            name = node_text(node.child_by_field_name("name"), source)
            if name:
                classes.append(name)
        elif category is Category.IMPORT:
            imports.append(node_text(node, source))

    return FileAnalysis(
        file_name=file_name,
        language=language,
        functions=tuple(functions),
        classes=tuple(classes),
        imports=tuple(imports),
    )


# ── single-file entry points ─────────────────────────────────────────────────

def analyze_source(
    source_text: str,
    language: str,
    file_name: str = "",
    registry: GrammarRegistry | None = None,
    strict: bool = False,
) -> FileAnalysis:
    """
    Parse one buffer and extract its metadata.

    Raises UnsupportedLanguage or ParseFailure.
    """
    if registry is None:
        registry = default_registry()
    spec = registry.spec_for(language)
    if spec is None:
        raise UnsupportedLanguage(language)

    source = source_text.encode("utf-8")
    tree = parse_tree(source, language, registry, strict=strict)
    return extract(tree.root_node, source, spec, language, file_name)


def parse_file(
    source_text: str,
    language: str,
    file_name: str = "",
    registry: GrammarRegistry | None = None,
    strict: bool = False,
) -> FileAnalysis | None:
    """Like analyze_source, but returns None for unsupported or unparsable input."""
    try:
        return analyze_source(source_text, language, file_name, registry, strict)
    except UnsupportedLanguage:
        log.debug("No grammar for language: %s", language)
        return None
    except ParseFailure as e:
        log.warning("Parse error in %s: %s", file_name or "<buffer>", e)
        return None
