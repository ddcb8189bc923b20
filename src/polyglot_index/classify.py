"""
Canonical node classification.

Every grammar names its nodes differently ("method_declaration",
"function_definition", "function_declaration", ...). A LanguageSpec maps the
node types of one grammar onto a small set of canonical categories so the
extractor and the complexity scorer can be written once for all languages.

Types a table does not mention classify as None and are only traversed.
"""

from dataclasses import dataclass
from enum import Enum
from functools import cached_property


class Category(str, Enum):
    FUNCTION = "function"
    CLASS = "class"
    IMPORT = "import"
    BRANCH = "branch"
    PARAMETER = "parameter"
    TYPE_ANNOTATION = "type"
    VISIBILITY = "visibility"


# checked in this order when a node type appears in more than one set
_PRECEDENCE = (
    Category.FUNCTION,
    Category.CLASS,
    Category.IMPORT,
    Category.BRANCH,
    Category.PARAMETER,
    Category.TYPE_ANNOTATION,
    Category.VISIBILITY,
)


@dataclass(frozen=True)
class LanguageSpec:
    grammar: str
    functions: frozenset[str]
    classes: frozenset[str]
    imports: frozenset[str]
    branches: frozenset[str]
    parameters: frozenset[str]
    type_annotations: frozenset[str] = frozenset()
    modifiers: frozenset[str] = frozenset()
    # parameter kinds whose own text is the parameter name
    name_like: frozenset[str] = frozenset({"identifier"})
    return_type_field: str = "type"
    body_delimiter: str = "{"

    @cached_property
    def _by_category(self) -> dict[Category, frozenset[str]]:
        return {
            Category.FUNCTION: self.functions,
            Category.CLASS: self.classes,
            Category.IMPORT: self.imports,
            Category.BRANCH: self.branches,
            Category.PARAMETER: self.parameters,
            Category.TYPE_ANNOTATION: self.type_annotations,
            Category.VISIBILITY: self.modifiers,
        }

    @cached_property
    def _table(self) -> dict[str, Category]:
        table: dict[str, Category] = {}
        for category in reversed(_PRECEDENCE):
            for node_type in self._by_category[category]:
                table[node_type] = category
        return table

    def classify(self, node_type: str) -> Category | None:
        return self._table.get(node_type)

    def is_a(self, node_type: str, category: Category) -> bool:
        return node_type in self._by_category[category]


# ── Java ─────────────────────────────────────────────────────────────────────

JAVA = LanguageSpec(
    grammar="java",
    functions=frozenset({"method_declaration", "constructor_declaration"}),
    classes=frozenset({
        "class_declaration", "interface_declaration",
        "enum_declaration", "record_declaration",
    }),
    imports=frozenset({"import_declaration"}),
    branches=frozenset({
        "if_statement", "for_statement", "enhanced_for_statement",
        "while_statement", "do_statement", "case", "catch_clause",
        "ternary_expression",
    }),
    parameters=frozenset({"formal_parameter", "spread_parameter", "receiver_parameter"}),
    modifiers=frozenset({"modifiers"}),
    return_type_field="type",
)


# ── Python ───────────────────────────────────────────────────────────────────

_PY_SPLATS = frozenset({"list_splat_pattern", "dictionary_splat_pattern"})

PYTHON = LanguageSpec(
    grammar="python",
    functions=frozenset({"function_definition"}),
    classes=frozenset({"class_definition"}),
    imports=frozenset({"import_statement", "import_from_statement", "future_import_statement"}),
    branches=frozenset({
        "if_statement", "elif_clause", "for_statement", "while_statement",
        "case", "except_clause", "except_group_clause", "conditional_expression",
    }),
    parameters=frozenset({
        "identifier", "typed_parameter", "default_parameter",
        "typed_default_parameter", "tuple_pattern",
    }) | _PY_SPLATS,
    name_like=frozenset({"identifier"}) | _PY_SPLATS,
    return_type_field="return_type",
    body_delimiter=":",
)


# ── JavaScript / TypeScript ──────────────────────────────────────────────────

_JS_FUNCTIONS = frozenset({
    "function_declaration", "generator_function_declaration",
    "method_definition", "function_expression",
})

_JS_BRANCHES = frozenset({
    "if_statement", "for_statement", "for_in_statement", "while_statement",
    "do_statement", "case", "catch_clause", "ternary_expression",
})

_JS_PARAMETERS = frozenset({
    "identifier", "assignment_pattern", "object_pattern", "array_pattern", "rest_pattern",
})

JAVASCRIPT = LanguageSpec(
    grammar="javascript",
    functions=_JS_FUNCTIONS,
    classes=frozenset({"class_declaration"}),
    imports=frozenset({"import_statement"}),
    branches=_JS_BRANCHES,
    parameters=_JS_PARAMETERS,
    return_type_field="return_type",
)

_TS_COMMON = dict(
    functions=_JS_FUNCTIONS,
    classes=frozenset({
        "class_declaration", "abstract_class_declaration",
        "interface_declaration", "enum_declaration",
    }),
    imports=frozenset({"import_statement"}),
    branches=_JS_BRANCHES,
    parameters=_JS_PARAMETERS | {"required_parameter", "optional_parameter"},
    type_annotations=frozenset({"type_annotation"}),
    modifiers=frozenset({"accessibility_modifier"}),
    return_type_field="return_type",
)

TYPESCRIPT = LanguageSpec(grammar="typescript", **_TS_COMMON)
TSX = LanguageSpec(grammar="tsx", **_TS_COMMON)


LANGUAGE_SPECS: dict[str, LanguageSpec] = {
    spec.grammar: spec for spec in (JAVA, PYTHON, JAVASCRIPT, TYPESCRIPT, TSX)
}


def spec_for_grammar(grammar: str) -> LanguageSpec | None:
    return LANGUAGE_SPECS.get(grammar)
