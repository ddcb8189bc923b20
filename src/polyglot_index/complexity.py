"""
Cyclomatic-complexity approximation.

One plus the number of branching constructs anywhere under the function
node. Boolean operators are not counted, and the branches of nested
functions count against the enclosing function as well.
"""

from .classify import Category, LanguageSpec
from .parse import SyntaxNode, walk_tree


def score(function_node: SyntaxNode, spec: LanguageSpec) -> int:
    complexity = 1
    for node in walk_tree(function_node):
        if spec.is_a(node.type, Category.BRANCH):
            complexity += 1
    return complexity
