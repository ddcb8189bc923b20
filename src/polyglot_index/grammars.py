"""
Grammar registry — language id → tree-sitter grammar.

Several language ids may share one grammar ("javascript" and
"javascriptreact" both parse with the javascript grammar). Parsers are
created fresh on every get_parser() call, so nothing mutable is shared
between parses and files can be parsed from several threads at once.
"""

import logging
from dataclasses import dataclass

from tree_sitter import Language, Parser
from tree_sitter_language_pack import get_language

from .classify import LanguageSpec, spec_for_grammar

log = logging.getLogger(__name__)

# language id → tree-sitter-language-pack grammar name
DEFAULT_GRAMMARS: dict[str, str] = {
    "java": "java",
    "python": "python",
    "javascript": "javascript",
    "javascriptreact": "javascript",
    "typescript": "typescript",
    "typescriptreact": "tsx",
}


@dataclass(frozen=True)
class Grammar:
    name: str                   # grammar name, e.g. "tsx"
    language: Language


def load_grammar(name: str) -> Grammar:
    return Grammar(name=name, language=get_language(name))


class GrammarRegistry:
    def __init__(self) -> None:
        self._grammars: dict[str, Grammar] = {}

    def register(self, language_id: str, grammar: Grammar) -> None:
        if spec_for_grammar(grammar.name) is None:
            raise ValueError(f"no node classification table for grammar: {grammar.name}")
        self._grammars[language_id] = grammar
        log.debug("Registered %s → %s grammar", language_id, grammar.name)

    def unregister(self, language_id: str) -> None:
        self._grammars.pop(language_id, None)

    def get_grammar(self, language_id: str) -> Grammar | None:
        return self._grammars.get(language_id)

    def get_parser(self, language_id: str) -> Parser | None:
        grammar = self._grammars.get(language_id)
        if grammar is None:
            return None
        return Parser(grammar.language)

    def spec_for(self, language_id: str) -> LanguageSpec | None:
        grammar = self._grammars.get(language_id)
        if grammar is None:
            return None
        return spec_for_grammar(grammar.name)

    def languages(self) -> list[str]:
        return sorted(self._grammars)

    def __contains__(self, language_id: object) -> bool:
        return language_id in self._grammars


def build_registry(mapping: dict[str, str] | None = None) -> GrammarRegistry:
    """
    Build a registry from a language id → grammar name mapping.

    A grammar that cannot be loaded is logged and left out; the language ids
    that use it are simply absent from the registry.
    """
    mapping = DEFAULT_GRAMMARS if mapping is None else mapping
    registry = GrammarRegistry()
    loaded: dict[str, Grammar | None] = {}

    for language_id, grammar_name in mapping.items():
        if grammar_name not in loaded:
            try:
                loaded[grammar_name] = load_grammar(grammar_name)
            except Exception as e:
                log.warning("Grammar %s not available: %s", grammar_name, e)
                loaded[grammar_name] = None
        grammar = loaded[grammar_name]
        if grammar is None:
            continue
        try:
            registry.register(language_id, grammar)
        except ValueError as e:
            log.warning("Skipping %s: %s", language_id, e)

    return registry


_DEFAULT_REGISTRY: GrammarRegistry | None = None


def default_registry() -> GrammarRegistry:
    """Process-wide registry with the default grammars, built on first use."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = build_registry()
    return _DEFAULT_REGISTRY
