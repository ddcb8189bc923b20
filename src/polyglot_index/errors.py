"""Per-file failure types. None of them escape a workspace scan."""


class PolyglotIndexError(Exception):
    pass


class UnsupportedLanguage(PolyglotIndexError):
    """No grammar is registered for the language id."""

    def __init__(self, language: str) -> None:
        super().__init__(f"no grammar registered for language: {language}")
        self.language = language


class ParseFailure(PolyglotIndexError):
    """The grammar could not produce a usable tree for the source text."""

    def __init__(self, language: str, reason: str) -> None:
        super().__init__(f"cannot parse {language} source: {reason}")
        self.language = language
        self.reason = reason


class IoFailure(PolyglotIndexError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason
