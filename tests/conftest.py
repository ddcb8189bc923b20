import textwrap

import pytest

from polyglot_index.extract import parse_file
from polyglot_index.grammars import default_registry


@pytest.fixture(scope="session")
def registry():
    return default_registry()


@pytest.fixture
def analyze(registry):
    """Parse a dedented snippet and fail the test if nothing comes back."""

    def _analyze(source: str, language: str, **kwargs):
        analysis = parse_file(textwrap.dedent(source), language, registry=registry, **kwargs)
        assert analysis is not None
        return analysis

    return _analyze
