"""Tests for the WorkspaceIndexer.

Covers:
- The two-function end-to-end scenario
- Skipping unsupported, unreadable and excluded files without aborting
- .gitignore, exclude patterns and the size limit
- Running totals under re-indexing and removal
- Cooperative cancellation and parallel parsing
"""

import textwrap
import threading
from pathlib import Path

import pytest

from polyglot_index import indexer as indexer_module
from polyglot_index.errors import IoFailure
from polyglot_index.grammars import build_registry
from polyglot_index.indexer import WorkspaceIndexer
from polyglot_index.models import IndexConfig

FOO_BAR = textwrap.dedent("""\
    def foo(x):
        y = x
        if y:
            return 1
        return 0

    def bar(x):
        a = x
        b = a
        return b
    """)

JAVA_FILE = textwrap.dedent("""\
    public class Box {
        public int size() { return 1; }
    }
    """)


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "ws"
    root.mkdir()
    (root / "main.py").write_text(FOO_BAR)
    return root


def _indexer(root: Path, **kwargs) -> WorkspaceIndexer:
    return WorkspaceIndexer(IndexConfig(project_root=str(root), **kwargs))


class TestEndToEnd:
    def test_single_file_workspace(self, workspace):
        idx = _indexer(workspace)
        index = idx.index_workspace()

        assert index.total_functions == 2
        assert index.total_classes == 0
        main = str((workspace / "main.py").resolve())
        assert list(index.files) == [main]

        foo, bar = index.files[main].functions
        assert (foo.name, foo.line_start, foo.line_end, foo.complexity) == ("foo", 1, 5, 2)
        assert (bar.name, bar.line_start, bar.line_end, bar.complexity) == ("bar", 7, 10, 1)

    def test_queries(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        main = str((workspace / "main.py").resolve())

        assert idx.find_function("bar") is idx.get_index().files[main]
        assert idx.find_function("baz") is None
        assert idx.find_enclosing_function(main, 3).name == "foo"
        assert idx.find_enclosing_function(main, 6) is None

    def test_file_name_is_basename(self, workspace):
        index = _indexer(workspace).index_workspace()
        (analysis,) = index.files.values()
        assert analysis.file_name == "main.py"
        assert analysis.language == "python"

    def test_text_file_not_indexed(self, workspace):
        (workspace / "notes.txt").write_text("def not_code(): pass\n")
        index = _indexer(workspace).index_workspace()
        assert len(index.files) == 1


class TestFailuresDoNotAbort:
    def test_language_without_grammar_skipped(self, workspace):
        (workspace / "Box.java").write_text(JAVA_FILE)
        idx = WorkspaceIndexer(
            IndexConfig(project_root=str(workspace)),
            registry=build_registry({"java": "java"}),
        )
        index = idx.index_workspace()
        assert [Path(p).name for p in index.files] == ["Box.java"]
        assert idx.last_stats.skipped == 1
        assert idx.last_stats.indexed == 1

    def test_unreadable_file_skipped(self, workspace, monkeypatch):
        (workspace / "Box.java").write_text(JAVA_FILE)
        real_read = indexer_module.read_source

        def flaky_read(path):
            if path.endswith("Box.java"):
                raise IoFailure(path, "Permission denied")
            return real_read(path)

        monkeypatch.setattr(indexer_module, "read_source", flaky_read)
        idx = _indexer(workspace)
        index = idx.index_workspace()
        assert [Path(p).name for p in index.files] == ["main.py"]
        assert idx.last_stats.skipped == 1

    def test_strict_mode_skips_broken_files(self, workspace):
        (workspace / "broken.py").write_text("def broken(:\n    pass\n")
        index = _indexer(workspace, strict=True).index_workspace()
        assert [Path(p).name for p in index.files] == ["main.py"]

    def test_tolerant_mode_keeps_broken_files(self, workspace):
        (workspace / "broken.py").write_text("def broken(:\n    pass\n")
        index = _indexer(workspace).index_workspace()
        assert len(index.files) == 2

    def test_unexpected_extraction_error_skips_one_file(self, workspace, monkeypatch):
        (workspace / "other.py").write_text("def other():\n    pass\n")
        real_analyze = indexer_module.analyze_source

        def exploding(text, language, file_name="", **kwargs):
            if file_name == "main.py":
                raise RuntimeError("extractor bug")
            return real_analyze(text, language, file_name=file_name, **kwargs)

        monkeypatch.setattr(indexer_module, "analyze_source", exploding)
        idx = _indexer(workspace)
        index = idx.index_workspace()
        assert [Path(p).name for p in index.files] == ["other.py"]
        assert idx.last_stats.skipped == 1

    def test_missing_root_gives_empty_index(self, tmp_path):
        index = _indexer(tmp_path / "nowhere").index_workspace()
        assert len(index.files) == 0


class TestDiscovery:
    def test_vendor_directories_excluded(self, workspace):
        vendor = workspace / "node_modules" / "lib"
        vendor.mkdir(parents=True)
        (vendor / "index.js").write_text("function vendored() {}\n")
        index = _indexer(workspace).index_workspace()
        assert all("node_modules" not in p for p in index.files)

    def test_gitignore_respected(self, workspace):
        (workspace / ".gitignore").write_text("generated/\n")
        gen = workspace / "generated"
        gen.mkdir()
        (gen / "out.py").write_text("def gen(): pass\n")

        assert len(_indexer(workspace).index_workspace().files) == 1
        assert len(_indexer(workspace, respect_gitignore=False).index_workspace().files) == 2

    def test_invalid_gitignore_line_ignored(self, workspace):
        (workspace / ".gitignore").write_text("generated/\nfoo\\\n")
        gen = workspace / "generated"
        gen.mkdir()
        (gen / "out.py").write_text("def gen(): pass\n")

        index = _indexer(workspace).index_workspace()
        assert [Path(p).name for p in index.files] == ["main.py"]

    def test_invalid_exclude_pattern_ignored(self, workspace):
        (workspace / "skip_me.py").write_text("def skipped(): pass\n")
        index = _indexer(workspace, exclude=["skip_me.py", "bad\\"]).index_workspace()
        assert [Path(p).name for p in index.files] == ["main.py"]

    def test_languages_filter(self, workspace):
        (workspace / "Box.java").write_text(JAVA_FILE)
        index = _indexer(workspace, languages=["java"]).index_workspace()
        assert [Path(p).name for p in index.files] == ["Box.java"]

    def test_size_limit(self, workspace):
        (workspace / "big.py").write_text("x = 1\n" * 100)
        index = _indexer(workspace, max_file_bytes=200).index_workspace()
        assert [Path(p).name for p in index.files] == ["main.py"]

    def test_per_language_stats(self, workspace):
        (workspace / "Box.java").write_text(JAVA_FILE)
        idx = _indexer(workspace)
        idx.index_workspace()
        assert idx.last_stats.by_language == {"java": 1, "python": 1}
        assert idx.last_stats.seen == 2


class TestTotals:
    def test_rescan_does_not_double_count(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        index = idx.index_workspace()
        assert index.total_functions == 2

    def test_reindex_file_replaces_contribution(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        main = workspace / "main.py"

        main.write_text(FOO_BAR + "\nclass Extra:\n    def more(self):\n        pass\n")
        analysis = idx.index_file(str(main))

        assert [f.name for f in analysis.functions] == ["foo", "bar", "more"]
        index = idx.get_index()
        assert index.total_functions == 3
        assert index.total_classes == 1
        assert len(index.files) == 1

    def test_unchanged_file_not_reparsed(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        main = str((workspace / "main.py").resolve())
        before = idx.get_index().files[main]
        assert idx.index_file(main) is before

    def test_index_file_adds_new_file(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        box = workspace / "Box.java"
        box.write_text(JAVA_FILE)
        idx.index_file(str(box))
        assert idx.get_index().total_functions == 3
        assert idx.get_index().total_classes == 1

    def test_index_missing_file_returns_none(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        assert idx.index_file(str(workspace / "missing.py")) is None
        assert idx.get_index().total_functions == 2

    def test_failed_reindex_drops_stale_entry(self, workspace):
        idx = _indexer(workspace, strict=True)
        idx.index_workspace()
        main = workspace / "main.py"

        main.write_text("def broken(:\n    pass\n")
        assert idx.index_file(str(main)) is None

        index = idx.get_index()
        assert len(index.files) == 0
        assert index.total_functions == 0
        assert idx.find_function("foo") is None

    def test_deleted_file_dropped_on_reindex(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        main = workspace / "main.py"
        main.unlink()

        assert idx.index_file(str(main)) is None
        assert len(idx.get_index().files) == 0
        assert idx.get_index().total_functions == 0

    def test_remove_file(self, workspace):
        idx = _indexer(workspace)
        idx.index_workspace()
        assert idx.remove_file(str(workspace / "main.py")) is True
        assert idx.get_index().total_functions == 0
        assert idx.remove_file(str(workspace / "main.py")) is False

    def test_enclosing_function_for_unindexed_file(self, workspace):
        idx = _indexer(workspace)
        assert idx.find_enclosing_function(str(workspace / "main.py"), 8).name == "bar"


class TestCancellationAndParallelism:
    def _many_files(self, root: Path, count: int = 6) -> None:
        for i in range(count):
            (root / f"mod_{i}.py").write_text(f"def f{i}():\n    return {i}\n")

    def test_cancel_before_start(self, workspace):
        cancel = threading.Event()
        cancel.set()
        idx = _indexer(workspace)
        index = idx.index_workspace(cancel=cancel)
        assert len(index.files) == 0
        assert idx.last_stats.cancelled is True

    def test_cancel_between_files_keeps_partial_index(self, workspace):
        self._many_files(workspace)
        cancel = threading.Event()
        idx = _indexer(workspace)
        real = idx._try_analyze

        def analyze_then_cancel(path, language):
            result = real(path, language)
            cancel.set()
            return result

        idx._try_analyze = analyze_then_cancel
        index = idx.index_workspace(cancel=cancel)

        assert len(index.files) == 1
        assert index.total_functions == sum(len(a.functions) for a in index.files.values())
        assert idx.last_stats.cancelled is True

    def test_parallel_matches_sequential(self, workspace):
        self._many_files(workspace)
        sequential = _indexer(workspace).index_workspace()
        parallel = _indexer(workspace, workers=4).index_workspace()

        assert list(parallel.files) == list(sequential.files)
        assert parallel.files == sequential.files
        assert parallel.total_functions == sequential.total_functions == 8
