"""
Workspace indexing — wires discover → read → parse → extract → index.

A scan never raises: unreadable, unsupported and unparsable files are
logged and skipped one at a time.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .discover import discover_files, language_for_path
from .errors import IoFailure, PolyglotIndexError
from .extract import analyze_source
from .grammars import GrammarRegistry, default_registry
from .models import CodebaseIndex, FileAnalysis, FunctionMetadata, IndexConfig, ScanStats
from .parse import content_hash
from .query import find_enclosing_function, find_function_owner

log = logging.getLogger(__name__)


def read_source(path: str) -> tuple[str, str]:
    """Return (text, content_hash) for a file, or raise IoFailure."""
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise IoFailure(path, e.strerror or str(e)) from e
    return raw.decode("utf-8", errors="replace"), content_hash(raw)


class WorkspaceIndexer:
    def __init__(self, config: IndexConfig, registry: GrammarRegistry | None = None) -> None:
        self.config = config
        self.registry = registry if registry is not None else default_registry()
        self._index = CodebaseIndex()
        self._hashes: dict[str, str] = {}
        self.last_stats = ScanStats()

    def _analyze(self, path: str, language: str) -> tuple[FileAnalysis, str]:
        text, chash = read_source(path)
        analysis = analyze_source(
            text,
            language,
            file_name=Path(path).name,
            registry=self.registry,
            strict=self.config.strict,
        )
        return analysis, chash

    def _try_analyze(self, path: str, language: str) -> tuple[FileAnalysis, str] | None:
        try:
            return self._analyze(path, language)
        except PolyglotIndexError as e:
            log.warning("Skipping %s: %s", path, e)
        except Exception as e:
            log.warning("Extraction error in %s (%s): %s", path, language, e, exc_info=True)
        return None

    # ── scans ────────────────────────────────────────────────────────────────

    def index_workspace(self, cancel: threading.Event | None = None) -> CodebaseIndex:
        """
        Rebuild the index from scratch for config.project_root.

        Totals are scan-scoped. If cancel is set between two files the scan
        stops there; entries already inserted stay valid.
        """
        index = CodebaseIndex()
        self._index = index
        self._hashes = {}
        stats = ScanStats()
        self.last_stats = stats

        try:
            files = discover_files(self.config)
        except OSError as e:
            log.warning("Cannot enumerate %s: %s", self.config.project_root, e)
            return index
        stats.seen = len(files)

        if self.config.workers > 1:
            results = self._scan_parallel(files, cancel)
        else:
            results = self._scan_sequential(files, cancel)

        for (path, language), result in zip(files, results):
            if result is None:
                stats.skipped += 1
                continue
            analysis, chash = result
            index.add(path, analysis)
            self._hashes[path] = chash
            stats.indexed += 1
            stats.by_language[language] = stats.by_language.get(language, 0) + 1
        results.close()

        if stats.indexed + stats.skipped < stats.seen:
            stats.cancelled = True
            log.info("Scan cancelled after %d of %d files", stats.indexed + stats.skipped, stats.seen)

        log.info(
            "Indexed %d/%d files under %s (%d functions, %d classes, %d skipped)",
            stats.indexed, stats.seen, self.config.project_root,
            index.total_functions, index.total_classes, stats.skipped,
        )
        if stats.seen and not stats.indexed and not stats.cancelled:
            log.warning("No files indexed under %s", self.config.project_root)
        return index

    def _scan_sequential(self, files: list[tuple[str, str]], cancel: threading.Event | None):
        for path, language in files:
            if cancel is not None and cancel.is_set():
                return
            yield self._try_analyze(path, language)

    def _scan_parallel(self, files: list[tuple[str, str]], cancel: threading.Event | None):
        """Parse on a thread pool; results are yielded in enumeration order."""
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            futures = [pool.submit(self._try_analyze, p, lang) for p, lang in files]
            try:
                for future in futures:
                    if cancel is not None and cancel.is_set():
                        return
                    yield future.result()
            finally:
                for future in futures:
                    future.cancel()

    def index_file(self, path: str, language: str | None = None) -> FileAnalysis | None:
        """
        Index or re-index one file, replacing any previous entry.

        Returns None when the file cannot be analyzed; a previous entry for
        it is then dropped, so the index never serves stale metadata.
        Unchanged content is not re-parsed.
        """
        abs_path = str(Path(path).resolve())
        language = language or language_for_path(abs_path)
        if language is None:
            log.debug("No language for %s", abs_path)
            return None

        try:
            text, chash = read_source(abs_path)
        except IoFailure as e:
            log.warning("Skipping %s: %s", abs_path, e)
            self.remove_file(abs_path)
            return None

        existing = self._index.files.get(abs_path)
        if existing is not None and self._hashes.get(abs_path) == chash:
            return existing

        try:
            analysis = analyze_source(
                text, language,
                file_name=Path(abs_path).name,
                registry=self.registry,
                strict=self.config.strict,
            )
        except PolyglotIndexError as e:
            log.warning("Skipping %s: %s", abs_path, e)
            self.remove_file(abs_path)
            return None
        except Exception as e:
            log.warning("Extraction error in %s (%s): %s", abs_path, language, e, exc_info=True)
            self.remove_file(abs_path)
            return None

        self._index.add(abs_path, analysis)
        self._hashes[abs_path] = chash
        return analysis

    def remove_file(self, path: str) -> bool:
        abs_path = str(Path(path).resolve())
        self._hashes.pop(abs_path, None)
        return self._index.remove(abs_path) is not None

    # ── lookups ──────────────────────────────────────────────────────────────

    def get_index(self) -> CodebaseIndex:
        return self._index

    def find_function(self, name: str) -> FileAnalysis | None:
        return find_function_owner(self._index, name)

    def find_enclosing_function(self, path: str, line: int) -> FunctionMetadata | None:
        """Use the indexed analysis for path, or analyze the file now if it is not indexed."""
        abs_path = str(Path(path).resolve())
        analysis = self._index.files.get(abs_path)
        if analysis is None:
            language = language_for_path(abs_path)
            if language is None:
                return None
            result = self._try_analyze(abs_path, language)
            if result is None:
                return None
            analysis = result[0]
        return find_enclosing_function(analysis, line)
