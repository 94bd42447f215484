"""
Translation synchronization pipeline.

This module orchestrates the per-language workflow:
1. Load the English reference and the existing target dictionary
2. Compute the backlog (missing, identical-to-source, looks-English leaves)
3. Dispatch the backlog to a translator with bounded concurrency
4. Deep-merge successful results onto the target, then apply pack overrides
5. Back up the previous file and write the new one atomically
6. Diff before/after and write a Markdown change report

Each language run is a small state machine (SyncState). Failures while
loading, merging or writing move that language to FAILED; a batch run keeps
going with the next language. A leaf the translator could not handle is not
an error for the run: it is counted, listed in the report and keeps its old
value, so the next run picks it up again.

Design Philosophy:
- The orchestrator owns pacing: worker count, per-worker delay, timeout
- Results are stored by backlog index, so completion order never matters
- Nothing is written before a backup of the previous file exists
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from letterriver_i18n.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_LANGUAGE_PAUSE,
    DEFAULT_REQUEST_DELAY,
    DEFAULT_TIMEOUT,
    I18N_DIR,
    PATCH_SUFFIX,
    PACKS_DIR,
    PATCHES_DIR,
    PROGRESS_EVERY,
    REFERENCE_FILE,
    REPORTS_DIR,
    env_number,
)
from letterriver_i18n.detect import Backlog, TranslationCandidate, Verdict, compute_backlog, needs_translation
from letterriver_i18n.errors import PersistenceFailure, StructuralConflict
from letterriver_i18n.packs import LanguagePack, apply_overrides, resolve_pack
from letterriver_i18n.report import (
    ChangeRecord,
    diff_trees,
    render_report,
    render_sync_summary,
    write_report,
)
from letterriver_i18n.storage import (
    dump_tree,
    load_tree,
    load_tree_with_text,
    write_atomic,
    write_backup,
)
from letterriver_i18n.translate.base import TranslationResult, Translator
from letterriver_i18n.tree import check_structure, deep_merge, flatten, flatten_paths, unflatten

logger = logging.getLogger(__name__)

# (language_id, completed, total)
ProgressCallback = Callable[[str, int, int], None]


class SyncState(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    BACKLOG_COMPUTED = "backlog_computed"
    TRANSLATING = "translating"
    MERGING = "merging"
    WRITTEN = "written"
    REPORT_EMITTED = "report_emitted"
    FAILED = "failed"


_TRANSITIONS = {
    SyncState.IDLE: {SyncState.LOADED},
    # Patch runs go straight from LOADED to MERGING
    SyncState.LOADED: {SyncState.BACKLOG_COMPUTED, SyncState.MERGING},
    SyncState.BACKLOG_COMPUTED: {SyncState.TRANSLATING},
    SyncState.TRANSLATING: {SyncState.MERGING},
    # Dry runs skip WRITTEN
    SyncState.MERGING: {SyncState.WRITTEN, SyncState.REPORT_EMITTED},
    SyncState.WRITTEN: {SyncState.REPORT_EMITTED},
    SyncState.REPORT_EMITTED: set(),
    SyncState.FAILED: set(),
}


@dataclass
class SyncConfig:
    """Runtime configuration for synchronization runs."""
    i18n_dir: Path = I18N_DIR
    reference_file: str = REFERENCE_FILE
    reports_dir: Path = REPORTS_DIR
    patches_dir: Path = PATCHES_DIR
    packs_dir: Path = PACKS_DIR

    # Dispatch
    backend: str = "mymemory"
    concurrency: int = DEFAULT_CONCURRENCY
    request_delay: float = DEFAULT_REQUEST_DELAY
    language_pause: float = DEFAULT_LANGUAGE_PAUSE
    timeout: Optional[float] = DEFAULT_TIMEOUT
    progress_every: int = PROGRESS_EVERY

    dry_run: bool = False
    timestamped_backups: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "SyncConfig":
        """Build a config from the environment, then apply explicit overrides.

        Reads LR_I18N_DIR, LR_REPORTS_DIR, LR_PATCHES_DIR, TRANSLATE_BACKEND,
        TRANSLATE_CONCURRENCY, TRANSLATE_DELAY and TRANSLATE_TIMEOUT at call
        time, so tests can monkeypatch them. None overrides are ignored.
        """
        values = {
            "i18n_dir": Path(os.getenv("LR_I18N_DIR", str(I18N_DIR))),
            "reports_dir": Path(os.getenv("LR_REPORTS_DIR", str(REPORTS_DIR))),
            "patches_dir": Path(os.getenv("LR_PATCHES_DIR", str(PATCHES_DIR))),
            "backend": os.getenv("TRANSLATE_BACKEND", "mymemory"),
            "concurrency": max(1, env_number("TRANSLATE_CONCURRENCY", DEFAULT_CONCURRENCY, int)),
            "request_delay": env_number("TRANSLATE_DELAY", DEFAULT_REQUEST_DELAY),
            "timeout": env_number("TRANSLATE_TIMEOUT", DEFAULT_TIMEOUT),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    @property
    def reference_path(self) -> Path:
        return Path(self.i18n_dir) / self.reference_file

    def target_path(self, pack: LanguagePack) -> Path:
        return Path(self.i18n_dir) / pack.file_name

    def report_path(self, pack: LanguagePack, kind: str) -> Path:
        return Path(self.reports_dir) / f"{pack.api_code}-{kind}.md"

    def patch_path(self, code: str) -> Path:
        return Path(self.patches_dir) / f"{code}{PATCH_SUFFIX}"

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        return {
            "i18n_dir": str(self.i18n_dir),
            "reference_file": self.reference_file,
            "reports_dir": str(self.reports_dir),
            "backend": self.backend,
            "concurrency": self.concurrency,
            "request_delay": self.request_delay,
            "language_pause": self.language_pause,
            "timeout": self.timeout,
            "dry_run": self.dry_run,
        }


@dataclass
class SyncResult:
    """Outcome of one language run."""
    language: str
    code: str
    state: SyncState = SyncState.IDLE
    backlog_size: int = 0
    translated: int = 0
    skipped: int = 0
    errors: int = 0
    changes: list[ChangeRecord] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)  # (path, error)
    target_path: Optional[Path] = None
    backup_path: Optional[Path] = None
    report_path: Optional[Path] = None
    error: Optional[str] = None
    simulated: bool = False

    @property
    def success(self) -> bool:
        return self.state is SyncState.REPORT_EMITTED


# ============================================================================
# Dispatch
# ============================================================================

async def dispatch_backlog(
    candidates: Sequence[TranslationCandidate],
    translator: Translator,
    target_lang: str,
    concurrency: int = DEFAULT_CONCURRENCY,
    request_delay: float = 0.0,
    timeout: Optional[float] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> list[TranslationResult]:
    """Translate candidates with a fixed pool of worker tasks.

    Work items (batches of translator.batch_size candidates) sit in a shared
    queue; each worker takes the next item, awaits the translator and stores
    the results at the candidates' backlog positions. A worker sleeps
    request_delay between its own requests.

    Translator calls run on a thread pool owned by this dispatch. The pool
    is shut down without waiting, so a call abandoned after timeout cannot
    hold up the run or the next language.

    Returns:
        One TranslationResult per candidate, in backlog order.
    """
    total = len(candidates)
    if not total:
        return []

    size = max(1, translator.batch_size)
    queue: asyncio.Queue = asyncio.Queue()
    for start in range(0, total, size):
        queue.put_nowait(start)

    results: list[Optional[TranslationResult]] = [None] * total
    completed = 0

    async def worker() -> None:
        nonlocal completed
        first = True
        while True:
            try:
                start = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if not first and request_delay > 0:
                await asyncio.sleep(request_delay)
            first = False

            chunk = candidates[start:start + size]
            chunk_results = await translator.translate_batch_async(
                [candidate.source_value for candidate in chunk],
                target_lang,
                [candidate.path for candidate in chunk],
                timeout=timeout,
                executor=executor,
            )
            for offset, result in enumerate(chunk_results):
                results[start + offset] = result
                completed += 1
                if on_progress:
                    on_progress(completed, total)

    worker_count = max(1, min(concurrency, queue.qsize()))
    executor = ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="lr-i18n-translate")
    try:
        await asyncio.gather(*(worker() for _ in range(worker_count)))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    return results


# ============================================================================
# Per-language state machine
# ============================================================================

class LanguageSync:
    """Synchronize one target dictionary with the English reference.

    Usage:
        sync = LanguageSync(pack, SyncConfig(), create_translator("mymemory"))
        result = sync.run()
        print(result.state, result.translated, result.errors)
    """

    def __init__(
        self,
        pack: LanguagePack,
        config: SyncConfig | None = None,
        translator: Translator | None = None,
        reference: Mapping[str, Any] | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.pack = pack
        self.config = config or SyncConfig()
        self.translator = translator
        self.reference = reference
        self.progress_callback = progress_callback
        self.result = SyncResult(
            language=pack.language_id,
            code=pack.api_code,
            target_path=self.config.target_path(pack),
        )

    @property
    def state(self) -> SyncState:
        return self.result.state

    def _transition(self, new_state: SyncState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {new_state.value}")
        logger.info("[%s] %s -> %s", self.pack.language_id, self.state.value, new_state.value)
        self.result.state = new_state

    def mark_failed(self, exc: Exception) -> None:
        logger.error("[%s] failed while %s: %s", self.pack.language_id, self.state.value, exc)
        self.result.error = str(exc)
        self.result.state = SyncState.FAILED

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self) -> SyncResult:
        """Detect, translate, merge, write and report (blocking)."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> SyncResult:
        if self.translator is None:
            raise ValueError("LanguageSync.run needs a translator")
        try:
            reference = self.reference
            if reference is None:
                reference = load_tree(self.config.reference_path)
            before, original_text = load_tree_with_text(self.result.target_path, allow_missing=True)
            self._transition(SyncState.LOADED)

            backlog = compute_backlog(reference, before, self.pack.non_translatable_paths)
            self.result.backlog_size = len(backlog)
            self._transition(SyncState.BACKLOG_COMPUTED)
            logger.info(
                "[%s] backlog: %d missing, %d identical, %d suspicious",
                self.pack.language_id,
                backlog.count(Verdict.MISSING),
                backlog.count(Verdict.IDENTICAL_TO_SOURCE),
                backlog.count(Verdict.LOOKS_UNTRANSLATED),
            )

            results = await self._translate(backlog)
            patch = self._build_patch(reference, backlog, results)
            after = self._merge(before, patch)
            self._write(after, original_text)
            self._emit_report(before, after, kind="generated", title="Translation Sync")
        except (PersistenceFailure, StructuralConflict) as exc:
            self.mark_failed(exc)
        return self.result

    def run_patch(self, patch_path: Path) -> SyncResult:
        """Apply a hand-written or generated patch file to the target."""
        try:
            before, original_text = load_tree_with_text(self.result.target_path)
            patch = load_tree(patch_path)
            self._transition(SyncState.LOADED)

            check_structure(before, patch)
            self.result.translated = len(flatten(patch))
            after = self._merge(before, patch)
            self._write(after, original_text)
            self._emit_report(before, after, kind="changes-applied", title="Translation Changes Applied")
        except (PersistenceFailure, StructuralConflict) as exc:
            self.mark_failed(exc)
        return self.result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _translate(self, backlog: Backlog) -> list[TranslationResult]:
        translatable = [c for c in backlog.candidates if needs_translation(c.source_value)]
        self.result.skipped = len(backlog) - len(translatable)

        target_lang = self.pack.code_for(self.translator.code_key)
        if translatable and not self.translator.supports(target_lang):
            logger.warning(
                "[%s] %s does not support this language, skipping %d strings",
                self.pack.language_id, self.translator.name, len(translatable),
            )
            self.result.skipped += len(translatable)
            translatable = []

        self._transition(SyncState.TRANSLATING)
        if not translatable:
            return []

        logger.info(
            "[%s] translating %d strings with %s (%d workers)",
            self.pack.language_id, len(translatable), self.translator.name, self.config.concurrency,
        )
        return await dispatch_backlog(
            translatable,
            self.translator,
            target_lang,
            concurrency=self.config.concurrency,
            request_delay=self.config.request_delay,
            timeout=self.config.timeout,
            on_progress=self._on_progress,
        )

    def _on_progress(self, completed: int, total: int) -> None:
        every = max(1, self.config.progress_every)
        if completed % every == 0 or completed == total:
            logger.info("[%s] translated %d/%d", self.pack.language_id, completed, total)
        if self.progress_callback:
            self.progress_callback(self.pack.language_id, completed, total)

    def _build_patch(
        self,
        reference: Mapping[str, Any],
        backlog: Backlog,
        results: Iterable[TranslationResult],
    ) -> dict:
        values = dict(backlog.passthrough)
        for result in results:
            if result.ok:
                values[result.path] = result.text
                self.result.translated += 1
            else:
                self.result.errors += 1
                self.result.failures.append((result.key, result.error or "unknown error"))
        # Keep reference key order for leaves new to the target
        return unflatten({path: values[path] for path in flatten_paths(reference) if path in values})

    def _merge(self, before: dict, patch: dict) -> dict:
        self._transition(SyncState.MERGING)
        merged = deep_merge(before, patch)
        return apply_overrides(merged, self.pack)

    def _write(self, after: dict, original_text: Optional[str]) -> None:
        if self.config.dry_run:
            self.result.simulated = True
            logger.info("[%s] dry run, not writing %s", self.pack.language_id, self.result.target_path)
            return

        target = self.result.target_path
        if original_text is not None:
            self.result.backup_path = write_backup(target, original_text, self.config.timestamped_backups)
            logger.info("[%s] backup created: %s", self.pack.language_id, self.result.backup_path)
        write_atomic(target, dump_tree(after))
        self._transition(SyncState.WRITTEN)
        logger.info("[%s] wrote %s", self.pack.language_id, target)

    def _emit_report(self, before: dict, after: dict, kind: str, title: str) -> None:
        self.result.changes = diff_trees(before, after)
        details = {
            "Language": f"{self.pack.name} ({self.pack.api_code})",
            "Mode": "Dry run (simulated, nothing written)" if self.result.simulated else "Live",
            "Translated": self.result.translated,
            "Skipped": self.result.skipped,
            "Errors": self.result.errors,
        }
        text = render_report(self.result.changes, f"{title}: {self.pack.api_code}", details=details)
        if self.result.failures:
            text += "\n## Failed Translations\n\n"
            text += "".join(f"- `{path}`: {error}\n" for path, error in self.result.failures)

        path = self.config.report_path(self.pack, kind)
        self.result.report_path = write_report(path, text)
        self._transition(SyncState.REPORT_EMITTED)
        logger.info("[%s] %d changes, report saved: %s", self.pack.language_id, len(self.result.changes), path)


# ============================================================================
# Batch runs
# ============================================================================

async def run_batch_async(
    packs: Sequence[LanguagePack],
    config: SyncConfig,
    translator: Translator,
    reference: Mapping[str, Any] | None = None,
    progress_callback: ProgressCallback | None = None,
) -> list[SyncResult]:
    """Run the generate workflow for several languages, one after another.

    Raises:
        PersistenceFailure: the reference dictionary cannot be loaded.
    """
    if reference is None:
        reference = load_tree(config.reference_path)

    results: list[SyncResult] = []
    for index, pack in enumerate(packs):
        if index and config.language_pause > 0:
            await asyncio.sleep(config.language_pause)
        sync = LanguageSync(pack, config, translator, reference, progress_callback)
        try:
            results.append(await sync.run_async())
        except Exception as exc:  # isolate unexpected per-language errors
            logger.exception("[%s] unexpected error", pack.language_id)
            sync.mark_failed(exc)
            results.append(sync.result)

    _write_summary(results, config)
    return results


def run_batch(
    packs: Sequence[LanguagePack],
    config: SyncConfig,
    translator: Translator,
    reference: Mapping[str, Any] | None = None,
    progress_callback: ProgressCallback | None = None,
) -> list[SyncResult]:
    """Blocking wrapper around run_batch_async()."""
    return asyncio.run(run_batch_async(packs, config, translator, reference, progress_callback))


def discover_patches(patches_dir: Path) -> list[tuple[str, Path]]:
    """Find <code>-translations-patch.json files, sorted by code.

    The code is a pack id, api code or patch code, so
    hebrew-translations-patch.json resolves to the hebrew pack (he.json) and
    is applied like any other patch.
    """
    found = []
    for path in sorted(Path(patches_dir).glob(f"*{PATCH_SUFFIX}")):
        found.append((path.name[: -len(PATCH_SUFFIX)], path))
    return found


def pack_for_code(code: str, packs: Mapping[str, LanguagePack]) -> LanguagePack:
    """Resolve a pack, or synthesize one whose file is <code>.json."""
    pack = resolve_pack(code, packs)
    if pack is None:
        pack = LanguagePack(language_id=code, name=code, api_code=code, file_name=f"{code}.json")
    return pack


def apply_all_patches(config: SyncConfig, packs: Mapping[str, LanguagePack]) -> list[SyncResult]:
    """Apply every patch file found in config.patches_dir.

    A failing language is recorded and the remaining patches still run.
    """
    results = []
    for code, patch_path in discover_patches(config.patches_dir):
        sync = LanguageSync(pack_for_code(code, packs), config)
        logger.info("Applying patch for %s from %s", code, patch_path)
        try:
            results.append(sync.run_patch(patch_path))
        except Exception as exc:  # isolate unexpected per-language errors
            logger.exception("[%s] unexpected error", code)
            sync.mark_failed(exc)
            results.append(sync.result)

    if results:
        _write_summary(results, config)
    return results


def _write_summary(results: Sequence[SyncResult], config: SyncConfig) -> None:
    if len(results) < 2:
        return
    path = Path(config.reports_dir) / "sync-summary.md"
    try:
        write_report(path, render_sync_summary(results))
        logger.info("Summary report: %s", path)
    except PersistenceFailure as exc:
        logger.error("Could not write summary report: %s", exc)
