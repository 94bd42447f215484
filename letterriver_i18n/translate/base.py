"""
Base translator interface and implementations.

This module defines:
- TranslationResult: one per dispatched leaf, text=None on failure
- Translator: abstract interface all backends implement
- DummyTranslator for testing (echo or simple transformations)
- DictionaryTranslator for curated, offline term tables
- create_translator: backend factory

Design Philosophy:
- Backends only implement _translate_texts(); masking, placeholder
  validation and failure handling live in the base class
- Nothing raises past translate_batch(): a network, parse or quota error
  for a string becomes a TranslationResult with text=None
- Translators expose pacing knobs (batch_size, default_delay,
  default_concurrency) but never throttle themselves; the orchestrator
  decides how fast to call them
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from letterriver_i18n.config import SOURCE_LANG
from letterriver_i18n.errors import PersistenceFailure, ProviderFailure, UnsupportedLanguage
from letterriver_i18n.masking import mask_text, validate_placeholders
from letterriver_i18n.tree import FlatPath, path_to_string

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    """Result of translating a single leaf.

    Attributes:
        path: Path of the leaf in the localization tree
        source_text: Original English text
        text: Translated text with placeholders restored, None on failure
        confidence: Backend match score in [0, 1] (0.0 on failure; backends
            without a score report 1.0)
        error: Failure description when text is None
        metadata: Additional info (translator name, batch index, ...)
    """
    path: FlatPath
    source_text: str
    text: Optional[str] = None
    confidence: float = 0.0
    error: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.text is not None

    @property
    def key(self) -> str:
        return path_to_string(self.path)


class Translator(ABC):
    """Abstract base class for all translation backends.

    Subclasses implement _translate_texts(), which receives already-masked
    strings and returns (translation, confidence) pairs in the same order.
    It may raise anything; the base class converts errors into per-leaf
    failures.
    """

    # Strings per backend request
    batch_size: int = 1
    # Suggested pacing for the orchestrator
    default_delay: float = 0.6
    default_concurrency: int = 5
    # Key into LanguagePack.provider_codes used to pick the target code
    code_key: str = "default"
    # Treat a translation identical to its input as a failure
    reject_unchanged: bool = True

    source_lang: str = SOURCE_LANG

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the translator name (e.g., 'mymemory', 'deepl', 'dummy')."""

    def supports(self, target_lang: Optional[str]) -> bool:
        """Whether target_lang can be requested from this backend."""
        return bool(target_lang)

    @abstractmethod
    def _translate_texts(self, texts: list[str], target_lang: str) -> list[tuple[str, float]]:
        """Translate masked strings; one (text, confidence) per input."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def translate(self, text: str, target_lang: str, path: FlatPath = ()) -> TranslationResult:
        """Translate a single string."""
        return self.translate_batch([text], target_lang, [path])[0]

    def translate_batch(
        self,
        texts: Sequence[str],
        target_lang: str,
        paths: Optional[Sequence[FlatPath]] = None,
    ) -> list[TranslationResult]:
        """Translate several strings, batch_size at a time.

        Args:
            texts: Source strings (unmasked)
            target_lang: Backend-specific target language code
            paths: Tree paths used to label results and log lines

        Returns:
            One TranslationResult per input, in input order.
        """
        if paths is None:
            paths = [()] * len(texts)

        if not self.supports(target_lang):
            error = str(UnsupportedLanguage(self.name, str(target_lang)))
            return [self._failure(path, text, error) for path, text in zip(paths, texts)]

        results: list[TranslationResult] = []
        size = max(1, self.batch_size)
        for start in range(0, len(texts), size):
            results.extend(self._translate_chunk(
                list(texts[start:start + size]),
                list(paths[start:start + size]),
                target_lang,
            ))
        return results

    async def translate_batch_async(
        self,
        texts: Sequence[str],
        target_lang: str,
        paths: Optional[Sequence[FlatPath]] = None,
        timeout: Optional[float] = None,
        executor: Optional[Executor] = None,
    ) -> list[TranslationResult]:
        """Run translate_batch on executor, bounded by timeout.

        A call that does not finish in time resolves to failed results
        rather than stalling its worker. Its thread keeps running, so callers
        pass an executor they shut down without waiting; None uses the
        loop's default executor, which asyncio.run() joins on exit.
        """
        if paths is None:
            paths = [()] * len(texts)
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(
            executor,
            functools.partial(self.translate_batch, list(texts), target_lang, list(paths)),
        )
        try:
            if timeout:
                return await asyncio.wait_for(call, timeout)
            return await call
        except asyncio.TimeoutError:
            error = f"timed out after {timeout:g}s"
            for path in paths:
                logger.warning("%s: %s for %s", self.name, error, path_to_string(path))
            return [self._failure(path, text, error) for path, text in zip(paths, texts)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _translate_chunk(
        self,
        texts: list[str],
        paths: list[FlatPath],
        target_lang: str,
    ) -> list[TranslationResult]:
        masked = [mask_text(text) for text in texts]
        try:
            raw = self._translate_texts([masked_text for masked_text, _ in masked], target_lang)
            if len(raw) != len(texts):
                raise ProviderFailure(f"expected {len(texts)} translations, got {len(raw)}")
        except Exception as exc:  # network, parse and quota errors alike
            for path in paths:
                logger.warning("%s failed for %s: %s", self.name, path_to_string(path), exc)
            return [self._failure(path, text, str(exc)) for path, text in zip(paths, texts)]

        results = []
        for path, text, (masked_text, registry), (translated, confidence) in zip(paths, texts, masked, raw):
            result = self._finish(path, text, masked_text, registry, translated, confidence)
            if not result.ok:
                logger.warning("%s rejected %s: %s", self.name, path_to_string(path), result.error)
            results.append(result)
        return results

    def _finish(self, path, text, masked_text, registry, translated, confidence) -> TranslationResult:
        if not translated or not translated.strip():
            return self._failure(path, text, "empty response")
        lost = validate_placeholders(masked_text, translated)
        if lost:
            return self._failure(path, text, f"placeholders lost: {', '.join(lost)}")
        restored = registry.restore(translated)
        if self.reject_unchanged and restored == text:
            return self._failure(path, text, "translation identical to source")
        return TranslationResult(
            path=path,
            source_text=text,
            text=restored,
            confidence=float(confidence),
            metadata={"translator": self.name},
        )

    def _failure(self, path: FlatPath, text: str, error: str) -> TranslationResult:
        return TranslationResult(
            path=path,
            source_text=text,
            text=None,
            confidence=0.0,
            error=error,
            metadata={"translator": self.name},
        )


class DummyTranslator(Translator):
    """A dummy translator for testing.

    Modes:
    - 'echo': Return the input unchanged (accepted, not treated as failure)
    - 'upper': Return uppercase version
    - 'prefix': Add [TRANSLATED] prefix
    """

    default_delay = 0.0

    def __init__(self, mode: str = "prefix"):
        self.mode = mode
        self.reject_unchanged = mode != "echo"

    @property
    def name(self) -> str:
        return f"dummy-{self.mode}"

    def _translate_texts(self, texts: list[str], target_lang: str) -> list[tuple[str, float]]:
        if self.mode == "echo":
            return [(text, 1.0) for text in texts]
        if self.mode == "upper":
            return [(text.upper(), 1.0) for text in texts]
        return [(f"[TRANSLATED] {text}", 1.0) for text in texts]


class DictionaryTranslator(Translator):
    """Offline translator using curated whole-string term tables.

    Useful for:
    - Domain vocabulary that generic MT gets wrong (game, level, streak)
    - Reproducible runs without network access

    Unknown strings are per-leaf failures, so the leaf keeps its old value.
    """

    default_delay = 0.0

    def __init__(self, terms: Mapping[str, Mapping[str, str]] | None = None):
        self.terms = {lang: dict(table) for lang, table in (terms or {}).items()}

    @property
    def name(self) -> str:
        return "dictionary"

    def supports(self, target_lang: Optional[str]) -> bool:
        return bool(target_lang) and target_lang in self.terms

    def _translate_texts(self, texts: list[str], target_lang: str) -> list[tuple[str, float]]:
        table = self.terms.get(target_lang, {})
        lowered = {source.lower(): target for source, target in table.items()}
        results = []
        for text in texts:
            translated = table.get(text) or lowered.get(text.lower())
            if translated is None:
                raise ProviderFailure(f"no curated term for {text!r}")
            results.append((translated, 1.0))
        return results


def load_terms(path: Path) -> dict[str, dict[str, str]]:
    """Load a {lang_code: {english: translation}} JSON term file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PersistenceFailure(path, f"cannot load term file: {exc}") from exc
    if not isinstance(data, dict):
        raise PersistenceFailure(path, "term file must be a JSON object")
    return {lang: dict(table) for lang, table in data.items() if isinstance(table, dict)}


def create_translator(backend: str, **kwargs) -> Translator:
    """Factory function to create a translator by name.

    Args:
        backend: Translator backend name
        **kwargs: Backend-specific arguments (timeout bounds each HTTP
            request for the mymemory and deepl backends)

    Returns:
        Configured Translator instance

    Supported backends and aliases:
        - mymemory, free: MyMemory free-tier REST API (default)
        - google, google-web, gtx: Google web-translate endpoint
        - deepl: DeepL API (requires DEEPL_AUTH_KEY)
        - dictionary, glossary: curated term tables (terms=... or glossary_file=...)
        - dummy, echo, test: simple test translator
    """
    backend_lower = backend.lower().replace("_", "-")

    if backend_lower in ("mymemory", "free"):
        from letterriver_i18n.translate.mymemory import MyMemoryTranslator
        return MyMemoryTranslator(email=kwargs.get("email"), timeout=kwargs.get("timeout") or 10.0)

    elif backend_lower in ("google", "google-web", "gtx", "googlefree"):
        from letterriver_i18n.translate.google_web import GoogleWebTranslator
        return GoogleWebTranslator()

    elif backend_lower in ("deepl",):
        from letterriver_i18n.translate.deepl_api import DeepLTranslator
        return DeepLTranslator(api_key=kwargs.get("api_key"), timeout=kwargs.get("timeout"))

    elif backend_lower in ("dictionary", "glossary", "offline"):
        terms = kwargs.get("terms")
        if terms is None and kwargs.get("glossary_file"):
            terms = load_terms(kwargs["glossary_file"])
        return DictionaryTranslator(terms=terms)

    elif backend_lower in ("dummy", "echo", "test"):
        mode = kwargs.get("mode", "echo" if backend_lower == "echo" else "prefix")
        return DummyTranslator(mode=mode)

    available = ["mymemory", "google", "deepl", "dictionary", "dummy"]
    raise ValueError(
        f"Unknown translator backend: {backend}. "
        f"Available backends: {', '.join(available)}"
    )
