"""
Google web-translate endpoint (via the deep-translator library).

This is the workhorse for full-dictionary synchronization:
- No API key required
- Tolerates many concurrent requests
- Language codes are Google's (zh-CN, iw for Hebrew)
- deep-translator sends its request without a timeout; a hung call is
  bounded by the orchestrator's per-call timeout instead
"""

from __future__ import annotations

from typing import Optional

from letterriver_i18n.errors import ProviderFailure
from letterriver_i18n.translate.base import Translator


class GoogleWebTranslator(Translator):
    """Google Translate web endpoint via deep-translator.

    Usage:
        translator = GoogleWebTranslator()
        result = translator.translate("Hello world", "fr")
    """

    default_delay = 0.2
    default_concurrency = 5
    code_key = "google"

    def __init__(self, translator_cls=None):
        if translator_cls is None:
            from deep_translator import GoogleTranslator

            translator_cls = GoogleTranslator
        self._translator_cls = translator_cls

    @property
    def name(self) -> str:
        return "google-web"

    def _translate_texts(self, texts: list[str], target_lang: str) -> list[tuple[str, float]]:
        translator = self._translator_cls(source=self.source_lang, target=target_lang)
        results = []
        for text in texts:
            translated: Optional[str] = translator.translate(text)
            if translated is None:
                raise ProviderFailure("empty response from web endpoint")
            # The web endpoint does not report a match score
            results.append((translated, 1.0))
        return results
