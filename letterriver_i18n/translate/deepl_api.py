"""
DeepL translator (paid API with batch support).

DeepL is used for bulk generation: up to 50 strings go out in one request.
Target codes are DeepL's own (FR, PT-PT, ZH, ...); languages DeepL does not
offer are listed with a None code in the language-pack table so they are
skipped up front instead of failing request by request.

The auth key is read from DEEPL_AUTH_KEY only and never logged.
"""

from __future__ import annotations

import logging
from typing import Optional

from letterriver_i18n.keys import require_key
from letterriver_i18n.translate.base import Translator

logger = logging.getLogger(__name__)

# Target codes accepted by the DeepL API for this project's languages
DEEPL_TARGET_CODES = frozenset({
    "AR", "BN", "DE", "EN-GB", "EN-US", "ES", "FR", "HI", "JA", "PT-BR", "PT-PT",
    "RU", "ZH", "ZH-HANS",
})


class DeepLTranslator(Translator):
    """DeepL translate via the official deepl client.

    Usage:
        translator = DeepLTranslator()          # needs DEEPL_AUTH_KEY
        result = translator.translate("Hello", "FR")
    """

    batch_size = 50
    default_delay = 1.0
    default_concurrency = 1
    code_key = "deepl"

    def __init__(self, api_key: Optional[str] = None, client=None, timeout: Optional[float] = None):
        if client is None:
            import deepl

            if timeout:
                # The deepl client takes its request timeout from module state
                deepl.http_client.min_connection_timeout = timeout
            client = deepl.Translator(api_key or require_key("deepl"))
        self._client = client

    @property
    def name(self) -> str:
        return "deepl"

    def supports(self, target_lang: Optional[str]) -> bool:
        return bool(target_lang) and target_lang.upper() in DEEPL_TARGET_CODES

    def _translate_texts(self, texts: list[str], target_lang: str) -> list[tuple[str, float]]:
        results = self._client.translate_text(
            texts,
            source_lang=self.source_lang.upper(),
            target_lang=target_lang.upper(),
        )
        if not isinstance(results, list):
            results = [results]
        # DeepL does not report a confidence score
        return [(result.text, 1.0) for result in results]
