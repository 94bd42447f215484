"""MyMemory API translator - free translation service."""

from __future__ import annotations

import logging
import os
from typing import Optional

import requests

from letterriver_i18n.errors import ProviderFailure
from letterriver_i18n.translate.base import Translator

logger = logging.getLogger(__name__)


class MyMemoryTranslator(Translator):
    """MyMemory translation API - free, no key required.

    Keyed by short language codes (langpair "en|fr"). The response's
    match score is reported as the result confidence. Setting
    MYMEMORY_EMAIL raises the anonymous daily quota.
    """

    API_URL = "https://api.mymemory.translated.net/get"
    # Free tier rejects longer queries
    MAX_QUERY_LENGTH = 500

    default_delay = 0.6
    default_concurrency = 5

    def __init__(
        self,
        email: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.email = email or os.getenv("MYMEMORY_EMAIL")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def name(self) -> str:
        return "mymemory"

    def _translate_texts(self, texts: list[str], target_lang: str) -> list[tuple[str, float]]:
        return [self._translate_one(text, target_lang) for text in texts]

    def _translate_one(self, text: str, target_lang: str) -> tuple[str, float]:
        if len(text) > self.MAX_QUERY_LENGTH:
            raise ProviderFailure(f"query longer than {self.MAX_QUERY_LENGTH} characters")

        params = {"q": text, "langpair": f"{self.source_lang}|{target_lang}"}
        if self.email:
            params["de"] = self.email

        response = self.session.get(self.API_URL, params=params, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()

        status = data.get("responseStatus")
        if str(status) != "200":
            raise ProviderFailure(data.get("responseDetails") or f"status {status}")

        response_data = data.get("responseData") or {}
        translation = response_data.get("translatedText")
        if not translation:
            raise ProviderFailure("no translatedText in response")

        try:
            match = float(response_data.get("match") or 0.0)
        except (TypeError, ValueError):
            match = 0.0
        return translation, max(0.0, min(1.0, match))

    def lookup(self, text: str, target_lang: str) -> tuple[Optional[str], float]:
        """Unmasked single lookup used by audit spot-checks.

        Returns (None, 0.0) on any failure.
        """
        try:
            return self._translate_one(text, target_lang)
        except (requests.RequestException, ValueError, ProviderFailure) as exc:
            logger.debug("MyMemory lookup failed for %r: %s", text, exc)
            return None, 0.0
