"""
Tests for translation backends and the adapter base class.

Network backends are exercised with fake sessions/clients; nothing here
talks to a real service.
"""

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest
import requests

from letterriver_i18n.errors import MissingCredential
from letterriver_i18n.translate.base import (
    DictionaryTranslator,
    DummyTranslator,
    Translator,
    create_translator,
    load_terms,
)
from letterriver_i18n.translate.deepl_api import DeepLTranslator
from letterriver_i18n.translate.google_web import GoogleWebTranslator
from letterriver_i18n.translate.mymemory import MyMemoryTranslator


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    """Records requests and replays canned responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def mymemory_ok(text, match=0.95):
    return FakeResponse({
        "responseStatus": 200,
        "responseData": {"translatedText": text, "match": match},
    })


class TestDummyTranslator:
    def test_prefix(self):
        result = DummyTranslator().translate("Hello", "fr")
        assert result.ok
        assert result.text == "[TRANSLATED] Hello"

    def test_echo_is_accepted(self):
        result = DummyTranslator(mode="echo").translate("{{n}} items", "fr")
        assert result.text == "{{n}} items"

    def test_upper_keeps_placeholder(self):
        result = DummyTranslator(mode="upper").translate("hi {{name}}", "fr")
        # markers are upper-case already, so the placeholder survives
        assert result.text == "HI {{name}}"


class TestAdapterBoundary:
    """Failures become null results, never exceptions."""

    def test_provider_error_is_null_result(self):
        translator = DictionaryTranslator({"fr": {"Hello": "Bonjour"}})
        results = translator.translate_batch(["Hello", "Unknown"], "fr", [("a",), ("b",)])
        assert [r.text for r in results] == ["Bonjour", None]
        assert "no curated term" in results[1].error
        assert results[1].key == "b"

    def test_unsupported_language(self):
        translator = DictionaryTranslator({"fr": {"Hello": "Bonjour"}})
        results = translator.translate_batch(["Hello"], "am")
        assert results[0].text is None
        assert "does not support" in results[0].error

    def test_unchanged_output_rejected(self):
        translator = DictionaryTranslator({"fr": {"Menu": "Menu"}})
        result = translator.translate("Menu", "fr")
        assert result.text is None
        assert result.error == "translation identical to source"

    def test_lost_placeholder_rejected(self):
        class Dropper(DummyTranslator):
            def _translate_texts(self, texts, target_lang):
                return [("sans marqueur", 1.0) for _ in texts]

        result = Dropper().translate("You scored {{score}}", "fr")
        assert result.text is None
        assert "placeholders lost" in result.error

    def test_empty_response_rejected(self):
        class Blank(DummyTranslator):
            def _translate_texts(self, texts, target_lang):
                return [("  ", 1.0) for _ in texts]

        assert Blank().translate("Hello", "fr").error == "empty response"

    def test_result_count_mismatch(self):
        class Short(DummyTranslator):
            batch_size = 3

            def _translate_texts(self, texts, target_lang):
                return [("x", 1.0)]

        results = Short().translate_batch(["a", "b", "c"], "fr")
        assert all(r.text is None for r in results)
        assert "expected 3" in results[0].error

    def test_batches_by_batch_size(self):
        calls = []

        class Counting(DummyTranslator):
            batch_size = 2

            def _translate_texts(self, texts, target_lang):
                calls.append(list(texts))
                return super()._translate_texts(texts, target_lang)

        results = Counting().translate_batch(["a", "b", "c"], "fr")
        assert calls == [["a", "b"], ["c"]]
        assert len(results) == 3


class TestAsyncDispatch:
    def test_async_matches_sync(self):
        results = asyncio.run(DummyTranslator().translate_batch_async(["Hi"], "fr", [("k",)]))
        assert results[0].text == "[TRANSLATED] Hi"
        assert results[0].path == ("k",)

    def test_timeout_yields_null_results(self):
        class Slow(DummyTranslator):
            def _translate_texts(self, texts, target_lang):
                time.sleep(0.5)
                return super()._translate_texts(texts, target_lang)

        results = asyncio.run(Slow().translate_batch_async(["a", "b"], "fr", timeout=0.05))
        assert [r.text for r in results] == [None, None]
        assert "timed out" in results[0].error

    def test_timeout_with_own_executor_returns_promptly(self):
        release = threading.Event()

        class Hung(DummyTranslator):
            def _translate_texts(self, texts, target_lang):
                release.wait(10)
                return super()._translate_texts(texts, target_lang)

        async def call():
            executor = ThreadPoolExecutor(max_workers=1)
            try:
                return await Hung().translate_batch_async(["a"], "fr", timeout=0.05, executor=executor)
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        started = time.monotonic()
        try:
            results = asyncio.run(call())
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert results[0].text is None
        assert elapsed < 2


class TestMyMemoryTranslator:
    def test_request_and_confidence(self):
        session = FakeSession([mymemory_ok("Bonjour __PLACEHOLDER_0__", match=0.87)])
        translator = MyMemoryTranslator(session=session, email="dev@example.com")
        result = translator.translate("Hello {{name}}", "fr", ("greeting",))

        assert result.text == "Bonjour {{name}}"
        assert result.confidence == pytest.approx(0.87)
        params = session.requests[0]["params"]
        assert params["langpair"] == "en|fr"
        assert params["q"] == "Hello __PLACEHOLDER_0__"
        assert params["de"] == "dev@example.com"

    def test_quota_status_is_failure(self):
        session = FakeSession([FakeResponse({
            "responseStatus": 429,
            "responseDetails": "MYMEMORY WARNING: YOU USED ALL AVAILABLE FREE TRANSLATIONS",
            "responseData": {"translatedText": "MYMEMORY WARNING"},
        })])
        result = MyMemoryTranslator(session=session).translate("Hello", "fr")
        assert result.text is None
        assert "FREE TRANSLATIONS" in result.error

    def test_network_error_is_failure(self):
        session = FakeSession([requests.ConnectionError("offline")])
        result = MyMemoryTranslator(session=session).translate("Hello", "fr")
        assert result.text is None
        assert "offline" in result.error

    def test_http_error_is_failure(self):
        session = FakeSession([FakeResponse({}, status_code=503)])
        assert MyMemoryTranslator(session=session).translate("Hello", "fr").text is None

    def test_long_query_rejected_without_request(self):
        session = FakeSession([])
        result = MyMemoryTranslator(session=session).translate("x" * 600, "fr")
        assert result.text is None
        assert session.requests == []

    def test_lookup(self):
        session = FakeSession([mymemory_ok("Jeu", 1.0), requests.Timeout("slow")])
        translator = MyMemoryTranslator(session=session)
        assert translator.lookup("Game", "fr") == ("Jeu", 1.0)
        assert translator.lookup("Game", "fr") == (None, 0.0)


class FakeDeepLClient:
    def __init__(self):
        self.calls = []

    def translate_text(self, texts, source_lang=None, target_lang=None):
        self.calls.append((list(texts), source_lang, target_lang))
        return [SimpleNamespace(text=f"{target_lang}:{text}") for text in texts]


class TestDeepLTranslator:
    def test_batch_request(self):
        client = FakeDeepLClient()
        translator = DeepLTranslator(client=client)
        results = translator.translate_batch(["One", "Two {{n}}"], "fr")

        assert [r.text for r in results] == ["FR:One", "FR:Two {{n}}"]
        assert client.calls == [(["One", "Two __PLACEHOLDER_0__"], "EN", "FR")]

    def test_supported_codes(self):
        translator = DeepLTranslator(client=FakeDeepLClient())
        assert translator.supports("PT-PT")
        assert translator.supports("ja")
        assert not translator.supports("AM")
        assert not translator.supports(None)

    def test_request_timeout(self, monkeypatch):
        import deepl

        monkeypatch.setenv("DEEPL_AUTH_KEY", "test-key:fx")
        monkeypatch.setattr(deepl.http_client, "min_connection_timeout", 10.0)
        DeepLTranslator(timeout=7.0)
        assert deepl.http_client.min_connection_timeout == 7.0

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("DEEPL_AUTH_KEY", raising=False)
        with pytest.raises(MissingCredential, match="DEEPL_AUTH_KEY"):
            DeepLTranslator()


class TestGoogleWebTranslator:
    def test_uses_translator_class(self):
        created = []

        class FakeGoogle:
            def __init__(self, source, target):
                created.append((source, target))

            def translate(self, text):
                return text.replace("Hello", "Shalom")

        result = GoogleWebTranslator(translator_cls=FakeGoogle).translate("Hello {{name}}", "iw")
        assert result.text == "Shalom {{name}}"
        assert created == [("en", "iw")]

    def test_none_is_failure(self):
        class Silent:
            def __init__(self, source, target):
                pass

            def translate(self, text):
                return None

        assert GoogleWebTranslator(translator_cls=Silent).translate("Hello", "fr").text is None


class TestFactory:
    def test_aliases(self):
        assert isinstance(create_translator("free", session=None), MyMemoryTranslator)
        assert isinstance(create_translator("dummy"), DummyTranslator)
        assert create_translator("echo").mode == "echo"
        assert isinstance(create_translator("glossary", terms={"fr": {}}), DictionaryTranslator)

    def test_http_timeout_passed_through(self):
        assert create_translator("mymemory", timeout=4.0).timeout == 4.0
        assert create_translator("mymemory", timeout=None).timeout == 10.0

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown translator backend"):
            create_translator("nonexistent")

    def test_glossary_file(self, tmp_path):
        terms_file = tmp_path / "terms.json"
        terms_file.write_text('{"fr": {"Streak": "Série"}}', encoding="utf-8")
        translator = create_translator("dictionary", glossary_file=terms_file)
        assert translator.translate("streak", "fr").text == "Série"

    def test_load_terms_ignores_non_tables(self, tmp_path):
        terms_file = tmp_path / "terms.json"
        terms_file.write_text('{"fr": {"a": "b"}, "note": "x"}', encoding="utf-8")
        assert load_terms(terms_file) == {"fr": {"a": "b"}}

    def test_translator_is_abstract(self):
        with pytest.raises(TypeError):
            Translator()
