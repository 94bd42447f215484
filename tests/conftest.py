"""Shared fixtures for the Letter River i18n tests."""

import json

import pytest

from letterriver_i18n.errors import ProviderFailure
from letterriver_i18n.packs import LanguagePack
from letterriver_i18n.pipeline import SyncConfig
from letterriver_i18n.translate.base import Translator


class StubTranslator(Translator):
    """Translator answering from a fixed {english: translation} table.

    Unknown strings raise ProviderFailure; every call is recorded.
    """

    default_delay = 0.0

    def __init__(self, table=None, batch_size=1, supported=None):
        self.table = dict(table or {})
        self.batch_size = batch_size
        self.supported = supported
        self.calls = []

    @property
    def name(self) -> str:
        return "stub"

    def supports(self, target_lang):
        if self.supported is None:
            return bool(target_lang)
        return target_lang in self.supported

    def _translate_texts(self, texts, target_lang):
        self.calls.append((list(texts), target_lang))
        results = []
        for text in texts:
            if text not in self.table:
                raise ProviderFailure(f"no stub entry for {text!r}")
            results.append((self.table[text], 0.9))
        return results


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def i18n_dir(tmp_path):
    directory = tmp_path / "i18n"
    directory.mkdir()
    return directory


@pytest.fixture
def config(tmp_path, i18n_dir):
    return SyncConfig(
        i18n_dir=i18n_dir,
        reports_dir=tmp_path / "reports",
        patches_dir=tmp_path / "patches",
        packs_dir=tmp_path / "packs",
        concurrency=3,
        request_delay=0.0,
        language_pause=0.0,
        timeout=5.0,
    )


@pytest.fixture
def french():
    return LanguagePack(language_id="french", name="French", api_code="fr", file_name="french.json")


@pytest.fixture
def stub():
    return StubTranslator({"Hello": "Bonjour", "World": "Monde"})
