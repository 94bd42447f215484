"""Translation backends."""

from letterriver_i18n.translate.base import (
    DictionaryTranslator,
    DummyTranslator,
    TranslationResult,
    Translator,
    create_translator,
)

__all__ = [
    "DictionaryTranslator",
    "DummyTranslator",
    "TranslationResult",
    "Translator",
    "create_translator",
]
