"""
Tests for untranslated-content detection and backlog computation.

Run with: pytest tests/test_detect.py -v
"""

import pytest

from letterriver_i18n.detect import (
    MISSING,
    Verdict,
    appears_english,
    classify,
    compute_backlog,
    needs_translation,
)


class TestClassify:
    """Classification of (source, target) pairs."""

    def test_missing(self):
        assert classify("Cat") is Verdict.MISSING
        assert classify("Cat", MISSING) is Verdict.MISSING

    def test_identical(self):
        assert classify("Cat", "Cat") is Verdict.IDENTICAL_TO_SOURCE

    def test_looks_untranslated(self):
        assert classify("Cat", "the cat and the hat") is Verdict.LOOKS_UNTRANSLATED

    def test_ok(self):
        assert classify("Cat", "Gato") is Verdict.OK

    def test_non_string_source_is_ok(self):
        assert classify(3, 3) is Verdict.OK
        assert classify(["a", "b"], ["a", "b"]) is Verdict.OK

    def test_none_target_is_present(self):
        # null is a valid JSON leaf, not an absent one
        assert classify("Cat", None) is Verdict.OK


class TestAppearsEnglish:
    @pytest.mark.parametrize("text", ["the", "Press start to play", "Tap THE river"])
    def test_english(self, text):
        assert appears_english(text)

    @pytest.mark.parametrize("text", ["", "Gato", "Appuyez pour jouer", 42, None])
    def test_not_english(self, text):
        assert not appears_english(text)

    def test_ratio_threshold(self):
        # 1 of 5 words = 0.2, not above the threshold
        assert not appears_english("one two three four the")
        # 1 of 4 words = 0.25
        assert appears_english("one two three the")


class TestNeedsTranslation:
    @pytest.mark.parametrize("text", ["", "   ", "⭐⭐⭐", "→", "{{count}}", 5])
    def test_skipped(self, text):
        assert not needs_translation(text)

    @pytest.mark.parametrize("text", ["Hello", "{{n}} items", "⭐ Bonus"])
    def test_translated(self, text):
        assert needs_translation(text)


class TestComputeBacklog:
    """Backlog from reference vs target trees."""

    def test_missing_candidate(self):
        backlog = compute_backlog({"a": "Hello"}, {})
        assert len(backlog) == 1
        candidate = backlog.candidates[0]
        assert candidate.path == ("a",)
        assert candidate.key == "a"
        assert candidate.reason is Verdict.MISSING
        assert candidate.existing_value is None

    def test_identical_and_ok(self):
        backlog = compute_backlog(
            {"a": "Hello", "b": "World"},
            {"a": "Hello", "b": "Monde"},
        )
        assert [c.key for c in backlog.candidates] == ["a"]
        assert backlog.candidates[0].reason is Verdict.IDENTICAL_TO_SOURCE
        assert backlog.candidates[0].existing_value == "Hello"

    def test_reference_order(self):
        reference = {"z": "Zed", "a": {"m": "Em", "b": "Bee"}}
        backlog = compute_backlog(reference, {})
        assert [c.key for c in backlog.candidates] == ["z", "a.m", "a.b"]

    def test_counts_by_reason(self):
        backlog = compute_backlog(
            {"a": "A", "b": "B", "c": "C"},
            {"b": "B", "c": "this is the text"},
        )
        assert backlog.count(Verdict.MISSING) == 1
        assert backlog.count(Verdict.IDENTICAL_TO_SOURCE) == 1
        assert backlog.count(Verdict.LOOKS_UNTRANSLATED) == 1

    def test_non_translatable_paths_pass_through(self):
        backlog = compute_backlog(
            {"language": {"id": "english", "name": "English"}},
            {},
            non_translatable_paths={"language.id"},
        )
        assert [c.key for c in backlog.candidates] == ["language.name"]
        assert backlog.passthrough == {("language", "id"): "english"}

    def test_non_translatable_present_is_left_alone(self):
        backlog = compute_backlog(
            {"language": {"id": "english"}},
            {"language": {"id": "french"}},
            non_translatable_paths={"language.id"},
        )
        assert len(backlog) == 0
        assert backlog.passthrough == {}

    def test_non_string_leaves(self):
        backlog = compute_backlog({"rounds": 3, "variants": ["a"]}, {"rounds": 5})
        assert len(backlog) == 0
        assert backlog.passthrough == {("variants",): ["a"]}
