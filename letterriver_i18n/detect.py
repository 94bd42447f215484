"""
Untranslated-content detection and backlog computation.

The detector is deliberately simple and cheap: it runs over every reference
leaf before any provider call is made, so the backlog sent to translation
backends is as small as possible.

Classification of a (source, target) pair:
- MISSING: the target has no value at that path
- IDENTICAL_TO_SOURCE: target is byte-for-byte the English source
- LOOKS_UNTRANSLATED: more than 20% of the target's words are common
  English function words
- OK: anything else, including every non-string leaf

The English check is a ratio test over a small closed word list. It is
known to flag short strings ("the" alone is 100% English) and that
false-positive rate is accepted in exchange for coverage.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from letterriver_i18n.masking import is_placeholder_only
from letterriver_i18n.tree import FlatPath, flatten_paths, path_to_string


class Verdict(str, Enum):
    OK = "ok"
    MISSING = "missing"
    IDENTICAL_TO_SOURCE = "identical_to_source"
    LOOKS_UNTRANSLATED = "looks_untranslated"


class _Missing:
    """Sentinel for an absent target value (None is a valid JSON leaf)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

# Common English function words
ENGLISH_INDICATORS = frozenset({
    "the", "and", "or", "is", "are", "to", "for", "of", "in", "on", "with",
    "you", "your", "this", "that",
})

ENGLISH_RATIO_THRESHOLD = 0.2

# Strings made only of these symbols are never sent to a backend
SYMBOL_ONLY_PATTERN = re.compile(r"^[⭐✓⬅➡←→↑↓]+$")


def appears_english(text: Any) -> bool:
    """Check whether a string still looks like English.

    Returns True when at least one whitespace-delimited word is an English
    indicator and indicators make up more than 20% of the words.
    """
    if not isinstance(text, str):
        return False
    words = text.lower().split()
    if not words:
        return False
    hits = sum(1 for word in words if word in ENGLISH_INDICATORS)
    return hits > 0 and hits / len(words) > ENGLISH_RATIO_THRESHOLD


def classify(source_value: Any, target_value: Any = MISSING) -> Verdict:
    """Classify a target leaf against its English source.

    Example:
        >>> classify("Cat")
        <Verdict.MISSING: 'missing'>
        >>> classify("Cat", "Gato")
        <Verdict.OK: 'ok'>
    """
    if not isinstance(source_value, str):
        return Verdict.OK
    if target_value is MISSING:
        return Verdict.MISSING
    if isinstance(target_value, str) and target_value == source_value:
        return Verdict.IDENTICAL_TO_SOURCE
    if appears_english(target_value):
        return Verdict.LOOKS_UNTRANSLATED
    return Verdict.OK


def needs_translation(text: Any) -> bool:
    """False for values a backend cannot meaningfully translate.

    Empty strings, symbol-only strings and bare placeholders are left
    untouched and counted as skipped.
    """
    if not isinstance(text, str) or not text.strip():
        return False
    if SYMBOL_ONLY_PATTERN.match(text.strip()):
        return False
    return not is_placeholder_only(text)


# ============================================================================
# Backlog
# ============================================================================

@dataclass(frozen=True)
class TranslationCandidate:
    """A reference leaf that needs (re)translation."""
    path: FlatPath
    source_value: str
    existing_value: Optional[Any]
    reason: Verdict

    @property
    def key(self) -> str:
        return path_to_string(self.path)


@dataclass
class Backlog:
    """Result of comparing a reference tree with a target tree.

    Attributes:
        candidates: Leaves to translate, in reference order
        passthrough: Missing leaves copied verbatim (non-strings and
            non-translatable paths)
    """
    candidates: list[TranslationCandidate] = field(default_factory=list)
    passthrough: dict[FlatPath, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.candidates)

    def count(self, reason: Verdict) -> int:
        return sum(1 for candidate in self.candidates if candidate.reason is reason)


def compute_backlog(
    reference: Mapping[str, Any],
    target: Mapping[str, Any],
    non_translatable_paths: Iterable[str] = (),
) -> Backlog:
    """Classify every reference leaf and collect the translation backlog.

    Args:
        reference: English reference tree
        target: Existing target-language tree
        non_translatable_paths: Dot paths that are never translated

    Returns:
        Backlog with candidates ordered as the reference tree.
    """
    skip = set(non_translatable_paths)
    flat_target = flatten_paths(target)
    backlog = Backlog()

    for path, source in flatten_paths(reference).items():
        existing = flat_target.get(path, MISSING)
        if path_to_string(path) in skip or not isinstance(source, str):
            if existing is MISSING:
                backlog.passthrough[path] = source
            continue

        verdict = classify(source, existing)
        if verdict is Verdict.OK:
            continue
        backlog.candidates.append(TranslationCandidate(
            path=path,
            source_value=source,
            existing_value=None if existing is MISSING else existing,
            reason=verdict,
        ))

    return backlog
