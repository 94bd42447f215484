"""
Language packs and curated overrides.

A language pack describes one target language of the game: its id, the
dictionary file, the codes each translation backend expects, the paths that
must never be machine translated, and a declarative list of curated
overrides applied after bulk translation.

Descriptor format (language-packs/<languageId>.json, all keys optional
except languageId):

    {
      "languageId": "french",
      "name": "French",
      "apiCode": "fr",
      "fileName": "french.json",
      "providerCodes": {"deepl": "FR", "google": "fr"},
      "nonTranslatablePaths": ["language.id"],
      "introductions": {"nounFallback": "lettre", "subtitleTemplate": "..."},
      "practiceModes": [{"id": "letters", "noun": "lettre", "label": "Lettres"}],
      "overrides": [{"path": "game.title", "value": "Rivière", "mode": "set"}]
    }

An optional "patchCode" names the code used in patch file names when it
differs from apiCode (mandarin uses "zh" for zh-translations-patch.json).

Override rules are applied in declaration order. A "set" rule always
writes its value; a "default" rule only fills a path that is absent; a
"replace" rule only rewrites a path that already exists (used for the
language.id identity field). For two "set" rules on the same path the
later one wins.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from letterriver_i18n.errors import PersistenceFailure
from letterriver_i18n.tree import LocalizationTree, get_path, set_path, string_to_path

logger = logging.getLogger(__name__)

OVERRIDE_MODES = ("set", "default", "replace")

_ABSENT = object()


@dataclass(frozen=True)
class OverrideRule:
    """A curated path -> value substitution."""
    path: str
    value: Any
    mode: str = "set"

    def __post_init__(self):
        if self.mode not in OVERRIDE_MODES:
            raise ValueError(f"Unknown override mode {self.mode!r} for {self.path}")
        if not self.path:
            raise ValueError("Override path must not be empty")


@dataclass(frozen=True)
class LanguagePack:
    """Read-only description of a target language.

    Attributes:
        language_id: Internal id (e.g. 'french')
        name: Display name for reports
        api_code: Short code for free-tier backends (e.g. 'fr')
        file_name: Dictionary file inside the i18n directory
        provider_codes: Per-backend code overrides; None marks unsupported
        non_translatable_paths: Dot paths copied through untranslated
        overrides: Curated rules applied after translation, in order
        patch_code: Code used in patch file names when it differs from
            api_code (e.g. "zh" for mandarin)
    """
    language_id: str
    name: str
    api_code: str
    file_name: str
    provider_codes: Mapping[str, Optional[str]] = field(default_factory=dict)
    non_translatable_paths: frozenset = frozenset({"language.id"})
    overrides: tuple = ()
    patch_code: Optional[str] = None

    @property
    def short_code(self) -> str:
        """Code in <code>-translations-patch.json file names."""
        return self.patch_code or self.api_code

    def code_for(self, code_key: str) -> Optional[str]:
        """Target-language code for a backend's code_key."""
        if code_key in self.provider_codes:
            return self.provider_codes[code_key]
        return self.api_code

    @property
    def rules(self) -> tuple:
        """Identity rule followed by the pack's own overrides."""
        return (OverrideRule("language.id", self.language_id, mode="replace"),) + tuple(self.overrides)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: Optional["LanguagePack"] = None) -> "LanguagePack":
        """Build a pack from a descriptor, falling back to base for absent keys."""
        language_id = data.get("languageId") or (base.language_id if base else None)
        if not language_id:
            raise ValueError("Language pack descriptor needs a languageId")

        codes = dict(base.provider_codes) if base else {}
        codes.update(data.get("providerCodes") or {})

        non_translatable = data.get("nonTranslatablePaths")
        if non_translatable is None:
            non_translatable = base.non_translatable_paths if base else {"language.id"}

        rules = list(base.overrides) if base else []
        rules.extend(compile_overrides(data))

        api_code = data.get("apiCode") or (base.api_code if base else language_id)
        return cls(
            language_id=language_id,
            name=data.get("name") or (base.name if base else language_id.title()),
            api_code=api_code,
            file_name=data.get("fileName") or (base.file_name if base else f"{language_id}.json"),
            provider_codes=codes,
            non_translatable_paths=frozenset(non_translatable),
            overrides=tuple(rules),
            patch_code=data.get("patchCode") or (base.patch_code if base else None),
        )


def compile_overrides(data: Mapping[str, Any]) -> list[OverrideRule]:
    """Turn pack metadata into ordered override rules.

    introductions and practiceModes become structural insertions under
    game.setup and game.modes; the explicit overrides list comes last.
    """
    rules: list[OverrideRule] = []

    introductions = data.get("introductions") or {}
    noun_fallback = introductions.get("nounFallback")
    if noun_fallback:
        rules.append(OverrideRule("game.setup.defaultNoun", noun_fallback))
    if introductions.get("subtitleTemplate"):
        rules.append(OverrideRule("game.setup.subtitleFallback", introductions["subtitleTemplate"]))

    for mode in data.get("practiceModes") or []:
        mode_id = mode.get("id")
        if not mode_id:
            continue
        prefix = f"game.modes.{mode_id}"
        if mode.get("noun"):
            rules.append(OverrideRule(f"{prefix}.noun", mode["noun"]))
        elif noun_fallback:
            rules.append(OverrideRule(f"{prefix}.noun", noun_fallback, mode="default"))
        # Existing (translated) labels win over pack defaults
        if mode.get("label"):
            rules.append(OverrideRule(f"{prefix}.label", mode["label"], mode="default"))
        if mode.get("description"):
            rules.append(OverrideRule(f"{prefix}.description", mode["description"], mode="default"))

    for entry in data.get("overrides") or []:
        rules.append(OverrideRule(entry["path"], entry.get("value"), entry.get("mode", "set")))

    return rules


def apply_overrides(tree: LocalizationTree, pack: LanguagePack) -> LocalizationTree:
    """Apply a pack's curated rules to a copy of tree.

    Raises:
        StructuralConflict: a rule path runs through a leaf or would
            replace a subtree.
    """
    result = copy.deepcopy(tree)
    for rule in pack.rules:
        path = string_to_path(rule.path)
        present = get_path(result, path, _ABSENT) is not _ABSENT
        if (rule.mode == "default" and present) or (rule.mode == "replace" and not present):
            continue
        set_path(result, path, copy.deepcopy(rule.value))
    return result


# ============================================================================
# Built-in language table
# ============================================================================

def _pack(language_id, name, code, file_name, deepl=None, google=None, patch_code=None) -> LanguagePack:
    return LanguagePack(
        language_id=language_id,
        name=name,
        api_code=code,
        file_name=file_name,
        provider_codes={"deepl": deepl, "google": google or code},
        patch_code=patch_code,
    )


DEFAULT_PACKS: dict[str, LanguagePack] = {
    pack.language_id: pack
    for pack in (
        _pack("arabic", "Arabic", "ar", "arabic.json", deepl="AR"),
        _pack("spanish", "Spanish", "es", "spanish.json", deepl="ES"),
        _pack("french", "French", "fr", "french.json", deepl="FR"),
        _pack("portuguese", "Portuguese", "pt", "portuguese.json", deepl="PT-PT"),
        _pack("russian", "Russian", "ru", "russian.json", deepl="RU"),
        _pack("mandarin", "Chinese", "zh-CN", "mandarin.json", deepl="ZH", patch_code="zh"),
        _pack("hindi", "Hindi", "hi", "hindi.json", deepl="HI"),
        _pack("japanese", "Japanese", "ja", "japanese.json", deepl="JA"),
        _pack("bengali", "Bengali", "bn", "bengali.json", deepl="BN"),
        _pack("amharic", "Amharic", "am", "amharic.json"),
        _pack("hebrew", "Hebrew", "he", "he.json", google="iw"),
    )
}


def load_packs(packs_dir: Optional[Path] = None) -> dict[str, LanguagePack]:
    """Built-in packs overlaid with descriptors found in packs_dir."""
    packs = dict(DEFAULT_PACKS)
    if packs_dir is None or not Path(packs_dir).is_dir():
        return packs

    for descriptor in sorted(Path(packs_dir).glob("*.json")):
        try:
            data = json.loads(descriptor.read_text(encoding="utf-8"))
            language_id = data.get("languageId") or descriptor.stem
            data = {**data, "languageId": language_id}
            packs[language_id] = LanguagePack.from_dict(data, base=packs.get(language_id))
        except (OSError, ValueError, KeyError, AttributeError) as exc:
            logger.warning("Unable to load language pack %s: %s", descriptor.name, exc)
    return packs


def load_pack_file(path: Path) -> LanguagePack:
    """Load a single descriptor on top of the matching built-in pack."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise PersistenceFailure(path, f"cannot load language pack: {exc}") from exc
    language_id = data.get("languageId") or Path(path).stem
    return LanguagePack.from_dict({**data, "languageId": language_id}, base=DEFAULT_PACKS.get(language_id))


def resolve_pack(token: str, packs: Mapping[str, LanguagePack]) -> Optional[LanguagePack]:
    """Find a pack by language id, api code, patch code or dictionary file stem."""
    needle = token.strip().lower()
    for pack in packs.values():
        candidates = {
            pack.language_id.lower(),
            pack.api_code.lower(),
            pack.short_code.lower(),
            Path(pack.file_name).stem.lower(),
        }
        if needle in candidates:
            return pack
    return None


def with_overrides(pack: LanguagePack, rules: Iterable[OverrideRule]) -> LanguagePack:
    """Return a copy of pack with extra rules appended."""
    return replace(pack, overrides=tuple(pack.overrides) + tuple(rules))
