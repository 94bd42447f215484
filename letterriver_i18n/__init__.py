"""
Letter River i18n: translation synchronization for the Letter River game.

Keeps every target-language dictionary aligned with the English reference:
1. Apply hand-written or generated translation patches
2. Detect missing and still-English strings and machine-translate them
3. Apply curated language-pack overrides
4. Write auditable Markdown change reports

License: MIT
"""

__version__ = "0.1.0"

from letterriver_i18n.packs import DEFAULT_PACKS, LanguagePack, OverrideRule
from letterriver_i18n.pipeline import LanguageSync, SyncConfig, SyncResult, SyncState

__all__ = [
    "DEFAULT_PACKS",
    "LanguagePack",
    "OverrideRule",
    "LanguageSync",
    "SyncConfig",
    "SyncResult",
    "SyncState",
]
