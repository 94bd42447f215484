"""
Project-wide configuration and directory layout.

This module defines the paths and tunables used by the synchronization
pipeline. Every value can be overridden from the environment so the same
scripts work from the repository root, CI and a Codespace.

Module Contents:
    APP_NAME: Application name for display purposes
    I18N_DIR: Directory holding en.json and the per-language dictionaries
    REFERENCE_FILE: File name of the English reference dictionary
    REPORTS_DIR: Directory receiving Markdown change and audit reports
    PATCHES_DIR: Directory scanned for <code>-translations-patch.json files
    PACKS_DIR: Directory of language-pack descriptors (<languageId>.json)
    DEFAULT_CONCURRENCY, DEFAULT_REQUEST_DELAY, DEFAULT_LANGUAGE_PAUSE,
    DEFAULT_TIMEOUT, PROGRESS_EVERY: dispatch tunables

Example:
    >>> from letterriver_i18n.config import I18N_DIR, REFERENCE_FILE
    >>> print(I18N_DIR / REFERENCE_FILE)
"""

import os
from pathlib import Path

# Application name for display and identification
APP_NAME = "Letter River i18n"

# Dictionaries live next to the game sources
I18N_DIR = Path(os.getenv("LR_I18N_DIR", "src/i18n"))

# English reference dictionary
REFERENCE_FILE = os.getenv("LR_REFERENCE_FILE", "en.json")

# Markdown reports (change reports, audits, batch summaries)
REPORTS_DIR = Path(os.getenv("LR_REPORTS_DIR", "translation-reports"))

# Hand-written or generated patch files
PATCHES_DIR = Path(os.getenv("LR_PATCHES_DIR", "."))

# Optional language-pack descriptors overriding the built-in table
PACKS_DIR = Path(os.getenv("LR_PACKS_DIR", "language-packs"))

PATCH_SUFFIX = "-translations-patch.json"
BACKUP_SUFFIX = ".backup"

# Source language of the reference dictionary
SOURCE_LANG = "en"


def env_number(name: str, default, cast=float):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return cast(value)
    except ValueError:
        return default


# Worker tasks dispatching provider calls for one language
DEFAULT_CONCURRENCY = max(1, env_number("TRANSLATE_CONCURRENCY", 5, int))

# Seconds each worker waits between its own requests
DEFAULT_REQUEST_DELAY = env_number("TRANSLATE_DELAY", 0.6)

# Seconds between languages in batch mode
DEFAULT_LANGUAGE_PAUSE = env_number("TRANSLATE_LANGUAGE_PAUSE", 2.0)

# Per-call timeout; a hung provider call resolves to a failed leaf
DEFAULT_TIMEOUT = env_number("TRANSLATE_TIMEOUT", 30.0)

# Progress is logged every N completed leaves
PROGRESS_EVERY = 25
