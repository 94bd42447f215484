"""
Translation audit (read-only).

Audits every target dictionary against the English reference:
1. Identical-to-English strings (untranslated)
2. Strings that still look English (suspicious)
3. Keys missing from the target
4. Optional spot-check of high-visibility keys against a translation
   service, producing review suggestions when the service is confident
   and the current translation differs substantially

Dictionaries are never modified; output is one Markdown report per language
plus a SUMMARY.md table.

Usage:
    from letterriver_i18n.audit import run_audit
    from letterriver_i18n.translate.mymemory import MyMemoryTranslator

    outcomes = run_audit(
        config.reference_path, config.i18n_dir, config.reports_dir, packs,
        spot_checker=MyMemoryTranslator().lookup,
    )
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from letterriver_i18n.detect import MISSING, Verdict, classify
from letterriver_i18n.errors import PersistenceFailure
from letterriver_i18n.packs import LanguagePack
from letterriver_i18n.report import format_timestamp, format_value, write_report
from letterriver_i18n.storage import load_tree
from letterriver_i18n.tree import flatten

logger = logging.getLogger(__name__)

# (english_text, target_code) -> (suggestion or None, match score)
SpotChecker = Callable[[str, str], "tuple[Optional[str], float]"]

PRIORITY_MARKERS = (".name", ".title", ".description", ".label")

SUGGESTION_MIN_MATCH = 0.8
SUGGESTION_MAX_SIMILARITY = 0.5

# Listing caps in per-language reports
UNTRANSLATED_CAP = 50
SUSPICIOUS_CAP = 30
MISSING_CAP = 30


@dataclass(frozen=True)
class AuditEntry:
    key: str
    english: Any
    current: Any = None


@dataclass(frozen=True)
class Suggestion:
    key: str
    english: str
    current: str
    suggested: str
    confidence: float


@dataclass
class AuditIssues:
    """Findings for one language."""
    untranslated: list[AuditEntry] = field(default_factory=list)
    suspicious: list[AuditEntry] = field(default_factory=list)
    missing: list[AuditEntry] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.untranslated) + len(self.suspicious) + len(self.missing)


@dataclass
class AuditOutcome:
    pack: LanguagePack
    issues: Optional[AuditIssues] = None
    report_path: Optional[Path] = None
    error: Optional[str] = None


def similarity(current: str, suggested: str) -> float:
    """Crude similarity: 1.0 equal, 0.7 when one contains the other, else 0."""
    a = current.lower().strip()
    b = suggested.lower().strip()
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.7
    return 0.0


def priority_keys(flat_reference: Mapping[str, Any], limit: int) -> list[str]:
    keys = [key for key in flat_reference if any(marker in key for marker in PRIORITY_MARKERS)]
    return keys[:limit]


def audit_language(
    reference: Mapping[str, Any],
    target: Mapping[str, Any],
    pack: LanguagePack,
    spot_checker: Optional[SpotChecker] = None,
    sample_size: int = 20,
    delay: float = 0.5,
) -> AuditIssues:
    """Collect audit findings for one target tree.

    Args:
        reference: English reference tree
        target: Target-language tree
        pack: Language pack (its api_code is sent to the spot checker)
        spot_checker: Lookup callable, or None to skip service checks
        sample_size: Maximum number of priority keys spot-checked
        delay: Seconds to wait before each spot-check request
    """
    flat_reference = flatten(reference)
    flat_target = flatten(target)
    issues = AuditIssues()

    for key, english in flat_reference.items():
        current = flat_target.get(key, MISSING)
        if current is MISSING:
            issues.missing.append(AuditEntry(key, english))
            continue
        verdict = classify(english, current)
        if verdict is Verdict.IDENTICAL_TO_SOURCE:
            issues.untranslated.append(AuditEntry(key, english, current))
        elif verdict is Verdict.LOOKS_UNTRANSLATED:
            issues.suspicious.append(AuditEntry(key, english, current))

    if spot_checker is None:
        return issues

    for key in priority_keys(flat_reference, sample_size):
        english = flat_reference[key]
        current = flat_target.get(key)
        if not english or not current or not isinstance(english, str) or not isinstance(current, str):
            continue
        if delay > 0:
            time.sleep(delay)
        suggested, match = spot_checker(english, pack.api_code)
        if not suggested:
            continue
        if match > SUGGESTION_MIN_MATCH and similarity(current, suggested) < SUGGESTION_MAX_SIMILARITY:
            issues.suggestions.append(Suggestion(key, english, current, suggested, match))

    return issues


# ============================================================================
# Reports
# ============================================================================

def _capped(lines: list[str], items: Sequence, cap: int, render) -> None:
    for item in items[:cap]:
        lines.extend(render(item))
    if len(items) > cap:
        lines.append(f"- ... and {len(items) - cap} more")
    lines.append("")


def render_audit_report(pack: LanguagePack, issues: AuditIssues, generated_at: Optional[datetime] = None) -> str:
    """Markdown audit report for one language."""
    lines = [
        f"# Translation Audit Report: {pack.name} ({pack.api_code})",
        "",
        f"**Generated:** {format_timestamp(generated_at)}",
        "",
        "## Summary",
        "",
        f"- **Untranslated Strings:** {len(issues.untranslated)}",
        f"- **Suspicious Translations:** {len(issues.suspicious)}",
        f"- **Missing Keys:** {len(issues.missing)}",
        f"- **API Comparison Suggestions:** {len(issues.suggestions)}",
        "",
    ]

    if issues.untranslated:
        lines += ["## Untranslated Strings", "", "These strings are identical to English and need translation:", ""]
        _capped(lines, issues.untranslated, UNTRANSLATED_CAP,
                lambda entry: [f'- `{entry.key}`: "{format_value(entry.english)}"'])

    if issues.suspicious:
        lines += ["## Suspicious Translations", "",
                  "These translations appear to still be in English or partially untranslated:", ""]
        _capped(lines, issues.suspicious, SUSPICIOUS_CAP, lambda entry: [
            f"- `{entry.key}`",
            f'  - English: "{format_value(entry.english)}"',
            f'  - Current: "{format_value(entry.current)}"',
        ])

    if issues.missing:
        lines += ["## Missing Translation Keys", "",
                  "These keys exist in English but are missing from this translation:", ""]
        _capped(lines, issues.missing, MISSING_CAP,
                lambda entry: [f'- `{entry.key}`: "{format_value(entry.english)}"'])

    if issues.suggestions:
        lines += ["## API Translation Suggestions", "",
                  "The translation service suggests these alternatives (review carefully):", ""]
        for item in issues.suggestions:
            lines += [
                f"### `{item.key}`",
                f'- **English:** "{item.english}"',
                f'- **Current:** "{item.current}"',
                f'- **Suggested:** "{item.suggested}"',
                f"- **Confidence:** {item.confidence * 100:.0f}%",
                "",
            ]

    return "\n".join(lines)


def render_audit_summary(outcomes: Sequence[AuditOutcome], generated_at: Optional[datetime] = None) -> str:
    """SUMMARY.md table; a language that failed gets an ERROR row."""
    lines = [
        "# Translation Audit Summary",
        "",
        f"**Generated:** {format_timestamp(generated_at)}",
        "",
        "| Language | Untranslated | Suspicious | Missing | API Suggestions |",
        "|----------|-------------|------------|---------|-----------------|",
    ]
    for outcome in outcomes:
        issues = outcome.issues
        if issues is None:
            lines.append(f"| {outcome.pack.name} | ERROR | ERROR | ERROR | ERROR |")
        else:
            lines.append(
                f"| {outcome.pack.name} | {len(issues.untranslated)} | {len(issues.suspicious)} "
                f"| {len(issues.missing)} | {len(issues.suggestions)} |"
            )
    lines.append("")
    return "\n".join(lines)


def run_audit(
    reference_path: Path,
    i18n_dir: Path,
    reports_dir: Path,
    packs: Sequence[LanguagePack],
    spot_checker: Optional[SpotChecker] = None,
    sample_size: int = 20,
    delay: float = 0.5,
) -> list[AuditOutcome]:
    """Audit several languages and write their reports and SUMMARY.md.

    Raises:
        PersistenceFailure: the reference dictionary cannot be loaded.
    """
    reference = load_tree(reference_path)
    outcomes: list[AuditOutcome] = []

    for pack in packs:
        outcome = AuditOutcome(pack=pack)
        logger.info("Auditing %s (%s)", pack.name, pack.file_name)
        try:
            target = load_tree(Path(i18n_dir) / pack.file_name)
            outcome.issues = audit_language(reference, target, pack, spot_checker, sample_size, delay)
            report_path = Path(reports_dir) / f"{pack.api_code}-report.md"
            outcome.report_path = write_report(report_path, render_audit_report(pack, outcome.issues))
            logger.info("Generated report: %s", report_path)
        except PersistenceFailure as exc:
            logger.error("Error auditing %s: %s", pack.name, exc)
            outcome.error = str(exc)
            outcome.issues = None
        outcomes.append(outcome)

    write_report(Path(reports_dir) / "SUMMARY.md", render_audit_summary(outcomes))
    return outcomes
