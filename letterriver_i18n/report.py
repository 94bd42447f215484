"""
Change diffs and Markdown reports.

diff_trees() compares two trees leaf by leaf; it is independent of what
the translation step reported, so curated overrides and manual edits show
up in the report as well. render_report() turns the change list into a
stable Markdown document: for identical input only the Generated line
differs between runs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

from letterriver_i18n.storage import write_atomic
from letterriver_i18n.tree import flatten

MISSING_MARKER = "(missing)"


@dataclass(frozen=True)
class ChangeRecord:
    """One leaf whose value differs between two trees."""
    path: str
    before: str
    after: str


def format_value(value: Any) -> str:
    """Render a leaf for reports; non-strings as compact JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def diff_trees(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[ChangeRecord]:
    """List every leaf that differs between before and after.

    Output follows the after tree's key order; leaves that only exist in
    before (removed) come last. An absent side is reported as "(missing)".
    """
    flat_before = flatten(before)
    flat_after = flatten(after)
    changes: list[ChangeRecord] = []

    for key, value in flat_after.items():
        if key not in flat_before:
            changes.append(ChangeRecord(key, MISSING_MARKER, format_value(value)))
        elif flat_before[key] != value:
            changes.append(ChangeRecord(key, format_value(flat_before[key]), format_value(value)))

    for key, value in flat_before.items():
        if key not in flat_after:
            changes.append(ChangeRecord(key, format_value(value), MISSING_MARKER))

    return changes


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_report(
    changes: Sequence[ChangeRecord],
    title: str,
    generated_at: Optional[datetime] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> str:
    """Render a change list as Markdown.

    Args:
        changes: Records from diff_trees()
        title: Report heading (e.g. "Translation Changes Applied: fr")
        generated_at: Timestamp for the header (now if None)
        details: Extra "**Key:** value" lines (mode, counts, ...)

    Returns:
        Markdown text ending with a newline.
    """
    lines = [
        f"# {title}",
        "",
        f"**Generated:** {format_timestamp(generated_at)}",
        "",
        f"**Total Changes:** {len(changes)}",
        "",
    ]
    for label, value in (details or {}).items():
        lines.append(f"**{label}:** {value}")
        lines.append("")

    lines.append("## Changes")
    lines.append("")
    if not changes:
        lines.append("No changes.")
        lines.append("")

    for change in changes:
        lines.append(f"### `{change.path}`")
        lines.append("")
        lines.append(f"- **Before:** {change.before}")
        lines.append(f"- **After:** {change.after}")
        lines.append("")

    return "\n".join(lines)


def render_sync_summary(results: Iterable, generated_at: Optional[datetime] = None) -> str:
    """Markdown table summarizing a batch run (one row per language)."""
    lines = [
        "# Translation Sync Summary",
        "",
        f"**Generated:** {format_timestamp(generated_at)}",
        "",
        "| Language | State | Translated | Skipped | Errors | Changes |",
        "|----------|-------|-----------:|--------:|-------:|--------:|",
    ]
    totals = [0, 0, 0, 0]
    for result in results:
        row = [result.translated, result.skipped, result.errors, len(result.changes)]
        totals = [total + value for total, value in zip(totals, row)]
        state = result.state.value
        if result.error:
            state = f"{state}: {result.error}".replace("|", "\\|")
        lines.append(f"| {result.language} | {state} | " + " | ".join(str(value) for value in row) + " |")
    lines.append("| **Total** | | " + " | ".join(f"**{value}**" for value in totals) + " |")
    lines.append("")
    return "\n".join(lines)


def write_report(path: Path, text: str) -> Path:
    """Persist a report, creating its directory."""
    write_atomic(path, text)
    return Path(path)
