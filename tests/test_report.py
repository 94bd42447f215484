"""
Tests for change diffs and Markdown reports.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

from letterriver_i18n.report import (
    ChangeRecord,
    diff_trees,
    format_timestamp,
    render_report,
    render_sync_summary,
)

MOMENT = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


class TestDiffTrees:
    def test_added(self):
        assert diff_trees({}, {"a": "Bonjour"}) == [ChangeRecord("a", "(missing)", "Bonjour")]

    def test_changed_and_unchanged(self):
        before = {"a": "Hello", "b": "Monde"}
        after = {"a": "Bonjour", "b": "Monde"}
        assert diff_trees(before, after) == [ChangeRecord("a", "Hello", "Bonjour")]

    def test_removed_come_last(self):
        changes = diff_trees({"old": "x", "k": "1"}, {"k": "2", "new": "y"})
        assert [c.path for c in changes] == ["k", "new", "old"]
        assert changes[-1].after == "(missing)"

    def test_non_string_values(self):
        changes = diff_trees({"n": 1}, {"n": 2, "v": ["a", "é"]})
        assert changes == [ChangeRecord("n", "1", "2"), ChangeRecord("v", "(missing)", '["a", "é"]')]

    def test_no_changes(self):
        assert diff_trees({"a": {"b": "c"}}, {"a": {"b": "c"}}) == []


class TestRenderReport:
    def test_layout(self):
        text = render_report(
            [ChangeRecord("a", "(missing)", "Bonjour")],
            "Translation Changes Applied: fr",
            generated_at=MOMENT,
            details={"Mode": "Live"},
        )
        assert text.splitlines() == [
            "# Translation Changes Applied: fr",
            "",
            "**Generated:** 2024-01-02T03:04:05.678Z",
            "",
            "**Total Changes:** 1",
            "",
            "**Mode:** Live",
            "",
            "## Changes",
            "",
            "### `a`",
            "",
            "- **Before:** (missing)",
            "- **After:** Bonjour",
        ]

    def test_deterministic_apart_from_timestamp(self):
        changes = [ChangeRecord("a", "x", "y"), ChangeRecord("b", "(missing)", "z")]
        assert render_report(changes, "T", MOMENT) == render_report(changes, "T", MOMENT)

    def test_empty(self):
        text = render_report([], "T", MOMENT)
        assert "**Total Changes:** 0" in text
        assert "No changes." in text

    def test_timestamp_format(self):
        assert format_timestamp(MOMENT) == "2024-01-02T03:04:05.678Z"


class TestSyncSummary:
    def test_rows_and_totals(self):
        results = [
            SimpleNamespace(language="french", state=SimpleNamespace(value="report_emitted"),
                            error=None, translated=3, skipped=1, errors=0, changes=[1, 2, 3]),
            SimpleNamespace(language="spanish", state=SimpleNamespace(value="failed"),
                            error="bad | json", translated=0, skipped=0, errors=2, changes=[]),
        ]
        text = render_sync_summary(results, MOMENT)
        assert "| french | report_emitted | 3 | 1 | 0 | 3 |" in text
        assert "| spanish | failed: bad \\| json | 0 | 0 | 2 | 0 |" in text
        assert "| **Total** | | **3** | **1** | **2** | **3** |" in text
