"""
Tests for dictionary persistence: loading, atomic writes and backups.
"""

import os
from datetime import datetime, timezone

import pytest

from letterriver_i18n.errors import PersistenceFailure
from letterriver_i18n.storage import (
    backup_path_for,
    dump_tree,
    load_tree,
    load_tree_with_text,
    write_atomic,
    write_backup,
)


class TestLoad:
    def test_load(self, tmp_path):
        path = tmp_path / "fr.json"
        path.write_text('{"a": "Bonjour"}', encoding="utf-8")
        assert load_tree(path) == {"a": "Bonjour"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(PersistenceFailure, match="cannot read"):
            load_tree(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(PersistenceFailure, match="invalid JSON"):
            load_tree(path)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(PersistenceFailure, match="object"):
            load_tree(path)

    def test_allow_missing(self, tmp_path):
        assert load_tree_with_text(tmp_path / "new.json", allow_missing=True) == ({}, None)

    def test_raw_text_is_kept(self, tmp_path):
        path = tmp_path / "fr.json"
        raw = '{ "a":   "x" }'
        path.write_text(raw, encoding="utf-8")
        assert load_tree_with_text(path) == ({"a": "x"}, raw)


class TestWrite:
    def test_dump_format(self):
        assert dump_tree({"a": {"b": "é"}}) == '{\n  "a": {\n    "b": "é"\n  }\n}\n'

    def test_write_atomic_creates_dirs(self, tmp_path):
        path = tmp_path / "nested" / "out.json"
        write_atomic(path, "content")
        assert path.read_text(encoding="utf-8") == "content"
        assert os.listdir(path.parent) == ["out.json"]

    def test_write_failure_leaves_target(self, tmp_path):
        path = tmp_path / "dir-in-the-way"
        path.mkdir()
        with pytest.raises(PersistenceFailure):
            write_atomic(path, "content")
        assert path.is_dir()
        assert os.listdir(tmp_path) == ["dir-in-the-way"]


class TestBackup:
    def test_backup_paths(self, tmp_path):
        target = tmp_path / "french.json"
        assert backup_path_for(target).name == "french.json.backup"
        moment = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)
        assert backup_path_for(target, True, moment).name == "french.json.20240501T123000Z.backup"

    def test_backup_is_exact_copy(self, tmp_path):
        target = tmp_path / "french.json"
        raw = '{"a":"x"}'
        backup = write_backup(target, raw)
        assert backup.read_text(encoding="utf-8") == raw
