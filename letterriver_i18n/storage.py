"""
Reading and writing dictionary files.

All writes go through write_atomic(): the content is written to a temporary
file in the destination directory and moved into place with os.replace, so
a crash never leaves a half-written dictionary behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from letterriver_i18n.config import BACKUP_SUFFIX
from letterriver_i18n.errors import PersistenceFailure


def dump_tree(tree: Any) -> str:
    """Serialize a tree the way the game's dictionaries are formatted."""
    return json.dumps(tree, ensure_ascii=False, indent=2) + "\n"


def read_text(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceFailure(path, f"cannot read file: {exc}") from exc


def parse_tree(text: str, path: Path) -> dict:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise PersistenceFailure(path, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PersistenceFailure(path, "top-level JSON value must be an object")
    return data


def load_tree(path: Path) -> dict:
    """Load a localization tree.

    Raises:
        PersistenceFailure: the file is missing, unreadable or not a JSON object.
    """
    return parse_tree(read_text(path), path)


def load_tree_with_text(path: Path, allow_missing: bool = False) -> tuple[dict, Optional[str]]:
    """Load a tree together with its raw text (used for the backup).

    When allow_missing is True an absent file yields ({}, None).
    """
    path = Path(path)
    if allow_missing and not path.exists():
        return {}, None
    text = read_text(path)
    return parse_tree(text, path), text


def write_atomic(path: Path, content: str) -> None:
    """Write content to path via a temporary file and os.replace."""
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceFailure(path, f"cannot write file: {exc}") from exc


def backup_path_for(path: Path, timestamped: bool = False, now: Optional[datetime] = None) -> Path:
    """<file>.backup, or <file>.<UTC timestamp>.backup when timestamped."""
    path = Path(path)
    if timestamped:
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
        return path.with_name(f"{path.name}.{stamp}{BACKUP_SUFFIX}")
    return path.with_name(f"{path.name}{BACKUP_SUFFIX}")


def write_backup(path: Path, original_text: str, timestamped: bool = False) -> Path:
    """Write the exact prior contents of path next to it and return the backup path."""
    backup = backup_path_for(path, timestamped)
    write_atomic(backup, original_text)
    return backup
