"""
Localization tree codec and deep merge.

A localization tree is a nested dict whose leaves are strings (or lists of
strings, numbers, booleans). Lists are opaque leaves and are never recursed
into, so ordered variant lists survive untouched.

This module provides:
- iter_leaves / flatten / flatten_paths: nested tree -> flat path map
- unflatten: flat path map -> nested tree (raises StructuralConflict)
- get_path / set_path: single-path access
- deep_merge: patch-wins recursive merge
- check_structure: leaf/subtree agreement between a tree and a patch

Design:
- Paths are tuples of key segments internally; the dot-joined string is
  only the canonical display form.
- An empty dict is carried as a leaf so unflatten(flatten(t)) == t holds.
- Every function is pure except set_path, which mutates its target.
"""

from __future__ import annotations

import copy
from typing import Any, Iterator, Mapping, Union

from letterriver_i18n.errors import StructuralConflict

FlatPath = tuple[str, ...]
LocalizationTree = dict[str, Any]

PATH_SEPARATOR = "."


def is_node(value: Any) -> bool:
    """True when value is a subtree that flattening recurses into."""
    return isinstance(value, dict) and len(value) > 0


def path_to_string(path: FlatPath) -> str:
    return PATH_SEPARATOR.join(path)


def string_to_path(path: str) -> FlatPath:
    return tuple(path.split(PATH_SEPARATOR))


def _as_path(key: Union[str, FlatPath]) -> FlatPath:
    if isinstance(key, tuple):
        return key
    return string_to_path(key)


# ============================================================================
# Flattening
# ============================================================================

def iter_leaves(tree: Mapping[str, Any], prefix: FlatPath = ()) -> Iterator[tuple[FlatPath, Any]]:
    """Yield (path, leaf) pairs in depth-first insertion order."""
    for key, value in tree.items():
        path = prefix + (key,)
        if is_node(value):
            yield from iter_leaves(value, path)
        else:
            yield path, value


def flatten_paths(tree: Mapping[str, Any]) -> dict[FlatPath, Any]:
    """Flatten a tree into a {segment tuple: leaf} map."""
    return dict(iter_leaves(tree))


def flatten(tree: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a tree into a {"a.b.c": leaf} map.

    Example:
        >>> flatten({"game": {"setup": {"defaultNoun": "letter"}}})
        {'game.setup.defaultNoun': 'letter'}
    """
    return {path_to_string(path): value for path, value in iter_leaves(tree)}


# ============================================================================
# Unflattening
# ============================================================================

def set_path(tree: LocalizationTree, path: FlatPath, value: Any) -> None:
    """Assign value at path, creating intermediate nodes.

    Raises:
        StructuralConflict: an intermediate segment holds a leaf, or the
            final segment holds a subtree.
    """
    if not path:
        raise StructuralConflict("", "empty path")

    cursor = tree
    for depth, segment in enumerate(path[:-1]):
        if segment not in cursor:
            cursor[segment] = {}
        elif not isinstance(cursor[segment], dict):
            raise StructuralConflict(
                path_to_string(path[: depth + 1]),
                f"leaf {cursor[segment]!r} where a subtree is required",
            )
        cursor = cursor[segment]

    last = path[-1]
    if is_node(cursor.get(last)):
        raise StructuralConflict(path_to_string(path), "subtree would be replaced by a leaf")
    cursor[last] = value


def get_path(tree: Mapping[str, Any], path: Union[str, FlatPath], default: Any = None) -> Any:
    cursor: Any = tree
    for segment in _as_path(path):
        if not isinstance(cursor, dict) or segment not in cursor:
            return default
        cursor = cursor[segment]
    return cursor


def unflatten(flat: Mapping[Union[str, FlatPath], Any]) -> LocalizationTree:
    """Rebuild a nested tree from a flat path map.

    Args:
        flat: Map keyed by dot strings or segment tuples

    Returns:
        A new nested tree; leaves are deep-copied.

    Raises:
        StructuralConflict: two entries disagree about whether a path is a
            leaf or a subtree (e.g. "a" and "a.b").
    """
    result: LocalizationTree = {}
    for key, value in flat.items():
        set_path(result, _as_path(key), copy.deepcopy(value))
    return result


# ============================================================================
# Deep merge
# ============================================================================

def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> LocalizationTree:
    """Merge patch onto base and return a new tree.

    Where both sides hold a dict the merge recurses; otherwise the patch
    value replaces the base value outright (lists and scalars are never
    combined). Keys only present in base are kept. Neither input is mutated.
    """
    merged: LocalizationTree = {key: copy.deepcopy(value) for key, value in base.items()}
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def check_structure(base: Mapping[str, Any], patch: Mapping[str, Any], prefix: FlatPath = ()) -> None:
    """Ensure patch only replaces leaves with leaves and subtrees with subtrees.

    Raises:
        StructuralConflict: naming the first path where one side holds a
            subtree and the other a leaf.
    """
    for key, value in patch.items():
        if key not in base:
            continue
        path = prefix + (key,)
        current = base[key]
        if is_node(value) and is_node(current):
            check_structure(current, value, path)
        elif is_node(value):
            raise StructuralConflict(path_to_string(path), "patch would replace a leaf with a subtree")
        elif is_node(current):
            raise StructuralConflict(path_to_string(path), "patch would replace a subtree with a leaf")
