"""
Masking module for protecting template placeholders.

UI strings carry i18next-style interpolation tokens such as {{count}} or
{{ name }}. Machine translation backends happily translate, reorder or
re-space those tokens, which breaks template rendering in the game. Before a
string is sent to any backend every token is replaced with an opaque marker
(__PLACEHOLDER_0__, __PLACEHOLDER_1__, ...) and restored afterwards.

Design:
- Markers are numbered in order of appearance within a single string
- Masks are reversible: the registry keeps marker -> original literal
- A translation that drops a marker is rejected by the adapter
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


# Double-curly interpolation, with optional inner whitespace
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*.+?\s*\}\}")

MARKER_PATTERN = re.compile(r"__PLACEHOLDER_\d+__")


@dataclass
class MaskRegistry:
    """Stores mappings between markers and original placeholder text.

    One registry is used per masked string; markers restart at 0.
    """
    mappings: dict[str, str] = field(default_factory=dict)  # marker -> original

    def register(self, original: str) -> str:
        """Register a placeholder literal and return its marker."""
        marker = f"__PLACEHOLDER_{len(self.mappings)}__"
        self.mappings[marker] = original
        return marker

    def restore(self, text: str) -> str:
        """Substitute every marker in text with its original literal."""
        result = text
        for marker, original in self.mappings.items():
            result = result.replace(marker, original)
        return result

    def __len__(self) -> int:
        return len(self.mappings)


def mask_text(text: str, registry: MaskRegistry | None = None) -> tuple[str, MaskRegistry]:
    """Replace every {{...}} placeholder with a marker.

    Args:
        text: Source string
        registry: Optional registry to fill (a new one is created if None)

    Returns:
        (masked text, registry)

    Example:
        >>> masked, reg = mask_text("You scored {{score}} points")
        >>> masked
        'You scored __PLACEHOLDER_0__ points'
    """
    if registry is None:
        registry = MaskRegistry()
    masked = PLACEHOLDER_PATTERN.sub(lambda match: registry.register(match.group(0)), text)
    return masked, registry


def unmask_text(text: str, registry: MaskRegistry) -> str:
    return registry.restore(text)


def extract_placeholders(text: str) -> list[str]:
    """Extract all {{...}} placeholders from text, in order."""
    return PLACEHOLDER_PATTERN.findall(text)


def validate_placeholders(masked_source: str, translated: str) -> list[str]:
    """Return markers present in the masked source but lost in translation."""
    expected = MARKER_PATTERN.findall(masked_source)
    return [marker for marker in expected if marker not in translated]


def is_placeholder_only(text: str) -> bool:
    """True when text is nothing but a single {{...}} placeholder."""
    return bool(re.fullmatch(r"\s*\{\{[^{}]*\}\}\s*", text))
