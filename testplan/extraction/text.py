"""Line-level helpers shared by the rule-based extractors."""

from __future__ import annotations

import re
from typing import Callable, Optional, TypeVar

from testplan.extraction.models import PassResult
from testplan.utils import print_warning

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_BULLET_PATTERN = re.compile(r"^\s*(?:•\s*|[-*]\s+)(.+)$")
_NUMBERED_PATTERN = re.compile(r"^\s*\d+[.)]\s+(.+)$")
_INLINE_SPLIT_PATTERN = re.compile(r"\s*[,;]\s*")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def format_id(prefix: str, number: int) -> str:
    """Render a record identifier such as ``REQ-007``."""
    return f"{prefix}-{number:03d}"


def bullet_text(line: str) -> Optional[str]:
    """Return the text of a ``-``/``*``/``•`` bullet line, else ``None``."""
    match = _BULLET_PATTERN.match(line)
    if match:
        return match.group(1).strip()
    return None


def list_item_text(line: str) -> Optional[str]:
    """Return the text of a bullet or numbered (``1.`` / ``1)``) item, else ``None``."""
    text = bullet_text(line)
    if text is not None:
        return text
    match = _NUMBERED_PATTERN.match(line)
    if match:
        return match.group(1).strip()
    return None


def split_inline(text: str) -> list[str]:
    """Split inline list text on commas and semicolons."""
    return [part for part in _INLINE_SPLIT_PATTERN.split(text.strip()) if part]


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def title_before_verb(text: str, verbs: frozenset[str]) -> str:
    """Short title for a feature sentence.

    Short texts (four words or fewer) are returned as-is. Otherwise the words
    before the first action verb among words two to six are used, falling
    back to the first four words.

    Examples::

        title_before_verb("Smart scheduling uses your calendar to plan", {"uses"})
            -> "Smart scheduling"
    """
    words = text.split()
    if len(words) <= 4:
        return text.strip()
    for index in range(1, min(len(words), 6)):
        if words[index].lower() in verbs:
            return " ".join(words[:index])
    return " ".join(words[:4])


def contains_any(text: str, keywords: tuple[str, ...] | list[str]) -> bool:
    """Case-sensitive substring test; callers lower-case *text* first."""
    return any(keyword in text for keyword in keywords)


def run_pass(
    label: str,
    extract: Callable[[str, int], PassResult[T]],
    text: str,
    start: int,
) -> PassResult[T]:
    """Run one extraction pass, turning any fault into zero yield.

    The counter is handed back unchanged on failure so sibling passes can
    continue numbering from the same place.
    """
    try:
        return extract(text, start)
    except Exception as exc:  # noqa: BLE001
        print_warning(f"{label} pass failed: {exc}")
        return PassResult(next_id=start, records=[])
