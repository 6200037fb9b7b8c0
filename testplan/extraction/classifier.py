"""Content classifier: decides which kind of document we are looking at.

Classification is a pure function of the document name and its bytes. It
never raises; an unreadable document is reported and treated as structured.
"""

from __future__ import annotations

from testplan.extraction.models import DocumentKind, SourceDocument
from testplan.utils import print_warning

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PDF_SUFFIXES = frozenset({".pdf"})
PLAIN_TEXT_SUFFIXES = frozenset({".txt", ".md", ".markdown", ".text", ""})

_NARRATIVE_NAME_TOKENS = ("narrative", "press", "announcement", "product")
_PRESS_PHRASES = ("press release", "for immediate release", "announces")
_PRODUCT_PHRASES = ("features", "capabilities", "benefits")
_STRUCTURED_MARKERS = ("requirement:", "design:")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_narrative_content(text: str) -> bool:
    """Return ``True`` when *text* reads like a press release, FAQ or product pitch.

    At least one narrative cue must be present and neither explicit
    structured marker (``requirement:`` / ``design:``) may appear.
    """
    lower = text.lower()
    if any(marker in lower for marker in _STRUCTURED_MARKERS):
        return False

    has_press = any(phrase in lower for phrase in _PRESS_PHRASES)
    has_qa = "frequently asked questions" in lower or ("q:" in lower and "a:" in lower)
    has_product = any(phrase in lower for phrase in _PRODUCT_PHRASES)
    return has_press or has_qa or has_product


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify(document: SourceDocument) -> DocumentKind:
    """Classify *document* by extension, file name and content.

    Args:
        document: The document to inspect.

    Returns:
        ``BINARY_PDF`` for PDF containers, ``NARRATIVE`` for narrative names
        or content, ``STRUCTURED`` for other plain text and ``UNKNOWN`` for
        any other extension.
    """
    suffix = document.suffix
    if suffix in PDF_SUFFIXES:
        return DocumentKind.BINARY_PDF

    lower_name = document.name.lower()
    if any(token in lower_name for token in _NARRATIVE_NAME_TOKENS):
        return DocumentKind.NARRATIVE

    if suffix not in PLAIN_TEXT_SUFFIXES:
        return DocumentKind.UNKNOWN

    try:
        text = document.read_text()
    except OSError as exc:
        print_warning(f"Could not read '{document.name}' for classification: {exc}")
        return DocumentKind.STRUCTURED

    if is_narrative_content(text):
        return DocumentKind.NARRATIVE
    return DocumentKind.STRUCTURED
