"""PDF text extraction and the escalation chain built on top of it.

Text is pulled out of the PDF with pypdf, classified with the narrative
content heuristic and routed to the narrative or structured extractor. When
those yield too little, progressively looser scanners run:

* narrative text with fewer than ``min_narrative_yield`` requirements gets the
  enhanced pass (explicit feature lists, capability sentences, list items);
* structured text with no anchored blocks gets the generic line scanners.

Every stage is guarded. A failure is reported as a warning and counts as
zero yield so later stages can still contribute; a corrupt PDF simply
produces no records.
"""

from __future__ import annotations

import io
import re

from pypdf import PdfReader

from testplan.extraction import narrative, structured
from testplan.extraction.catalog import (
    LIST_ITEM_CRITERIA,
    capability_criteria,
    explicit_feature_category,
    explicit_feature_criteria,
)
from testplan.extraction.classifier import is_narrative_content
from testplan.extraction.models import (
    Category,
    ComponentType,
    DesignComponent,
    PassResult,
    Priority,
    Requirement,
)
from testplan.extraction.text import format_id, run_pass, title_before_verb
from testplan.utils import print_status, print_warning, truncate


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ENHANCED_PREFIX = "PDF-REQ"
GENERIC_REQUIREMENT_PREFIX = "REQ"
GENERIC_COMPONENT_PREFIX = "COMP"

_FEATURE_LIST = re.compile(r"\b(?:integrates?|includes?|features?|provides?)\s+(?P<items>[^.!?]+)", re.IGNORECASE)
_FEATURE_SPLIT = re.compile(r",|\s+and\s+", re.IGNORECASE)
_FEATURE_LEADING_WORDS = re.compile(r"^(?:and\s+|the\s+)", re.IGNORECASE)
_FEATURE_MIN_LENGTH = 10

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_CAPABILITY_VERBS = frozenset({
    "can", "will", "allows", "enables", "provides", "supports",
    "offers", "delivers", "features", "includes", "helps", "assists",
})
_CAPABILITY_CUE = re.compile(r"\b(?:" + "|".join(sorted(_CAPABILITY_VERBS)) + r")\s", re.IGNORECASE)
_CAPABILITY_MIN_LENGTH = 30
_CAPABILITY_TITLE_WORDS = 8
_CAPABILITY_TITLE_LENGTH = 50

_LIST_ITEM = re.compile(r"^\s*(?:[•\-*]+|\d+[.)])\s*(?P<text>.{20,})$")
_LIST_ITEM_VERBS = frozenset(
    {"can", "will", "allows", "enables", "provides", "supports", "using", "through", "via", "with"}
)

_HIGH_PRIORITY_CUES = re.compile(r"\b(?:essential|critical|must|required|core)\b", re.IGNORECASE)
_LOW_PRIORITY_CUES = re.compile(r"\b(?:nice|optional|enhance\w*|additional)\b", re.IGNORECASE)

_CATEGORY_CUES: tuple[tuple[re.Pattern[str], Category], ...] = (
    (re.compile(r"\b(?:performance|speed|response time|throughput)\b", re.IGNORECASE), Category.PERFORMANCE),
    (re.compile(r"\b(?:security|authentication|authorization|encryption)\b", re.IGNORECASE), Category.SECURITY),
    (re.compile(r"\b(?:interfaces?|ui|users?|display\w*)\b", re.IGNORECASE), Category.UI_UX),
    (re.compile(r"\b(?:apis?|services?|integration)\b", re.IGNORECASE), Category.INTEGRATION),
)

_COMPONENT_TYPE_CUES: tuple[tuple[re.Pattern[str], ComponentType], ...] = (
    (re.compile(r"\b(?:apis?|endpoints?|rest|services?)\b", re.IGNORECASE), ComponentType.API),
    (re.compile(r"\b(?:database|db|storage|data)\b", re.IGNORECASE), ComponentType.DATABASE),
    (re.compile(r"\b(?:ui|interfaces?|screens?|pages?)\b", re.IGNORECASE), ComponentType.UI),
    (re.compile(r"\b(?:servers?|backend)\b", re.IGNORECASE), ComponentType.SERVICE),
)

_REQUIREMENT_KEYWORDS = ("requirement", "shall", "must", "should")
_COMPONENT_KEYWORDS = ("component", "service", "api", "interface", "module", "system", "database", "server")
_SECTION_NUMBER = re.compile(r"\d+\.\d+")
_SECTION_PREFIX = re.compile(r"^\d+\.\d*\s*")
_CODE_PREFIX = re.compile(r"^[A-Z]+-\d+\s*")
_REQUIREMENT_PREFIX = re.compile(r"^Requirement:?\s*", re.IGNORECASE)
_CRITERION_LINE = re.compile(r"^(?:- |• |\d+\.\s)")
_CRITERION_MARKER = re.compile(r"^[-•\d.\s]+")
_LONG_SENTENCE_LENGTH = 20
_DESCRIPTION_WINDOW = 4
_CRITERIA_WINDOW = 9


# ---------------------------------------------------------------------------
# Text extraction
# ---------------------------------------------------------------------------

def extract_text(data: bytes) -> str:
    """Return the text of every page of a PDF, joined by newlines.

    Raises whatever pypdf raises for unreadable input; callers that need the
    never-fails contract use :func:`read_pdf_text`.
    """
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def read_pdf_text(data: bytes) -> str:
    """Like :func:`extract_text` but returns ``""`` (with a warning) on failure."""
    try:
        return extract_text(data)
    except Exception as exc:  # noqa: BLE001
        print_warning(f"Could not extract text from PDF: {exc}")
        return ""


# ---------------------------------------------------------------------------
# Keyword cues
# ---------------------------------------------------------------------------

def _content_priority(text: str) -> Priority:
    if _HIGH_PRIORITY_CUES.search(text):
        return Priority.HIGH
    if _LOW_PRIORITY_CUES.search(text):
        return Priority.LOW
    return Priority.MEDIUM


def _content_category(text: str) -> Category:
    for pattern, category in _CATEGORY_CUES:
        if pattern.search(text):
            return category
    return Category.FUNCTIONAL


def _component_type(text: str) -> ComponentType:
    for pattern, component_type in _COMPONENT_TYPE_CUES:
        if pattern.search(text):
            return component_type
    return ComponentType.COMPONENT


# ---------------------------------------------------------------------------
# Enhanced pass (narrative PDFs with low yield)
# ---------------------------------------------------------------------------

def explicit_feature_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """Requirements from "includes X, Y and Z" style feature lists."""
    number = start
    records: list[Requirement] = []
    for match in _FEATURE_LIST.finditer(text):
        for raw in _FEATURE_SPLIT.split(match.group("items")):
            feature = " ".join(raw.split())
            if len(feature) <= _FEATURE_MIN_LENGTH or "into" in feature.lower():
                continue
            records.append(
                Requirement(
                    id=format_id(ENHANCED_PREFIX, number),
                    title=_FEATURE_LEADING_WORDS.sub("", feature).strip(),
                    description=f"System must provide {feature.lower()} functionality",
                    priority=Priority.HIGH,
                    category=explicit_feature_category(feature),
                    acceptance_criteria=explicit_feature_criteria(feature),
                )
            )
            number += 1
    return PassResult(next_id=number, records=records)


def _capability_title(sentence: str) -> str:
    words = sentence.split()
    title_words: list[str] = []
    found_verb = False
    for word in words[:_CAPABILITY_TITLE_WORDS]:
        if not found_verb and word.lower() in _CAPABILITY_VERBS:
            found_verb = True
            continue
        if found_verb:
            title_words.append(word)
            if len(" ".join(title_words)) > _CAPABILITY_TITLE_LENGTH:
                break
    return " ".join(title_words) or "System Capability"


def capability_sentence_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """Requirements from sentences built around a capability verb ("can", "enables", ...)."""
    number = start
    records: list[Requirement] = []
    for raw in _SENTENCE_SPLIT.split(text):
        sentence = " ".join(raw.split())
        if len(sentence) <= _CAPABILITY_MIN_LENGTH or not _CAPABILITY_CUE.search(sentence):
            continue
        records.append(
            Requirement(
                id=format_id(ENHANCED_PREFIX, number),
                title=_capability_title(sentence),
                description=sentence,
                priority=_content_priority(sentence),
                category=_content_category(sentence),
                acceptance_criteria=capability_criteria(sentence),
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def list_item_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """Requirements from bullet and numbered lines of at least 20 characters."""
    number = start
    records: list[Requirement] = []
    for line in text.splitlines():
        match = _LIST_ITEM.match(line)
        if not match:
            continue
        item = match.group("text").strip()
        lower = item.lower()
        if "?" in item or "page " in lower or "section " in lower:
            continue
        records.append(
            Requirement(
                id=format_id(ENHANCED_PREFIX, number),
                title=title_before_verb(item, _LIST_ITEM_VERBS),
                description=item,
                priority=Priority.MEDIUM,
                category=Category.FUNCTIONAL,
                acceptance_criteria=LIST_ITEM_CRITERIA,
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def enhanced_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """Run the three enhanced sub-passes with one ``PDF-REQ`` counter threaded through."""
    features = run_pass("Explicit feature", explicit_feature_pass, text, start)
    capabilities = run_pass("Capability sentence", capability_sentence_pass, text, features.next_id)
    items = run_pass("List item", list_item_pass, text, capabilities.next_id)
    return PassResult(
        next_id=items.next_id,
        records=features.records + capabilities.records + items.records,
    )


# ---------------------------------------------------------------------------
# Generic line scanners (structured PDFs without anchors)
# ---------------------------------------------------------------------------

def _is_requirement_line(line: str) -> bool:
    lower = line.lower()
    if any(keyword in lower for keyword in _REQUIREMENT_KEYWORDS):
        return True
    if _SECTION_NUMBER.search(line):
        return True
    return (
        len(line) > _LONG_SENTENCE_LENGTH
        and line.endswith(".")
        and "Figure" not in line
        and "Table" not in line
    )


def _is_component_line(line: str) -> bool:
    lower = line.lower()
    return any(keyword in lower for keyword in _COMPONENT_KEYWORDS)


def _following_description(lines: list[str], index: int) -> str:
    parts: list[str] = []
    for line in lines[index + 1 : index + 1 + _DESCRIPTION_WINDOW]:
        line = line.strip()
        if not line or _is_requirement_line(line) or _is_component_line(line):
            break
        parts.append(line)
    return " ".join(parts) or "Extracted from PDF document"


def _following_criteria(lines: list[str], index: int) -> tuple[list[str], set[int]]:
    """Collect list-item lines among the next nine; returns criteria and the consumed indices."""
    criteria: list[str] = []
    consumed: set[int] = set()
    stop = min(index + 1 + _CRITERIA_WINDOW, len(lines))
    for position in range(index + 1, stop):
        line = lines[position].strip()
        if not line:
            continue
        if _CRITERION_LINE.match(line):
            criteria.append(_CRITERION_MARKER.sub("", line).strip())
            consumed.add(position)
        elif _is_requirement_line(line) or _is_component_line(line):
            break
    return criteria, consumed


def _requirement_title(line: str) -> str:
    title = _SECTION_PREFIX.sub("", line)
    title = _CODE_PREFIX.sub("", title)
    title = _REQUIREMENT_PREFIX.sub("", title).strip()
    return truncate(title, 100) if title else "PDF Requirement"


def _component_name(line: str) -> str:
    name = _CODE_PREFIX.sub("", _SECTION_PREFIX.sub("", line)).strip()
    return truncate(name, 50) if name else "PDF Component"


def generic_requirement_scan(text: str, start: int = 1) -> PassResult[Requirement]:
    """Treat every requirement-looking line as a candidate requirement.

    List items already taken as acceptance criteria of an earlier candidate
    are not scanned again.
    """
    lines = text.split("\n")
    consumed: set[int] = set()
    number = start
    records: list[Requirement] = []
    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line or index in consumed or not _is_requirement_line(line):
            continue
        title = _requirement_title(line)
        description = _following_description(lines, index)
        criteria, taken = _following_criteria(lines, index)
        consumed |= taken
        records.append(
            Requirement(
                id=format_id(GENERIC_REQUIREMENT_PREFIX, number),
                title=title,
                description=description,
                priority=Priority.MEDIUM,
                category=_content_category(f"{title} {description}"),
                acceptance_criteria=criteria,
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def generic_component_scan(text: str, start: int = 1) -> PassResult[DesignComponent]:
    """Treat every line naming a component/service/api/... as a candidate component."""
    lines = text.split("\n")
    number = start
    records: list[DesignComponent] = []
    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line or not _is_component_line(line):
            continue
        records.append(
            DesignComponent(
                id=format_id(GENERIC_COMPONENT_PREFIX, number),
                name=_component_name(line),
                type=_component_type(line),
                description=_following_description(lines, index),
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


# ---------------------------------------------------------------------------
# Escalation chain
# ---------------------------------------------------------------------------

class PdfExtractor:
    """Escalation chain over text extracted from a PDF.

    Args:
        min_narrative_yield: Narrative requirement count below which the
            enhanced pass is appended.
    """

    def __init__(self, min_narrative_yield: int = 3) -> None:
        self.min_narrative_yield = min_narrative_yield

    def requirements_from_text(self, text: str) -> list[Requirement]:
        if not text.strip():
            return []

        if is_narrative_content(text):
            print_status("Narrative content detected in PDF")
            requirements = narrative.extract_requirements(text)
            if len(requirements) < self.min_narrative_yield:
                print_status(
                    f"Narrative passes found {len(requirements)} requirement(s); "
                    "running enhanced extraction"
                )
                requirements = requirements + enhanced_pass(text).records
            return requirements

        requirements = run_pass("Structured", structured.extract_requirements, text, 1).records
        if not requirements:
            print_status("No anchored requirements in PDF; scanning lines")
            requirements = run_pass("Generic requirement", generic_requirement_scan, text, 1).records
        return requirements

    def components_from_text(self, text: str) -> list[DesignComponent]:
        if not text.strip():
            return []

        if is_narrative_content(text):
            components = narrative.extract_components(text)
            if not components:
                components = run_pass("Generic component", generic_component_scan, text, 1).records
            return components

        components = run_pass("Structured", structured.extract_components, text, 1).records
        if not components:
            print_status("No anchored components in PDF; scanning lines")
            components = run_pass("Generic component", generic_component_scan, text, 1).records
        return components

    def extract_requirements(self, data: bytes) -> list[Requirement]:
        return self.requirements_from_text(read_pdf_text(data))

    def extract_components(self, data: bytes) -> list[DesignComponent]:
        return self.components_from_text(read_pdf_text(data))

    def extract(self, data: bytes) -> tuple[list[Requirement], list[DesignComponent]]:
        """Extract both record kinds, reading the PDF text once."""
        text = read_pdf_text(data)
        return self.requirements_from_text(text), self.components_from_text(text)
