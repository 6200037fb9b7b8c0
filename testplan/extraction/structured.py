"""Structured extractor for explicitly tagged requirement/design documents.

Documents in this family mark each record with an anchor at the start of a
line::

    REQUIREMENT REQ-001: User login
    Users sign in with email and password.
    Priority: High
    Category: Security
    Acceptance Criteria:
    - Valid credentials open a session
    - Invalid credentials show an error

    DESIGN COMP-001: Auth Service
    Type: Service
    Interfaces: POST /login, POST /logout

A block runs from its anchor to the next anchor of either kind (or the end
of the text). Pure regex and line scanning; no AI calls.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from testplan.extraction.models import (
    Category,
    ComponentType,
    DesignComponent,
    PassResult,
    Priority,
    Requirement,
)
from testplan.extraction.text import format_id, list_item_text, split_inline


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_IDENT = r"[A-Za-z]*[-_.]?\d[\w.\-]*"


def _anchor(tokens: str) -> re.Pattern[str]:
    return re.compile(
        r"^[ \t]*(?P<token>" + tokens + r")\b[ \t]*"
        r"(?:[#:\-][ \t]*(?:(?P<ident>" + _IDENT + r")[ \t]*[:\-][ \t]*)?"
        r"|(?P<bare_ident>" + _IDENT + r")[ \t]*[:\-][ \t]*)"
        r"(?P<rest>.*)$",
        re.IGNORECASE,
    )


_REQUIREMENT_ANCHOR = _anchor(r"requirement|req")
_COMPONENT_ANCHOR = _anchor(r"design(?:[ \t]+component)?|component")

_PRIORITY_PATTERN = re.compile(r"\bpriority\s*[:\-]\s*([\w/\-]+)", re.IGNORECASE)
_CATEGORY_PATTERN = re.compile(r"\bcategory\s*[:\-]\s*([\w/\-]+)", re.IGNORECASE)
_TYPE_PATTERN = re.compile(r"\btype\s*[:\-]\s*([\w/\-]+)", re.IGNORECASE)

_SECTION_LABELS = {
    "criteria": re.compile(r"(?:acceptance[ \t]+criteria|criteria)", re.IGNORECASE),
    "interfaces": re.compile(r"interfaces?", re.IGNORECASE),
    "dependencies": re.compile(r"dependencies", re.IGNORECASE),
    "rules": re.compile(r"(?:business[ \t]+rules?|rules?)", re.IGNORECASE),
}
_SECTION_LINE = re.compile(
    r"^\s*(?P<label>acceptance[ \t]+criteria|criteria|interfaces?|dependencies|"
    r"business[ \t]+rules?|rules?)\s*(?:[:\-]\s*(?P<inline>.*))?$",
    re.IGNORECASE,
)
_FIELD_LINE = re.compile(r"^\s*(?:priority|category|type|description)\s*[:\-]", re.IGNORECASE)
_DESCRIPTION_LINE = re.compile(r"^\s*description\s*[:\-]\s*(?P<text>.*)$", re.IGNORECASE)
# Any other "Label:" line closes the current list section.
_GENERIC_LABEL_LINE = re.compile(r"^\s*[A-Za-z][A-Za-z ]{0,30}:")


# ---------------------------------------------------------------------------
# Block scanning
# ---------------------------------------------------------------------------

@dataclass
class _Block:
    """One anchored block: its kind, written identifier and body lines."""

    kind: str
    source_id: str
    lines: list[str] = field(default_factory=list)


@dataclass
class _Body:
    """Fields parsed out of a block body."""

    title: str
    description: str
    sections: dict[str, list[str]]
    text: str


def _match_anchor(line: str) -> Optional[tuple[str, re.Match[str]]]:
    """Return ``(kind, match)`` for an anchor line; requirement anchors win."""
    match = _REQUIREMENT_ANCHOR.match(line)
    if match:
        return "requirement", match
    match = _COMPONENT_ANCHOR.match(line)
    if match:
        return "component", match
    return None


def _source_id(match: re.Match[str]) -> str:
    ident = match.group("ident") or match.group("bare_ident") or ""
    if ident.isdigit():
        token = match.group("token").split()[0].upper()
        return f"{token}-{ident}"
    return ident


def _scan_blocks(text: str) -> list[_Block]:
    """Split *text* into anchored blocks in document order."""
    blocks: list[_Block] = []
    current: Optional[_Block] = None
    for line in text.splitlines():
        anchored = _match_anchor(line)
        if anchored is not None:
            kind, match = anchored
            current = _Block(kind=kind, source_id=_source_id(match))
            rest = match.group("rest").strip()
            current.lines.append(rest)
            blocks.append(current)
        elif current is not None:
            current.lines.append(line)
    return blocks


def _parse_body(lines: list[str]) -> _Body:
    """Pull title, description and labeled list sections out of a block body."""
    non_empty = [line.strip() for line in lines if line.strip()]
    title = non_empty[0] if non_empty else "Untitled"

    sections: dict[str, list[str]] = {key: [] for key in _SECTION_LABELS}
    description_parts: list[str] = []
    explicit_description: Optional[str] = None
    active: Optional[str] = None
    in_prose = True
    seen_title = False

    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if not seen_title:
            seen_title = True
            continue

        section = _SECTION_LINE.match(line)
        if section:
            active = _section_key(section.group("label"))
            in_prose = False
            inline = (section.group("inline") or "").strip()
            if inline:
                sections[active].extend(split_inline(inline))
            continue

        item = list_item_text(line)
        if item is not None:
            if active is not None:
                sections[active].append(item)
            in_prose = False
            continue

        described = _DESCRIPTION_LINE.match(line)
        if described and explicit_description is None:
            explicit_description = described.group("text").strip()
            active = None
            in_prose = False
            continue

        if _FIELD_LINE.match(line) or _GENERIC_LABEL_LINE.match(line):
            active = None
            in_prose = False
            continue

        if in_prose:
            description_parts.append(line)

    description = explicit_description or " ".join(description_parts) or title
    return _Body(
        title=title,
        description=description,
        sections=sections,
        text="\n".join(lines),
    )


def _section_key(label: str) -> str:
    for key, pattern in _SECTION_LABELS.items():
        if pattern.fullmatch(label.strip()):
            return key
    return "criteria"


def _first_match(pattern: re.Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------

def _build_requirement(block: _Block, number: int) -> Requirement:
    body = _parse_body(block.lines)
    priority = _first_match(_PRIORITY_PATTERN, body.text)
    category = _first_match(_CATEGORY_PATTERN, body.text)
    return Requirement(
        id=format_id("REQ", number),
        title=body.title,
        description=body.description,
        priority=Priority.coerce(priority) if priority else Priority.MEDIUM,
        category=Category.coerce(category) if category else Category.FUNCTIONAL,
        acceptance_criteria=body.sections["criteria"],
        dependencies=body.sections["dependencies"],
        source_id=block.source_id,
    )


def _build_component(block: _Block, number: int) -> DesignComponent:
    body = _parse_body(block.lines)
    component_type = _first_match(_TYPE_PATTERN, body.text)
    return DesignComponent(
        id=format_id("COMP", number),
        name=body.title,
        type=ComponentType.coerce(component_type) if component_type else ComponentType.COMPONENT,
        description=body.description,
        interfaces=body.sections["interfaces"],
        dependencies=body.sections["dependencies"],
        business_rules=body.sections["rules"],
        source_id=block.source_id,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_requirements(text: str, start: int = 1) -> PassResult[Requirement]:
    """Extract one requirement per ``requirement``/``req`` anchored block.

    Args:
        text: Document text.
        start: First counter value for the ``REQ-NNN`` identifiers.

    Returns:
        The requirements in document order and the next free counter value.
    """
    number = start
    records: list[Requirement] = []
    for block in _scan_blocks(text):
        if block.kind != "requirement":
            continue
        records.append(_build_requirement(block, number))
        number += 1
    return PassResult(next_id=number, records=records)


def extract_components(text: str, start: int = 1) -> PassResult[DesignComponent]:
    """Extract one design component per ``design``/``component`` anchored block."""
    number = start
    records: list[DesignComponent] = []
    for block in _scan_blocks(text):
        if block.kind != "component":
            continue
        records.append(_build_component(block, number))
        number += 1
    return PassResult(next_id=number, records=records)


def extract(text: str) -> tuple[list[Requirement], list[DesignComponent]]:
    """Extract both record kinds from a structured document."""
    return extract_requirements(text).records, extract_components(text).records


class StructuredExtractor:
    """Extractor handle for structured documents."""

    def extract_requirements(self, text: str) -> list[Requirement]:
        return extract_requirements(text).records

    def extract_components(self, text: str) -> list[DesignComponent]:
        return extract_components(text).records
