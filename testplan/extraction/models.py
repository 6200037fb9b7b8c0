"""Pydantic v2 models for the extraction engine.

Defines the two normalized record types (``Requirement`` and
``DesignComponent``), the closed enumerations they use, the input document
handle, and the small result types that extraction passes hand to one another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Priority(str, Enum):
    """Requirement priority."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def coerce(cls, value: Any) -> "Priority":
        """Map a free-form label onto a priority, defaulting to Medium."""
        if isinstance(value, cls):
            return value
        label = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        return _PRIORITY_SYNONYMS.get(label, cls.MEDIUM)


class Category(str, Enum):
    """Requirement category."""
    FUNCTIONAL = "Functional"
    PERFORMANCE = "Performance"
    SECURITY = "Security"
    INTEGRATION = "Integration"
    UI_UX = "UI-UX"
    DATA = "Data"
    OPERATIONAL = "Operational"

    @classmethod
    def coerce(cls, value: Any) -> "Category":
        """Map a free-form label onto a category, defaulting to Functional."""
        if isinstance(value, cls):
            return value
        label = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        return _CATEGORY_SYNONYMS.get(label, cls.FUNCTIONAL)


class ComponentType(str, Enum):
    """Design component type."""
    API = "API"
    SERVICE = "Service"
    UI = "UI"
    DATABASE = "Database"
    INTEGRATION = "Integration"
    COMPONENT = "Component"

    @classmethod
    def coerce(cls, value: Any) -> "ComponentType":
        """Map a free-form label onto a component type, defaulting to Component."""
        if isinstance(value, cls):
            return value
        label = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        return _COMPONENT_TYPE_SYNONYMS.get(label, cls.COMPONENT)


class DocumentKind(str, Enum):
    """Classifier verdict for an input document."""
    STRUCTURED = "structured"
    NARRATIVE = "narrative"
    BINARY_PDF = "binary_pdf"
    UNKNOWN = "unknown"


class OutcomeStatus(str, Enum):
    """Tag of an :class:`ExtractionOutcome`."""
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


_PRIORITY_SYNONYMS: dict[str, Priority] = {
    "p0": Priority.CRITICAL,
    "blocker": Priority.CRITICAL,
    "p1": Priority.HIGH,
    "must": Priority.HIGH,
    "p2": Priority.MEDIUM,
    "normal": Priority.MEDIUM,
    "p3": Priority.LOW,
    "minor": Priority.LOW,
}

_CATEGORY_SYNONYMS: dict[str, Category] = {
    "ui": Category.UI_UX,
    "ux": Category.UI_UX,
    "ui/ux": Category.UI_UX,
    "ui_ux": Category.UI_UX,
    "usability": Category.UI_UX,
    "api": Category.INTEGRATION,
    "interface": Category.INTEGRATION,
    "safety": Category.SECURITY,
    "privacy": Category.SECURITY,
    "reliability": Category.OPERATIONAL,
    "availability": Category.OPERATIONAL,
    "performance/scalability": Category.PERFORMANCE,
    "scalability": Category.PERFORMANCE,
}

_COMPONENT_TYPE_SYNONYMS: dict[str, ComponentType] = {
    "system": ComponentType.SERVICE,
    "engine": ComponentType.SERVICE,
    "security": ComponentType.SERVICE,
    "microservice": ComponentType.SERVICE,
    "infrastructure": ComponentType.COMPONENT,
    "module": ComponentType.COMPONENT,
    "external": ComponentType.INTEGRATION,
    "db": ComponentType.DATABASE,
    "datastore": ComponentType.DATABASE,
    "frontend": ComponentType.UI,
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def _as_string_tuple(value: Any) -> tuple[str, ...]:
    """Normalise a list-ish value into a tuple of non-empty strings.

    Anything that is not a list, tuple or set (a bare string, number, flag or
    mapping) counts as a single item.
    """
    if value is None:
        return ()
    if not isinstance(value, (list, tuple, set, frozenset)):
        value = [value]
    items: list[str] = []
    for item in value:
        if item is None:
            continue
        if isinstance(item, dict):
            text = " ".join(str(v) for v in item.values() if v not in (None, "", [], {}))
        else:
            text = str(item)
        text = text.strip()
        if text:
            items.append(text)
    return tuple(items)


class Requirement(BaseModel):
    """A normalized statement of required system behaviour."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Run-unique identifier, e.g. 'REQ-001'")
    title: str = Field(default="Untitled", description="Short title")
    description: str = Field(default="", description="Full requirement statement")
    priority: Priority = Field(default=Priority.MEDIUM)
    category: Category = Field(default=Category.FUNCTIONAL)
    acceptance_criteria: tuple[str, ...] = Field(default=(), alias="acceptanceCriteria")
    dependencies: tuple[str, ...] = Field(default=())
    source_id: str = Field(default="", alias="sourceId", description="Identifier as written in the source")
    inferred: bool = Field(default=False, description="Derived rather than stated explicitly")
    notes: str = Field(default="")

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> Priority:
        return Priority.coerce(value)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category:
        return Category.coerce(value)

    @field_validator("acceptance_criteria", "dependencies", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> tuple[str, ...]:
        return _as_string_tuple(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _coerce_notes(cls, value: Any) -> str:
        return "" if value is None else str(value)


class DesignComponent(BaseModel):
    """A normalized description of one part of the system."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Run-unique identifier, e.g. 'COMP-001'")
    name: str = Field(default="Untitled")
    type: ComponentType = Field(default=ComponentType.COMPONENT)
    description: str = Field(default="")
    interfaces: tuple[str, ...] = Field(default=())
    dependencies: tuple[str, ...] = Field(default=(), description="Other component names/ids; not validated")
    business_rules: tuple[str, ...] = Field(default=(), alias="businessRules")
    source_id: str = Field(default="", alias="sourceId")
    inferred: bool = Field(default=False)
    notes: str = Field(default="")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> ComponentType:
        return ComponentType.coerce(value)

    @field_validator("interfaces", "dependencies", "business_rules", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> tuple[str, ...]:
        return _as_string_tuple(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _coerce_notes(cls, value: Any) -> str:
        return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Input document
# ---------------------------------------------------------------------------

class SourceDocument(BaseModel):
    """A named document handle.

    Content is either held in memory or read lazily from ``path``; reading
    may raise ``OSError``, which every consumer treats as recoverable.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="File name used for extension/keyword sniffing")
    content: Optional[bytes] = Field(default=None)
    path: Optional[Path] = Field(default=None)

    @classmethod
    def from_text(cls, name: str, text: str) -> "SourceDocument":
        return cls(name=name, content=text.encode("utf-8"))

    @classmethod
    def from_path(cls, path: str | Path) -> "SourceDocument":
        file_path = Path(path)
        return cls(name=file_path.name, path=file_path)

    @property
    def suffix(self) -> str:
        """Lower-cased extension including the dot, or ``""``."""
        return Path(self.name).suffix.lower()

    def read_bytes(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise OSError(f"Document '{self.name}' has no content")
        return self.path.read_bytes()

    def read_text(self) -> str:
        return self.read_bytes().decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Pass and extraction results
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class PassResult(Generic[T]):
    """Records produced by one extraction pass plus the next free counter value.

    Passes take their starting counter as a parameter and hand back
    ``next_id`` so callers can thread one counter through several passes.
    """

    next_id: int
    records: list[T] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ExtractionOutcome(Generic[T]):
    """Tagged result of an extraction attempt: ``OK``, ``EMPTY`` or ``FAILED``."""

    status: OutcomeStatus
    records: tuple[T, ...] = ()
    reason: str = ""

    @classmethod
    def from_records(cls, records: list[T]) -> "ExtractionOutcome[T]":
        if not records:
            return cls(status=OutcomeStatus.EMPTY)
        return cls(status=OutcomeStatus.OK, records=tuple(records))

    @classmethod
    def failed(cls, reason: str) -> "ExtractionOutcome[T]":
        return cls(status=OutcomeStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK


class ExtractionResult(BaseModel):
    """Requirements and design components extracted from one document."""

    model_config = ConfigDict(frozen=True)

    document: str = Field(default="", description="Name of the source document")
    kind: DocumentKind = Field(default=DocumentKind.UNKNOWN)
    requirements: list[Requirement] = Field(default_factory=list)
    components: list[DesignComponent] = Field(default_factory=list)
    requirements_strategy: Optional[str] = Field(default=None)
    components_strategy: Optional[str] = Field(default=None)
