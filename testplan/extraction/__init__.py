"""Test plan extractor -- document classification and extraction engine.

Classifies input documents (structured, narrative, PDF), selects an
extraction strategy per document, and produces normalized requirements and
design components for test plan generation.

Usage::

    from testplan.extraction import extract_path, ExtractionConfig

    result = await extract_path("docs/press_release.pdf", ExtractionConfig.from_env())
    print(result.requirements)
    print(result.components)
"""

from testplan.config import ExtractionConfig
from testplan.extraction.classifier import classify, is_narrative_content
from testplan.extraction.models import (
    Category,
    ComponentType,
    DesignComponent,
    DocumentKind,
    ExtractionOutcome,
    ExtractionResult,
    OutcomeStatus,
    PassResult,
    Priority,
    Requirement,
    SourceDocument,
)
from testplan.extraction.selector import (
    ExtractorHandle,
    Strategy,
    extract_components,
    extract_document,
    extract_path,
    extract_requirements,
    select,
)

__all__ = [
    "Category",
    "ComponentType",
    "DesignComponent",
    "DocumentKind",
    "ExtractionConfig",
    "ExtractionOutcome",
    "ExtractionResult",
    "ExtractorHandle",
    "OutcomeStatus",
    "PassResult",
    "Priority",
    "Requirement",
    "SourceDocument",
    "Strategy",
    "classify",
    "extract_components",
    "extract_document",
    "extract_path",
    "extract_requirements",
    "is_narrative_content",
    "select",
]
