"""Extraction strategy selection and the public extraction entry points.

The selector maps a classification (plus the LLM request/capability flags)
onto one :class:`Strategy` and returns an :class:`ExtractorHandle` carrying
that tag and a constructed extractor. Requirements and components are
selected independently for each document.

Usage::

    from testplan.extraction import extract_path

    result = await extract_path("docs/press_release.txt")
    print(result.requirements)
    print(result.components)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from testplan.config import ExtractionConfig
from testplan.extraction.classifier import classify
from testplan.extraction.llm import LLMExtractor
from testplan.extraction.models import (
    DesignComponent,
    DocumentKind,
    ExtractionResult,
    Requirement,
    SourceDocument,
)
from testplan.extraction.narrative import NarrativeExtractor
from testplan.extraction.pdf import PdfExtractor
from testplan.extraction.structured import StructuredExtractor
from testplan.llm_client import LLMClient, LLMInvoker
from testplan.utils import print_warning


class Strategy(str, Enum):
    """Closed set of extraction strategies."""
    STRUCTURED = "structured"
    NARRATIVE = "narrative"
    PDF = "pdf"
    LLM_ASSISTED = "llm_assisted"


RecordT = TypeVar("RecordT", Requirement, DesignComponent)

Extractor = Union[StructuredExtractor, NarrativeExtractor, PdfExtractor, LLMExtractor]


@dataclass(frozen=True)
class ExtractorHandle:
    """A strategy tag plus the extractor built for it.

    Dispatch is on ``strategy``: the PDF chain gets raw bytes, the other
    rule-based extractors get decoded text, and the LLM extractor gets the
    document itself and is awaited.
    """

    strategy: Strategy
    extractor: Extractor

    def _read(self, document: SourceDocument) -> Optional[Union[str, bytes]]:
        try:
            if self.strategy is Strategy.PDF:
                return document.read_bytes()
            return document.read_text()
        except OSError as exc:
            print_warning(f"Could not read '{document.name}': {exc}")
            return None

    def _run(
        self,
        extract: Callable[[Any], list[RecordT]],
        document: SourceDocument,
        label: str,
    ) -> list[RecordT]:
        """Run a rule-based extractor; any fault counts as zero yield."""
        content = self._read(document)
        if content is None:
            return []
        try:
            return extract(content)
        except Exception as exc:  # noqa: BLE001
            print_warning(f"{self.strategy.value} {label} extraction failed for '{document.name}': {exc}")
            return []

    async def extract_requirements(self, document: SourceDocument) -> list[Requirement]:
        if self.strategy is Strategy.LLM_ASSISTED:
            return await self.extractor.extract_requirements(document)
        return self._run(self.extractor.extract_requirements, document, "requirement")

    async def extract_components(self, document: SourceDocument) -> list[DesignComponent]:
        if self.strategy is Strategy.LLM_ASSISTED:
            return await self.extractor.extract_components(document)
        return self._run(self.extractor.extract_components, document, "component")


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

_RULE_BASED: dict[DocumentKind, Strategy] = {
    DocumentKind.BINARY_PDF: Strategy.PDF,
    DocumentKind.NARRATIVE: Strategy.NARRATIVE,
    DocumentKind.STRUCTURED: Strategy.STRUCTURED,
    DocumentKind.UNKNOWN: Strategy.STRUCTURED,
}


def select(
    kind: DocumentKind,
    llm_requested: bool,
    llm_available: bool,
    invoker: Optional[LLMInvoker] = None,
    min_narrative_yield: int = 3,
) -> ExtractorHandle:
    """Pick the extraction strategy for a document.

    Args:
        kind: The classifier's verdict.
        llm_requested: Whether the caller asked for AI-assisted extraction.
        llm_available: Whether a model endpoint is configured.
        invoker: Model invoker for the LLM strategy; built from the
            environment when omitted.
        min_narrative_yield: Escalation threshold passed to the PDF chain.

    Returns:
        The LLM-assisted handle when assistance is both requested and
        available, otherwise the rule-based handle for *kind*.
    """
    if llm_requested and llm_available:
        if invoker is None:
            invoker = LLMClient.from_config(ExtractionConfig.from_env().llm)

        def fallback(document: SourceDocument) -> ExtractorHandle:
            return select(classify(document), False, False, min_narrative_yield=min_narrative_yield)

        return ExtractorHandle(Strategy.LLM_ASSISTED, LLMExtractor(invoker, fallback))

    strategy = _RULE_BASED[kind]
    if strategy is Strategy.PDF:
        return ExtractorHandle(strategy, PdfExtractor(min_narrative_yield=min_narrative_yield))
    if strategy is Strategy.NARRATIVE:
        return ExtractorHandle(strategy, NarrativeExtractor())
    return ExtractorHandle(strategy, StructuredExtractor())


def select_for(
    document: SourceDocument,
    config: ExtractionConfig,
    invoker: Optional[LLMInvoker] = None,
) -> ExtractorHandle:
    """Classify *document* and select a handle using *config*'s flags."""
    if invoker is None and config.llm_enabled:
        invoker = LLMClient.from_config(config.llm)
    return select(
        classify(document),
        config.use_llm,
        config.llm_credentials_present,
        invoker=invoker,
        min_narrative_yield=config.min_narrative_yield,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def extract_requirements(
    document: SourceDocument,
    config: Optional[ExtractionConfig] = None,
    invoker: Optional[LLMInvoker] = None,
) -> list[Requirement]:
    """Extract requirements from *document*. Never raises for bad input."""
    config = config or ExtractionConfig()
    handle = select_for(document, config, invoker)
    return await handle.extract_requirements(document)


async def extract_components(
    document: SourceDocument,
    config: Optional[ExtractionConfig] = None,
    invoker: Optional[LLMInvoker] = None,
) -> list[DesignComponent]:
    """Extract design components from *document*. Never raises for bad input."""
    config = config or ExtractionConfig()
    handle = select_for(document, config, invoker)
    return await handle.extract_components(document)


async def extract_document(
    document: SourceDocument,
    config: Optional[ExtractionConfig] = None,
    invoker: Optional[LLMInvoker] = None,
) -> ExtractionResult:
    """Extract both record kinds, selecting a strategy for each independently.

    Args:
        document: The document to process.
        config: Extraction settings; defaults to rule-based extraction only.
        invoker: Model invoker used when LLM assistance is enabled.

    Returns:
        An ``ExtractionResult`` with both record lists and the strategies used.
    """
    config = config or ExtractionConfig()
    requirements_handle = select_for(document, config, invoker)
    requirements = await requirements_handle.extract_requirements(document)
    components_handle = select_for(document, config, invoker)
    components = await components_handle.extract_components(document)
    return ExtractionResult(
        document=document.name,
        kind=classify(document),
        requirements=requirements,
        components=components,
        requirements_strategy=requirements_handle.strategy.value,
        components_strategy=components_handle.strategy.value,
    )


async def extract_path(
    path: Union[str, Path],
    config: Optional[ExtractionConfig] = None,
    invoker: Optional[LLMInvoker] = None,
) -> ExtractionResult:
    """Read the file at *path* off the event loop and extract from it.

    An unreadable file produces a warning and an empty result.
    """
    file_path = Path(path)
    try:
        content = await asyncio.to_thread(file_path.read_bytes)
    except OSError as exc:
        print_warning(f"Could not read '{file_path}': {exc}")
        return ExtractionResult(document=file_path.name)
    document = SourceDocument(name=file_path.name, content=content, path=file_path)
    return await extract_document(document, config, invoker)
