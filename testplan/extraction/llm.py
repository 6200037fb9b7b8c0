"""LLM-assisted extractor.

Builds a schema-constrained prompt, sends the document to the model through
an :class:`~testplan.llm_client.LLMInvoker`, and validates the JSON array it
returns. Model output is untrusted: anything that does not parse, or does
not carry the identifying fields, is dropped.

Each attempt produces an :class:`ExtractionOutcome`. An empty or failed
first attempt is retried once with a reinforcement instruction; if that also
yields nothing, the rule-based extractor for the document's classification
runs instead. Model failures therefore only ever show up as a quieter,
rule-based result.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from testplan.extraction.models import (
    DesignComponent,
    ExtractionOutcome,
    Requirement,
    SourceDocument,
)
from testplan.extraction.pdf import read_pdf_text
from testplan.llm_client import LLMInvoker
from testplan.utils import print_status, print_warning

if TYPE_CHECKING:
    from testplan.extraction.selector import ExtractorHandle

RecordT = TypeVar("RecordT", bound=BaseModel)

MAX_ATTEMPTS = 2


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_DOCUMENT_FENCE = "====="

_REQUIREMENTS_PROMPT = """You are a senior QA analyst preparing a test plan.
Read the document between the {fence} lines and list every requirement it states or clearly implies.

Reply with ONLY a JSON array. Each element is an object with these fields:
  "id": string such as "REQ-001", unique within the array
  "title": short summary
  "description": the full requirement statement
  "priority": one of "Critical", "High", "Medium", "Low"
  "category": one of "Functional", "Performance", "Security", "Integration", "UI-UX", "Data", "Operational"
  "acceptanceCriteria": array of testable statements
  "dependencies": array of ids or names this requirement relies on
  "inferred": false when the document states the requirement, true when you derived it
  "notes": short explanation of any inference, otherwise ""

Only use facts found in the document. Do not add prose, markdown or code fences around the array.

{fence}
{document}
{fence}
"""

_COMPONENTS_PROMPT = """You are a software architect preparing a test plan.
Read the document between the {fence} lines and list the system components it describes or clearly implies.

Reply with ONLY a JSON array. Each element is an object with these fields:
  "id": string such as "COMP-001", unique within the array
  "name": component name
  "type": one of "API", "Service", "UI", "Database", "Integration", "Component"
  "description": what the component does
  "interfaces": array of endpoints or contracts it exposes, as strings
  "dependencies": array of other component names or ids
  "businessRules": array of constraints the component must enforce
  "inferred": false when the document names the component, true when you derived it
  "notes": short explanation of any inference, otherwise ""

Only use facts found in the document. Do not add prose, markdown or code fences around the array.

{fence}
{document}
{fence}
"""

REINFORCEMENT = (
    "\n\nYour previous reply could not be used. Respond with the JSON array only: "
    "the first character must be [ and the last character must be ]."
)


def build_requirements_prompt(document_text: str) -> str:
    return _REQUIREMENTS_PROMPT.format(fence=_DOCUMENT_FENCE, document=document_text)


def build_components_prompt(document_text: str) -> str:
    return _COMPONENTS_PROMPT.format(fence=_DOCUMENT_FENCE, document=document_text)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def parse_json_array(reply: str) -> list[dict[str, Any]]:
    """Parse the text between the first ``[`` and the last ``]`` of *reply*.

    Returns only the object elements; malformed JSON or a non-array yields
    an empty list.
    """
    start = reply.find("[")
    end = reply.rfind("]")
    if start == -1 or end <= start:
        return []
    try:
        data = json.loads(reply[start : end + 1])
    except json.JSONDecodeError:
        return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _text_field(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _records(
    entries: list[dict[str, Any]],
    model: type[RecordT],
    label_field: str,
) -> list[RecordT]:
    """Validate entries into *model*, dropping incomplete, invalid or duplicate-id entries."""
    records: list[RecordT] = []
    seen: set[str] = set()
    for entry in entries:
        record_id = _text_field(entry, "id")
        label = _text_field(entry, label_field)
        if not record_id or not label or record_id in seen:
            continue
        payload = {
            **entry,
            "id": record_id,
            label_field: label,
            "description": _text_field(entry, "description"),
        }
        try:
            records.append(model.model_validate(payload))
        except ValidationError:
            continue
        seen.add(record_id)
    return records


def parse_requirements(reply: str) -> list[Requirement]:
    """Requirements from a model reply; entries without ``id`` and ``title`` are dropped."""
    return _records(parse_json_array(reply), Requirement, "title")


def parse_components(reply: str) -> list[DesignComponent]:
    """Components from a model reply; entries without ``id`` and ``name`` are dropped."""
    return _records(parse_json_array(reply), DesignComponent, "name")


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class LLMExtractor:
    """Extract records by asking a hosted model, falling back to the rules.

    Args:
        invoker: Anything with ``async invoke(prompt) -> str``.
        fallback: Returns the rule-based extractor handle for a document.
    """

    def __init__(
        self,
        invoker: LLMInvoker,
        fallback: Callable[[SourceDocument], "ExtractorHandle"],
    ) -> None:
        self.invoker = invoker
        self.fallback = fallback

    async def _attempt(
        self,
        prompt: str,
        parse: Callable[[str], list[RecordT]],
    ) -> ExtractionOutcome[RecordT]:
        try:
            reply = await self.invoker.invoke(prompt)
            records = parse(reply)
        except Exception as exc:  # noqa: BLE001
            return ExtractionOutcome.failed(str(exc) or type(exc).__name__)
        return ExtractionOutcome.from_records(records)

    async def _ask(
        self,
        prompt: str,
        parse: Callable[[str], list[RecordT]],
        label: str,
    ) -> ExtractionOutcome[RecordT]:
        """Up to :data:`MAX_ATTEMPTS` model calls; the retry adds :data:`REINFORCEMENT`."""
        outcome: ExtractionOutcome[RecordT] = await self._attempt(prompt, parse)
        for _ in range(MAX_ATTEMPTS - 1):
            if outcome.ok:
                break
            detail = f": {outcome.reason}" if outcome.reason else ""
            print_status(f"Model returned no usable {label} ({outcome.status.value}{detail}); retrying")
            outcome = await self._attempt(prompt + REINFORCEMENT, parse)
        return outcome

    @staticmethod
    def _document_text(document: SourceDocument) -> Optional[str]:
        try:
            if document.suffix == ".pdf":
                return read_pdf_text(document.read_bytes())
            return document.read_text()
        except OSError as exc:
            print_warning(f"Could not read '{document.name}': {exc}")
            return None

    async def extract_requirements(self, document: SourceDocument) -> list[Requirement]:
        text = self._document_text(document)
        if text is None:
            return []
        outcome = await self._ask(build_requirements_prompt(text), parse_requirements, "requirements")
        if outcome.ok:
            return list(outcome.records)
        print_warning(f"Model extraction failed for '{document.name}'; using rule-based requirements")
        return await self.fallback(document).extract_requirements(document)

    async def extract_components(self, document: SourceDocument) -> list[DesignComponent]:
        text = self._document_text(document)
        if text is None:
            return []
        outcome = await self._ask(build_components_prompt(text), parse_components, "components")
        if outcome.ok:
            return list(outcome.records)
        print_warning(f"Model extraction failed for '{document.name}'; using rule-based components")
        return await self.fallback(document).extract_components(document)
