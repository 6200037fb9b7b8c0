"""Narrative extractor for press releases, FAQs and product descriptions.

Requirements come from three independent passes whose results are simply
concatenated (feature lists, Q/A blocks, metric sentences). Components come
from integration mentions, the canonical component catalog and technical
terms. Each pass numbers its records under its own prefix so the passes can
run, fail and be tested independently.
"""

from __future__ import annotations

import re
from typing import Optional

from testplan.extraction.catalog import (
    COMPONENT_CATALOG,
    FEATURE_CRITERIA_EXTRAS,
    TECHNICAL_TERMS,
)
from testplan.extraction.models import (
    Category,
    ComponentType,
    DesignComponent,
    PassResult,
    Priority,
    Requirement,
)
from testplan.extraction.text import (
    bullet_text,
    capitalize_first,
    contains_any,
    format_id,
    run_pass,
    title_before_verb,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FEATURE_PREFIX = "FEAT"
QA_PREFIX = "QA"
METRIC_PREFIX = "METRIC"
INTEGRATION_PREFIX = "INT"
CATALOG_PREFIX = "COMP"
TECHNICAL_PREFIX = "TECH"

_KEY_FEATURES_HEADING = re.compile(r"\bkey\s+features?\b", re.IGNORECASE)
_NAMED_FEATURE = re.compile(r"^(?P<name>[^:]+):\s*(?P<description>.+)$")
_FEATURE_VERBS = frozenset(
    {"uses", "analyzes", "provides", "suggests", "monitors", "works", "integrates", "leverages"}
)
_LOOSE_BULLET_MIN_LENGTH = 20

_HIGH_PRIORITY_CUES = ("core", "key", "primary", "essential")
_LOW_PRIORITY_CUES = ("nice", "optional", "future")

_QA_BLOCK = re.compile(
    r"(?<![A-Za-z])Q:\s*(?P<question>[^\n]+)\n+\s*A:\s*(?P<answer>[^\n]+(?:\n(?!\s*Q:)[^\n]+)*)",
    re.IGNORECASE,
)
_QUESTION_WORDS = re.compile(r"^(?:how|what|when|where|why|can|will|does)\s+", re.IGNORECASE)
_CAPABILITY_VERB = re.compile(r"\b(?:can|will|support\w*|allow\w*|enable\w*|provid\w*)\b", re.IGNORECASE)
_INFORMATIONAL_QUESTIONS = ("what happens", "can i")
_HOW_DOES_TOPICS = ("work", "protect", "integrate", "accurate")
_ACCURACY_FIGURE = re.compile(r"(\d+(?:\.\d+)?)%\s+accuracy", re.IGNORECASE)
_QA_MIN_ANSWER_LENGTH = 50
_QA_DESCRIPTION_LIMIT = 200

_METRIC = re.compile(
    r"(?P<percent>\d+(?:\.\d+)?)%\s+(?P<metric>accuracy|satisfaction|success)\s+"
    r"(?:rate\s+(?:in|of)|rate|in)\s+(?P<context>[^\n.]+)",
    re.IGNORECASE,
)

_INTEGRATION = re.compile(
    r"\b(?:integrat\w*|works?|working|connect\w*|seamless\w*)\b[^\n]*?\b(?:with|using)\s+"
    r"(?P<target>[A-Za-z0-9][^\s,;:.!?]*(?:[ \t]+[A-Za-z0-9][^\s,;:.!?]*){0,7})",
    re.IGNORECASE,
)
_TARGET_ARTICLES = frozenset({"the", "your", "a", "an", "our", "their", "its", "any", "existing"})
_TARGET_STOPWORDS = frozenset({
    "and", "or", "to", "for", "in", "on", "at", "by", "from", "that", "which", "so",
    "while", "through", "via", "into", "across", "as", "is", "are", "was", "were",
    "the", "your", "with", "using", "without", "when", "where", "if", "then",
})
_TARGET_MAX_WORDS = 4


# ---------------------------------------------------------------------------
# Cue helpers
# ---------------------------------------------------------------------------

def _feature_priority(name: str, description: str) -> Priority:
    combined = f"{name} {description}".lower()
    if contains_any(combined, _HIGH_PRIORITY_CUES):
        return Priority.HIGH
    if contains_any(combined, _LOW_PRIORITY_CUES):
        return Priority.LOW
    return Priority.MEDIUM


def _feature_criteria(description: str) -> list[str]:
    criteria = [
        f"Feature must be implemented as described: {description}",
        "Feature must be accessible to all eligible users",
        "Feature must perform reliably under normal usage conditions",
    ]
    lower = description.lower()
    criteria.extend(extra for keyword, extra in FEATURE_CRITERIA_EXTRAS if keyword in lower)
    return criteria


def _key_feature_bullets(lines: list[str]) -> list[tuple[int, str, str]]:
    """Locate ``name: description`` bullets listed under a "key features" heading.

    Returns ``(line_index, name, description)`` triples. Blank lines between
    bullets are allowed; the first non-bullet line closes the section. Prose
    lines that merely mention key features are skipped: the first heading
    followed by at least one named bullet wins.
    """
    for index, line in enumerate(lines):
        if bullet_text(line) is None and _KEY_FEATURES_HEADING.search(line):
            found = _named_bullets_after(lines, index)
            if found:
                return found
    return []


def _named_bullets_after(lines: list[str], heading: int) -> list[tuple[int, str, str]]:
    found: list[tuple[int, str, str]] = []
    for index in range(heading + 1, len(lines)):
        line = lines[index]
        if not line.strip():
            continue
        text = bullet_text(line)
        if text is None:
            break
        named = _NAMED_FEATURE.match(text)
        if named:
            found.append((index, named.group("name").strip(), named.group("description").strip()))
    return found


# ---------------------------------------------------------------------------
# Requirement passes
# ---------------------------------------------------------------------------

def feature_list_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """One Functional requirement per ``name: description`` key-feature bullet."""
    number = start
    records: list[Requirement] = []
    for _, name, description in _key_feature_bullets(text.splitlines()):
        records.append(
            Requirement(
                id=format_id(FEATURE_PREFIX, number),
                title=name,
                description=description,
                priority=_feature_priority(name, description),
                category=Category.FUNCTIONAL,
                acceptance_criteria=_feature_criteria(description),
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def loose_bullet_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """Capture long bullet lines anywhere in the document.

    Bullets already consumed by :func:`feature_list_pass` are skipped, as is
    any bullet containing a question mark.
    """
    lines = text.splitlines()
    consumed = {index for index, _, _ in _key_feature_bullets(lines)}

    number = start
    records: list[Requirement] = []
    for index, line in enumerate(lines):
        if index in consumed:
            continue
        item = bullet_text(line)
        if item is None or len(item) < _LOOSE_BULLET_MIN_LENGTH or "?" in item:
            continue
        records.append(
            Requirement(
                id=format_id(FEATURE_PREFIX, number),
                title=title_before_verb(item, _FEATURE_VERBS),
                description=item,
                priority=_feature_priority("", item),
                category=Category.FUNCTIONAL,
                acceptance_criteria=_feature_criteria(item),
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def is_capability_qa(question: str, answer: str) -> bool:
    """Decide whether a Q/A pair describes a system capability.

    Purely informational questions ("what happens...", "can I...") never
    qualify, whatever the answer says.
    """
    lower_question = question.lower()
    if contains_any(lower_question, _INFORMATIONAL_QUESTIONS):
        return False
    if "how does" in lower_question and contains_any(lower_question, _HOW_DOES_TOPICS):
        return True
    return bool(_CAPABILITY_VERB.search(answer)) and len(answer) > _QA_MIN_ANSWER_LENGTH


def _qa_title(question: str) -> str:
    title = _QUESTION_WORDS.sub("", question.strip())
    return title.rstrip("?").strip() or question.strip()


def _qa_description(answer: str) -> str:
    first_sentence = answer.split(".")[0]
    if len(first_sentence) < _QA_DESCRIPTION_LIMIT:
        return first_sentence.strip() + "."
    if len(answer) > _QA_DESCRIPTION_LIMIT:
        return answer[:_QA_DESCRIPTION_LIMIT] + "..."
    return answer


def _qa_category(question: str, answer: str) -> Category:
    combined = f"{question} {answer}".lower()
    if contains_any(combined, ("privacy", "security", "protect")):
        return Category.SECURITY
    if contains_any(combined, ("performance", "speed", "accuracy")):
        return Category.PERFORMANCE
    if contains_any(combined, ("integrate", "connect")):
        return Category.INTEGRATION
    return Category.FUNCTIONAL


def _qa_priority(question: str, answer: str) -> Priority:
    combined = f"{question} {answer}".lower()
    if contains_any(combined, ("privacy", "security", "accurate", "protect")):
        return Priority.HIGH
    return Priority.MEDIUM


def _qa_criteria(answer: str) -> list[str]:
    lower = answer.lower()
    criteria: list[str] = []
    if "accura" in lower:
        figure = _ACCURACY_FIGURE.search(lower)
        if figure:
            criteria.append(f"System must achieve {figure.group(1)}% accuracy")
        else:
            criteria.append("System must meet specified accuracy requirements")
    if contains_any(lower, ("privacy", "security")):
        criteria.append("Must comply with privacy and security standards")
        criteria.append("User data must be protected and encrypted")
    if contains_any(lower, ("integrate", "work with")):
        criteria.append("Must integrate seamlessly with specified systems")
        criteria.append("Integration must be reliable and performant")
    if not criteria:
        criteria.append("Feature must work as described in Q&A response")
        criteria.append("User experience must be intuitive and reliable")
    return criteria


def qa_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """One requirement per ``Q: ... A: ...`` block that describes a capability."""
    number = start
    records: list[Requirement] = []
    for match in _QA_BLOCK.finditer(text):
        question = match.group("question").strip()
        answer = match.group("answer").strip()
        if not is_capability_qa(question, answer):
            continue
        records.append(
            Requirement(
                id=format_id(QA_PREFIX, number),
                title=_qa_title(question),
                description=_qa_description(answer),
                priority=_qa_priority(question, answer),
                category=_qa_category(question, answer),
                acceptance_criteria=_qa_criteria(answer),
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def metric_pass(text: str, start: int = 1) -> PassResult[Requirement]:
    """One Performance/High requirement per ``N% accuracy|satisfaction|success`` sentence."""
    number = start
    records: list[Requirement] = []
    for match in _METRIC.finditer(text):
        percent = match.group("percent")
        metric = match.group("metric").lower()
        context = match.group("context").strip()
        records.append(
            Requirement(
                id=format_id(METRIC_PREFIX, number),
                title=f"Performance Requirement: {metric}",
                description=f"System must achieve {percent}% {metric} {context}",
                priority=Priority.HIGH,
                category=Category.PERFORMANCE,
                acceptance_criteria=[
                    f"Achieve minimum {percent}% {metric}",
                    f"Measure and report {metric} metrics",
                    f"Continuously monitor performance in {context}",
                ],
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


# ---------------------------------------------------------------------------
# Component passes
# ---------------------------------------------------------------------------

def _clean_target(raw: str) -> Optional[str]:
    """Trim an integration target to at most four meaningful words."""
    words = raw.split()
    while words and words[0].lower() in _TARGET_ARTICLES:
        words.pop(0)
    picked: list[str] = []
    for word in words:
        if word.lower() in _TARGET_STOPWORDS:
            break
        picked.append(word.strip("()\"'"))
        if len(picked) == _TARGET_MAX_WORDS:
            break
    target = " ".join(word for word in picked if word)
    return target or None


def integration_pass(text: str, start: int = 1) -> PassResult[DesignComponent]:
    """One Integration component per distinct "integrates/works/connects ... with X" target."""
    number = start
    seen: set[str] = set()
    records: list[DesignComponent] = []
    for match in _INTEGRATION.finditer(text):
        target = _clean_target(match.group("target"))
        if target is None or target.lower() in seen:
            continue
        seen.add(target.lower())
        records.append(
            DesignComponent(
                id=format_id(INTEGRATION_PREFIX, number),
                name=f"{target} Integration",
                type=ComponentType.INTEGRATION,
                description=f"Integration component for connecting with {target}",
                interfaces=[f"Integration API for {target}"],
                dependencies=[f"{target} Service"],
                business_rules=[f"Must maintain compatibility with {target}"],
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def catalog_pass(text: str, start: int = 1) -> PassResult[DesignComponent]:
    """Synthesize the canonical component of every keyword family present in *text*."""
    number = start
    records: list[DesignComponent] = []
    for template in COMPONENT_CATALOG:
        if not template.trigger.search(text):
            continue
        records.append(
            DesignComponent(
                id=format_id(CATALOG_PREFIX, number),
                name=template.name,
                type=template.type,
                description=template.description,
                interfaces=template.interfaces,
                dependencies=template.dependencies,
                business_rules=template.business_rules,
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(r"(?<!\w)" + re.escape(term) + r"\b[ \t]+(?P<context>[^\n.]+)", re.IGNORECASE)


_TERM_PATTERNS = tuple((term, _term_pattern(term)) for term in TECHNICAL_TERMS)


def technical_term_pass(text: str, start: int = 1) -> PassResult[DesignComponent]:
    """One Service component per technical term mentioned, built from its first mention."""
    number = start
    records: list[DesignComponent] = []
    for term, pattern in _TERM_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        label = capitalize_first(term)
        records.append(
            DesignComponent(
                id=format_id(TECHNICAL_PREFIX, number),
                name=f"{label} Component",
                type=ComponentType.SERVICE,
                description=f"{label} component that {match.group('context').strip()}",
                interfaces=[f"REST API for {term}"],
                business_rules=[f"Must handle {term} operations efficiently"],
            )
        )
        number += 1
    return PassResult(next_id=number, records=records)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_requirements(text: str) -> list[Requirement]:
    """Run every requirement pass and concatenate the results.

    Overlapping output between passes is kept; no deduplication is done.
    """
    features = run_pass("Feature-list", feature_list_pass, text, 1)
    loose = run_pass("Bullet", loose_bullet_pass, text, features.next_id)
    qa = run_pass("Q/A", qa_pass, text, 1)
    metrics = run_pass("Metric", metric_pass, text, 1)
    return features.records + loose.records + qa.records + metrics.records


def extract_components(text: str) -> list[DesignComponent]:
    """Run every component pass and concatenate the results."""
    integrations = run_pass("Integration", integration_pass, text, 1)
    catalog = run_pass("Component catalog", catalog_pass, text, 1)
    technical = run_pass("Technical term", technical_term_pass, text, 1)
    return integrations.records + catalog.records + technical.records


def extract(text: str) -> tuple[list[Requirement], list[DesignComponent]]:
    return extract_requirements(text), extract_components(text)


class NarrativeExtractor:
    """Extractor handle for narrative documents."""

    def extract_requirements(self, text: str) -> list[Requirement]:
        return extract_requirements(text)

    def extract_components(self, text: str) -> list[DesignComponent]:
        return extract_components(text)
