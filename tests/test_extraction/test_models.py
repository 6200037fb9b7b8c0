"""Unit tests for the extraction data models (testplan.extraction.models)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from testplan.extraction.models import (
    Category,
    ComponentType,
    DesignComponent,
    ExtractionOutcome,
    OutcomeStatus,
    PassResult,
    Priority,
    Requirement,
    SourceDocument,
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TestEnumCoercion:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("HIGH", Priority.HIGH),
            (" low ", Priority.LOW),
            ("P0", Priority.CRITICAL),
            ("minor", Priority.LOW),
            ("", Priority.MEDIUM),
            (None, Priority.MEDIUM),
            ("someday", Priority.MEDIUM),
        ],
    )
    def test_priority(self, label, expected):
        assert Priority.coerce(label) is expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("ui-ux", Category.UI_UX),
            ("UI/UX", Category.UI_UX),
            ("privacy", Category.SECURITY),
            ("scalability", Category.PERFORMANCE),
            ("data", Category.DATA),
            ("misc", Category.FUNCTIONAL),
        ],
    )
    def test_category(self, label, expected):
        assert Category.coerce(label) is expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("api", ComponentType.API),
            ("Engine", ComponentType.SERVICE),
            ("db", ComponentType.DATABASE),
            ("external", ComponentType.INTEGRATION),
            ("widget", ComponentType.COMPONENT),
        ],
    )
    def test_component_type(self, label, expected):
        assert ComponentType.coerce(label) is expected

    @pytest.mark.unit
    def test_members_pass_through(self):
        assert Category.coerce(Category.DATA) is Category.DATA


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestRequirement:
    @pytest.mark.unit
    def test_defaults(self):
        req = Requirement(id="REQ-001")
        assert req.title == "Untitled"
        assert req.priority == Priority.MEDIUM
        assert req.category == Category.FUNCTIONAL
        assert req.acceptance_criteria == ()
        assert req.inferred is False

    @pytest.mark.unit
    def test_aliases_and_field_names(self):
        by_alias = Requirement.model_validate({"id": "R", "acceptanceCriteria": ["a"], "sourceId": "X-1"})
        by_name = Requirement(id="R", acceptance_criteria=["a"], source_id="X-1")
        assert by_alias == by_name
        assert by_alias.model_dump(by_alias=True)["acceptanceCriteria"] == ("a",)

    @pytest.mark.unit
    def test_frozen(self):
        req = Requirement(id="REQ-001")
        with pytest.raises(ValidationError):
            req.title = "Changed"

    @pytest.mark.unit
    def test_id_required(self):
        with pytest.raises(ValidationError):
            Requirement(title="No id")

    @pytest.mark.unit
    def test_notes_none_becomes_empty(self):
        assert Requirement(id="R", notes=None).notes == ""


class TestDesignComponent:
    @pytest.mark.unit
    def test_string_lists_normalised(self):
        component = DesignComponent(
            id="COMP-001",
            name="Gateway",
            type="rest",
            interfaces="GET /health",
            businessRules=[" Rate limit ", None, {"rule": "Log every call"}],
        )
        assert component.type == ComponentType.COMPONENT
        assert component.interfaces == ("GET /health",)
        assert component.business_rules == ("Rate limit", "Log every call")

    @pytest.mark.unit
    def test_scalar_list_values_wrapped(self):
        component = DesignComponent(id="C", interfaces=True, dependencies=7, businessRules={"rule": "Audit"})
        assert component.interfaces == ("True",)
        assert component.dependencies == ("7",)
        assert component.business_rules == ("Audit",)


# ---------------------------------------------------------------------------
# Source documents
# ---------------------------------------------------------------------------


class TestSourceDocument:
    @pytest.mark.unit
    def test_from_text(self):
        document = SourceDocument.from_text("Notes.MD", "héllo")
        assert document.suffix == ".md"
        assert document.read_text() == "héllo"

    @pytest.mark.unit
    def test_from_path_reads_lazily(self, tmp_path):
        path = tmp_path / "spec.txt"
        document = SourceDocument.from_path(path)
        path.write_text("REQ-001: Late write", encoding="utf-8")
        assert document.name == "spec.txt"
        assert document.read_text() == "REQ-001: Late write"

    @pytest.mark.unit
    def test_invalid_utf8_replaced(self):
        document = SourceDocument(name="a.txt", content=b"ok \xff")
        assert document.read_text() == "ok �"

    @pytest.mark.unit
    def test_no_content_raises_os_error(self):
        with pytest.raises(OSError):
            SourceDocument(name="empty.txt").read_bytes()


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class TestResultTypes:
    @pytest.mark.unit
    def test_pass_result_len(self):
        assert len(PassResult(next_id=3, records=["a", "b"])) == 2
        assert PassResult(next_id=1).records == []

    @pytest.mark.unit
    def test_outcome_from_records(self):
        assert ExtractionOutcome.from_records([]).status is OutcomeStatus.EMPTY
        outcome = ExtractionOutcome.from_records(["r"])
        assert outcome.ok
        assert outcome.records == ("r",)

    @pytest.mark.unit
    def test_outcome_failed(self):
        outcome = ExtractionOutcome.failed("timeout")
        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.reason == "timeout"
        assert not outcome.ok
