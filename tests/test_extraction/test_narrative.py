"""Unit tests for the narrative extractor (testplan.extraction.narrative)."""

from __future__ import annotations

import textwrap

import pytest

from testplan.extraction import narrative
from testplan.extraction.models import Category, ComponentType, Priority
from testplan.extraction.narrative import (
    NarrativeExtractor,
    catalog_pass,
    extract_components,
    extract_requirements,
    feature_list_pass,
    integration_pass,
    is_capability_qa,
    loose_bullet_pass,
    metric_pass,
    qa_pass,
    technical_term_pass,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Feature-list pass
# ---------------------------------------------------------------------------


class TestFeatureListPass:
    def test_one_requirement_per_named_bullet(self, narrative_text):
        result = feature_list_pass(narrative_text)
        assert [r.title for r in result.records] == ["Smart Lists", "Price Alerts", "Recipe Sync"]
        assert [r.id for r in result.records] == ["FEAT-001", "FEAT-002", "FEAT-003"]
        assert result.next_id == 4

    def test_all_functional(self, narrative_text):
        result = feature_list_pass(narrative_text)
        assert all(r.category == Category.FUNCTIONAL for r in result.records)

    def test_priority_cues(self, narrative_text):
        smart, alerts, sync = feature_list_pass(narrative_text).records
        assert smart.priority == Priority.HIGH
        assert alerts.priority == Priority.MEDIUM
        assert sync.priority == Priority.LOW

    def test_templated_criteria(self, narrative_text):
        smart, alerts, _ = feature_list_pass(narrative_text).records
        assert smart.acceptance_criteria[0] == (
            "Feature must be implemented as described: "
            "Core list builder that predicts what you need next"
        )
        assert "Prediction accuracy must meet specified thresholds" in smart.acceptance_criteria
        assert "Notifications must be delivered in a timely manner" in alerts.acceptance_criteria

    def test_blank_lines_between_bullets(self):
        text = "Key features:\n\n• Voice: Hands-free control\n\n• Sync: Works across devices\n"
        result = feature_list_pass(text)
        assert [r.title for r in result.records] == ["Voice", "Sync"]

    def test_prose_mention_before_heading(self):
        text = textwrap.dedent("""\
            Acme announces its key features for 2025 below.

            Key Features:
            - Smart Scan: scans items quickly
            - Alerts: notify the user when stock runs low
        """)
        result = feature_list_pass(text)
        assert [r.title for r in result.records] == ["Smart Scan", "Alerts"]

    def test_heading_without_named_bullets_is_skipped(self):
        text = "Key features\n- just a plain bullet\n\nKey features:\n- Sync: Works across devices\n"
        assert [r.title for r in feature_list_pass(text).records] == ["Sync"]

    def test_no_key_features_section(self):
        assert feature_list_pass("- Something: else entirely").records == []


class TestLooseBulletPass:
    def test_skips_bullets_taken_by_feature_pass(self, narrative_text):
        result = loose_bullet_pass(narrative_text, start=4)
        assert len(result.records) == 1
        assert result.records[0].id == "FEAT-004"
        assert result.records[0].description == (
            "Household sharing keeps every family member on the same list"
        )

    def test_title_defaults_to_first_four_words(self, narrative_text):
        (req,) = loose_bullet_pass(narrative_text).records
        assert req.title == "Household sharing keeps every"

    def test_title_stops_before_action_verb(self):
        text = "* Meal planner uses your pantry to plan dinners\n"
        (req,) = loose_bullet_pass(text).records
        assert req.title == "Meal planner"

    def test_ignores_short_and_question_bullets(self):
        text = "- Too short\n- Does this bullet ask a question of anyone?\n"
        assert loose_bullet_pass(text).records == []


# ---------------------------------------------------------------------------
# Q/A pass
# ---------------------------------------------------------------------------


class TestQAPass:
    def test_capability_question_included(self, narrative_text):
        (req,) = qa_pass(narrative_text).records
        assert req.id == "QA-001"
        assert req.title == "does SmartCart protect my data"
        assert req.category == Category.SECURITY
        assert req.priority == Priority.HIGH

    def test_what_happens_never_qualifies(self):
        answer = "The system will automatically restore everything and can provide a full backup."
        assert is_capability_qa("What happens if I lose my phone?", answer) is False

    def test_can_i_never_qualifies(self):
        answer = "Yes, the platform can support exports to every major spreadsheet format available."
        assert is_capability_qa("Can I export my data?", answer) is False

    def test_how_does_question_qualifies_without_verbs(self):
        assert is_capability_qa("How does it work?", "Magic.") is True

    def test_answer_with_capability_verb_must_be_long(self):
        assert is_capability_qa("Pricing?", "It can sync.") is False
        long_answer = "The service can synchronize your lists across every device you own in real time."
        assert is_capability_qa("Is there sync?", long_answer) is True

    def test_description_is_first_sentence(self):
        text = textwrap.dedent("""\
            Q: How does the scanner work?
            A: The scanner reads barcodes with the camera. It then looks up prices.
        """)
        (req,) = qa_pass(text).records
        assert req.description == "The scanner reads barcodes with the camera."
        assert req.title == "does the scanner work"

    def test_accuracy_criteria(self):
        text = textwrap.dedent("""\
            Q: How accurate is the scanner?
            A: The scanner will identify products with 98% accuracy in normal lighting conditions.
        """)
        (req,) = qa_pass(text).records
        assert "System must achieve 98% accuracy" in req.acceptance_criteria
        assert req.category == Category.PERFORMANCE

    def test_default_criteria(self, narrative_text):
        (req,) = qa_pass(narrative_text).records
        assert req.acceptance_criteria == (
            "Feature must work as described in Q&A response",
            "User experience must be intuitive and reliable",
        )

    def test_faq_heading_not_treated_as_question(self):
        text = "FAQ: common questions\n\nA: nothing here\n"
        assert qa_pass(text).records == []


# ---------------------------------------------------------------------------
# Metric pass
# ---------------------------------------------------------------------------


class TestMetricPass:
    def test_metric_sentence_yields_one_performance_requirement(self):
        (req,) = metric_pass("We reach 95% accuracy in detecting spoilage.").records
        assert req.id == "METRIC-001"
        assert req.category == Category.PERFORMANCE
        assert req.priority == Priority.HIGH
        assert any("95%" in criterion for criterion in req.acceptance_criteria)
        assert req.acceptance_criteria == (
            "Achieve minimum 95% accuracy",
            "Measure and report accuracy metrics",
            "Continuously monitor performance in detecting spoilage",
        )

    def test_rate_variant(self):
        (req,) = metric_pass("Pilot stores saw a 90% success rate in checkout speed.").records
        assert req.description == "System must achieve 90% success checkout speed"

    def test_no_metric(self):
        assert metric_pass("Accuracy is important to us.").records == []


# ---------------------------------------------------------------------------
# Requirements overall
# ---------------------------------------------------------------------------


class TestNarrativeRequirements:
    def test_passes_concatenated_in_order(self, narrative_text):
        ids = [r.id for r in extract_requirements(narrative_text)]
        assert ids == ["FEAT-001", "FEAT-002", "FEAT-003", "FEAT-004", "QA-001", "METRIC-001"]

    def test_key_feature_count_lower_bound(self, narrative_text):
        titles = [r.title for r in extract_requirements(narrative_text)]
        for name in ("Smart Lists", "Price Alerts", "Recipe Sync"):
            assert name in titles

    def test_duplicates_are_kept(self):
        text = "Key features:\n- Tracking: 95% accuracy in tracking deliveries\n"
        requirements = extract_requirements(text)
        # The same bullet feeds both the feature-list and the metric pass.
        assert [r.id for r in requirements] == ["FEAT-001", "METRIC-001"]

    def test_failing_pass_does_not_block_others(self, narrative_text, monkeypatch):
        def boom(text, start):
            raise RuntimeError("broken pass")

        monkeypatch.setattr(narrative, "qa_pass", boom)
        ids = [r.id for r in extract_requirements(narrative_text)]
        assert "QA-001" not in ids
        assert "METRIC-001" in ids
        assert "FEAT-001" in ids


# ---------------------------------------------------------------------------
# Component passes
# ---------------------------------------------------------------------------


class TestIntegrationPass:
    def test_target_trimmed_at_conjunction(self, narrative_text):
        (component,) = integration_pass(narrative_text).records
        assert component.id == "INT-001"
        assert component.name == "Google Calendar Integration"
        assert component.type == ComponentType.INTEGRATION
        assert component.interfaces == ("Integration API for Google Calendar",)
        assert component.dependencies == ("Google Calendar Service",)
        assert component.business_rules == ("Must maintain compatibility with Google Calendar",)

    def test_distinct_targets_only(self):
        text = "It integrates with Slack.\nIt also connects with slack.\nIt works using Zapier.\n"
        names = [c.name for c in integration_pass(text).records]
        assert names == ["Slack Integration", "Zapier Integration"]

    def test_leading_article_stripped(self):
        (component,) = integration_pass("Connects seamlessly with the Shopify platform.").records
        assert component.name == "Shopify platform Integration"


class TestCatalogPass:
    def test_families_present(self, narrative_text):
        names = [c.name for c in catalog_pass(narrative_text).records]
        assert names == [
            "Recommendation Engine",
            "Notification Service",
            "Data Analytics Platform",
            "Mobile Application Interface",
        ]

    def test_canonical_fields(self):
        (component,) = catalog_pass("Customers login to their account.").records
        assert component.id == "COMP-001"
        assert component.name == "User Authentication System"
        assert component.type == ComponentType.SERVICE
        assert "User Database" in component.dependencies
        assert "Token validation endpoint" in component.interfaces
        assert "Must enforce strong password policies" in component.business_rules

    def test_web_family_is_ui(self):
        (component,) = catalog_pass("Open it in any browser.").records
        assert component.name == "Web Application Interface"
        assert component.type == ComponentType.UI


class TestTechnicalTermPass:
    def test_first_mention_builds_component(self):
        text = "Our machine learning engine ranks offers. The machine learning team is hiring.\n"
        (component,) = technical_term_pass(text).records
        assert component.id == "TECH-001"
        assert component.name == "Machine learning Component"
        assert component.description == "Machine learning component that engine ranks offers"
        assert component.interfaces == ("REST API for machine learning",)

    def test_acronyms_need_word_boundaries(self):
        assert technical_term_pass("We maintain rapid iteration.").records == []


class TestNarrativeComponents:
    def test_passes_have_distinct_prefixes(self, narrative_text):
        components = extract_components(narrative_text)
        ids = [c.id for c in components]
        assert len(ids) == len(set(ids))
        assert ids[0] == "INT-001"
        assert "COMP-001" in ids

    def test_extractor_handle(self, narrative_text):
        extractor = NarrativeExtractor()
        assert len(extractor.extract_requirements(narrative_text)) == 6
        assert extractor.extract_components(narrative_text) == extract_components(narrative_text)
