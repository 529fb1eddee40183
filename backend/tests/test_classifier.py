"""Tests for category and severity classification."""

import pytest

from civicconnect.models.report import ReportCategory, ReportSeverity
from civicconnect.services.classifier import (
    categorize_description,
    extract_field,
    normalize_severity,
    parse_category,
    reconcile_category,
    resolve_category,
    valid_categories,
)


class TestKeywordCategorization:
    """Keyword fallback over free-text descriptions."""

    def test_first_matching_category_wins(self):
        """Electricity is checked before Roads, so 'street light' wins over 'street'."""
        assert categorize_description("Street light not working") == ReportCategory.ELECTRICITY

    def test_declaration_order_beats_match_count(self):
        """Water is checked before Roads even when Roads has more hits."""
        text = "water on the road, pothole on the street near the bridge"
        assert categorize_description(text) == ReportCategory.WATER_SUPPLY

    def test_case_insensitive(self):
        assert categorize_description("OVERFLOWING GARBAGE BIN") == ReportCategory.SANITATION

    def test_substring_match(self):
        """'traffic' appears inside 'traffic signal' and Roads is checked first."""
        assert categorize_description("broken traffic signal") == ReportCategory.ROADS

    @pytest.mark.parametrize("text", ["", None, "something unrelated entirely"])
    def test_no_match_is_general(self, text):
        assert categorize_description(text) == ReportCategory.GENERAL


class TestLabelReconciliation:
    """Mapping untrusted labels onto categories."""

    def test_exact_name_any_case(self):
        assert reconcile_category("parks & environment") == ReportCategory.PARKS

    def test_heuristics_in_priority_order(self):
        """'waste water' hits the sanitation rule before the water rule."""
        assert reconcile_category("Waste water issue") == ReportCategory.SANITATION
        assert reconcile_category("Road damage") == ReportCategory.ROADS
        assert reconcile_category("Water leakage") == ReportCategory.WATER_SUPPLY
        assert reconcile_category("Electrical hazard") == ReportCategory.ELECTRICITY

    def test_unknown_label_is_general(self):
        assert reconcile_category("Noise complaint") == ReportCategory.GENERAL
        assert reconcile_category("") == ReportCategory.GENERAL
        assert reconcile_category(None) == ReportCategory.GENERAL

    def test_label_takes_precedence_over_description(self):
        category = resolve_category("Electricity", "garbage everywhere")
        assert category == ReportCategory.ELECTRICITY

    def test_description_used_when_label_unusable(self):
        category = resolve_category("Something odd", "garbage everywhere")
        assert category == ReportCategory.SANITATION

    def test_general_when_nothing_matches(self):
        assert resolve_category(None, None) == ReportCategory.GENERAL


class TestSeverity:
    def test_exact_values_kept(self):
        assert normalize_severity("High") == ReportSeverity.HIGH
        assert normalize_severity(" Low ") == ReportSeverity.LOW

    @pytest.mark.parametrize("label", [None, "", "high", "Critical"])
    def test_anything_else_is_medium(self, label):
        assert normalize_severity(label) == ReportSeverity.MEDIUM


class TestCategoryList:
    def test_nine_categories_in_canonical_order(self):
        categories = valid_categories()

        assert len(categories) == 9
        assert categories[0] == "Water & Supply Management"
        assert categories[-1] == "General Issues"

    def test_strict_parse(self):
        assert parse_category("Electricity") == ReportCategory.ELECTRICITY
        assert parse_category("electricity") is None
        assert parse_category(None) is None


class TestFieldExtraction:
    """Parsing 'Name: value' lines out of model output."""

    OUTPUT = (
        "Description: A large pothole in the middle of the lane.\n"
        "**Category:** Roads & Infrastructure\n"
        "Severity: High\n"
        "ActionRequired: Fill and resurface the road.\n"
    )

    def test_plain_and_bold_fields(self):
        assert extract_field(self.OUTPUT, "Description") == "A large pothole in the middle of the lane."
        assert extract_field(self.OUTPUT, "Category") == "Roads & Infrastructure"
        assert extract_field(self.OUTPUT, "Severity") == "High"
        assert extract_field(self.OUTPUT, "ActionRequired") == "Fill and resurface the road."

    def test_missing_field_is_empty(self):
        assert extract_field(self.OUTPUT, "Department") == ""
        assert extract_field("", "Description") == ""
