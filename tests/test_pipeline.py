import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from conftest import STARBUCKS, TODAY
from receipt_analyzer.assembler import overall_confidence, to_transaction_draft
from receipt_analyzer.errors import NoTextExtracted
from receipt_analyzer.parser import parse_receipt_text
from receipt_analyzer.pipeline import analyze_text
from receipt_analyzer.providers.fixture import DEMO_RECEIPTS
from receipt_analyzer.schemas import CategorizedItem, Category


def test_coffee_receipt_analysis(table) -> None:
	analysis = analyze_text(STARBUCKS, table, today=TODAY)

	assert analysis.merchant == "STARBUCKS"
	assert analysis.total == Decimal("5.58")
	assert analysis.tax == Decimal("0.63")
	[latte] = analysis.items
	assert latte.name == "Grande Latte"
	assert latte.category == Category.FOOD_AND_DINING
	assert analysis.suggested_category == Category.FOOD_AND_DINING
	# 0.5 base + merchant + total + 0.1 * item confidence, no printed date
	assert analysis.confidence == pytest.approx(0.85)
	assert not analysis.malformed


def test_empty_text_fails_before_parsing(table) -> None:
	with pytest.raises(NoTextExtracted):
		analyze_text("", table)
	with pytest.raises(NoTextExtracted):
		analyze_text("  \n\t ", table)


def test_unreadable_text_degrades_to_manual_entry(table) -> None:
	analysis = analyze_text("~~ smudge ~~", table, today=TODAY)

	assert analysis.malformed
	assert analysis.merchant == "Unknown Store"
	assert analysis.total == Decimal("0")
	assert analysis.items == ()
	assert analysis.confidence == pytest.approx(0.5)
	assert analysis.suggested_category == Category.OTHER
	assert analysis.budget_impact == ()


def test_grocery_fixture_end_to_end(table) -> None:
	analysis = analyze_text(DEMO_RECEIPTS[1], table, today=TODAY)

	assert analysis.total == Decimal("60.04")
	assert len(analysis.items) == 5
	assert {i.category for i in analysis.items} == {Category.GROCERIES}
	assert analysis.suggested_category == Category.GROCERIES
	assert sum(b.percentage for b in analysis.budget_impact) == pytest.approx(100.0)
	assert analysis.spending_insights[0] == (
		"This receipt is primarily Groceries (92.4% of total)"
	)


def test_confidence_bounds_hold_for_fixtures(table) -> None:
	for text in DEMO_RECEIPTS:
		analysis = analyze_text(text, table, today=TODAY)
		assert 0 <= analysis.confidence <= 0.95
		assert all(0.5 <= i.confidence <= 0.95 for i in analysis.items)
		assert all(0 < i.price < 1000 for i in analysis.items)


def test_confidence_is_capped(table) -> None:
	parsed = parse_receipt_text("SHELL\n2025-05-05\nTotal $40.00", table)
	assert parsed.date_found and parsed.merchant_found
	assert overall_confidence(parsed, []) == pytest.approx(0.9)

	sure = CategorizedItem(
		name="Gasoline", price=Decimal("40.00"), category=Category.TRANSPORTATION, confidence=0.95
	)
	assert overall_confidence(parsed, [sure]) == 0.95


def test_analysis_is_frozen_and_json_ready(table) -> None:
	analysis = analyze_text(STARBUCKS, table, today=TODAY)

	with pytest.raises(ValidationError):
		analysis.total = Decimal("1")

	payload = json.loads(json.dumps(analysis.model_dump(mode="json", by_alias=True)))
	assert payload["suggestedCategory"] == "Food & Dining"
	assert payload["total"] == 5.58
	assert payload["budgetImpact"][0]["percentage"] == pytest.approx(100.0)
	assert payload["spendingInsights"]


def test_transaction_draft_prefill(table) -> None:
	analysis = analyze_text(DEMO_RECEIPTS[2], table, today=TODAY)
	draft = to_transaction_draft(analysis)

	assert draft.amount == Decimal("27.54")
	assert draft.merchant == "MCDONALD'S"
	assert draft.description == "Big Mac Meal, Chicken McNuggets, Large Fries"
	assert draft.category == Category.FOOD_AND_DINING
	assert draft.transaction_date == "2026-10-19"
	assert draft.type == "expense"
	assert draft.source == "ai"


def test_analysis_collections_are_immutable(table) -> None:
	analysis = analyze_text(DEMO_RECEIPTS[1], table, today=TODAY)

	assert isinstance(analysis.items, tuple)
	assert isinstance(analysis.spending_insights, tuple)
	assert isinstance(analysis.budget_impact, tuple)
	with pytest.raises(AttributeError):
		analysis.spending_insights.append("extra")


def test_zero_printed_total_uses_item_shares(table) -> None:
	analysis = analyze_text(
		"ACME\nLatte $5.00\nGasoline $5.00\nTOTAL $0.00", table, today=TODAY
	)

	assert analysis.total == Decimal("0")
	assert analysis.spending_insights == (
		"This receipt is primarily Food & Dining (50.0% of total)",
	)
	assert "Valid total amount is required" in analysis.issues


def test_issues_flag_fields_to_check(table) -> None:
	analysis = analyze_text(STARBUCKS, table, today=TODAY)

	assert analysis.issues == ("Date could not be read from the receipt",)
	assert analysis.categorized_by == "keywords"
	assert analysis.location is None
