from __future__ import annotations

import logging

from .insights import (
	DEFAULT_THRESHOLDS,
	InsightThresholds,
	budget_impact,
	category_totals,
	spending_insights,
	suggested_category,
)
from .parser import validate_receipt
from .schemas import (
	CategorizedItem,
	ParsedReceipt,
	ReceiptAnalysis,
	ReceiptLabels,
	TransactionDraft,
)

log = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.5
MERCHANT_WEIGHT = 0.2
DATE_WEIGHT = 0.1
TOTAL_WEIGHT = 0.1
ITEMS_WEIGHT = 0.1
MAX_CONFIDENCE = 0.95


def overall_confidence(parsed: ParsedReceipt, items: list[CategorizedItem]) -> float:
	confidence = BASE_CONFIDENCE
	if parsed.merchant_found:
		confidence += MERCHANT_WEIGHT
	if parsed.date_found:
		confidence += DATE_WEIGHT
	if parsed.total > 0:
		confidence += TOTAL_WEIGHT
	if items:
		confidence += ITEMS_WEIGHT * sum(i.confidence for i in items) / len(items)
	return min(MAX_CONFIDENCE, confidence)


def assemble_analysis(
	parsed: ParsedReceipt,
	items: list[CategorizedItem],
	thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
	labels: ReceiptLabels | None = None,
) -> ReceiptAnalysis:
	totals = category_totals(items)
	malformed = parsed.is_malformed
	if malformed:
		log.warning("receipt parsed with no items and no total", extra={"merchant": parsed.merchant})

	return ReceiptAnalysis(
		merchant=parsed.merchant,
		date=parsed.date,
		total=parsed.total,
		tax=parsed.tax,
		tip=parsed.tip,
		items=items,
		confidence=overall_confidence(parsed, items),
		suggested_category=suggested_category(totals),
		spending_insights=spending_insights(items, parsed.total, thresholds),
		budget_impact=budget_impact(totals),
		malformed=malformed,
		issues=validate_receipt(parsed),
		location=labels.location if labels else None,
		payment_method=labels.payment_method if labels else None,
		categorized_by="gemini" if labels else "keywords",
	)


def to_transaction_draft(analysis: ReceiptAnalysis) -> TransactionDraft:
	"""Pre-fill an expense transaction from an analysis."""
	description = ", ".join(item.name for item in analysis.items) or analysis.merchant
	return TransactionDraft(
		amount=analysis.total,
		description=description,
		merchant=analysis.merchant,
		transaction_date=analysis.date,
		category=analysis.suggested_category,
		confidence_score=analysis.confidence,
	)
