"""Pure text-to-analysis stages; extraction lives in :mod:`.service`."""

from __future__ import annotations

import logging
from datetime import date as Date
from enum import StrEnum

from opentelemetry import trace

from .assembler import assemble_analysis
from .categories import KeywordTable
from .categorizer import Categorizer
from .errors import NoTextExtracted
from .insights import DEFAULT_THRESHOLDS, InsightThresholds
from .parser import parse_receipt_text
from .schemas import ParsedReceipt, ReceiptAnalysis, ReceiptLabels

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class Stage(StrEnum):
	EXTRACTING = "extracting"
	PARSING = "parsing"
	CATEGORIZING = "categorizing"
	AGGREGATING = "aggregating"
	ASSEMBLED = "assembled"


def parse_text(text: str, table: KeywordTable, today: Date | None = None) -> ParsedReceipt:
	if not text or not text.strip():
		raise NoTextExtracted("extracted text is empty")
	log.debug("pipeline stage", extra={"stage": Stage.PARSING.value})
	return parse_receipt_text(text, table, today=today)


def analyze_parsed(
	parsed: ParsedReceipt,
	table: KeywordTable,
	*,
	thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
	labels: ReceiptLabels | None = None,
) -> ReceiptAnalysis:
	"""Categorize, aggregate and assemble; ``labels`` override keyword categories."""
	with tracer.start_as_current_span("pipeline.analyze") as span:
		span.set_attribute("categorizer", "gemini" if labels else "keywords")

		log.debug("pipeline stage", extra={"stage": Stage.CATEGORIZING.value})
		by_index = {label.index: label for label in labels.items} if labels else None
		items = Categorizer(table).categorize_items(parsed.items, parsed.merchant, by_index)

		log.debug("pipeline stage", extra={"stage": Stage.AGGREGATING.value})
		analysis = assemble_analysis(parsed, items, thresholds, labels)

		span.set_attribute("receipt.items", len(analysis.items))
		span.set_attribute("receipt.total", float(analysis.total))
		span.set_attribute("receipt.confidence", analysis.confidence)

	log.info(
		"analyzed receipt",
		extra={
			"stage": Stage.ASSEMBLED.value,
			"merchant": analysis.merchant,
			"date": analysis.date,
			"total": float(analysis.total),
			"items": len(analysis.items),
			"category": analysis.suggested_category.value,
			"categorized_by": analysis.categorized_by,
		},
	)
	return analysis


def analyze_text(
	text: str,
	table: KeywordTable,
	*,
	thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
	today: Date | None = None,
) -> ReceiptAnalysis:
	with tracer.start_as_current_span("pipeline.analyze_text") as span:
		span.set_attribute("text.chars", len(text or ""))
		parsed = parse_text(text, table, today)
		return analyze_parsed(parsed, table, thresholds=thresholds)
