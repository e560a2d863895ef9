"""Per-category totals, budget impact and spending insight sentences."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from .schemas import BudgetImpact, CategorizedItem, Category

HUNDRED = Decimal("100")


def _category_notes() -> Mapping[Category, str]:
	return MappingProxyType(
		{
			Category.FOOD_AND_DINING: "Mostly food expenses - consider meal planning to save money",
			Category.TRANSPORTATION: "Transportation heavy - consider carpooling or public transport",
			Category.GROCERIES: "Mostly groceries - a shopping list helps avoid impulse buys",
			Category.ENTERTAINMENT: "Mostly entertainment - check it against your fun budget",
		}
	)


@dataclass(frozen=True)
class InsightThresholds:
	high_value_total: Decimal = Decimal("100")
	small_purchase_total: Decimal = Decimal("20")
	many_items: int = 5
	dominant_share: Decimal = Decimal("0.8")
	category_notes: Mapping[Category, str] = field(default_factory=_category_notes)


DEFAULT_THRESHOLDS = InsightThresholds()


def category_totals(items: list[CategorizedItem]) -> dict[Category, Decimal]:
	totals: dict[Category, Decimal] = {}
	for item in items:
		totals[item.category] = totals.get(item.category, Decimal("0")) + item.price
	return totals


def budget_impact(totals: dict[Category, Decimal]) -> list[BudgetImpact]:
	grand = sum(totals.values(), Decimal("0"))
	return [
		BudgetImpact(
			category=category,
			amount=amount,
			percentage=float(amount / grand * HUNDRED) if grand > 0 else 0.0,
		)
		for category, amount in totals.items()
	]


def suggested_category(totals: dict[Category, Decimal]) -> Category:
	best: Category | None = None
	for category, amount in totals.items():
		# strict comparison keeps the first-seen category on ties
		if best is None or amount > totals[best]:
			best = category
	return best or Category.OTHER


def _share(amount: Decimal, total: Decimal) -> Decimal:
	if total <= 0:
		return Decimal("0")
	return amount / total


def spending_insights(
	items: list[CategorizedItem],
	total: Decimal,
	thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> list[str]:
	if not items and total <= 0:
		return ["No line items could be read - enter the details manually"]

	insights: list[str] = []
	totals = category_totals(items)
	# a printed total of zero says nothing about shares; use the items instead
	base = total if total > 0 else sum(totals.values(), Decimal("0"))

	if totals:
		main = suggested_category(totals)
		pct = _share(totals[main], base) * HUNDRED
		insights.append(f"This receipt is primarily {main.value} ({pct:.1f}% of total)")

	if total > thresholds.high_value_total:
		insights.append("This is a high-value purchase - consider if it fits your budget")
	elif 0 < total < thresholds.small_purchase_total:
		insights.append("Small purchase - good for tracking daily expenses")

	if len(items) > thresholds.many_items:
		insights.append("Multiple items purchased - review if all are necessary")

	for category, note in thresholds.category_notes.items():
		if category in totals and _share(totals[category], base) > thresholds.dominant_share:
			insights.append(note)

	return insights
