from __future__ import annotations

from collections.abc import Mapping

from .categories import KeywordTable, coerce_category
from .schemas import CategorizedItem, Category, ItemLabel, LineItem

PARTIAL_MATCH_RATIO = 0.7
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95

DESCRIPTION_TEMPLATES: dict[Category, str] = {
	Category.FOOD_AND_DINING: "Food item from {name}",
	Category.TRANSPORTATION: "Transportation expense: {name}",
	Category.GROCERIES: "Grocery item: {name}",
	Category.HEALTHCARE: "Healthcare expense: {name}",
	Category.ENTERTAINMENT: "Entertainment: {name}",
	Category.BILLS_AND_UTILITIES: "Utility or bill: {name}",
	Category.SHOPPING: "Shopping item: {name}",
	Category.OTHER: "Miscellaneous: {name}",
}


def search_text(item_name: str, merchant: str | None) -> str:
	return f"{item_name} {merchant or ''}".lower()


def describe_item(item_name: str, category: Category) -> str:
	template = DESCRIPTION_TEMPLATES.get(category, DESCRIPTION_TEMPLATES[Category.OTHER])
	return template.format(name=item_name)


def clamp_confidence(value: float | None) -> float:
	if value is None:
		return MIN_CONFIDENCE
	return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, value))


class Categorizer:
	"""Keyword categorizer; the first matching rule in table order wins."""

	def __init__(self, table: KeywordTable) -> None:
		self.table = table

	def match(self, text: str) -> Category:
		for keyword, category in self.table.rules:
			if keyword in text:
				return category

		for keyword, category in self.table.rules:
			words = keyword.split()
			if len(words) < 2:
				continue
			hits = sum(1 for word in words if word in text)
			if hits >= len(words) * PARTIAL_MATCH_RATIO:
				return category

		return Category.OTHER

	def confidence(self, text: str, category: Category) -> float:
		keywords = self.table.keywords_for(category)
		if not keywords:
			return MIN_CONFIDENCE
		matched = sum(1 for keyword in keywords if keyword in text)
		return clamp_confidence(matched / len(keywords))

	def categorize(self, item_name: str, merchant: str | None = None) -> tuple[Category, float]:
		text = search_text(item_name, merchant)
		category = self.match(text)
		return category, self.confidence(text, category)

	def categorize_items(
		self,
		items: list[LineItem],
		merchant: str | None,
		labels: Mapping[int, ItemLabel] | None = None,
	) -> list[CategorizedItem]:
		"""Categorize ``items``; a label for an item's index overrides the keywords."""
		out: list[CategorizedItem] = []
		for index, item in enumerate(items):
			label = labels.get(index) if labels else None
			if label is None:
				category, confidence = self.categorize(item.name, merchant)
				description = describe_item(item.name, category)
			else:
				category = coerce_category(label.category)
				confidence = clamp_confidence(label.confidence)
				description = label.description or describe_item(item.name, category)
			out.append(
				CategorizedItem(
					name=item.name,
					price=item.price,
					quantity=item.quantity,
					category=category,
					confidence=confidence,
					description=description,
				)
			)
		return out
