"""Tests for keyword categorization and the knowledge base loader."""

from decimal import Decimal

import pytest

from receipt_analyzer.categories import (
	KeywordTable,
	coerce_category,
	is_valid_category,
	load_knowledge_base,
)
from receipt_analyzer.categorizer import Categorizer, describe_item
from receipt_analyzer.schemas import Category, LineItem


@pytest.mark.parametrize(
	("item", "merchant", "expected"),
	[
		("Grande Latte", "STARBUCKS", Category.FOOD_AND_DINING),
		("Shell Gasoline", "Shell", Category.TRANSPORTATION),
		("Organic Bananas", "WHOLE FOODS MARKET", Category.GROCERIES),
		("Vitamin D", "CVS Pharmacy", Category.HEALTHCARE),
		("Movie ticket", "", Category.ENTERTAINMENT),
		("Electric bill", None, Category.BILLS_AND_UTILITIES),
		("Denim jacket", "Outlet", Category.SHOPPING),
		("Widget", "Acme", Category.OTHER),
	],
)
def test_default_table_examples(table, item, merchant, expected) -> None:
	category, confidence = Categorizer(table).categorize(item, merchant)

	assert category == expected
	assert 0.5 <= confidence <= 0.95


def test_first_rule_in_table_order_wins(table) -> None:
	# "coffee" is a Food & Dining keyword; "cereal" a Groceries one listed later
	category, _ = Categorizer(table).categorize("Coffee cereal", "Store")
	assert category == Category.FOOD_AND_DINING


@pytest.mark.parametrize(
	("item", "expected"),
	[
		("Bottled Water", Category.BILLS_AND_UTILITIES),
		("Footlong", Category.TRANSPORTATION),
		("Home insurance", Category.BILLS_AND_UTILITIES),
		("Phone case", Category.SHOPPING),
		("Board game", Category.SHOPPING),
	],
)
def test_shared_keywords_belong_to_one_category(table, item, expected) -> None:
	merchant = "SUBWAY" if item == "Footlong" else "Store"
	assert Categorizer(table).categorize(item, merchant)[0] == expected


def test_later_listing_takes_over_a_keyword() -> None:
	table = KeywordTable.build(
		[("coffee", "Groceries"), ("beans", "Groceries"), ("coffee", "Food & Dining")]
	)

	assert table.rules == (
		("coffee", Category.FOOD_AND_DINING),
		("beans", Category.GROCERIES),
	)
	assert table.keywords_for(Category.GROCERIES) == ("beans",)
	assert Categorizer(table).categorize("coffee beans")[0] == Category.FOOD_AND_DINING


def test_packaged_knowledge_base_lists_each_keyword_once(table) -> None:
	keywords = [keyword for keyword, _ in table.rules]
	assert len(keywords) == len(set(keywords))


def test_multi_word_keyword_partial_match() -> None:
	table = KeywordTable.build([("pet food", "Shopping")])

	assert Categorizer(table).categorize("food for my pet") == (Category.SHOPPING, 0.5)
	assert Categorizer(table).categorize("dog food")[0] == Category.OTHER


def test_confidence_is_fraction_of_category_keywords() -> None:
	table = KeywordTable.build(
		[("milk", "Groceries"), ("eggs", "Groceries"), ("bread", "Groceries"), ("flour", "Groceries")]
	)
	categorizer = Categorizer(table)

	assert categorizer.categorize("milk")[1] == 0.5
	assert categorizer.categorize("milk eggs bread")[1] == 0.75
	assert categorizer.categorize("milk eggs bread flour")[1] == 0.95


def test_other_without_keywords_is_half_confident() -> None:
	assert Categorizer(KeywordTable.build([])).categorize("anything") == (Category.OTHER, 0.5)


def test_categorize_items_adds_descriptions(table) -> None:
	items = [LineItem(name="Organic Milk", price=Decimal("3.49"))]
	[item] = Categorizer(table).categorize_items(items, "WHOLE FOODS MARKET")

	assert item.category == Category.GROCERIES
	assert item.description == "Grocery item: Organic Milk"
	assert item.price == Decimal("3.49")


def test_descriptions_cover_every_category() -> None:
	for category in Category:
		assert "Thing" in describe_item("Thing", category)


def test_only_closed_set_is_emitted(table) -> None:
	names = ["Latte", "Gas", "Rice", "Aspirin", "Arcade", "Rent", "Shoes", "Zzz"]
	categorizer = Categorizer(table)
	for name in names:
		category, _ = categorizer.categorize(name, "Store")
		assert is_valid_category(category.value)


def test_load_custom_knowledge_base(tmp_path) -> None:
	path = tmp_path / "kb.toml"
	path.write_text(
		'[merchants]\nkeywords = ["corner deli"]\n\n'
		'[[rules]]\ncategory = "Food & Dining"\nkeywords = ["Sandwich"]\n',
		encoding="utf-8",
	)
	table = load_knowledge_base(path)

	assert table.merchant_keywords == ("CORNER DELI",)
	assert table.keywords_for(Category.FOOD_AND_DINING) == ("sandwich",)
	assert Categorizer(table).categorize("Club Sandwich")[0] == Category.FOOD_AND_DINING


def test_unknown_category_in_knowledge_base_is_rejected(tmp_path) -> None:
	path = tmp_path / "kb.toml"
	path.write_text('[[rules]]\ncategory = "Pets"\nkeywords = ["kibble"]\n', encoding="utf-8")

	with pytest.raises(ValueError, match="Pets"):
		load_knowledge_base(path)


def test_category_names_are_clamped() -> None:
	assert coerce_category("Groceries") == Category.GROCERIES
	assert coerce_category(" Shopping ") == Category.SHOPPING
	assert coerce_category("Pets") == Category.OTHER
	assert coerce_category(None) == Category.OTHER
	assert not is_valid_category("Pets")
