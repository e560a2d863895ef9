"""Category vocabulary and the keyword knowledge base.

The category names, ids, icons and colors are shared with the persistence
layer, so the pipeline only ever emits members of :class:`Category`.

The keyword table is loaded once from ``data/knowledge_base.toml`` (or a path
given in ``KNOWLEDGE_BASE_PATH``) into an immutable :class:`KeywordTable` and
passed explicitly to whatever needs it.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .schemas import Category

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryInfo:
	id: str
	name: Category
	icon: str
	color: str
	is_default: bool = True


CATEGORY_INFO: tuple[CategoryInfo, ...] = (
	CategoryInfo("food-dining", Category.FOOD_AND_DINING, "🍽️", "#FF6B6B"),
	CategoryInfo("transportation", Category.TRANSPORTATION, "🚗", "#4ECDC4"),
	CategoryInfo("groceries", Category.GROCERIES, "🛒", "#45B7D1"),
	CategoryInfo("healthcare", Category.HEALTHCARE, "🏥", "#96CEB4"),
	CategoryInfo("entertainment", Category.ENTERTAINMENT, "🎬", "#FFEAA7"),
	CategoryInfo("bills-utilities", Category.BILLS_AND_UTILITIES, "💡", "#DDA0DD"),
	CategoryInfo("shopping", Category.SHOPPING, "🛍️", "#98D8C8"),
	CategoryInfo("other", Category.OTHER, "📦", "#F7DC6F"),
)

_INFO_BY_NAME = {info.name.value: info for info in CATEGORY_INFO}


def coerce_category(name: str | None) -> Category:
	"""Clamp a free-form category name to the closed set; unknown is ``Other``."""
	if name and is_valid_category(name.strip()):
		return Category(name.strip())
	return Category.OTHER


def is_valid_category(name: str) -> bool:
	return name in _INFO_BY_NAME


@dataclass(frozen=True)
class KeywordTable:
	"""Ordered keyword -> category rules plus known merchant keywords.

	``rules`` keeps file order; it is the tie-break when several keywords
	match. Keywords are stored lowercased, merchant keywords uppercased.
	Each keyword appears once: a later listing moves it to its category
	but keeps the position of the first listing.
	"""

	rules: tuple[tuple[str, Category], ...]
	merchant_keywords: tuple[str, ...] = ()
	_by_category: Mapping[Category, tuple[str, ...]] = field(
		init=False, repr=False, compare=False
	)

	def __post_init__(self) -> None:
		grouped: dict[Category, list[str]] = {}
		for keyword, category in self.rules:
			grouped.setdefault(category, []).append(keyword)
		object.__setattr__(
			self,
			"_by_category",
			MappingProxyType({c: tuple(k) for c, k in grouped.items()}),
		)

	@classmethod
	def build(
		cls,
		rules: Iterable[tuple[str, str]],
		merchant_keywords: Iterable[str] = (),
	) -> KeywordTable:
		resolved: dict[str, Category] = {}
		for keyword, category in rules:
			keyword = keyword.strip().lower()
			if not keyword:
				continue
			if keyword in resolved and resolved[keyword] != category:
				log.debug(
					"keyword listed twice",
					extra={"keyword": keyword, "was": resolved[keyword].value, "now": category},
				)
			resolved[keyword] = Category(category)
		return cls(
			rules=tuple(resolved.items()),
			merchant_keywords=tuple(
				k.strip().upper() for k in merchant_keywords if k.strip()
			),
		)

	def keywords_for(self, category: Category) -> tuple[str, ...]:
		return self._by_category.get(category, ())


def _table_from_document(doc: Mapping[str, Any], source: str) -> KeywordTable:
	rules: list[tuple[str, str]] = []
	for i, rule in enumerate(doc.get("rules", [])):
		name = rule.get("category")
		if not is_valid_category(name):
			raise ValueError(f"{source}: rule #{i} has unknown category {name!r}")
		rules.extend((keyword, name) for keyword in rule.get("keywords", []))

	merchants = doc.get("merchants", {}).get("keywords", [])
	table = KeywordTable.build(rules, merchants)
	log.debug(
		"loaded knowledge base",
		extra={"source": source, "rules": len(table.rules), "merchants": len(merchants)},
	)
	return table


def load_knowledge_base(path: str | Path | None = None) -> KeywordTable:
	"""Load a keyword table from ``path`` or the packaged default."""
	if path is None:
		return default_knowledge_base()
	with open(path, "rb") as fh:
		return _table_from_document(tomllib.load(fh), str(path))


@lru_cache(maxsize=1)
def default_knowledge_base() -> KeywordTable:
	raw = resources.files(__package__).joinpath("data/knowledge_base.toml").read_bytes()
	return _table_from_document(tomllib.loads(raw.decode("utf-8")), "knowledge_base.toml")
