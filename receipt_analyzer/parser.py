"""Turn raw OCR text into a :class:`ParsedReceipt` draft.

The rules are deliberately loose: every input string produces a receipt,
falling back to ``"Unknown Store"``, today's date and a total summed from the
items when the text does not say otherwise.
"""

from __future__ import annotations

import re
from datetime import date as Date
from decimal import Decimal

from .categories import KeywordTable
from .schemas import LineItem, ParsedReceipt

UNKNOWN_MERCHANT = "Unknown Store"

MIN_ITEM_PRICE = Decimal("0")  # exclusive
MAX_ITEM_PRICE = Decimal("1000")  # exclusive
# longer digit runs are barcodes or OCR noise, not amounts
MAX_AMOUNT_CHARS = 12

PRICE_RE = re.compile(r"\$?(\d+\.?\d*)")
DATE_RE = re.compile(
	r"(?<!\d)(?P<y>\d{4})[/-](?P<ym>\d{1,2})[/-](?P<yd>\d{1,2})(?!\d)"
	r"|(?<!\d)(?P<a>\d{1,2})[/-](?P<b>\d{1,2})[/-](?P<c>\d{2,4})(?!\d)"
)
SUBTOTAL_RE = re.compile(r"SUB[\s-]?TOTAL")

_NAME_EDGES = " \t:-*•.#"


def split_lines(text: str) -> list[str]:
	return [line.strip() for line in text.splitlines() if line.strip()]


def find_merchant(lines: list[str], keywords: tuple[str, ...]) -> str | None:
	for line in lines:
		upper = line.upper()
		if any(keyword in upper for keyword in keywords):
			return line
	return None


def _to_date(year: int, month: int, day: int) -> Date | None:
	try:
		return Date(year, month, day)
	except ValueError:
		return None


def normalize_date(match: re.Match[str]) -> str | None:
	"""ISO date for a :data:`DATE_RE` match, or None if it is not a real date."""
	if match.group("y"):
		found = _to_date(int(match["y"]), int(match["ym"]), int(match["yd"]))
		return found.isoformat() if found else None

	first, second, year_raw = int(match["a"]), int(match["b"]), match["c"]
	if len(year_raw) == 3:
		return None
	year = int(year_raw)
	if len(year_raw) == 2:
		year += 2000

	# month/day first, day/month when that is the only valid reading
	found = _to_date(year, first, second) or _to_date(year, second, first)
	return found.isoformat() if found else None


def find_date(lines: list[str]) -> str | None:
	for line in lines:
		for match in DATE_RE.finditer(line):
			iso = normalize_date(match)
			if iso:
				return iso
	return None


def last_price(line: str) -> re.Match[str] | None:
	"""Right-most price-like token; receipts print the amount last."""
	found = None
	for found in PRICE_RE.finditer(line):
		pass
	return found


def item_name(line: str, match: re.Match[str]) -> str:
	name = line[: match.start()] + " " + line[match.end():]
	return " ".join(name.split()).strip(_NAME_EDGES)


def parse_receipt_text(
	text: str, table: KeywordTable, today: Date | None = None
) -> ParsedReceipt:
	lines = split_lines(text)

	merchant = find_merchant(lines, table.merchant_keywords)
	found_date = find_date(lines)

	items: list[LineItem] = []
	total: Decimal | None = None
	tax = Decimal("0")
	tip = Decimal("0")

	for line in lines:
		match = last_price(line)
		if match is None or len(match.group(1)) > MAX_AMOUNT_CHARS:
			continue
		price = Decimal(match.group(1))

		upper = line.upper()
		if SUBTOTAL_RE.search(upper):
			continue
		if "TOTAL" in upper:
			total = price
		elif "TAX" in upper:
			tax = price
		elif "TIP" in upper:
			tip = price
		else:
			name = item_name(line, match)
			if name and MIN_ITEM_PRICE < price < MAX_ITEM_PRICE:
				items.append(LineItem(name=name, price=price))

	total_found = total is not None
	if total is None:
		total = sum((item.price for item in items), Decimal("0"))

	return ParsedReceipt(
		merchant=merchant or UNKNOWN_MERCHANT,
		date=found_date or (today or Date.today()).isoformat(),
		items=items,
		tax=tax,
		tip=tip,
		total=total,
		merchant_found=merchant is not None,
		date_found=found_date is not None,
		total_found=total_found,
	)


def validate_receipt(receipt: ParsedReceipt) -> list[str]:
	"""Human-readable problems a user should fix before saving."""
	errors: list[str] = []

	if not receipt.merchant.strip() or receipt.merchant == UNKNOWN_MERCHANT:
		errors.append("Merchant name is required")
	if not receipt.date_found:
		errors.append("Date could not be read from the receipt")
	if receipt.total <= 0:
		errors.append("Valid total amount is required")
	if not receipt.items:
		errors.append("At least one item is required")

	for index, item in enumerate(receipt.items, start=1):
		if not item.name.strip():
			errors.append(f"Item {index} name is required")
		if item.price <= 0:
			errors.append(f"Item {index} price must be greater than 0")

	return errors
