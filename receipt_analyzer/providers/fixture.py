from __future__ import annotations

import hashlib
import logging

from ..config import DEMO_SEED, DEMO_TIER

log = logging.getLogger(__name__)

DEMO_RECEIPTS: tuple[str, ...] = (
	"""STARBUCKS COFFEE
Downtown Store

Grande Latte          $4.95
Blueberry Muffin      $2.95
Tax                   $0.63
Total                 $8.53

Thank you for your visit!""",
	"""WHOLE FOODS MARKET
Green City

Organic Bananas       $4.50
Free Range Chicken    $18.99
Organic Milk          $11.98
Whole Grain Bread     $4.99
Assorted Vegetables   $15.00

Subtotal              $55.46
Tax                   $4.58
Total                 $60.04""",
	"""MCDONALD'S
Fast Food Blvd

Big Mac Meal          $12.99
Chicken McNuggets     $8.99
Large Fries           $3.52

Subtotal              $25.50
Tax                   $2.04
Total                 $27.54""",
	"""SHELL GAS STATION
Fuel Lane

Regular Gasoline      $85.00
Coffee                $2.50
Snack                 $2.00

Subtotal              $89.50
Tax                   $7.16
Total                 $96.66""",
)


def pick_receipt(seed: int, image_bytes: bytes, receipts: tuple[str, ...] = DEMO_RECEIPTS) -> int:
	"""Index of the demo receipt for this seed and image; stable across runs."""
	digest = hashlib.sha256(seed.to_bytes(8, "big", signed=True) + image_bytes).digest()
	return int.from_bytes(digest[:8], "big") % len(receipts)


class FixtureProvider:
	"""Canned receipts for demo mode; always available, never touches the image."""

	name = DEMO_TIER
	kind = "fixture"

	def __init__(self, seed: int = DEMO_SEED, receipts: tuple[str, ...] = DEMO_RECEIPTS) -> None:
		if not receipts:
			raise ValueError("fixture provider needs at least one receipt")
		self._seed = seed
		self._receipts = receipts

	def model_id(self) -> str | None:
		return None

	def available(self) -> tuple[bool, str | None]:
		return True, None

	async def extract_text(self, image_bytes: bytes, mime_type: str | None) -> str:
		index = pick_receipt(self._seed, image_bytes, self._receipts)
		log.info("serving demo receipt", extra={"fixture_index": index})
		return self._receipts[index]
