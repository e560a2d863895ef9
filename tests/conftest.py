"""Shared fixtures for receipt-analyzer tests."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from receipt_analyzer.categories import KeywordTable, default_knowledge_base

TODAY = date(2026, 10, 19)

STARBUCKS = "STARBUCKS\nGrande Latte $4.95\nTax $0.63\nTotal $5.58"


class FakeProvider:
	"""Extraction tier with a canned outcome; records how often it ran."""

	kind = "fake"

	def __init__(
		self,
		name: str,
		text: str | None = None,
		error: Exception | None = None,
		available: bool = True,
		delay: float = 0.0,
	) -> None:
		self.name = name
		self._text = text
		self._error = error
		self._available = available
		self._delay = delay
		self.calls = 0

	def model_id(self) -> str | None:
		return None

	def available(self) -> tuple[bool, str | None]:
		if self._available:
			return True, None
		return False, "switched off"

	async def extract_text(self, image_bytes: bytes, mime_type: str | None) -> str:
		self.calls += 1
		if self._delay:
			await asyncio.sleep(self._delay)
		if self._error is not None:
			raise self._error
		return self._text or ""


@pytest.fixture
def table() -> KeywordTable:
	return default_knowledge_base()

