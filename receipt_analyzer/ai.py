from __future__ import annotations

import json
import logging
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from opentelemetry import trace
from pydantic import ValidationError

from .config import GEMINI_MODEL, PROVIDER_TIMEOUT_SECS
from .errors import LabelingFailed, ProviderUnavailable
from .schemas import Category, LineItem, ReceiptLabels

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CATEGORY_GUIDE = (
	"- Food & Dining: restaurants, cafes, fast food, drinks\n"
	"- Transportation: gas, fuel, parking, rideshare, public transport\n"
	"- Groceries: supermarkets, food stores, household items\n"
	"- Healthcare: pharmacy, medical, health products\n"
	"- Entertainment: movies, games, subscriptions, events\n"
	"- Bills & Utilities: electricity, water, internet, phone bills\n"
	"- Shopping: clothing, electronics, general retail\n"
	"- Other: everything else\n"
)


def build_prompt(text: str, merchant: str, items: list[LineItem]) -> str:
	listed = "\n".join(f"{i}: {item.name} ({item.price})" for i, item in enumerate(items))
	return (
		"You categorize receipt line items for a personal budget.\n"
		f"- allowed categories: {', '.join(c.value for c in Category)}\n"
		"- emit only JSON matching the given schema\n"
		"- one entry per numbered item, using its number as index\n"
		"- confidence is 0.0-1.0; description is a short phrase\n"
		"- location (city) and payment_method (Cash, Card or Digital) only if printed\n"
		"\nCategory guide:\n"
		f"{CATEGORY_GUIDE}"
		f"\nMerchant: {merchant}\n"
		f"Items:\n{listed}\n"
		f"\nReceipt text:\n{text}\n"
	)


class GeminiCategorizer:
	"""Item categories from Gemini; callers fall back to keyword rules on failure."""

	name = "gemini"

	def __init__(self, model: str = GEMINI_MODEL, client: genai.Client | None = None) -> None:
		self._model = model
		self._client = client
		if self._client is None:
			try:
				self._client = genai.Client()
			except Exception as e:
				log.debug("gemini client init failed: %s", e)
				self._client = None

	def available(self) -> tuple[bool, str | None]:
		if self._client is None:
			return False, "missing or invalid GOOGLE_API_KEY"
		return True, None

	async def label(self, text: str, merchant: str, items: list[LineItem]) -> ReceiptLabels:
		if self._client is None:
			raise ProviderUnavailable("Gemini categorizer not configured", provider=self.name)

		cfg = types.GenerateContentConfig(
			temperature=0,
			response_mime_type="application/json",
			response_schema=ReceiptLabels,
		)

		with tracer.start_as_current_span("ai.gemini.label") as span:
			span.set_attribute("llm.provider", "gemini")
			span.set_attribute("llm.model", self._model)
			span.set_attribute("request.timeout_secs", PROVIDER_TIMEOUT_SECS)
			span.set_attribute("receipt.items", len(items))

			try:
				resp = await self._client.aio.models.generate_content(
					model=self._model,
					contents=build_prompt(text, merchant, items),
					config=cfg,
				)
			except genai_errors.APIError as exc:
				log.error("gemini labeling failed", extra={"error": str(exc)})
				raise LabelingFailed(f"gemini request failed: {exc}", provider=self.name) from exc

			raw = resp.text or ""
			span.set_attribute("response.size_bytes", len(raw.encode("utf-8")))

		try:
			data: dict[str, Any] = json.loads(raw)
			labels = ReceiptLabels.model_validate(data)
		except (json.JSONDecodeError, ValidationError) as exc:
			log.error("gemini returned unusable labels", extra={"error": str(exc)})
			raise LabelingFailed("Gemini response was not valid labels JSON", provider=self.name) from exc

		# indexes outside the parsed items are ignored
		labels.items = [label for label in labels.items if 0 <= label.index < len(items)]
		return labels
