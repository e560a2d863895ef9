from __future__ import annotations

import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from opentelemetry import trace

from ..config import GEMINI_MODEL, PROVIDER_TIMEOUT_SECS
from ..errors import ExtractionTransportError, NoTextExtracted, ProviderUnavailable

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PROMPT = (
	"Transcribe this receipt exactly as printed.\n"
	"- one receipt line per output line, top to bottom\n"
	"- keep prices, quantities and dates as they appear\n"
	"- no commentary, no markdown, no JSON\n"
	"- if there is no readable receipt, return an empty response\n"
)


class GeminiProvider:
	name = "gemini"
	kind = "remote"

	def __init__(self, model: str = GEMINI_MODEL, client: genai.Client | None = None) -> None:
		self._model = model
		# relies on GOOGLE_API_KEY in env; genai.Client() reads it
		self._client = client
		if self._client is None:
			try:
				self._client = genai.Client()
			except Exception as e:
				log.debug("gemini client init failed: %s", e)
				self._client = None

	def model_id(self) -> str | None:
		return self._model

	def available(self) -> tuple[bool, str | None]:
		if self._client is None:
			return False, "missing or invalid GOOGLE_API_KEY"
		return True, None

	async def extract_text(self, image_bytes: bytes, mime_type: str | None) -> str:
		if self._client is None:
			raise ProviderUnavailable("Gemini provider not configured", provider=self.name)

		img_part = types.Part.from_bytes(
			data=image_bytes, mime_type=mime_type or "image/jpeg"
		)

		with tracer.start_as_current_span("provider.gemini.extract") as span:
			span.set_attribute("llm.provider", "gemini")
			span.set_attribute("llm.model", self._model)
			span.set_attribute("request.timeout_secs", PROVIDER_TIMEOUT_SECS)

			try:
				resp = await self._client.aio.models.generate_content(
					model=self._model,
					# must use keyword-only for from_text
					contents=[img_part, types.Part.from_text(text=PROMPT)],
					config=types.GenerateContentConfig(temperature=0),
				)
			except genai_errors.APIError as exc:
				log.error("gemini request failed", extra={"error": str(exc)})
				raise ExtractionTransportError(
					f"gemini request failed: {exc}", provider=self.name
				) from exc

			raw = resp.text or ""
			span.set_attribute("response.chars", len(raw))

		if not raw.strip():
			raise NoTextExtracted("gemini returned no text", provider=self.name)
		return raw
