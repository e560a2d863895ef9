from __future__ import annotations

import logging
from typing import Any

import httpx
from opentelemetry import trace

from ..config import OCR_SPACE_API_KEY, OCR_SPACE_URL, PROVIDER_TIMEOUT_SECS
from ..errors import ExtractionTransportError, NoTextExtracted, ProviderUnavailable

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg"}


class OCRSpaceProvider:
	"""OCR.space parse endpoint; returns the first parsed page's text."""

	name = "ocrspace"
	kind = "remote"

	def __init__(
		self,
		api_key: str | None = OCR_SPACE_API_KEY,
		url: str = OCR_SPACE_URL,
		timeout_secs: float = PROVIDER_TIMEOUT_SECS,
		transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self._api_key = api_key
		self._url = url
		self._timeout = timeout_secs
		self._transport = transport

	def model_id(self) -> str | None:
		return None

	def available(self) -> tuple[bool, str | None]:
		if not self._api_key:
			return False, "missing OCR_SPACE_API_KEY"
		return True, None

	async def extract_text(self, image_bytes: bytes, mime_type: str | None) -> str:
		if not self._api_key:
			raise ProviderUnavailable("OCR.space provider not configured", provider=self.name)

		mime = mime_type or "image/jpeg"
		files = {"file": (f"receipt.{_EXTENSIONS.get(mime, 'jpg')}", image_bytes, mime)}
		data = {"language": "eng", "isTable": "true", "OCREngine": "2"}

		with tracer.start_as_current_span("provider.ocrspace.extract") as span:
			span.set_attribute("request.bytes", len(image_bytes))
			try:
				async with httpx.AsyncClient(
					timeout=self._timeout, transport=self._transport
				) as client:
					resp = await client.post(
						self._url,
						headers={"apikey": self._api_key},
						data=data,
						files=files,
					)
					resp.raise_for_status()
					payload: dict[str, Any] = resp.json()
			except (httpx.HTTPError, ValueError) as exc:
				log.error("ocr.space request failed", extra={"error": str(exc)})
				raise ExtractionTransportError(
					f"ocr.space request failed: {exc}", provider=self.name
				) from exc

			span.set_attribute("response.status", resp.status_code)

		if payload.get("IsErroredOnProcessing"):
			message = payload.get("ErrorMessage") or "processing error"
			if isinstance(message, list):
				message = "; ".join(str(m) for m in message)
			raise ExtractionTransportError(f"ocr.space: {message}", provider=self.name)

		results = payload.get("ParsedResults") or []
		text = (results[0].get("ParsedText") or "") if results else ""
		if not text.strip():
			raise NoTextExtracted("ocr.space found no text", provider=self.name)

		log.debug("ocr.space text", extra={"chars": len(text)})
		return text
