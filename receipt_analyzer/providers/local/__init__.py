from __future__ import annotations

import asyncio
import logging
import shutil

from opentelemetry import trace

from ...errors import NoTextExtracted, ProviderUnavailable

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class LocalProvider:
	"""Tesseract OCR on this host; needs the ``local`` extra and the binary."""

	name = "local"
	kind = "local"

	def __init__(self) -> None:
		self._ready_checked = False
		self._reason: str | None = None

	def model_id(self) -> str | None:
		return "tesseract"

	def _check_ready(self) -> tuple[bool, str | None]:
		# lightweight capability check; no heavy imports beyond presence
		if shutil.which("tesseract") is None:
			return False, "tesseract not found on PATH"

		try:
			import pytesseract  # noqa:F401
			import numpy  # noqa:F401
			import PIL  # noqa:F401
			import cv2  # noqa:F401
		except ImportError as e:
			return False, f"missing local extras: {e}"

		return True, None

	def available(self) -> tuple[bool, str | None]:
		if not self._ready_checked:
			ok, reason = self._check_ready()
			self._ready_checked, self._reason = True, reason
			return ok, reason
		return (self._reason is None), self._reason

	async def extract_text(self, image_bytes: bytes, mime_type: str | None) -> str:
		ok, reason = self.available()
		if not ok:
			raise ProviderUnavailable(
				f"Local provider unavailable: {reason or 'unknown'}", provider=self.name
			)

		from .ocr import extract_text

		with tracer.start_as_current_span("provider.local.ocr") as span:
			# tesseract is blocking; keep the event loop free
			txt = await asyncio.to_thread(extract_text, image_bytes)
			span.set_attribute("ocr.chars", len(txt))

		if not txt.strip():
			raise NoTextExtracted("tesseract found no text", provider=self.name)
		return txt
