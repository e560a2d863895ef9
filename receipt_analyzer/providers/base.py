from __future__ import annotations

from typing import Protocol


class Provider(Protocol):
	"""One extraction tier: turns receipt image bytes into raw text."""

	name: str
	kind: str  # "remote" | "local" | "fixture"

	def model_id(self) -> str | None: ...
	def available(self) -> tuple[bool, str | None]: ...
	async def extract_text(self, image_bytes: bytes, mime_type: str | None) -> str: ...
