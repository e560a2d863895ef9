from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable

SERVICE_NAME = "receipt-analyzer"


def _env(name: str, default: Any, cast: Callable[[str], Any]):
	raw = os.getenv(name)
	if raw is None:
		return default
	try:
		return cast(raw)
	except Exception as e:
		raise ValueError(
			f"env var {name!r}={raw!r} not valid for {cast.__name__}"
		) from e


def _flag(raw: str) -> bool:
	value = raw.strip().lower()
	if value in ("1", "true", "yes", "on"):
		return True
	if value in ("0", "false", "no", "off", ""):
		return False
	raise ValueError(raw)


def _csv(raw: str) -> tuple[str, ...]:
	return tuple(part.strip() for part in raw.split(",") if part.strip())


# minimal env surface
LOG_LEVEL = _env("LOG_LEVEL", "INFO", str)
OTLP_ENDPOINT = _env("OTLP_ENDPOINT", None, str)
LOKI_URL = _env("LOKI_URL", None, str)  # presence toggles json logs, no direct emission

# extraction tiers, tried in this order
EXTRACTION_TIERS = _env("EXTRACTION_TIERS", ("ocrspace", "gemini", "local"), _csv)
GEMINI_MODEL = _env("GEMINI_MODEL", "gemini-2.0-flash-001", str).strip()
OCR_SPACE_URL = _env("OCR_SPACE_URL", "https://api.ocr.space/parse/image", str)
OCR_SPACE_API_KEY = _env("OCR_SPACE_API_KEY", None, str)
PROVIDER_TIMEOUT_SECS = _env("PROVIDER_TIMEOUT_SECS", 20, int)

# demo mode appends the canned-receipt tier
DEMO_TIER = "fixture"
DEMO_MODE = _env("DEMO_MODE", False, _flag)
DEMO_SEED = _env("DEMO_SEED", 0, int)

KNOWLEDGE_BASE_PATH = _env("KNOWLEDGE_BASE_PATH", None, str)

# ask gemini to label items; keyword rules stay the fallback
AI_CATEGORIES = _env("AI_CATEGORIES", False, _flag)

# constraints
MAX_UPLOAD_MB = _env("MAX_UPLOAD_MB", 10, int)
ALLOWED_MIME_TYPES = {"image/jpeg", "image/png"}


@dataclass(frozen=True)
class Settings:
	service: str = SERVICE_NAME
	log_level: str = LOG_LEVEL
	json_logs: bool = bool(OTLP_ENDPOINT or LOKI_URL)
	otlp_endpoint: str | None = OTLP_ENDPOINT
	extraction_tiers: tuple[str, ...] = EXTRACTION_TIERS
	gemini_model: str = GEMINI_MODEL
	ocr_space_url: str = OCR_SPACE_URL
	ocr_space_api_key: str | None = OCR_SPACE_API_KEY
	provider_timeout_secs: int = PROVIDER_TIMEOUT_SECS
	demo_mode: bool = DEMO_MODE
	demo_seed: int = DEMO_SEED
	knowledge_base_path: str | None = KNOWLEDGE_BASE_PATH
	ai_categories: bool = AI_CATEGORIES
	max_upload_mb: int = MAX_UPLOAD_MB
	allowed_mime_types: set[str] = field(default_factory=lambda: ALLOWED_MIME_TYPES)

	def tier_order(self) -> tuple[str, ...]:
		if not self.demo_mode:
			# canned receipts never answer a real scan
			return tuple(t for t in self.extraction_tiers if t != DEMO_TIER)
		if DEMO_TIER not in self.extraction_tiers:
			return (*self.extraction_tiers, DEMO_TIER)
		return self.extraction_tiers

	def allows_tier(self, name: str) -> bool:
		return name != DEMO_TIER or self.demo_mode


def load_settings() -> Settings:
	return Settings()
