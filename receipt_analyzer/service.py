from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Iterable

from opentelemetry import trace

from .ai import GeminiCategorizer
from .categories import KeywordTable, load_knowledge_base
from .config import Settings
from .errors import (
	ExtractionTransportError,
	NoTextExtracted,
	ProviderUnavailable,
	ScanError,
	UnknownProvider,
)
from .pipeline import Stage, analyze_parsed, parse_text
from .providers import (
	FixtureProvider,
	GeminiProvider,
	LocalProvider,
	OCRSpaceProvider,
	Provider,
)
from .schemas import (
	ErrorBody,
	Extraction,
	ParsedReceipt,
	ProviderState,
	ReceiptAnalysis,
	ReceiptLabels,
	ScanResult,
	TierAttempt,
)

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ProviderRegistry:
	def __init__(self) -> None:
		self._providers: Dict[str, Provider] = {}

	def register(self, provider: Provider) -> None:
		self._providers[provider.name] = provider

	def get(self, name: str) -> Provider:
		if name not in self._providers:
			raise UnknownProvider(f"provider {name!r} not registered", provider=name)
		return self._providers[name]

	def all(self) -> list[Provider]:
		return list(self._providers.values())


def default_providers(settings: Settings) -> list[Provider]:
	providers: list[Provider] = [
		OCRSpaceProvider(
			api_key=settings.ocr_space_api_key,
			url=settings.ocr_space_url,
			timeout_secs=settings.provider_timeout_secs,
		),
		GeminiProvider(model=settings.gemini_model),
		LocalProvider(),
	]
	if settings.demo_mode:
		providers.append(FixtureProvider(seed=settings.demo_seed))
	return providers


def error_body(exc: ScanError) -> ErrorBody:
	details = {"detail": exc.detail, "retryable": exc.retryable}
	if exc.provider:
		details["provider"] = exc.provider
	return ErrorBody(code=exc.code, message=exc.user_message, details=details)


class ReceiptService:
	def __init__(
		self,
		settings: Settings,
		providers: Iterable[Provider] | None = None,
		table: KeywordTable | None = None,
		labeler: GeminiCategorizer | None = None,
	) -> None:
		self.settings = settings
		self.registry = ProviderRegistry()
		for provider in default_providers(settings) if providers is None else providers:
			self.registry.register(provider)
		self.table = table or load_knowledge_base(settings.knowledge_base_path)
		if labeler is None and settings.ai_categories:
			labeler = GeminiCategorizer(model=settings.gemini_model)
		self.labeler = labeler

	def provider_states(self) -> list[ProviderState]:
		out: list[ProviderState] = []
		for p in self.registry.all():
			ok, reason = p.available()
			out.append(
				ProviderState(
					name=p.name,
					kind=p.kind,
					available=ok,
					reason=reason,
					model=p.model_id(),
				)
			)
		return out

	def tiers(self, only: str | None = None) -> list[str]:
		if only is not None:
			if not self.settings.allows_tier(only):
				raise UnknownProvider(f"provider {only!r} needs demo mode", provider=only)
			self.registry.get(only)
			return [only]
		return list(self.settings.tier_order())

	async def _attempt(
		self, name: str, image_bytes: bytes, mime_type: str | None
	) -> tuple[str | None, TierAttempt]:
		t0 = time.perf_counter()
		text: str | None = None
		code: str | None = None
		detail: str | None = None

		with tracer.start_as_current_span("service.extract.tier") as span:
			span.set_attribute("provider.name", name)
			try:
				provider = self.registry.get(name)
				ok, reason = provider.available()
				if not ok:
					raise ProviderUnavailable(reason or "unavailable", provider=name)
				span.set_attribute("provider.model", provider.model_id() or "")
				text = await asyncio.wait_for(
					provider.extract_text(image_bytes, mime_type),
					timeout=self.settings.provider_timeout_secs,
				)
				if not text or not text.strip():
					raise NoTextExtracted("provider returned blank text", provider=name)
			except ScanError as e:
				text, code, detail = None, e.code, e.detail
			except TimeoutError:
				text = None
				code = ExtractionTransportError.code
				detail = f"timed out after {self.settings.provider_timeout_secs}s"
			except Exception as e:
				log.exception("extraction tier crashed", extra={"provider": name})
				text, code, detail = None, ExtractionTransportError.code, str(e)

			elapsed = round(time.perf_counter() - t0, 3)
			span.set_attribute("elapsed_secs", elapsed)
			span.set_attribute("ok", text is not None)

		attempt = TierAttempt(
			provider=name,
			ok=text is not None,
			error_code=code,
			detail=detail,
			elapsed_secs=elapsed,
		)
		return text, attempt

	async def extract(
		self, image_bytes: bytes, mime_type: str | None = None, provider: str | None = None
	) -> Extraction:
		"""Run the extraction tiers in order; the first non-blank text wins."""
		attempts: list[TierAttempt] = []
		log.debug("pipeline stage", extra={"stage": Stage.EXTRACTING.value})

		for name in self.tiers(provider):
			text, attempt = await self._attempt(name, image_bytes, mime_type)
			attempts.append(attempt)
			if text is not None:
				log.info(
					"text extracted",
					extra={"provider": name, "chars": len(text), "tiers_tried": len(attempts)},
				)
				return Extraction(text=text, provider=name, attempts=attempts)
			log.warning(
				"extraction tier failed",
				extra={"provider": name, "code": attempt.error_code, "detail": attempt.detail},
			)

		tried = ", ".join(a.provider for a in attempts) or "none"
		failures = {a.error_code for a in attempts}
		if failures <= {NoTextExtracted.code}:
			error: ScanError = NoTextExtracted(f"no text from tiers: {tried}")
		else:
			error = ExtractionTransportError(f"all tiers failed: {tried}")
		error.attempts = attempts
		raise error

	async def _labels(self, text: str, parsed: ParsedReceipt) -> ReceiptLabels | None:
		if self.labeler is None or not parsed.items:
			return None
		ok, reason = self.labeler.available()
		if not ok:
			log.info("ai categories skipped", extra={"reason": reason})
			return None
		try:
			return await asyncio.wait_for(
				self.labeler.label(text, parsed.merchant, parsed.items),
				timeout=self.settings.provider_timeout_secs,
			)
		except ScanError as e:
			log.warning("ai categories failed, using keywords", extra={"code": e.code, "detail": e.detail})
		except TimeoutError:
			log.warning("ai categories timed out, using keywords")
		except Exception:
			log.exception("ai categories crashed, using keywords")
		return None

	async def analyze_text(self, text: str) -> ReceiptAnalysis:
		parsed = parse_text(text, self.table)
		labels = await self._labels(text, parsed)
		return analyze_parsed(parsed, self.table, labels=labels)

	async def analyze_image(
		self, image_bytes: bytes, mime_type: str | None = None, provider: str | None = None
	) -> tuple[Extraction, ReceiptAnalysis]:
		with tracer.start_as_current_span("service.analyze_image") as span:
			extraction = await self.extract(image_bytes, mime_type, provider)
			span.set_attribute("provider.name", extraction.provider)
			return extraction, await self.analyze_text(extraction.text)

	async def scan(
		self, image_bytes: bytes, mime_type: str | None = None, provider: str | None = None
	) -> ScanResult:
		"""Like :meth:`analyze_image`, but failures come back as a value."""
		try:
			extraction, analysis = await self.analyze_image(image_bytes, mime_type, provider)
		except ScanError as e:
			log.info("scan failed", extra={"code": e.code, "detail": e.detail})
			return ScanResult(error=error_body(e), attempts=e.attempts)
		return ScanResult(
			analysis=analysis, provider=extraction.provider, attempts=extraction.attempts
		)
