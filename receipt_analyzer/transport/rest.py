from __future__ import annotations

import logging

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..assembler import to_transaction_draft
from ..categories import CATEGORY_INFO
from ..config import Settings
from ..errors import NoTextExtracted, ScanError, UnknownProvider
from ..schemas import (
	AnalyzeTextRequest,
	ErrorBody,
	ErrorResponse,
	ProviderState,
	ReceiptAnalysis,
	ScanResult,
)
from ..service import ReceiptService, error_body

log = logging.getLogger(__name__)

_STATUS_BY_CODE = {
	NoTextExtracted.code: 422,
	UnknownProvider.code: 404,
}


class Health(BaseModel):
	status: str = "ok"


class CategoryOut(BaseModel):
	id: str
	name: str
	icon: str
	color: str
	is_default: bool


def http_error(
	code: str, message: str, status: int, details: dict | None = None
) -> JSONResponse:
	return JSONResponse(
		status_code=status,
		content=ErrorResponse(
			error=ErrorBody(code=code, message=message, details=details or {})
		).model_dump(),
	)


def result_error(result: ScanResult) -> JSONResponse:
	details = dict(result.error.details)
	if result.attempts:
		details["attempts"] = [a.model_dump() for a in result.attempts]
	return http_error(
		result.error.code,
		result.error.message,
		_STATUS_BY_CODE.get(result.error.code, 502),
		details,
	)


def scan_error(exc: ScanError) -> JSONResponse:
	return result_error(ScanResult(error=error_body(exc), attempts=exc.attempts))


def analysis_response(analysis: ReceiptAnalysis, provider: str | None = None) -> JSONResponse:
	content = {
		"analysis": analysis.model_dump(mode="json", by_alias=True),
		"transaction": to_transaction_draft(analysis).model_dump(mode="json", by_alias=True),
	}
	if provider:
		content["provider"] = provider
	return JSONResponse(content)


def build_router(settings: Settings, svc: ReceiptService) -> APIRouter:
	router = APIRouter(prefix="/v1")

	@router.get("/health", response_model=Health)
	async def health() -> Health:
		return Health()

	@router.get("/providers", response_model=list[ProviderState])
	async def providers() -> list[ProviderState]:
		return svc.provider_states()

	@router.get("/categories", response_model=list[CategoryOut])
	async def categories() -> list[CategoryOut]:
		return [
			CategoryOut(
				id=c.id, name=c.name.value, icon=c.icon, color=c.color, is_default=c.is_default
			)
			for c in CATEGORY_INFO
		]

	@router.post("/receipts/scan")
	async def scan(
		file: UploadFile = File(...),
		provider: str | None = Query(default=None, description="try only this tier"),
	) -> JSONResponse:
		if file.content_type not in settings.allowed_mime_types:
			return http_error(
				"UNSUPPORTED_MEDIA_TYPE", "only JPEG or PNG are supported", 415
			)

		blob = await file.read()
		if not blob:
			return http_error("VALIDATION_ERROR", "file is empty", 400)
		if len(blob) > settings.max_upload_mb * 1024 * 1024:
			return http_error(
				"PAYLOAD_TOO_LARGE", f"file exceeds {settings.max_upload_mb} MB", 413
			)

		try:
			result = await svc.scan(blob, file.content_type, provider)
		except Exception as e:
			log.exception("scan failed")
			return http_error(
				"INTERNAL", "failed to analyze receipt", 500, {"reason": str(e)}
			)
		if not result.ok:
			return result_error(result)
		return analysis_response(result.analysis, result.provider)

	@router.post("/receipts/analyze")
	async def analyze(body: AnalyzeTextRequest) -> JSONResponse:
		try:
			analysis = await svc.analyze_text(body.text)
		except ScanError as e:
			return scan_error(e)
		except Exception as e:
			log.exception("analyze failed")
			return http_error(
				"INTERNAL", "failed to analyze receipt", 500, {"reason": str(e)}
			)
		return analysis_response(analysis)

	return router
