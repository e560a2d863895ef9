from __future__ import annotations

import argparse
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import SERVICE_NAME, Settings, load_settings
from .logging import configure_logging
from .service import ReceiptService
from .transport.rest import build_router
from .version import get_version_info

log = logging.getLogger(__name__)


def setup_tracing(app: FastAPI, settings: Settings) -> None:
	if not settings.otlp_endpoint:
		log.info("tracing disabled (no OTLP_ENDPOINT)")
		return

	resource = Resource.create({"service.name": SERVICE_NAME})
	provider = TracerProvider(resource=resource)
	exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True)
	provider.add_span_processor(BatchSpanProcessor(exporter))
	trace.set_tracer_provider(provider)
	FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
	log.info("tracing enabled", extra={"otlp_endpoint": settings.otlp_endpoint})


def create_app(
	settings: Settings | None = None, service: ReceiptService | None = None
) -> FastAPI:
	settings = settings or load_settings()
	svc = service or ReceiptService(settings)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		log.info("starting service", extra=get_version_info())
		for state in svc.provider_states():
			log.info(
				"provider %s %s",
				state.name,
				"available" if state.available else "unavailable",
				extra={"reason": state.reason, "model": state.model},
			)
		log.info("extraction tiers", extra={"tiers": list(settings.tier_order())})
		if svc.labeler is not None:
			ok, reason = svc.labeler.available()
			log.info("ai categories %s", "enabled" if ok else "unavailable", extra={"reason": reason})
		yield
		log.info("service stopped")

	app = FastAPI(
		title=SERVICE_NAME,
		version=get_version_info()["version"],
		lifespan=lifespan,
	)
	app.include_router(build_router(settings, svc))
	setup_tracing(app, settings)
	return app


def main() -> None:
	parser = argparse.ArgumentParser(
		prog=SERVICE_NAME,
		description="Receipt analysis HTTP service"
	)
	parser.add_argument(
		"--host",
		default="0.0.0.0",
		help="bind address (default: 0.0.0.0)"
	)
	parser.add_argument(
		"--port",
		type=int,
		default=8000,
		help="HTTP port (default: 8000)"
	)
	args = parser.parse_args()

	settings = load_settings()
	configure_logging(
		service=SERVICE_NAME, json_mode=settings.json_logs, level=settings.log_level
	)

	try:
		uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
	except Exception as e:
		log.error("Server failed to start", extra={"error": str(e)})
		sys.exit(1)


if __name__ == "__main__":
	main()
