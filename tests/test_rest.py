from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import STARBUCKS, FakeProvider
from receipt_analyzer.app import create_app
from receipt_analyzer.config import Settings
from receipt_analyzer.errors import ExtractionTransportError
from receipt_analyzer.providers import FixtureProvider
from receipt_analyzer.service import ReceiptService

PNG = b"\x89PNG\r\n\x1a\n fake"


def client_for(*providers) -> TestClient:
	settings = Settings(extraction_tiers=tuple(p.name for p in providers), otlp_endpoint=None)
	svc = ReceiptService(settings, providers=providers)
	return TestClient(create_app(settings, svc))


@pytest.fixture
def client():
	with client_for(FakeProvider("ocr", text=STARBUCKS)) as c:
		yield c


def test_health(client) -> None:
	assert client.get("/v1/health").json() == {"status": "ok"}


def test_categories(client) -> None:
	body = client.get("/v1/categories").json()

	assert [c["name"] for c in body] == [
		"Food & Dining",
		"Transportation",
		"Groceries",
		"Healthcare",
		"Entertainment",
		"Bills & Utilities",
		"Shopping",
		"Other",
	]
	assert body[0]["id"] == "food-dining"


def test_providers(client) -> None:
	body = client.get("/v1/providers").json()
	assert body == [
		{"name": "ocr", "kind": "fake", "available": True, "reason": None, "model": None}
	]


def test_scan_image(client) -> None:
	resp = client.post(
		"/v1/receipts/scan", files={"file": ("receipt.png", PNG, "image/png")}
	)

	assert resp.status_code == 200
	body = resp.json()
	assert body["provider"] == "ocr"
	assert body["analysis"]["merchant"] == "STARBUCKS"
	assert body["analysis"]["suggestedCategory"] == "Food & Dining"
	assert body["transaction"]["amount"] == 5.58
	assert body["transaction"]["transactionDate"] == body["analysis"]["date"]


def test_scan_rejects_unsupported_type(client) -> None:
	resp = client.post(
		"/v1/receipts/scan", files={"file": ("receipt.txt", b"hello", "text/plain")}
	)

	assert resp.status_code == 415
	assert resp.json()["error"]["code"] == "UNSUPPORTED_MEDIA_TYPE"


def test_scan_unknown_provider(client) -> None:
	resp = client.post(
		"/v1/receipts/scan?provider=nope",
		files={"file": ("receipt.png", PNG, "image/png")},
	)

	assert resp.status_code == 404
	assert resp.json()["error"]["code"] == "UNKNOWN_PROVIDER"


def test_scan_without_text_asks_for_clearer_photo() -> None:
	with client_for(FakeProvider("ocr", text="")) as c:
		resp = c.post("/v1/receipts/scan", files={"file": ("r.jpg", b"jpg", "image/jpeg")})

	assert resp.status_code == 422
	error = resp.json()["error"]
	assert error["code"] == "NO_TEXT_EXTRACTED"
	assert "clearer, well-lit receipt" in error["message"]
	assert error["details"]["attempts"][0]["provider"] == "ocr"


def test_scan_transport_failure() -> None:
	down = FakeProvider("ocr", error=ExtractionTransportError("503 from backend"))
	with client_for(down) as c:
		resp = c.post("/v1/receipts/scan", files={"file": ("r.jpg", b"jpg", "image/jpeg")})

	assert resp.status_code == 502
	assert resp.json()["error"]["code"] == "EXTRACTION_TRANSPORT_ERROR"


def test_analyze_text(client) -> None:
	resp = client.post("/v1/receipts/analyze", json={"text": "Notebook $10.00\nPens $15.50"})

	assert resp.status_code == 200
	analysis = resp.json()["analysis"]
	assert analysis["total"] == 25.5
	assert [i["name"] for i in analysis["items"]] == ["Notebook", "Pens"]
	assert all(i["category"] == "Shopping" or i["category"] == "Other" for i in analysis["items"])


def test_analyze_empty_text(client) -> None:
	resp = client.post("/v1/receipts/analyze", json={"text": ""})

	assert resp.status_code == 422
	assert resp.json()["error"]["code"] == "NO_TEXT_EXTRACTED"


def test_fixture_provider_is_not_served_outside_demo_mode() -> None:
	settings = Settings(extraction_tiers=("ocr",), otlp_endpoint=None, demo_mode=False)
	svc = ReceiptService(settings, providers=[FakeProvider("ocr", text=""), FixtureProvider()])
	with TestClient(create_app(settings, svc)) as c:
		resp = c.post(
			"/v1/receipts/scan?provider=fixture",
			files={"file": ("receipt.png", PNG, "image/png")},
		)

	assert resp.status_code == 404
	assert resp.json()["error"]["code"] == "UNKNOWN_PROVIDER"


def test_analyze_ignores_runaway_amounts(client) -> None:
	resp = client.post("/v1/receipts/analyze", json={"text": "Pens $15.50\nTOTAL " + "9" * 400})

	assert resp.status_code == 200
	assert resp.json()["analysis"]["total"] == 15.5


def test_analyze_reports_review_issues(client) -> None:
	resp = client.post("/v1/receipts/analyze", json={"text": STARBUCKS})

	assert resp.json()["analysis"]["issues"] == ["Date could not be read from the receipt"]
	assert resp.json()["analysis"]["categorizedBy"] == "keywords"


def test_analyze_unexpected_failure_is_json(monkeypatch) -> None:
	async def broken(text):
		raise RuntimeError("kaboom")

	settings = Settings(extraction_tiers=(), otlp_endpoint=None)
	svc = ReceiptService(settings, providers=[])
	monkeypatch.setattr(svc, "analyze_text", broken)
	with TestClient(create_app(settings, svc)) as c:
		resp = c.post("/v1/receipts/analyze", json={"text": "Pens $1.00"})

	assert resp.status_code == 500
	assert resp.json()["error"]["code"] == "INTERNAL"
