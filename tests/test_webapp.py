from __future__ import annotations

import asyncio
import base64

import httpx
from fastapi.testclient import TestClient

from pdf_factory import build_pdf
from pdf_image_extractor import webapp
from pdf_image_extractor.config import ExtractorConfig


def _data_url(data: bytes, mime: str = "application/pdf") -> str:
    return f"data:{mime};base64," + base64.b64encode(data).decode("ascii")


def _client(config: ExtractorConfig | None = None) -> TestClient:
    return TestClient(webapp.create_app(config=config or ExtractorConfig()))


def test_index_serves_upload_page() -> None:
    response = _client().get("/")
    assert response.status_code == 200
    assert "PDF Image Extractor" in response.text
    assert 'accept=".pdf,application/pdf"' in response.text
    assert "/api/extract" in response.text


def test_index_page_text_follows_configured_locale() -> None:
    page = _client(ExtractorConfig(locale="az")).get("/").text
    assert '<html lang="az">' in page
    assert "<title>PDF Şəkil Çıxarıcı</title>" in page
    assert ">Şəkilləri Çıxar</button>" in page
    assert '"ui_download": "Yüklə"' in page
    assert "Extract images" not in page


def test_healthz() -> None:
    assert _client().get("/healthz").json() == {"ok": True, "service": "pdf-image-extractor"}


def test_extract_returns_embedded_results() -> None:
    response = _client().post(
        "/api/extract",
        json={"filename": "report.pdf", "data_url": _data_url(build_pdf([0, 2]))},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["phase"] == "done"
    assert body["filename"] == "report.pdf"
    assert [r["sequence_id"] for r in body["results"]] == [1, 2]
    assert [r["page_number"] for r in body["results"]] == [2, 2]
    assert body["results"][0]["download_filename"] == "Embedded image 1.png"
    assert body["results"][0]["format"] == "PNG"


def test_extract_accepts_raw_base64_with_explicit_content_type() -> None:
    response = _client().post(
        "/api/extract",
        json={
            "content_type": "application/pdf",
            "data_base64": base64.b64encode(build_pdf([0, 0])).decode("ascii"),
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["filename"] == webapp.DEFAULT_FILENAME
    assert [r["origin"] for r in body["results"]] == ["page-render", "page-render"]


def test_extract_rejects_non_pdf_mime_type() -> None:
    response = _client().post("/api/extract", json={"data_url": _data_url(b"\x89PNG", "image/png")})
    assert response.status_code == 415
    body = response.json()
    assert body["phase"] == "failed"
    assert body["error_code"] == "validation_error"
    assert body["message"] == "Please select a PDF file."


def test_extract_rejects_too_large_upload() -> None:
    cfg = ExtractorConfig.model_validate({"upload": {"max_bytes": 16}})
    response = _client(cfg).post("/api/extract", json={"data_url": _data_url(build_pdf([0]))})
    assert response.status_code == 413
    assert response.json()["error_code"] == "upload_too_large"


def test_extract_invalid_pdf_body_is_unprocessable() -> None:
    response = _client().post("/api/extract", json={"data_url": _data_url(b"hello, not a pdf")})
    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "invalid_format"
    assert body["results"] == []


def test_extract_rejects_bad_payloads() -> None:
    client = _client()
    assert client.post("/api/extract", json={}).status_code == 400
    assert client.post("/api/extract", json={"data_url": "not-a-data-url"}).status_code == 400
    assert client.post("/api/extract", json={"data_base64": "@@@"}).status_code == 400


def test_decode_upload_prefers_explicit_content_type() -> None:
    request = webapp.ExtractRequest(content_type="application/pdf", data_url=_data_url(b"%PDF", "application/octet-stream"))
    assert webapp._decode_upload(request) == ("application/pdf", b"%PDF")


def test_extract_route_binds_payload_from_body() -> None:
    app = webapp.create_app(config=ExtractorConfig())
    route = next(r for r in app.routes if getattr(r, "path", "") == "/api/extract")
    assert "payload" in [p.name for p in route.dependant.body_params]
    assert "payload" not in [p.name for p in route.dependant.query_params]


def test_unexpected_failure_returns_error_id(monkeypatch) -> None:
    def _boom(self, filename, content_type, data):
        raise RuntimeError("boom")

    monkeypatch.setattr(webapp.ExtractorSession, "select_file", _boom)
    client = TestClient(webapp.create_app(config=ExtractorConfig()), raise_server_exceptions=False)
    response = client.post("/api/extract", json={"data_url": _data_url(b"%PDF")})
    assert response.status_code == 500
    assert response.json()["detail"].startswith("Internal server error. error_id=exterr-")


def test_main_passes_cli_overrides_to_serve(monkeypatch) -> None:
    monkeypatch.delenv("PDF_IMAGE_EXTRACTOR_CONFIG", raising=False)
    seen: dict[str, object] = {}

    def _fake_serve(config, *, host=None, port=None) -> int:
        seen.update({"config": config, "host": host, "port": port})
        return 0

    monkeypatch.setattr(webapp, "serve", _fake_serve)
    assert webapp.main(["--port", "8123"]) == 0
    assert seen["port"] == 8123
    assert seen["host"] is None
    assert seen["config"] == ExtractorConfig()


def test_concurrent_extract_is_turned_away_while_a_run_is_in_flight(monkeypatch) -> None:
    original_run = webapp.ExtractorSession.run_extraction

    async def scenario() -> tuple[httpx.Response, httpx.Response, httpx.Response]:
        started = asyncio.Event()
        release = asyncio.Event()

        async def _held_run(self, *, password=None):
            started.set()
            await release.wait()
            return await original_run(self, password=password)

        monkeypatch.setattr(webapp.ExtractorSession, "run_extraction", _held_run)
        app = webapp.create_app(config=ExtractorConfig())
        body = {"data_url": _data_url(build_pdf([1]))}
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            first = asyncio.create_task(client.post("/api/extract", json=body))
            await started.wait()
            busy = await client.post("/api/extract", json=body)
            release.set()
            done = await first
            after = await client.post("/api/extract", json=body)
        return busy, done, after

    busy, done, after = asyncio.run(scenario())
    assert busy.status_code == 429
    assert "busy" in busy.json()["detail"]
    assert done.status_code == 200
    assert [r["sequence_id"] for r in done.json()["results"]] == [1]
    assert after.status_code == 200
