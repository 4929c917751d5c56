from __future__ import annotations

import argparse
import base64
import binascii
import html
import json
import logging
import secrets
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .config import ExtractorConfig, load_extractor_config
from .errors import UploadTooLargeError, ValidationError
from .messages import ui_strings
from .session import ExtractorSession, SessionPhase

logger = logging.getLogger("pdf_image_extractor.webapp")

DEFAULT_FILENAME = "document.pdf"


class ExtractRequest(BaseModel):
    filename: str = DEFAULT_FILENAME
    content_type: Optional[str] = None
    data_url: Optional[str] = None
    data_base64: Optional[str] = None
    password: Optional[str] = None


def _decode_base64_payload(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid base64 file payload.") from exc


def _split_data_url(raw_data_url: str) -> tuple[str, bytes]:
    if not raw_data_url.startswith("data:") or ";base64," not in raw_data_url:
        raise ValueError("data_url must be a base64 RFC2397 data URI.")
    header, payload = raw_data_url.split(",", 1)
    mime_type = header[5:].split(";", 1)[0].strip()
    return mime_type, _decode_base64_payload(payload)


def _decode_upload(request: ExtractRequest) -> tuple[str, bytes]:
    """Return (declared MIME type, file bytes). An explicit content_type wins over the data URL header."""
    if request.data_url:
        mime_type, data = _split_data_url(request.data_url.strip())
    elif request.data_base64 is not None:
        mime_type, data = "", _decode_base64_payload(request.data_base64.strip())
    else:
        raise ValueError("Request must include data_url or data_base64.")
    explicit = str(request.content_type or "").strip()
    return explicit or mime_type, data


def _status_code_for(session: ExtractorSession) -> int:
    if session.phase == SessionPhase.done:
        return 200
    if session.state.error_code == UploadTooLargeError.code:
        return 413
    if session.state.error_code == ValidationError.code:
        return 415
    return 422


def _page_html(*, locale: str, accepted_mime_types: list[str]) -> str:
    accept_attr = html.escape(",".join([".pdf", *accepted_mime_types]))
    text = ui_strings(locale)
    # "</" would end the inline script early.
    ui_json = json.dumps(text, ensure_ascii=False).replace("</", "<\\/")
    title, intro = html.escape(text["ui_title"]), html.escape(text["ui_intro"])
    password_hint, extract_label = html.escape(text["ui_password"]), html.escape(text["ui_extract"])
    return f"""<!doctype html>
<html lang="{html.escape(locale)}">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{title}</title>
  <style>
    :root {{ --bg:#eef2ff; --panel:#ffffff; --ink:#1f2937; --accent:#4f46e5; --ok:#16a34a; --copy:#2563eb; --line:#c7d2fe; }}
    * {{ box-sizing: border-box; }}
    body {{ margin:0; font-family: ui-sans-serif, system-ui, -apple-system, sans-serif; background:linear-gradient(135deg,#eff6ff,#e0e7ff); color:var(--ink); }}
    .wrap {{ max-width: 960px; margin: 24px auto; padding: 0 16px; }}
    .card {{ background: var(--panel); border-radius: 16px; padding: 24px; box-shadow: 0 8px 28px rgba(21,29,41,0.08); }}
    .drop {{ border:2px dashed var(--line); border-radius: 12px; padding: 24px; text-align:center; }}
    .file {{ margin-top: 12px; color:#3730a3; font-size: 14px; }}
    .msg {{ margin: 16px 0; padding: 12px; border-radius: 10px; background:#fef2f2; border:1px solid #fecaca; color:#b91c1c; display:none; }}
    .msg.info {{ background:#eff6ff; border-color:#bfdbfe; color:#1d4ed8; }}
    button {{ border:0; border-radius: 10px; padding:10px 16px; font: inherit; color:white; cursor:pointer; }}
    .run {{ background: var(--accent); font-weight:700; display:block; margin: 16px auto; }}
    button:disabled {{ opacity:0.6; cursor:not-allowed; }}
    input[type=password] {{ border:1px solid var(--line); border-radius: 10px; padding:8px; margin-top: 12px; }}
    .grid {{ display:grid; grid-template-columns: 1fr 1fr; gap:16px; }}
    .result {{ background:#f9fafb; border:1px solid #e5e7eb; border-radius: 12px; padding: 16px; }}
    .result img {{ width:100%; height:128px; object-fit:cover; background:#f0f0f0; border-radius: 6px; }}
    .meta {{ display:flex; justify-content:space-between; font-size: 13px; color:#4b5563; margin: 8px 0; }}
    .payload {{ font-family: ui-monospace, monospace; font-size: 11px; word-break: break-all; background:white; padding:6px; border-radius:6px; max-height:80px; overflow-y:auto; }}
    .actions {{ display:flex; gap:10px; margin-top: 10px; }}
    .actions button {{ flex:1; }}
    .download {{ background: var(--ok); }}
    .copy {{ background: var(--copy); }}
    @media (max-width: 760px) {{ .grid {{ grid-template-columns: 1fr; }} }}
  </style>
</head>
<body>
  <div class="wrap">
    <div class="card">
      <h1>{title}</h1>
      <p>{intro}</p>
      <div class="drop">
        <input id="pdfInput" type="file" accept="{accept_attr}" />
        <div id="fileInfo" class="file"></div>
        <input id="password" type="password" placeholder="{password_hint}" />
      </div>
      <div id="message" class="msg"></div>
      <button id="runBtn" class="run" disabled>{extract_label}</button>
      <h2 id="resultsTitle" style="display:none;"></h2>
      <div id="results" class="grid"></div>
    </div>
  </div>
  <script>
    const UI = {ui_json};
    let selectedFile = null;
    const runBtn = document.getElementById("runBtn");
    const messageEl = document.getElementById("message");
    const resultsEl = document.getElementById("results");
    const titleEl = document.getElementById("resultsTitle");

    const showMessage = (text, isInfo) => {{
      messageEl.textContent = text || "";
      messageEl.className = isInfo ? "msg info" : "msg";
      messageEl.style.display = text ? "block" : "none";
    }};
    const clearResults = () => {{
      resultsEl.innerHTML = "";
      titleEl.style.display = "none";
    }};
    const readAsDataUrl = (file) => new Promise((resolve, reject) => {{
      const reader = new FileReader();
      reader.onload = () => resolve(String(reader.result || ""));
      reader.onerror = () => reject(reader.error);
      reader.readAsDataURL(file);
    }});

    const renderResult = (item) => {{
      const card = document.createElement("div");
      card.className = "result";
      const origin = item.origin === "embedded" ? UI.ui_origin_embedded : UI.ui_origin_page_render;
      card.innerHTML = `
        <div class="meta"><strong></strong><span class="page"></span></div>
        <img alt="" />
        <div class="meta"><span>Format: ${{item.format}}</span><span>${{item.width}}&times;${{item.height}}</span></div>
        <div class="meta"><span>${{origin}}</span></div>
        <div class="payload"></div>
        <div class="actions">
          <button class="download"></button>
          <button class="copy"></button>
        </div>`;
      card.querySelector("strong").textContent = item.label;
      card.querySelector(".page").textContent = UI.ui_page.replace("{{page}}", item.page_number);
      card.querySelector(".download").textContent = UI.ui_download;
      card.querySelector(".copy").textContent = UI.ui_copy;
      card.querySelector("img").src = item.encoded_image;
      card.querySelector("img").alt = item.label;
      card.querySelector(".payload").textContent = item.encoded_image.substring(0, 100) + "...";
      card.querySelector(".download").addEventListener("click", () => {{
        const link = document.createElement("a");
        link.href = item.encoded_image;
        link.download = item.download_filename;
        document.body.appendChild(link);
        link.click();
        document.body.removeChild(link);
      }});
      card.querySelector(".copy").addEventListener("click", async () => {{
        await navigator.clipboard.writeText(item.encoded_image);
        showMessage(UI.ui_copied, true);
      }});
      return card;
    }};

    document.getElementById("pdfInput").addEventListener("change", (e) => {{
      const file = e.target.files && e.target.files[0];
      clearResults();
      showMessage("");
      selectedFile = file || null;
      document.getElementById("fileInfo").textContent = file
        ? `${{file.name}} (${{(file.size / 1024 / 1024).toFixed(2)}} MB)`
        : "";
      runBtn.disabled = !selectedFile;
    }});

    runBtn.addEventListener("click", async () => {{
      if (!selectedFile) return;
      runBtn.disabled = true;
      runBtn.textContent = UI.ui_extracting;
      showMessage("");
      clearResults();
      try {{
        const payload = {{
          filename: selectedFile.name,
          content_type: selectedFile.type,
          data_url: await readAsDataUrl(selectedFile),
          password: document.getElementById("password").value || null
        }};
        const resp = await fetch("/api/extract", {{
          method: "POST",
          headers: {{ "Content-Type": "application/json" }},
          body: JSON.stringify(payload)
        }});
        const body = await resp.json();
        const results = body.results || [];
        if (results.length > 0) {{
          titleEl.textContent = UI.ui_results.replace("{{count}}", results.length);
          titleEl.style.display = "block";
          for (const item of results) resultsEl.appendChild(renderResult(item));
        }}
        if (body.message) showMessage(body.message, body.phase === "done");
        else if (body.detail) showMessage(String(body.detail), false);
      }} catch (err) {{
        showMessage(String(err), false);
      }} finally {{
        runBtn.disabled = !selectedFile;
        runBtn.textContent = UI.ui_extract;
      }}
    }});
  </script>
</body>
</html>"""


def create_app(*, config: Optional[ExtractorConfig] = None) -> Any:
    try:
        import asyncio
        from fastapi import FastAPI, HTTPException
        from fastapi.responses import HTMLResponse, JSONResponse
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("Web UI requires fastapi and uvicorn. Install with `pip install fastapi uvicorn`.") from exc

    cfg = config or load_extractor_config()
    semaphore = asyncio.Semaphore(cfg.server.max_concurrency)
    app = FastAPI(title="PDF Image Extractor", version="1.0.0")

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        return {"ok": True, "service": "pdf-image-extractor"}

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return _page_html(locale=cfg.locale, accepted_mime_types=cfg.upload.accepted_mime_types)

    @app.post("/api/extract")
    async def extract(payload: ExtractRequest) -> Any:
        try:
            content_type, data = _decode_upload(payload)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        # PDFium is not thread-safe: runs are serialized and extra callers are turned away.
        try:
            await asyncio.wait_for(semaphore.acquire(), timeout=0.001)
        except Exception:
            raise HTTPException(status_code=429, detail="Extractor is busy. Retry shortly.")
        try:
            session = ExtractorSession(cfg)
            session.select_file(payload.filename, content_type, data)
            if session.phase == SessionPhase.file_selected:
                await session.run_extraction(password=payload.password)
        except Exception:
            err_id = f"exterr-{secrets.token_hex(6)}"
            logger.exception("extract failure id=%s filename=%s", err_id, payload.filename)
            raise HTTPException(status_code=500, detail=f"Internal server error. error_id={err_id}")
        finally:
            semaphore.release()

        snapshot = session.snapshot()
        logger.info(
            "extract filename=%s phase=%s results=%s skipped_pages=%s",
            payload.filename,
            snapshot["phase"],
            len(snapshot["results"]),
            snapshot["skipped_pages"],
        )
        return JSONResponse(snapshot, status_code=_status_code_for(session))

    return app


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PDF Image Extractor web UI.")
    parser.add_argument("--config", default=None, help="Extractor YAML config path.")
    parser.add_argument("--host", default=None, help="Bind host (default: server.host from config).")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: server.port from config).")
    return parser.parse_args(argv)


def serve(config: ExtractorConfig, *, host: Optional[str] = None, port: Optional[int] = None) -> int:
    try:
        import uvicorn
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("Web UI requires uvicorn. Install with `pip install uvicorn`.") from exc

    app = create_app(config=config)
    uvicorn.run(
        app,
        host=str(host or config.server.host),
        port=int(port or config.server.port),
        log_level=config.server.log_level,
    )
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    return serve(load_extractor_config(args.config), host=args.host, port=args.port)


if __name__ == "__main__":
    raise SystemExit(main())
