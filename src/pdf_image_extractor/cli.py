from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, Optional

from .config import ExtractorConfig, load_extractor_config
from .messages import render_message
from .session import ExtractorSession, SessionPhase


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pdf-image-extractor", description="Extract images from PDF files.")
    parser.add_argument("--config", default=None, help="Extractor YAML config path.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web UI.")
    serve.add_argument("--host", default=None, help="Bind host (default: server.host from config).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: server.port from config).")

    extract = sub.add_parser("extract", help="Extract images from a local PDF into a directory.")
    extract.add_argument("pdf", help="Path to the PDF file.")
    extract.add_argument("--out-dir", default=None, help="Output directory (default: data/extracted/<pdf stem>).")
    extract.add_argument("--password", default=None, help="Password for encrypted PDFs.")
    extract.add_argument(
        "--content-type",
        default=None,
        help="Declared MIME type (default: guessed from the file extension).",
    )
    return parser.parse_args(argv)


def _result_manifest(snapshot: dict[str, Any]) -> dict[str, Any]:
    return {
        "filename": snapshot["filename"],
        "phase": snapshot["phase"],
        "message": snapshot["message"],
        "error_code": snapshot["error_code"],
        "skipped_pages": snapshot["skipped_pages"],
        "results": [
            {key: value for key, value in item.items() if key != "encoded_image"}
            for item in snapshot["results"]
        ],
    }


def run_extract(
    config: ExtractorConfig,
    pdf_path: Path,
    out_dir: Optional[Path],
    password: Optional[str],
    content_type: Optional[str] = None,
) -> int:
    if not pdf_path.is_file():
        print(f"PDF not found: {pdf_path}", file=sys.stderr)
        return 2

    session = ExtractorSession(config)
    content_type = content_type or mimetypes.guess_type(pdf_path.name)[0] or "application/octet-stream"
    session.select_file(pdf_path.name, content_type, pdf_path.read_bytes())
    if session.phase == SessionPhase.file_selected:
        asyncio.run(session.run_extraction(password=password))

    if session.phase == SessionPhase.failed:
        print(session.state.message, file=sys.stderr)
        return 2

    output_dir = out_dir or Path("data/extracted") / pdf_path.stem
    output_dir.mkdir(parents=True, exist_ok=True)
    for result in session.state.results:
        target = output_dir / result.download_filename
        target.write_bytes(result.image_bytes())
        print(f"  wrote {target}")

    snapshot = session.snapshot()
    manifest_path = output_dir / "results.json"
    manifest_path.write_text(json.dumps(_result_manifest(snapshot), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")

    if not session.state.results:
        print(session.state.message)
        return 1
    print(render_message("extracted", config.locale, count=len(session.state.results)))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    config = load_extractor_config(args.config)
    logging.basicConfig(
        level=config.server.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.command == "serve":
        from .webapp import serve

        return serve(config, host=args.host, port=args.port)
    out_dir = Path(args.out_dir).expanduser() if args.out_dir else None
    return run_extract(config, Path(args.pdf).expanduser(), out_dir, args.password, args.content_type)


if __name__ == "__main__":
    raise SystemExit(main())
