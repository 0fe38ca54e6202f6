"""Edge application in front of the backend.

Forwards ``/api/*`` traffic to a single backend origin, relays the
sitemap, and hosts a direct multipart OCR function that calls OCR.space
without going through the backend. Backend failures are always turned
into structured JSON; raw HTML error pages are never relayed.
"""

from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile

from textextract.ocr.ocrspace_client import build_form, parsed_text
from textextract.utils.config import AppConfig, load_config
from textextract.utils.logger import get_logger

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Never forwarded upstream.
DROPPED_REQUEST_HEADERS = frozenset(
    {
        "host",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "content-length",
        "cf-connecting-ip",
        "cf-ray",
    }
)


def forwardable_headers(headers: dict[str, str]) -> dict[str, str]:
    return {
        k: v for k, v in headers.items() if k.lower() not in DROPPED_REQUEST_HEADERS
    }


def looks_like_html_error(status_code: int, body: str) -> bool:
    """True when an error status came back with an HTML page instead of data."""
    if status_code < 400:
        return False
    lowered = body.lower()
    return "<!doctype" in lowered or "<html" in lowered


def _json_error(status_code: int, content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


def create_edge_app(
    config: AppConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the edge proxy application.

    Args:
        config: Application configuration. Loaded from disk if omitted.
        transport: Optional httpx transport for outgoing requests, used by
            tests.

    Returns:
        Configured FastAPI application.
    """
    config = config or load_config()
    backend = config.proxy.backend_origin.rstrip("/")
    application = FastAPI(title="TextExtract Edge", version="1.0.0")

    def client(timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    @application.get("/sitemap.xml")
    async def sitemap() -> Response:
        try:
            async with client(config.proxy.timeout_seconds) as http:
                upstream = await http.get(f"{backend}/sitemap.xml")
        except httpx.HTTPError as exc:
            logger.error("Sitemap fetch failed: %s", exc)
            return Response("Sitemap not found", status_code=404)
        if upstream.is_error:
            return Response("Sitemap not found", status_code=404)
        return Response(
            content=upstream.text,
            media_type="application/xml",
            headers={"Cache-Control": "public, max-age=3600"},
        )

    @application.get("/api/extract")
    async def extract_info() -> dict[str, Any]:
        return {"ok": True, "message": "Use POST with multipart/form-data"}

    @application.post("/api/extract")
    async def extract(request: Request) -> JSONResponse:
        """Send an uploaded ``file`` field straight to OCR.space."""
        try:
            form = await request.form()
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                return _json_error(
                    400,
                    {
                        "error": True,
                        "message": "No file provided (expect form-data field 'file')",
                    },
                )

            if not config.ocr.api_key:
                return _json_error(
                    500,
                    {"error": True, "message": "OCRSPACE_API_KEY missing at runtime"},
                )

            content = await upload.read()
            files = {
                "file": (
                    upload.filename or "upload.png",
                    content,
                    upload.content_type or "application/octet-stream",
                )
            }
            async with client(config.ocr.timeout_seconds) as http:
                upstream = await http.post(
                    config.ocr.api_url,
                    data=build_form(config.ocr, overlay=False),
                    files=files,
                    headers={"apikey": config.ocr.api_key},
                )

            content_type = upstream.headers.get("content-type", "")
            if "application/json" in content_type:
                body: Any = upstream.json()
            else:
                body = upstream.text

            if upstream.is_error:
                return _json_error(
                    502,
                    {
                        "error": True,
                        "status": upstream.status_code,
                        "upstreamContentType": content_type,
                        "raw": body,
                    },
                )

            text = parsed_text(body) if isinstance(body, dict) else ""
            return JSONResponse({"ok": True, "text": text, "raw": body})
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Edge OCR failed: %s", exc)
            return _json_error(
                500, {"error": True, "message": str(exc) or "Unhandled error"}
            )

    @application.options("/api/{path:path}")
    async def preflight(path: str) -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    @application.api_route(
        "/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]
    )
    async def proxy(path: str, request: Request) -> Response:
        """Forward a request to the backend and relay its response."""
        target = f"{backend}{request.url.path}"
        if request.url.query:
            target = f"{target}?{request.url.query}"
        logger.info("Proxying %s %s", request.method, target)

        body = None
        if request.method not in ("GET", "HEAD"):
            body = await request.body()

        try:
            async with client(config.proxy.timeout_seconds) as http:
                upstream = await http.request(
                    request.method,
                    target,
                    headers=forwardable_headers(dict(request.headers)),
                    content=body,
                )
        except httpx.TimeoutException:
            logger.error("Backend timed out after %ss", config.proxy.timeout_seconds)
            return _json_error(
                504,
                {
                    "error": "Request timeout",
                    "message": "Backend took too long to respond. Please try again.",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Proxy error: %s", exc)
            return _json_error(
                500,
                {
                    "error": "Proxy connection failed",
                    "message": str(exc),
                    "details": "Could not connect to backend",
                },
            )

        text = upstream.text
        if looks_like_html_error(upstream.status_code, text):
            logger.error("Backend returned HTML error page: %s", text[:200])
            return _json_error(
                503,
                {
                    "error": "Backend service unavailable",
                    "message": "Backend is not responding correctly. Try again.",
                    "status": upstream.status_code,
                },
            )

        headers = {
            **CORS_HEADERS,
            "Content-Type": upstream.headers.get("content-type", "application/json"),
            "Cache-Control": "no-store",
        }
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers=headers,
        )

    return application
