"""
Report PDF Service - FastAPI application for report PDF generation.

Accepts a Markdown or HTML report body plus title/logo/filename, composes a
print-styled HTML document and renders it to PDF with Playwright/Chromium.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from io import BytesIO
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .composer import compose_document, resolve_body_html
from .config import DEFAULT_FILENAME, get_settings, validate_config_on_startup
from .cors import AllowListCORSMiddleware
from .environment import prepare_runtime_environment
from .models import ErrorResponse, HealthResponse, RenderPdfRequest
from .observability import LoggingStageObserver, RecordingStageObserver
from .pipeline import RenderError, RenderOptions, RenderPipeline, RenderTimeoutError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

RENDER_PATH = "/api/render-pdf"

app = FastAPI(
    title="Report PDF Service",
    version="0.1.0",
    description="Markdown/HTML report to PDF rendering using Playwright/Chromium"
)
app.add_middleware(AllowListCORSMiddleware, allowed_origins=settings.cors_origins_list)

# Admission control lives here, not in the pipeline
_render_semaphore = asyncio.Semaphore(settings.max_concurrent_renders)
_active_renders = 0

# Browser readiness state
_browser_ready = False
_browser_error: Optional[str] = None


class RequestRejected(Exception):
    """Input problem reported to the caller with a specific status code."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@app.exception_handler(RequestRejected)
async def _request_rejected_handler(request: Request, exc: RequestRejected):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": f"Invalid request body: {message}"})


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Routing errors (404, 405 for unlisted methods) share the {"error": ...} shape
    message = str(exc.detail)
    if exc.status_code == 405 and request.url.path == RENDER_PATH:
        message = "Use POST"
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


# ============================================================================
# Startup Event - Prepare environment and validate Chromium
# ============================================================================

@app.on_event("startup")
async def prepare_on_startup():
    """
    Validate configuration, prepare the library path and smoke-test Chromium.

    The service won't report as healthy if a test PDF can't be rendered.
    """
    global _browser_ready, _browser_error

    logger.info("Report PDF Service starting...")
    validate_config_on_startup()
    prepare_runtime_environment(settings)

    if not settings.validate_browser_on_startup:
        _browser_ready = True
        logger.info("Browser validation skipped (VALIDATE_BROWSER_ON_STARTUP=false)")
        return

    recorder = RecordingStageObserver()
    pipeline = RenderPipeline(RenderOptions.from_settings(settings), observer=recorder)
    try:
        test_pdf = await pipeline.render("<html><body><h1>Test</h1></body></html>")
    except RenderError as e:
        _browser_error = str(e)
        logger.error(f"Browser validation failed at stage '{e.stage}': {_browser_error}")
        logger.error("PDF generation will not work until this is resolved.")
        return

    if test_pdf:
        _browser_ready = True
        logger.info(f"Browser validation successful - generated {len(test_pdf)} byte test PDF")
    else:
        _browser_error = "Test PDF generation returned empty result"
        logger.error(f"Browser validation failed: {_browser_error}")


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint for container orchestration.

    Returns HTTP 503 if the startup browser check failed.
    """
    health = HealthResponse(
        status="healthy" if _browser_ready else "unhealthy",
        timestamp=datetime.utcnow(),
        active_renders=_active_renders,
        max_concurrent=settings.max_concurrent_renders,
        wait_strategy=settings.wait_strategy,
        browser_ready=_browser_ready,
        browser_error=_browser_error,
    )
    if not _browser_ready:
        return JSONResponse(status_code=503, content=health.model_dump(mode="json"))
    return health


# ============================================================================
# PDF Generation Endpoint
# ============================================================================

def attachment_header(filename: str) -> str:
    """
    Build a Content-Disposition value for a download.

    Quotes and line breaks are dropped; non-ASCII names get an RFC 5987
    filename* parameter next to an ASCII fallback.
    """
    cleaned = "".join(ch for ch in filename if ch not in '"\\\r\n')
    try:
        cleaned.encode("ascii")
    except UnicodeEncodeError:
        fallback = cleaned.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(cleaned)}"
    return f'attachment; filename="{cleaned or DEFAULT_FILENAME}"'


def _validate_content(request: RenderPdfRequest) -> tuple:
    """Check content presence/size and return the (html, markdown) pair."""
    html = request.html or ""
    markdown = request.markdown or ""

    if not html and not markdown:
        raise RequestRejected(400, "Missing 'html' or 'markdown' in request body")

    # Limits apply to the representation actually used
    if html:
        if len(html) > settings.max_html_chars:
            raise RequestRejected(413, f"HTML exceeds {settings.max_html_chars} characters")
    elif len(markdown) > settings.max_markdown_chars:
        raise RequestRejected(413, f"Markdown exceeds {settings.max_markdown_chars} characters")

    return html, markdown


@app.options(RENDER_PATH, status_code=204)
async def render_pdf_preflight():
    """Cross-origin preflight; CORS headers are added by middleware."""
    return Response(status_code=204)


@app.api_route(RENDER_PATH, methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def render_pdf_wrong_method():
    raise RequestRejected(405, "Use POST")


@app.post(
    RENDER_PATH,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def render_pdf(request: RenderPdfRequest):
    """
    Render a Markdown or HTML report to PDF.

    Args:
        request: Report title, logo URL, filename and html/markdown body

    Returns:
        StreamingResponse with PDF binary data

    Raises:
        RequestRejected: 400 for missing content, 413 for oversized content,
            503 when all render slots are busy
    """
    global _active_renders

    html, markdown = _validate_content(request)
    filename = request.filename or settings.default_filename

    if _render_semaphore.locked():
        logger.warning("PDF service overloaded, rejecting request")
        raise RequestRejected(503, "Service overloaded. Too many concurrent PDF operations.")

    request_id = uuid.uuid4().hex
    async with _render_semaphore:
        _active_renders += 1
        try:
            logger.info(f"[{request_id}] Starting PDF render (filename={filename})")
            body_html = resolve_body_html(html, markdown)
            full_html = compose_document(request.title or settings.default_title, request.logoUrl or "", body_html)
            pipeline = RenderPipeline(
                RenderOptions.from_settings(settings),
                observer=LoggingStageObserver(request_id, logger),
            )
            pdf_bytes = await pipeline.render(full_html)
        except RenderTimeoutError as e:
            logger.error(f"[{request_id}] PDF rendering timed out at stage '{e.stage}'")
            return _failure("PDF rendering timed out", request_id)
        except RenderError as e:
            logger.error(f"[{request_id}] PDF rendering failed at stage '{e.stage}': {e}")
            return _failure("PDF generation failed", request_id)
        except Exception as e:
            logger.exception(f"[{request_id}] PDF generation failed: {e}")
            return _failure("PDF generation failed", request_id)
        finally:
            _active_renders -= 1

    logger.info(f"[{request_id}] PDF render completed ({len(pdf_bytes)} bytes)")

    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": attachment_header(filename),
            "Cache-Control": "no-store",
        }
    )


def _failure(message: str, request_id: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message, "requestId": request_id})
