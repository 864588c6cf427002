"""
Report client - fetch grading text and turn it into a PDF.

Calls the reporting service for a session's grading text, posts it to the
render endpoint as Markdown and saves the returned PDF.

Usage:
    python -m report_pdf.client --session-id abc123 --output-dir ./reports
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx

from .config import get_settings

logger = logging.getLogger(__name__)


class ReportClientError(Exception):
    """Fetching the grading text or rendering the PDF failed."""


class ReportPdfClient:
    """Client for the grading service and the render endpoint."""

    def __init__(self, grading_base_url: str = None, pdf_service_url: str = None,
                 title: str = None, logo_url: str = None, timeout: float = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings()
        self.grading_base_url = (grading_base_url or settings.grading_base_url).rstrip("/")
        self.pdf_service_url = pdf_service_url or settings.pdf_service_url
        self.title = title or settings.default_title
        self.logo_url = settings.report_logo_url if logo_url is None else logo_url
        self.timeout = timeout or settings.client_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def fetch_grading_text(self, session_id: str) -> str:
        """
        Fetch the grading text for a session.

        Raises:
            ReportClientError: on HTTP failure or when the text is empty
        """
        session_id = (session_id or "").strip()
        if not session_id:
            raise ReportClientError("Missing sessionId")

        url = f"{self.grading_base_url}/api/get-grading"
        async with self._client() as client:
            try:
                response = await client.get(
                    url,
                    params={"sessionId": session_id, "force": "1"},
                    headers={"Cache-Control": "no-store"},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException:
                raise ReportClientError("Grading service timed out")
            except httpx.HTTPStatusError as e:
                raise ReportClientError(f"Grading service error (HTTP {e.response.status_code})")
            except httpx.RequestError as e:
                raise ReportClientError(f"Grading service unavailable: {e}")
            except ValueError:
                raise ReportClientError("Grading service returned invalid JSON")

        if not isinstance(data, dict):
            raise ReportClientError("Grading service returned invalid JSON")

        grading_text = str(data.get("gradingText") or "")
        if not grading_text.strip():
            raise ReportClientError("Grading text was empty.")
        return grading_text

    async def render_pdf(self, markdown: str, filename: str, title: str = None,
                         logo_url: str = None) -> bytes:
        """
        Post Markdown to the render endpoint and return the PDF bytes.

        title and logo_url override the client defaults for this call.
        The service's JSON error message is used when it sends one.
        """
        payload = {
            "markdown": markdown,
            "title": title or self.title,
            "logoUrl": self.logo_url if logo_url is None else logo_url,
            "filename": filename,
        }
        async with self._client() as client:
            try:
                response = await client.post(self.pdf_service_url, json=payload)
            except httpx.TimeoutException:
                raise ReportClientError("PDF generation timed out. Please try again.")
            except httpx.RequestError as e:
                raise ReportClientError(f"PDF service unavailable: {e}")

        if response.is_error:
            message = f"PDF service error (HTTP {response.status_code})"
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict) and data.get("error"):
                message = str(data["error"])
            raise ReportClientError(message)

        return response.content

    async def download_report(self, session_id: str, output_dir: Path) -> Path:
        """Fetch, render and save grading-<sessionId>.pdf in output_dir."""
        session_id = (session_id or "").strip()
        filename = f"grading-{session_id}.pdf"

        grading_text = await self.fetch_grading_text(session_id)
        pdf_bytes = await self.render_pdf(grading_text, filename)

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / filename
        target.write_bytes(pdf_bytes)
        logger.info(f"Saved {len(pdf_bytes)} byte report to {target}")
        return target


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Download a grading report as PDF")
    parser.add_argument("--session-id", required=True, help="Session identifier")
    parser.add_argument("--output-dir", default=".", help="Directory for the PDF (default: .)")
    parser.add_argument("--pdf-service-url", default=None, help="Render endpoint URL")
    parser.add_argument("--grading-base-url", default=None, help="Grading service base URL")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    client = ReportPdfClient(
        grading_base_url=args.grading_base_url,
        pdf_service_url=args.pdf_service_url,
    )
    try:
        path = asyncio.run(client.download_report(args.session_id, Path(args.output_dir)))
    except ReportClientError as e:
        logger.error(f"Report download failed: {e}")
        return 1

    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
