"""
Unit tests for the report client.

The grading service and render endpoint are faked with httpx.MockTransport.
"""

import json

import httpx
import pytest

from report_pdf.client import ReportClientError, ReportPdfClient, main

GRADING_BASE = "https://grading.example"
PDF_URL = "https://pdf.example/api/render-pdf"


def _client(handler, **kwargs):
    return ReportPdfClient(
        grading_base_url=GRADING_BASE,
        pdf_service_url=PDF_URL,
        title="Consultation Feedback Report",
        logo_url="https://cdn.example/logo.png",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestFetchGradingText:
    """Tests for fetch_grading_text."""

    @pytest.mark.asyncio
    async def test_returns_grading_text(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={"gradingText": "## Score\n\n8/10"})

        text = await _client(handler).fetch_grading_text(" abc 123 ")

        assert text == "## Score\n\n8/10"
        assert seen["url"].path == "/api/get-grading"
        assert seen["url"].params["sessionId"] == "abc 123"
        assert seen["url"].params["force"] == "1"

    @pytest.mark.asyncio
    async def test_empty_text_raises(self):
        client = _client(lambda request: httpx.Response(200, json={"gradingText": "   "}))

        with pytest.raises(ReportClientError, match="empty"):
            await client.fetch_grading_text("abc")

    @pytest.mark.asyncio
    async def test_missing_session_id_raises(self):
        client = _client(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ReportClientError, match="sessionId"):
            await client.fetch_grading_text("  ")

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = _client(lambda request: httpx.Response(404, json={"error": "not found"}))

        with pytest.raises(ReportClientError, match="HTTP 404"):
            await client.fetch_grading_text("abc")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["x"], "text"])
    async def test_non_object_json_raises(self, body):
        """Test that a JSON list or string body is reported as invalid JSON."""
        client = _client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(ReportClientError, match="invalid JSON"):
            await client.fetch_grading_text("s1")

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ReportClientError, match="unavailable"):
            await _client(handler).fetch_grading_text("abc")


class TestRenderPdf:
    """Tests for render_pdf."""

    @pytest.mark.asyncio
    async def test_posts_markdown_payload(self):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            seen["method"] = request.method
            return httpx.Response(200, content=b"%PDF-1.4 data",
                                  headers={"Content-Type": "application/pdf"})

        pdf = await _client(handler).render_pdf("# Report", "grading-abc.pdf")

        assert pdf == b"%PDF-1.4 data"
        assert seen["method"] == "POST"
        assert seen["payload"] == {
            "markdown": "# Report",
            "title": "Consultation Feedback Report",
            "logoUrl": "https://cdn.example/logo.png",
            "filename": "grading-abc.pdf",
        }

    @pytest.mark.asyncio
    async def test_uses_service_error_message(self):
        client = _client(lambda request: httpx.Response(413, json={"error": "Markdown exceeds 200000 characters"}))

        with pytest.raises(ReportClientError, match="Markdown exceeds"):
            await client.render_pdf("x", "f.pdf")

    @pytest.mark.asyncio
    async def test_generic_message_without_json(self):
        client = _client(lambda request: httpx.Response(502, content=b"Bad Gateway"))

        with pytest.raises(ReportClientError, match=r"HTTP 502"):
            await client.render_pdf("x", "f.pdf")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [["boom"], "text"])
    async def test_non_object_error_body_uses_generic_message(self, body):
        client = _client(lambda request: httpx.Response(500, json=body))

        with pytest.raises(ReportClientError, match=r"PDF service error \(HTTP 500\)"):
            await client.render_pdf("# hi", "a.pdf")

    @pytest.mark.asyncio
    async def test_title_and_logo_override(self):
        seen = {}

        def handler(request):
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, content=b"%PDF-1.4")

        await _client(handler).render_pdf("x", "f.pdf", title="Custom Title", logo_url="")

        assert seen["payload"]["title"] == "Custom Title"
        assert seen["payload"]["logoUrl"] == ""

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ReportClientError, match="timed out"):
            await _client(handler).render_pdf("x", "f.pdf")


class TestDownloadReport:
    """Tests for the fetch-render-save flow."""

    @staticmethod
    def _handler(request):
        if request.url.path == "/api/get-grading":
            return httpx.Response(200, json={"gradingText": "Great consultation."})
        return httpx.Response(200, content=b"%PDF-1.4 report")

    @pytest.mark.asyncio
    async def test_writes_pdf(self, tmp_path):
        path = await _client(self._handler).download_report("abc123", tmp_path / "out")

        assert path.name == "grading-abc123.pdf"
        assert path.read_bytes() == b"%PDF-1.4 report"

    @pytest.mark.asyncio
    async def test_no_file_when_render_fails(self, tmp_path):
        def handler(request):
            if request.url.path == "/api/get-grading":
                return httpx.Response(200, json={"gradingText": "text"})
            return httpx.Response(500, json={"error": "PDF generation failed", "requestId": "r1"})

        with pytest.raises(ReportClientError, match="PDF generation failed"):
            await _client(handler).download_report("abc123", tmp_path)

        assert list(tmp_path.iterdir()) == []


class TestMain:
    """Tests for the command line entry point."""

    def test_returns_1_on_client_error(self, monkeypatch, tmp_path):
        async def failing(self, session_id, output_dir):
            raise ReportClientError("Grading text was empty.")

        monkeypatch.setattr(ReportPdfClient, "download_report", failing)

        assert main(["--session-id", "abc", "--output-dir", str(tmp_path)]) == 1

    def test_prints_path_on_success(self, monkeypatch, tmp_path, capsys):
        async def succeed(self, session_id, output_dir):
            return output_dir / f"grading-{session_id}.pdf"

        monkeypatch.setattr(ReportPdfClient, "download_report", succeed)

        assert main(["--session-id", "abc", "--output-dir", str(tmp_path)]) == 0
        assert "grading-abc.pdf" in capsys.readouterr().out
