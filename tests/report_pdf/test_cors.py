"""
Unit tests for allow-list CORS headers.
"""

from starlette.datastructures import MutableHeaders

from report_pdf.cors import apply_cors_headers

ALLOWED = {"https://scarevision.ai"}


class TestApplyCorsHeaders:
    """Tests for apply_cors_headers function."""

    def test_allowed_origin(self):
        headers = MutableHeaders()
        apply_cors_headers("https://scarevision.ai", headers, ALLOWED)

        assert headers["access-control-allow-origin"] == "https://scarevision.ai"
        assert headers["vary"] == "Origin"

    def test_disallowed_origin(self):
        headers = MutableHeaders()
        apply_cors_headers("https://other.example", headers, ALLOWED)

        assert "access-control-allow-origin" not in headers
        assert "vary" not in headers
        assert headers["access-control-max-age"] == "86400"

    def test_missing_origin(self):
        headers = MutableHeaders()
        apply_cors_headers("", headers, ALLOWED)

        assert "access-control-allow-origin" not in headers
        assert headers["access-control-allow-methods"] == "POST, OPTIONS"

    def test_existing_vary_preserved(self):
        headers = MutableHeaders({"vary": "Accept-Encoding"})
        apply_cors_headers("https://scarevision.ai", headers, ALLOWED)

        assert headers["vary"] == "Accept-Encoding, Origin"
