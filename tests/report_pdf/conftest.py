"""
Pytest fixtures for report PDF service tests.
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch

# IMPORTANT: Set environment variables BEFORE any imports from report_pdf
# so PdfServiceSettings is configured correctly when first loaded.
os.environ["ENVIRONMENT"] = "development"
os.environ["CORS_ORIGINS"] = "https://www.scarevision.ai,https://scarevision.ai"
os.environ["WAIT_STRATEGY"] = "load"
os.environ["SETTLE_DELAY_MS"] = "0"
os.environ["VALIDATE_BROWSER_ON_STARTUP"] = "false"
os.environ["MAX_CONCURRENT_RENDERS"] = "5"
os.environ.pop("PDF_LIBRARY_PATH", None)

import pytest
from fastapi.testclient import TestClient


def install_fake_playwright(mock_async_playwright, pdf_bytes=b"%PDF-1.4 fake pdf content",
                            launch_error=None, pdf_error=None, set_content_error=None):
    """
    Wire a patched async_playwright() to fake driver/browser/page objects.

    Returns (driver, browser, page) so tests can assert on release calls.
    """
    page = AsyncMock()
    page.pdf = AsyncMock(return_value=pdf_bytes, side_effect=pdf_error)
    page.set_content = AsyncMock(side_effect=set_content_error)

    browser = AsyncMock()
    browser.new_page = AsyncMock(return_value=page)

    driver = MagicMock()
    driver.stop = AsyncMock()
    driver.chromium = MagicMock(
        launch=AsyncMock(return_value=browser, side_effect=launch_error)
    )
    mock_async_playwright.return_value.start = AsyncMock(return_value=driver)
    return driver, browser, page


@pytest.fixture
def client():
    """Create test client with the browser marked as ready."""
    import report_pdf.app as app_module
    app_module._browser_ready = True
    app_module._browser_error = None
    from report_pdf.app import app
    return TestClient(app)


@pytest.fixture
def client_browser_unavailable():
    """Create test client with the browser marked as unavailable."""
    import report_pdf.app as app_module
    app_module._browser_ready = False
    app_module._browser_error = "Test: Chromium not available"
    from report_pdf.app import app
    return TestClient(app)


@pytest.fixture
def fake_playwright():
    """
    Patch async_playwright and return an installer for fake browser objects.

    Usage: driver, browser, page = fake_playwright(launch_error=RuntimeError())
    """
    with patch("playwright.async_api.async_playwright") as mock_async_playwright:
        def install(**kwargs):
            return install_fake_playwright(mock_async_playwright, **kwargs)
        yield install
