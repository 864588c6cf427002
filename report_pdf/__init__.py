"""
Report PDF Service - Markdown/HTML report to PDF rendering.

Composes a print-styled HTML document from a report body and renders it
to PDF with Playwright/Chromium. One browser instance per request.
"""

__version__ = "0.1.0"
