"""
Document composer for report PDFs.

Turns a report title, optional logo URL and body markup into one
self-contained HTML document with an embedded print stylesheet.
Everything here is pure: no I/O, deterministic output for identical input.
"""

from functools import lru_cache
from typing import Optional

from markdown_it import MarkdownIt

from .config import DEFAULT_TITLE

_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#039;"),
)

PRINT_STYLESHEET = """
    @page { margin: 18mm 16mm; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
      font-size: 11.5pt;
      line-height: 1.45;
      color: #111;
    }
    .wrap { max-width: 1280px; margin: 0 auto; }
    .header { margin-bottom: 14mm; }
    .logo { height: 18mm; width: auto; display: block; }
    h1 { font-size: 18pt; margin: 8mm 0 0; }
    h2 { font-size: 13.5pt; margin: 10mm 0 3mm; break-after: avoid; }
    h3 { font-size: 12pt; margin: 8mm 0 2mm; break-after: avoid; }
    p { margin: 3mm 0; }
    ul, ol { margin: 3mm 0 3mm 6mm; padding: 0; }
    li { margin: 1.5mm 0; }
    p, li { orphans: 3; widows: 3; }
    h2 { border-top: 1px solid #e5e5e5; padding-top: 4mm; }
    h2:first-of-type { border-top: none; padding-top: 0; }
    table { border-collapse: collapse; margin: 3mm 0; }
    th, td { border: 1px solid #ddd; padding: 1.5mm 2.5mm; text-align: left; }
    tr { break-inside: avoid; }
"""


def escape_html(value: Optional[str]) -> str:
    """
    Escape text for use as HTML text or a quoted attribute value.

    Ampersand is replaced first so existing entities are not double-decoded.

    Example:
        >>> escape_html('<b>"Tom" & Jerry\\'s</b>')
        '&lt;b&gt;&quot;Tom&quot; &amp; Jerry&#039;s&lt;/b&gt;'
    """
    text = "" if value is None else str(value)
    for char, entity in _ESCAPES:
        text = text.replace(char, entity)
    return text


@lru_cache(maxsize=1)
def _markdown_parser() -> MarkdownIt:
    # CommonMark core plus GFM tables/strikethrough/autolinks; single newlines become <br>
    return MarkdownIt(
        "commonmark", {"breaks": True, "html": True, "linkify": True}
    ).enable(["table", "strikethrough", "linkify"])


def markdown_to_html(markdown_text: str) -> str:
    """Render Markdown to an HTML fragment."""
    return _markdown_parser().render(markdown_text or "")


def resolve_body_html(html: Optional[str], markdown_text: Optional[str]) -> str:
    """
    Pick the body markup for a request.

    Caller-supplied HTML is trusted and used verbatim; otherwise the
    Markdown is parsed.
    """
    if html:
        return html
    return markdown_to_html(markdown_text or "")


def compose_document(title: Optional[str], logo_url: Optional[str], body_html: str) -> str:
    """
    Build the complete HTML document handed to the renderer.

    Args:
        title: Report title, escaped. Falls back to the default title when empty.
        logo_url: Optional logo image URL, escaped. No <img> is emitted when empty.
        body_html: Already-rendered body markup, embedded as-is.

    Returns:
        Self-contained HTML document string
    """
    safe_title = escape_html(title or DEFAULT_TITLE)
    logo_html = ""
    if logo_url:
        logo_html = f'<img class="logo" src="{escape_html(logo_url)}" alt="Logo" />'

    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{safe_title}</title>
  <style>{PRINT_STYLESHEET}  </style>
</head>
<body>
  <div class="wrap">
    <div class="header">
      {logo_html}
      <h1>{safe_title}</h1>
    </div>
    <div class="content">{body_html}</div>
  </div>
</body>
</html>"""
