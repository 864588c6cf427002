"""Request/response models for the report PDF service."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RenderPdfRequest(BaseModel):
    """Markdown or HTML report to PDF request."""
    title: Optional[str] = Field(None, description="Report title (default: Consultation Feedback Report)")
    logoUrl: Optional[str] = Field(None, description="Logo image URL shown above the title")
    filename: Optional[str] = Field(None, description="Download filename (default: consultation-feedback.pdf)")
    html: Optional[str] = Field(None, description="Trusted HTML body, used verbatim")
    markdown: Optional[str] = Field(None, description="Markdown body, used when html is absent")


class ErrorResponse(BaseModel):
    error: str
    requestId: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    active_renders: int
    max_concurrent: int
    wait_strategy: str
    browser_ready: bool = True
    browser_error: Optional[str] = None
