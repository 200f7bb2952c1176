"""
Pydantic models for the API.

Request/response models shared across route modules.
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class SessionCreated(BaseModel):
    """Response for a new editing session"""
    session_id: str = Field(..., description="Identifier to use in /api/sessions/{id}/...")


class SessionState(BaseModel):
    """Current session snapshot"""
    id: str
    state: str = Field(..., description="idle | editing | unlocked | converting | success | failed")
    unlocked: bool = Field(..., description="True once content was non-empty at least once")
    error_reason: Optional[str] = None
    content: str = Field(..., description="Canonical content (plain text verbatim or rich HTML)")
    is_rich: bool = Field(..., description="Whether content is rich HTML")
    html: str = Field(..., description="Render-safe markup of the content")
    has_output: bool = Field(default=False, description="A saved PDF is available for download")


class ContentUpdate(BaseModel):
    """Editor surface snapshot taken when editing finishes (blur)"""
    markup: str = Field(default="", description="Live editor markup")
    text: Optional[str] = Field(default=None, description="Live editor text (innerText)")


class FormatRequest(BaseModel):
    """A toolbar formatting command"""
    command: str = Field(..., description="e.g. bold, italic, fontSize, justifyCenter, insertOrderedList")
    value: Optional[str] = Field(default=None, description="Command argument, e.g. '5' for fontSize")


class ContentResponse(BaseModel):
    """Canonical content after a change"""
    content: str
    is_rich: bool
    html: str
    state: str
    unlocked: bool


class ConvertResponse(BaseModel):
    """Result of a conversion"""
    status: str = Field(..., description="completed | ignored")
    state: str
    download_url: Optional[str] = None


class NotificationItem(BaseModel):
    message: str
    severity: str
    duration_ms: int
    sequence: int
    timestamp: str


class NotificationFeed(BaseModel):
    """Current notification plus history"""
    current: Optional[NotificationItem] = None
    history: List[NotificationItem] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Body of every VpdfError response"""
    detail: str
    error: str
    severity: str
