"""
Pydantic models for API request/response schemas.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


# Content
class CreateContentRequest(BaseModel):
    """Request model for raw HTML / email content submission."""
    content_type: str  # "training" | "landing" | "email"
    title: str = "Untitled Content"
    description: Optional[str] = None
    company_id: Optional[str] = None
    domain_id: Optional[str] = None
    html: Optional[str] = None
    email_subject: Optional[str] = None
    email_from_address: Optional[str] = None


class ContentProcessedResponse(BaseModel):
    success: bool = True
    content_id: str
    content_type: str
    path: str
    tags: List[str] = []
    difficulty: Optional[int] = None
    annotation_skipped: bool = False
    partial: bool = False
    failed_chunks: List[int] = []
    preview_url: Optional[str] = None


class DirectLinkRequest(BaseModel):
    content_id: str
    recipient_id: str
    company_id: Optional[str] = None
    email: Optional[str] = None


# Tracking (called from served artifacts)
class TrackViewRequest(BaseModel):
    tracking_link_id: str
    content_id: Optional[str] = None


class TrackInteractionRequest(BaseModel):
    tracking_link_id: str
    tag_name: str
    interaction_type: str
    interaction_value: Optional[str] = None
    success: Optional[bool] = None


class RecordScoreRequest(BaseModel):
    tracking_link_id: str
    score: float
    content_id: Optional[str] = None
    interactions: List[Dict[str, Any]] = []
