"""
Issue tracking sessions for previews and direct links, and build launch URLs.
"""

from __future__ import annotations

import re
import uuid
from typing import Any, Dict, Optional

from content_platform.config import AppSettings
from content_platform.errors import ContentNotFoundError, ValidationError
from content_platform.repositories.content_repo import ContentRepository
from content_platform.repositories.tracking_repo import TrackingRepository
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

_DASHLESS_RE = re.compile(r"^[0-9a-fA-F]{32}$")


def restore_uuid_dashes(value: Optional[str]) -> Optional[str]:
    """'0123...cdef' (32 hex) -> 8-4-4-4-12 form. Dashed UUIDs pass through, anything else is None."""
    raw = (value or "").strip()
    if _DASHLESS_RE.match(raw):
        return f"{raw[0:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:32]}"
    if len(raw) == 36:
        try:
            parsed = str(uuid.UUID(raw))
        except ValueError:
            return None
        return raw if parsed == raw.lower() else None
    return None


def launch_url(root_url: str, content_id: str, tracking_id: str) -> str:
    return f"{root_url.rstrip('/')}/launch/{content_id.replace('-', '')}/{tracking_id.replace('-', '')}"


class LinkService:
    def __init__(
        self,
        settings: AppSettings,
        content_repo: Optional[ContentRepository] = None,
        tracking_repo: Optional[TrackingRepository] = None,
    ) -> None:
        self.settings = settings
        self.content_repo = content_repo or ContentRepository()
        self.tracking_repo = tracking_repo or TrackingRepository()

    def _require_content(self, content_id: str) -> Dict[str, Any]:
        content = self.content_repo.get_content_by_id(content_id)
        if not content:
            raise ContentNotFoundError("Content not found", detail=content_id)
        return content

    def create_preview_link(self, content_id: str) -> str:
        content = self._require_content(content_id)
        training_id = self.tracking_repo.create_training(
            training_content_id=content_id,
            name=f"Preview: {content.get('title') or content_id}",
            training_type="preview",
            company_id="system",
            description="Auto-generated training for content preview",
        )
        session = self.tracking_repo.create_session(training_id, "preview")
        url = launch_url(self.settings.base_url, content_id, session["unique_tracking_id"])
        self.content_repo.set_preview_url(content_id, url)
        logger.info("Preview link issued for content %s", content_id)
        return url

    def create_direct_link(self, content_id: str, recipient_id: str, company_id: Optional[str] = None) -> Dict[str, Any]:
        if not (recipient_id or "").strip():
            raise ValidationError("recipient_id is required")
        content = self._require_content(content_id)
        training_id = self.tracking_repo.create_training(
            training_content_id=content_id,
            name=f"Direct Link: {content.get('title') or content_id}",
            training_type="direct_link",
            company_id=company_id or "default",
            description="Auto-generated training for direct link",
        )
        session = self.tracking_repo.create_session(training_id, recipient_id.strip())

        root_url = self.settings.base_url
        if content.get("domain_id"):
            domain = self.content_repo.get_active_domain(content["domain_id"])
            if domain and domain.get("domain_url"):
                root_url = domain["domain_url"]

        url = launch_url(root_url, content_id, session["unique_tracking_id"])
        logger.info("Direct link issued for content %s, recipient %s", content_id, recipient_id)
        return {
            "training_id": training_id,
            "tracking_id": session["id"],
            "unique_tracking_id": session["unique_tracking_id"],
            "direct_url": url,
            "content": {
                "id": content["id"],
                "title": content.get("title"),
                "type": content.get("content_type"),
            },
        }
